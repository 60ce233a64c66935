"""
Ordered event hub for pipeline lifecycle hooks.

Handlers run one at a time in registration order. A failing handler is
logged and skipped; it never reaches the emitter.
"""

from typing import Any, Callable, Dict, List, Union
import enum
import inspect
import logging

from core.exceptions import ConfigurationError, HandlerError

logger = logging.getLogger(__name__)


class PipelineEvent(str, enum.Enum):
    """Events fired around each batch delivery"""
    LOADING_DATA = "loadingData"
    LOADED_DATA = "loadedData"


EventHandler = Callable[..., Any]


class EventHub:
    """
    Mapping from event kind to an ordered list of handlers.

    Registration is append-only; registering the same handler twice makes
    it fire twice.
    """

    def __init__(self, verbose: bool = False):
        self.verbose = verbose
        self._handlers: Dict[PipelineEvent, List[EventHandler]] = {}

    @staticmethod
    def _resolve(event: Union[PipelineEvent, str]) -> PipelineEvent:
        try:
            return PipelineEvent(event)
        except ValueError:
            raise ConfigurationError(
                f"Unknown pipeline event: {event!r}",
                context={"known_events": [e.value for e in PipelineEvent]}
            )

    def register(self, event: Union[PipelineEvent, str], handler: EventHandler) -> None:
        """Append ``handler`` to the list for ``event``"""
        self._handlers.setdefault(self._resolve(event), []).append(handler)

    def handlers(self, event: Union[PipelineEvent, str]) -> List[EventHandler]:
        """Return a copy of the handlers registered for ``event``"""
        return list(self._handlers.get(self._resolve(event), []))

    async def emit(self, event: Union[PipelineEvent, str], *args: Any) -> None:
        """
        Invoke every handler for ``event`` with ``args``, awaiting each
        before starting the next.

        Handlers may be plain callables or coroutine functions.
        """
        kind = self._resolve(event)

        if self.verbose:
            logger.info(f"Event {kind.value}: args={args!r}")

        for position, handler in enumerate(self._handlers.get(kind, [])):
            try:
                result = handler(*args)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                error = HandlerError(
                    f"Handler for {kind.value} failed",
                    context={
                        "event": kind.value,
                        "handler": getattr(handler, "__qualname__", repr(handler)),
                        "position": position
                    },
                    original_exception=e
                )
                logger.error(str(error), extra={"error_context": error.to_dict()})
