"""
Signal-based readable source with pause/resume flow control.

A source pushes units to its listeners only while resumed. Subclasses
implement ``_read`` (one record per call, ``StopAsyncIteration`` at the
end) and optionally ``_open`` (returns the header, if any).
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional
import asyncio
import enum
import logging

logger = logging.getLogger(__name__)


class SourceSignal(str, enum.Enum):
    """Signals a source can emit"""
    DATA = "data"
    ROW = "row"
    HEADER = "header"
    END = "end"
    CLOSE = "close"
    ERROR = "error"


UNIT_SIGNALS = (SourceSignal.DATA, SourceSignal.ROW)


class RecordSource(ABC):
    """
    Abstract base class for readable sources.

    Responsibilities:
    - Listener bookkeeping per signal
    - Flow control (``pause``/``resume``)
    - The ``readable`` predicate the pipeline loops on

    Sources start paused. ``resume`` schedules a pump task on the running
    loop that reads and emits units until the source is paused again or
    runs out.
    """

    unit_signal: SourceSignal = SourceSignal.DATA

    def __init__(self):
        self._listeners: Dict[SourceSignal, List[Callable[..., Any]]] = {}
        self._paused = True
        self._opened = False
        self._ended = False
        self._pump_task: Optional[asyncio.Task] = None

    @abstractmethod
    async def _read(self) -> Dict[str, Any]:
        """Return the next record or raise StopAsyncIteration"""
        pass

    async def _open(self) -> Optional[Any]:
        """Prepare the underlying resource; return a header value or None"""
        return None

    async def _close(self) -> None:
        """Release the underlying resource"""
        return None

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def on(self, signal: SourceSignal, handler: Callable[..., Any]) -> None:
        self._listeners.setdefault(SourceSignal(signal), []).append(handler)

    def remove_listener(self, signal: SourceSignal, handler: Callable[..., Any]) -> None:
        """Detach one registration of ``handler``; missing handlers are ignored"""
        handlers = self._listeners.get(SourceSignal(signal), [])
        if handler in handlers:
            handlers.remove(handler)

    def listener_count(self, signal: Optional[SourceSignal] = None) -> int:
        if signal is None:
            return sum(len(h) for h in self._listeners.values())
        return len(self._listeners.get(SourceSignal(signal), []))

    def _emit(self, signal: SourceSignal, *args: Any) -> None:
        for handler in list(self._listeners.get(signal, [])):
            handler(*args)

    # ------------------------------------------------------------------
    # Flow control
    # ------------------------------------------------------------------

    @property
    def readable(self) -> bool:
        """True until the source has ended or failed"""
        return not self._ended

    @property
    def paused(self) -> bool:
        return self._paused

    def pause(self) -> None:
        self._paused = True

    def resume(self) -> None:
        """Resume emission; must be called from inside a running event loop"""
        self._paused = False
        if self._ended:
            return
        if self._pump_task is None or self._pump_task.done():
            self._pump_task = asyncio.get_running_loop().create_task(self._pump())

    async def _pump(self) -> None:
        if not self._opened:
            self._opened = True
            try:
                header = await self._open()
            except Exception as e:
                await self._fail(e)
                return
            if header is not None:
                self._emit(SourceSignal.HEADER, header)

        while not self._paused and not self._ended:
            try:
                record = await self._read()
            except StopAsyncIteration:
                await self._finish()
                return
            except Exception as e:
                await self._fail(e)
                return
            self._emit(self.unit_signal, record)

    async def _finish(self) -> None:
        self._ended = True
        await self._close()
        self._emit(SourceSignal.END)
        self._emit(SourceSignal.CLOSE)

    async def _fail(self, error: Exception) -> None:
        logger.error(f"{type(self).__name__} failed: {error}")
        self._ended = True
        await self._close()
        self._emit(SourceSignal.ERROR, error)
