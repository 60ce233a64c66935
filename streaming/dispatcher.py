"""
Destination dispatcher: hand one finished batch to its sink.

Delivery failures are logged and absorbed. ``loadedData`` fires after
every attempt, successful or not.
"""

from typing import Any, Callable, Dict, List, Optional
import logging

from core.exceptions import DeliveryError
from schemas.destination import RELATIONAL_KINDS, DestinationBase, Record, SinkKind
from sinks.console import print_summary
from sinks.http_sink import send_request
from sinks.relational import insert_to_mssql, insert_to_postgres
from streaming.events import EventHub, PipelineEvent

logger = logging.getLogger(__name__)


def default_adapters() -> Dict[SinkKind, Callable[..., Any]]:
    return {
        SinkKind.POSTGRES: insert_to_postgres,
        SinkKind.MSSQL: insert_to_mssql,
        SinkKind.HTTP: send_request,
    }


class DestinationDispatcher:
    """
    Route batches to sink adapters by destination type.

    Relational adapters are called as ``(batch, connection, table)``, the
    HTTP adapter as ``(batch, setup)``. Any other type goes to the console.

    Attributes:
        events: Hub notified before and after each delivery
        adapters: Sink kind -> coroutine function
        delivered: Batches delivered without error
        failed: Batches whose adapter raised
    """

    def __init__(
        self,
        events: EventHub,
        adapters: Optional[Dict[SinkKind, Callable[..., Any]]] = None
    ):
        self.events = events
        self.adapters = default_adapters()
        if adapters:
            self.adapters.update({SinkKind(k): v for k, v in adapters.items()})
        self.delivered = 0
        self.failed = 0
        self.records_delivered = 0

    async def deliver(self, destination: DestinationBase, batch: List[Record]) -> bool:
        """
        Deliver ``batch`` to ``destination``.

        Returns:
            True if the sink accepted the batch, False if it raised or the
            batch was empty
        """
        if not batch:
            return False

        await self.events.emit(PipelineEvent.LOADING_DATA, destination)

        ok = False
        try:
            await self._send(destination, batch)
            ok = True
        except Exception as e:
            self.failed += 1
            if isinstance(e, DeliveryError):
                error = e
            else:
                error = DeliveryError(
                    f"Delivery to {destination.label} failed",
                    original_exception=e
                )
            error.context.update({
                "destination": destination.label,
                "batch_size": len(batch)
            })
            logger.error(str(error), extra={"error_context": error.to_dict()})
        else:
            self.delivered += 1
            self.records_delivered += len(batch)

        await self.events.emit(PipelineEvent.LOADED_DATA, destination)
        return ok

    async def _send(self, destination: DestinationBase, batch: List[Record]) -> None:
        kind = destination.type

        if kind in RELATIONAL_KINDS:
            adapter = self.adapters[SinkKind(kind)]
            await adapter(batch, destination.setup.connection, destination.setup.table)
        elif kind == SinkKind.HTTP:
            await self.adapters[SinkKind.HTTP](batch, destination.setup)
        else:
            print_summary(batch)
