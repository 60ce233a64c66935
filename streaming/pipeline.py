# ============================================================================
# File: streaming/pipeline.py
# Description: Pipeline controller - normalize, consume, flush tails
# ============================================================================
"""
Pipeline controller.

Runs one source through every configured destination:

    NORMALIZING -> CONSUMING -> FLUSHING_TAIL -> DONE

A source that fails before its first unit moves a run to ERROR (and
propagates). A later source failure ends the read early and the buffered
tails are still flushed. Generator, delivery and handler failures are
logged and the run carries on.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union
import enum
import logging

from core.config import settings
from core.exceptions import SourceError
from schemas.destination import ConsoleDestination, DestinationBase, PipelineConfig, Record
from streaming.consumer import StreamConsumer
from streaming.dispatcher import DestinationDispatcher
from streaming.events import EventHandler, EventHub, PipelineEvent
from streaming.sources.base import RecordSource

logger = logging.getLogger(__name__)


class PipelineState(str, enum.Enum):
    """Lifecycle of one processing run"""
    IDLE = "idle"
    NORMALIZING = "normalizing"
    CONSUMING = "consuming"
    FLUSHING_TAIL = "flushing_tail"
    DONE = "done"
    ERROR = "error"


@dataclass
class RunStats:
    """Counters for the most recent run"""
    units_read: int = 0
    records_buffered: List[int] = field(default_factory=list)
    transform_failures: List[int] = field(default_factory=list)
    batches_flushed: List[int] = field(default_factory=list)
    batches_failed: List[int] = field(default_factory=list)
    records_delivered: List[int] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "units_read": self.units_read,
            "records_buffered": self.records_buffered,
            "transform_failures": self.transform_failures,
            "batches_flushed": self.batches_flushed,
            "batches_failed": self.batches_failed,
            "records_delivered": self.records_delivered,
        }


class Pipeline:
    """
    Fan-out pipeline over a single source.

    Usage:
        pipeline = Pipeline(PipelineConfig(destinations=[...]))
        pipeline.on("loadedData", handler)
        header = await pipeline.process(CSVSource("rows.csv"))
    """

    def __init__(
        self,
        config: Union[PipelineConfig, Dict[str, Any], None] = None,
        dispatcher: Optional[DestinationDispatcher] = None
    ):
        if config is None:
            config = PipelineConfig()
        elif isinstance(config, dict):
            config = PipelineConfig.model_validate(config)
        self.config = config
        self.events = dispatcher.events if dispatcher else EventHub(verbose=config.verbose)
        self.dispatcher = dispatcher or DestinationDispatcher(self.events)
        self.state = PipelineState.IDLE
        self.stats = RunStats()

    def on(self, event: Union[PipelineEvent, str], handler: EventHandler) -> None:
        """Register a lifecycle handler (``loadingData`` / ``loadedData``)"""
        self.events.register(event, handler)

    def normalize(self) -> PipelineConfig:
        """
        Fill defaults in place.

        No destinations -> one console destination. Missing batch sizes ->
        ``settings.DEFAULT_BATCH_SIZE``. Running it again changes nothing.
        """
        if not self.config.destinations:
            self.config.destinations = [ConsoleDestination()]

        for destination in self.config.destinations:
            if not destination.batch_size:
                destination.batch_size = settings.DEFAULT_BATCH_SIZE

        return self.config

    async def _flush(self, destination: DestinationBase, batch: List[Record]) -> None:
        index = next(
            i for i, d in enumerate(self.config.destinations) if d is destination
        )
        self.stats.batches_flushed[index] += 1
        logger.debug(f"Flushing {len(batch)} records to {destination.label}")
        if await self.dispatcher.deliver(destination, batch):
            self.stats.records_delivered[index] += len(batch)
        else:
            self.stats.batches_failed[index] += 1

    async def process(self, source: RecordSource) -> Optional[Any]:
        """
        Run ``source`` through every destination.

        Returns:
            The header surfaced by the source, if any

        Raises:
            SourceError: If the source fails before delivering any unit
        """
        self.state = PipelineState.NORMALIZING
        self.events.verbose = self.config.verbose
        destinations = self.normalize().destinations

        self.stats = RunStats(
            batches_flushed=[0] * len(destinations),
            batches_failed=[0] * len(destinations),
            records_delivered=[0] * len(destinations)
        )
        consumer = StreamConsumer(destinations)

        logger.info(
            f"Starting pipeline for {type(source).__name__} "
            f"({len(destinations)} destinations: {', '.join(d.label for d in destinations)})"
        )

        try:
            self.state = PipelineState.CONSUMING
            header = await consumer.consume(source, self._flush)

            self.state = PipelineState.FLUSHING_TAIL
            await consumer.flush_tails(self._flush)

        except SourceError as e:
            self.state = PipelineState.ERROR
            logger.error(
                f"Pipeline failed: {e.message}",
                extra={"error_context": e.to_dict()}
            )
            raise

        finally:
            self.stats.units_read = consumer.units_read
            self.stats.records_buffered = list(consumer.records_buffered)
            self.stats.transform_failures = list(consumer.transform_failures)

        self.state = PipelineState.DONE
        logger.info(f"Pipeline completed: {self.stats.to_dict()}")
        return header
