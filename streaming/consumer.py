"""
Stream consumer: flow-controlled reads and per-destination buffering.

Each call to ``next_unit`` subscribes to the source, resumes it, and
pauses it again the moment one unit arrives. The unit is then fanned out
to every destination, through the destination's record generator when it
has one. ``consume`` drives that loop until the source stops being
readable, flushing every buffer that reaches its batch size.
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Sequence
import asyncio
import logging

from core.config import settings
from core.exceptions import SourceError, TransformError
from schemas.destination import DestinationBase, Record
from streaming.sources.base import UNIT_SIGNALS, RecordSource, SourceSignal

logger = logging.getLogger(__name__)

FlushFn = Callable[[DestinationBase, List[Record]], Awaitable[Any]]

_NO_UNIT = object()


@dataclass
class ConsumedUnit:
    """
    Outcome of one read.

    ``data`` holds one list per destination (empty lists when the source
    ended first). With no destinations configured it is the raw unit.
    """
    data: Any
    header: Optional[Any] = None


class _Subscription:
    """Listener registrations on a source, detached exactly once"""

    def __init__(self, source: RecordSource, handlers: Dict[SourceSignal, Callable[..., Any]]):
        self.source = source
        self.handlers = handlers
        self.active = False

    def __enter__(self) -> "_Subscription":
        for signal, handler in self.handlers.items():
            self.source.on(signal, handler)
        self.active = True
        return self

    def close(self) -> None:
        if not self.active:
            return
        self.active = False
        for signal, handler in self.handlers.items():
            self.source.remove_listener(signal, handler)

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class StreamConsumer:
    """
    Pull units from a source and accumulate them per destination.

    Attributes:
        buffers: Cumulative per-destination buffers for the current run
        units_read: Units received from the source
        records_buffered: Records appended per destination
        transform_failures: Generator failures per destination
    """

    def __init__(self, destinations: Sequence[DestinationBase]):
        self.destinations = destinations
        self.buffers: List[List[Record]] = self._empty_buffers()
        self.units_read = 0
        self.records_buffered = [0] * len(destinations)
        self.transform_failures = [0] * len(destinations)

    def _empty_buffers(self) -> List[List[Record]]:
        return [[] for _ in self.destinations]

    def _batch_size(self, destination: DestinationBase) -> int:
        return destination.batch_size or settings.DEFAULT_BATCH_SIZE

    # ------------------------------------------------------------------
    # Single unit
    # ------------------------------------------------------------------

    async def next_unit(self, source: RecordSource) -> ConsumedUnit:
        """
        Read exactly one unit from ``source``.

        Returns empty buffers if the source ends before a unit arrives.

        Raises:
            SourceError: If the source signals an error before a unit arrives
        """
        if not source.readable:
            return ConsumedUnit(data=self._empty_buffers())

        outcome: asyncio.Future = asyncio.get_running_loop().create_future()
        header = None

        def on_header(value: Any) -> None:
            nonlocal header
            header = value

        def on_end(*_: Any) -> None:
            subscription.close()
            if not outcome.done():
                outcome.set_result(_NO_UNIT)

        def on_error(error: Any = None) -> None:
            subscription.close()
            if not outcome.done():
                outcome.set_exception(SourceError(
                    f"Source {type(source).__name__} failed: {error}",
                    context={
                        "source": type(source).__name__,
                        "units_read": self.units_read
                    },
                    original_exception=error if isinstance(error, BaseException) else None
                ))

        def on_unit(record: Any) -> None:
            source.pause()
            subscription.close()
            if not outcome.done():
                outcome.set_result(record)

        handlers = {
            SourceSignal.END: on_end,
            SourceSignal.CLOSE: on_end,
            SourceSignal.ERROR: on_error,
            SourceSignal.HEADER: on_header,
        }
        handlers.update({signal: on_unit for signal in UNIT_SIGNALS})
        subscription = _Subscription(source, handlers)

        with subscription:
            source.resume()
            record = await outcome

        if record is _NO_UNIT:
            return ConsumedUnit(data=self._empty_buffers(), header=header)

        self.units_read += 1
        if not self.destinations:
            return ConsumedUnit(data=record, header=header)
        return ConsumedUnit(data=await self._fan_out(record), header=header)

    async def _fan_out(self, record: Any) -> List[List[Record]]:
        data = self._empty_buffers()

        for index, destination in enumerate(self.destinations):
            copy = dict(record) if isinstance(record, Mapping) else record
            generator = destination.record_generator
            if generator is None:
                data[index].append(copy)
                continue

            produced: List[Record] = []
            try:
                records = generator(copy)
                if hasattr(records, "__aiter__"):
                    async for item in records:
                        produced.append(item)
                else:
                    for item in records:
                        produced.append(item)
            except Exception as e:
                self.transform_failures[index] += 1
                error = TransformError(
                    f"Record generator failed for {destination.label}",
                    context={
                        "destination": destination.label,
                        "destination_index": index,
                        "unit": self.units_read
                    },
                    original_exception=e
                )
                logger.error(str(error), extra={"error_context": error.to_dict()})
                continue

            data[index].extend(produced)

        return data

    # ------------------------------------------------------------------
    # Driving loop
    # ------------------------------------------------------------------

    async def consume(self, source: RecordSource, flush: FlushFn) -> Optional[Any]:
        """
        Read ``source`` until it is no longer readable.

        Full batches are handed to ``flush`` oldest-first, destinations in
        list order. Tails stay buffered for ``flush_tails``.

        A source error after at least one unit ends the read early; what
        was buffered is kept for ``flush_tails``.

        Returns:
            The last header the source surfaced, or None

        Raises:
            SourceError: If the source fails before delivering any unit
        """
        self.buffers = self._empty_buffers()
        header = None

        while source.readable:
            try:
                result = await self.next_unit(source)
            except SourceError as e:
                if self.units_read == 0:
                    raise
                logger.error(
                    f"Stopped reading {type(source).__name__} after {self.units_read} units: {e.message}",
                    extra={"error_context": e.to_dict()}
                )
                break
            except Exception as e:
                logger.error(f"Failed to read from {type(source).__name__}: {e}")
                continue

            if result.header is not None:
                header = result.header

            for index, destination in enumerate(self.destinations):
                records = result.data[index]
                self.buffers[index].extend(records)
                self.records_buffered[index] += len(records)

                batch_size = self._batch_size(destination)
                while len(self.buffers[index]) >= batch_size:
                    batch = self.buffers[index][:batch_size]
                    del self.buffers[index][:batch_size]
                    await flush(destination, batch)

        return header

    async def flush_tails(self, flush: FlushFn) -> None:
        """Flush every non-empty remaining buffer once, in destination order"""
        for index, destination in enumerate(self.destinations):
            tail = self.buffers[index]
            self.buffers[index] = []
            if tail:
                await flush(destination, tail)
