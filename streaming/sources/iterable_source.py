"""
Source over an in-memory iterable or an async iterable
"""

from typing import Any, AsyncIterable, Dict, Iterable, Optional, Union
import logging

from streaming.sources.base import RecordSource, SourceSignal

logger = logging.getLogger(__name__)


class IterableSource(RecordSource):
    """
    Wrap records from a list, generator or async generator.

    An exception raised by the wrapped iterable is emitted as the
    ``error`` signal.
    """

    def __init__(
        self,
        records: Union[Iterable[Dict[str, Any]], AsyncIterable[Dict[str, Any]]],
        header: Optional[Any] = None,
        unit_signal: SourceSignal = SourceSignal.DATA
    ):
        super().__init__()
        self.header = header
        self.unit_signal = SourceSignal(unit_signal)
        if hasattr(records, "__aiter__"):
            self._async_iterator = records.__aiter__()
            self._iterator = None
        else:
            self._async_iterator = None
            self._iterator = iter(records)

    async def _open(self) -> Optional[Any]:
        return self.header

    async def _read(self) -> Dict[str, Any]:
        if self._async_iterator is not None:
            return await self._async_iterator.__anext__()
        try:
            return next(self._iterator)
        except StopIteration:
            raise StopAsyncIteration
