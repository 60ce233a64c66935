"""
Readable sources for the pipeline.

Every source speaks the same signal contract (``data``/``row``,
``header``, ``end``/``close``, ``error``) with pause/resume flow control.
"""

from streaming.sources.base import RecordSource, SourceSignal, UNIT_SIGNALS
from streaming.sources.iterable_source import IterableSource
from streaming.sources.csv_source import CSVSource

__all__ = [
    "RecordSource",
    "SourceSignal",
    "UNIT_SIGNALS",
    "IterableSource",
    "CSVSource",
]
