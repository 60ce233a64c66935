"""
CSV file source with chunked reading
"""

import pandas as pd
from typing import Any, Dict, Iterator, List, Optional
from pathlib import Path
import logging

from streaming.sources.base import RecordSource, SourceSignal

logger = logging.getLogger(__name__)


class CSVSource(RecordSource):
    """
    Stream rows from a CSV file.

    Supports:
    - Chunked reads so large files never sit in memory whole
    - Header emitted once as the list of column names
    - Header normalization
    """

    unit_signal = SourceSignal.ROW

    def __init__(
        self,
        file_path: str,
        chunk_size: int = 1000,
        normalize_columns: bool = False,
        **read_csv_options: Any
    ):
        super().__init__()
        self.file_path = Path(file_path)
        self.chunk_size = chunk_size
        self.normalize_columns = normalize_columns
        self.read_csv_options = read_csv_options
        self.columns: List[str] = []
        self._chunks: Optional[Iterator[pd.DataFrame]] = None
        self._rows: Iterator[Dict[str, Any]] = iter(())

    def _clean_columns(self, columns) -> List[str]:
        if not self.normalize_columns:
            return [str(c) for c in columns]
        # strip whitespace, lowercase
        return [str(c).strip().lower().replace(" ", "_") for c in columns]

    async def _open(self) -> Optional[Any]:
        logger.info(f"Reading CSV from {self.file_path}")

        # Raises FileNotFoundError / EmptyDataError -> error signal
        header = pd.read_csv(self.file_path, nrows=0, **self.read_csv_options)
        self.columns = self._clean_columns(header.columns)

        self._chunks = iter(
            pd.read_csv(self.file_path, chunksize=self.chunk_size, **self.read_csv_options)
        )
        return self.columns

    async def _read(self) -> Dict[str, Any]:
        while True:
            row = next(self._rows, None)
            if row is not None:
                return row

            chunk = next(self._chunks, None) if self._chunks is not None else None
            if chunk is None:
                raise StopAsyncIteration
            chunk.columns = self.columns
            chunk = chunk.astype(object).where(chunk.notna(), None)
            self._rows = iter(chunk.to_dict(orient="records"))

    async def _close(self) -> None:
        self._chunks = None
        self._rows = iter(())
