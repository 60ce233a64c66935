"""
Fallback console sink: print a short summary of each batch
"""

import pandas as pd
from typing import Any, List, Optional

from core.config import settings


def print_summary(batch: List[Any], show: Optional[int] = None) -> None:
    """Print the row count and the first ``show`` rows as a table"""
    show = show or settings.CONSOLE_PREVIEW_ROWS
    print(f"Total size: {len(batch)} rows. First {show}")
    print(pd.DataFrame(batch[:show]).to_string())
