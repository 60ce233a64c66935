"""
Script to run the pipeline over a CSV file with a JSON destination config

Usage:
    python scripts/run_pipeline.py pipeline.json data.csv
"""

import asyncio
import json
import sys
import logging
from pathlib import Path
from typing import Any, Optional

from core.logging import setup_logging
from core.exceptions import PipelineException
from schemas.destination import PipelineConfig
from streaming.pipeline import Pipeline
from streaming.sources.csv_source import CSVSource

logger = logging.getLogger(__name__)


def build_config(config_path: Optional[str]) -> PipelineConfig:
    """Load a PipelineConfig from a JSON file; no file means console only"""
    if not config_path:
        return PipelineConfig()
    data = json.loads(Path(config_path).read_text())
    return PipelineConfig.model_validate(data)


async def run(config_path: Optional[str], csv_path: str) -> Any:
    """Run the pipeline and return the CSV header"""
    pipeline = Pipeline(build_config(config_path))

    def log_loading(destination):
        logger.info(f"Loading batch into {destination.label}")

    pipeline.on("loadingData", log_loading)

    header = await pipeline.process(CSVSource(csv_path))
    logger.info(f"Columns: {header}")
    return header


def main(argv=None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    if not argv:
        print(__doc__)
        return 2

    setup_logging()
    config_path, csv_path = (argv[0], argv[1]) if len(argv) > 1 else (None, argv[0])

    try:
        asyncio.run(run(config_path, csv_path))
    except PipelineException as e:
        logger.error(f"Pipeline error: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
