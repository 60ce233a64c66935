"""
Pydantic schemas for pipeline configuration.

Schemas:
    destination: Sink kinds, per-kind setup models, the Destination tagged
        union and the PipelineConfig container

Usage:
    from schemas.destination import PipelineConfig, SinkKind

Example:
    config = PipelineConfig(
        destinations=[
            {"type": "postgres", "setup": {"connection": url, "table": "events"}},
            {"type": "http", "setup": {"url": "https://collector.example.com"},
             "batchSize": 500},
        ],
        verbose=True,
    )

    # Unknown kinds fall back to the console sink
    assert PipelineConfig(destinations=[{"type": "s3"}]).destinations[0].type == "s3"
"""

__all__ = [
    "Record",
    "RecordGenerator",
    "SinkKind",
    "RelationalSetup",
    "HttpSetup",
    "PostgresDestination",
    "MssqlDestination",
    "HttpDestination",
    "ConsoleDestination",
    "Destination",
    "PipelineConfig",
    "parse_destination",
]
