"""
Streaming fan-out engine.

Modules:
    events: Ordered lifecycle hooks (loadingData / loadedData)
    consumer: Flow-controlled reads and per-destination buffering
    dispatcher: Routes one batch to its sink adapter
    pipeline: Normalizes configuration and drives a run

Subpackages:
    sources: Readable sources speaking the pause/resume signal contract

Architecture:
    source -> StreamConsumer -> DestinationDispatcher -> sink adapters

    One pass over the source feeds every destination. Each destination
    has its own record generator, batch size and buffer.

Example:
    pipeline = Pipeline(PipelineConfig(destinations=[
        {"type": "postgres", "setup": {"connection": url, "table": "events"}},
        {"type": "stdout", "batchSize": 100,
         "recordGenerator": lambda r: [r, {**r, "copy": True}]},
    ]))
    header = await pipeline.process(CSVSource("events.csv"))
"""

__all__ = [
    "EventHub",
    "PipelineEvent",
    "StreamConsumer",
    "ConsumedUnit",
    "DestinationDispatcher",
    "Pipeline",
    "PipelineState",
    "RunStats",
]
