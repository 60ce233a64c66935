"""
Core utilities and configuration for the fan-out pipeline.

Modules:
    config: Application settings and environment variable management
    exceptions: Custom exception hierarchy for error handling
    logging: Logging configuration

Usage:
    from core.config import settings
    from core.exceptions import SourceError, DeliveryError
    from core.logging import setup_logging
"""

__all__ = [
    "settings",
    "setup_logging",
    # Exceptions
    "PipelineException",
    "SourceError",
    "TransformError",
    "DeliveryError",
    "RelationalDeliveryError",
    "HttpDeliveryError",
    "HandlerError",
    "ConfigurationError",
]
