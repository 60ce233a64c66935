"""
Custom exceptions for the fan-out pipeline with structured error context.

Only source errors ever escape a run. Every other category is caught
where it happens, logged with its context and absorbed so the pipeline
keeps moving.

Exception Hierarchy:
    PipelineException (base)
    ├── SourceError
    ├── TransformError
    ├── DeliveryError
    │   ├── RelationalDeliveryError
    │   └── HttpDeliveryError
    ├── HandlerError
    └── ConfigurationError
"""

from typing import Optional, Dict, Any
from datetime import datetime, timezone


class PipelineException(Exception):
    """
    Base exception for all pipeline errors.

    Attributes:
        message: Human-readable error message
        context: Additional context information (destination, event, etc.)
        original_exception: The original exception that was caught (if any)
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[BaseException] = None
    ):
        self.message = message
        self.context = context or {}
        self.original_exception = original_exception
        self.timestamp = datetime.now(timezone.utc)

        self.context["error_timestamp"] = self.timestamp.isoformat()

        super().__init__(message)
        if original_exception:
            self.__cause__ = original_exception

    def __str__(self) -> str:
        """Format error message with context."""
        base_msg = f"{self.__class__.__name__}: {self.message}"

        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base_msg += f" | Context: {context_str}"

        if self.original_exception:
            base_msg += f" | Caused by: {type(self.original_exception).__name__}: {str(self.original_exception)}"

        return base_msg

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "original_error": str(self.original_exception) if self.original_exception else None
        }


# ============================================================================
# Source Errors
# ============================================================================

class SourceError(PipelineException):
    """
    Raised when the source stream signals an error. Fatal to the run.

    Context should include:
        - source: Class name of the source
        - units_read: Units consumed before the failure
    """
    pass


# ============================================================================
# Transform Errors
# ============================================================================

class TransformError(PipelineException):
    """
    Raised when a destination's record generator fails for one unit.

    Context should include:
        - destination: Destination label
        - destination_index: Position in the destination list
    """
    pass


# ============================================================================
# Delivery Errors
# ============================================================================

class DeliveryError(PipelineException):
    """
    Base exception for sink delivery failures.

    Context should include:
        - destination: Destination label
        - batch_size: Number of records in the failed batch
    """
    pass


class RelationalDeliveryError(DeliveryError):
    """
    Raised when a bulk insert into a relational table fails.

    Context should include:
        - dialect: postgres or mssql
        - table_name: Target table
    """
    pass


class HttpDeliveryError(DeliveryError):
    """
    Raised when a batch cannot be delivered to an HTTP endpoint.

    Context should include:
        - url: Target URL
        - status_code: HTTP status code (if a response arrived)
    """
    pass


# ============================================================================
# Handler / Configuration Errors
# ============================================================================

class HandlerError(PipelineException):
    """Raised (and logged) when an event handler fails."""
    pass


class ConfigurationError(PipelineException):
    """Raised for invalid pipeline configuration or unknown event names."""
    pass
