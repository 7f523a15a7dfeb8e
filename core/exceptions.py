"""
Custom exceptions for the scrape pipeline with structured error context.

This module provides the exception hierarchy used from document extraction
through batch persistence and export. Each exception carries context
information for debugging and for the per-identity failure log.

Exception Hierarchy:
    PipelineException (base)
    ├── ExtractionError
    │   ├── NotFoundError
    │   └── MalformedLiteralError
    ├── TransformationError
    │   └── ValidationError
    ├── TransportError (retryable)
    ├── StorageError
    ├── ExportError
    ├── ConfigurationError
    └── EmptyUniverseError
"""

from typing import Optional, Dict, Any
from datetime import datetime, timezone


class PipelineException(Exception):
    """
    Base exception for all pipeline errors.

    Attributes:
        message: Human-readable error message
        context: Additional context information (url, identity, offset, etc.)
        original_exception: The original exception that was caught (if any)
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
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
        """Convert exception to dictionary for logging/storage."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "original_error": str(self.original_exception) if self.original_exception else None
        }


# ============================================================================
# Extraction Errors
# ============================================================================

class ExtractionError(PipelineException):
    """Base exception for failures recovering structured values from a document."""
    pass


class NotFoundError(ExtractionError):
    """
    Raised when the expected marker is absent from a document.

    Fatal for that document; the caller may fall back to an alternate page.

    Context should include:
        - marker: The marker that was searched for
        - document_length: Size of the scanned document
    """
    pass


class MalformedLiteralError(ExtractionError):
    """
    Raised when an embedded literal never rebalances or fails structured parsing.

    Context should include:
        - offset: Position in the document where the problem was detected
        - snippet: Short excerpt of the document around the offset
    """

    def __init__(
        self,
        message: str,
        offset: int,
        snippet: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        context = dict(context or {})
        context.setdefault("offset", offset)
        context.setdefault("snippet", snippet)
        super().__init__(message, context, original_exception)
        self.offset = offset
        self.snippet = snippet


# ============================================================================
# Transformation Errors
# ============================================================================

class TransformationError(PipelineException):
    """Base exception for data transformation failures."""
    pass


class ValidationError(TransformationError):
    """
    Reserved for canonical-record validation failures.

    The normalizer degrades bad values to None instead of raising this.
    """
    pass


# ============================================================================
# Transport Errors
# ============================================================================

class TransportError(PipelineException):
    """
    Raised when a fetch fails or returns a non-success status.

    Retryable only by a later invocation; isolated to one identity or document.

    Context should include:
        - url: The URL that failed
        - status_code: HTTP status code (None for connection-level failures)
        - retry_count: Number of attempts made
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        context = dict(context or {})
        context.setdefault("status_code", status_code)
        super().__init__(message, context, original_exception)
        self.status_code = status_code


# ============================================================================
# Storage / Export Errors
# ============================================================================

class StorageError(PipelineException):
    """
    Raised when the durable blob store cannot read or write a key.

    Context should include:
        - key: Storage key involved
        - operation: read, write, list, delete
    """
    pass


class ExportError(PipelineException):
    """Raised when the aggregate export cannot be rebuilt."""
    pass


# ============================================================================
# Run-level Errors
# ============================================================================

class ConfigurationError(PipelineException):
    """Raised for invalid runner or export configuration (e.g. shard index out of range)."""
    pass


class EmptyUniverseError(PipelineException):
    """Raised when no identities could be resolved from any source. Fatal for the run."""
    pass
