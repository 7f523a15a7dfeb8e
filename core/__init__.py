"""
Core utilities and configuration for the LIDOM scrape pipeline.

Modules:
    config: Application configuration and environment variable management
    exceptions: Custom exception hierarchy for error handling
    logging: Logging configuration
    storage: Durable key -> blob store with atomic writes

Usage:
    from core.config import settings
    from core.storage import get_store
    from core.exceptions import NotFoundError, TransportError
    from core.logging import setup_logging
"""

__all__ = [
    "settings",
    "get_store",
    "setup_logging",
    "BlobStore",
    "LocalBlobStore",
    # Exceptions
    "PipelineException",
    "ExtractionError",
    "NotFoundError",
    "MalformedLiteralError",
    "TransformationError",
    "ValidationError",
    "TransportError",
    "StorageError",
    "ExportError",
    "ConfigurationError",
    "EmptyUniverseError",
]
