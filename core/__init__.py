"""
Core utilities and configuration for the follower ingestion pipeline.

Modules:
    config: Application configuration and environment variable management
    database: Async engine, session factory and table bootstrap
    exceptions: Custom exception hierarchy for error handling
    logging: Logging configuration and injectable event loggers
    cancellation: Cooperative cancellation token and signal wiring

Usage:
    from core.config import settings
    from core.database import build_engine, build_session_maker
    from core.exceptions import ExhaustedRetriesError, PersistenceError
    from core.logging import setup_logging, build_event_logger
    from core.cancellation import CancellationToken
"""

__all__ = [
    "settings",
    "build_engine",
    "build_session_maker",
    "init_database",
    "setup_logging",
    "build_event_logger",
    "EventLogger",
    "CancellationToken",
    # Exceptions
    "IngestException",
    "RetryableError",
    "FetchError",
    "TransportError",
    "UpstreamStatusError",
    "UpstreamContentError",
    "DecodeError",
    "MalformedResponseError",
    "ExhaustedRetriesError",
    "PersistenceError",
    "CheckpointError",
    "PaginationLoopError",
    "CancellationError",
]
