"""
Custom exceptions for the ingestion pipeline with structured error context.

Every exception carries a context dictionary so failures can be logged and
reported with enough detail to resume a run manually.

Exception Hierarchy:
    IngestException (base)
    ├── FetchError
    │   ├── TransportError          (retryable)
    │   ├── UpstreamStatusError     (retryable)
    │   ├── UpstreamContentError    (retryable)
    │   └── DecodeError             (retryable)
    ├── ExhaustedRetriesError
    ├── PersistenceError
    ├── CheckpointError
    ├── PaginationLoopError
    ├── CancellationError
    └── RetryableError (mixin)

Retryable errors are handled inside the page fetcher and only ever escape it
wrapped in ExhaustedRetriesError.
"""

from typing import Optional, Dict, Any
from datetime import datetime, timezone


class IngestException(Exception):
    """
    Base exception for all ingestion errors.

    Attributes:
        message: Human-readable error message
        context: Additional context information (cursor, url, batch size, ...)
        original_exception: The original exception that was caught (if any)
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[BaseException] = None
    ):
        self.message = message
        self.context = dict(context or {})
        self.original_exception = original_exception
        self.timestamp = datetime.now(timezone.utc)

        self.context["error_timestamp"] = self.timestamp.isoformat()

        super().__init__(message)
        if original_exception is not None:
            self.__cause__ = original_exception

    def __str__(self) -> str:
        """Format error message with context."""
        base_msg = f"{self.__class__.__name__}: {self.message}"

        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base_msg += f" | Context: {context_str}"

        if self.original_exception is not None:
            base_msg += (
                f" | Caused by: {type(self.original_exception).__name__}: "
                f"{self.original_exception}"
            )

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


class RetryableError(IngestException):
    """
    Mixin for errors that a fresh attempt may clear.

    Use this for transient upstream conditions:
    - Network failures and timeouts
    - Non-success HTTP statuses
    - Error pages served instead of data
    - Bodies that fail to decode
    """


# ============================================================================
# Fetch Errors
# ============================================================================

class FetchError(IngestException):
    """Base exception for a single failed page-fetch attempt."""


class TransportError(RetryableError, FetchError):
    """
    Connection, DNS, read or timeout failure.

    Context should include:
        - url: The request URL
        - attempt: Attempt number (1-based)
    """


class UpstreamStatusError(RetryableError, FetchError):
    """
    HTTP status outside the success range.

    Context should include:
        - url: The request URL
        - status_code: HTTP status code
        - response_body: Response body (truncated)
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[BaseException] = None,
        status_code: Optional[int] = None
    ):
        super().__init__(message, context, original_exception)
        self.status_code = status_code
        if status_code is not None:
            self.context["status_code"] = status_code


class UpstreamContentError(RetryableError, FetchError):
    """Body looks like an HTML page rather than JSON, usually an upstream error page."""


class DecodeError(RetryableError, FetchError):
    """
    Body is not a well-formed followers page.

    Context should include:
        - error_count: Number of schema violations (if applicable)
        - response_body: Response body (truncated)
    """


MalformedResponseError = DecodeError


# ============================================================================
# Terminal Errors
# ============================================================================

class ExhaustedRetriesError(IngestException):
    """Every fetch attempt for a cursor failed; the run must halt."""

    def __init__(
        self,
        cursor: str,
        last_error: Optional[BaseException],
        attempts: int,
        context: Optional[Dict[str, Any]] = None
    ):
        context = dict(context or {})
        context.update({"cursor": cursor, "attempts": attempts})
        super().__init__(
            f"Exceeded {attempts} attempts for cursor {cursor!r}",
            context=context,
            original_exception=last_error
        )
        self.cursor = cursor
        self.last_error = last_error
        self.attempts = attempts


class PersistenceError(IngestException):
    """
    Batch write failed and was rolled back.

    Context should include:
        - table_name: Target table
        - batch_size: Number of records in the batch
        - record_index: Index of the failing record (if known)
        - did: Identifier of the failing record (if known)
    """


class CheckpointError(IngestException):
    """
    Checkpoint read or write failed.

    Context should include:
        - source_name: Name of the data source
        - cursor: Cursor being saved
        - operation: read or write
    """


class PaginationLoopError(IngestException):
    """Upstream repeated a cursor or the page cap was exceeded."""


class CancellationError(IngestException):
    """Cancellation was requested; not a failure."""
