"""
Custom exceptions for the enrichment queue with structured error context.

Every error raised by the store, the rate-limited caller, the workers and the
fan-out generator derives from EnrichmentException so that callers can log
`to_dict()` and persist `summary()` into a work item's result column.

Exception Hierarchy:
    EnrichmentException (base)
    ├── RetryableError
    │   ├── NetworkError
    │   ├── RateLimitError
    │   └── CallTimeoutError
    ├── NonRetryableError
    │   ├── AuthenticationError
    │   ├── GenerationError
    │   └── ContentValidationError
    ├── RetriesExhaustedError
    ├── StoreError
    │   ├── DuplicatePendingError
    │   ├── WorkItemStateError
    │   ├── FieldOwnershipError
    │   └── QuestionNotFoundError
    └── ClassificationError
"""

from typing import Optional, Dict, Any
from datetime import datetime

SUMMARY_MAX_CHARS = 500


class EnrichmentException(Exception):
    """
    Base exception for all enrichment errors.

    Attributes:
        message: Human-readable error message
        context: Additional context information (question id, task type, etc.)
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
        self.timestamp = datetime.utcnow()

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

    def summary(self) -> str:
        """Short one-line description suitable for a work item result."""
        text = f"{self.__class__.__name__}: {self.message}"
        if self.original_exception:
            text += f" ({type(self.original_exception).__name__}: {self.original_exception})"
        return text[:SUMMARY_MAX_CHARS]

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/storage."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "original_error": str(self.original_exception) if self.original_exception else None
        }


def summarize_error(error: BaseException) -> str:
    """One-line summary for any exception, enrichment-specific or not."""
    if isinstance(error, EnrichmentException):
        return error.summary()
    return f"{type(error).__name__}: {error}"[:SUMMARY_MAX_CHARS]


# ============================================================================
# Retry Strategy
# ============================================================================

class RetryableError(EnrichmentException):
    """
    Transient failures that the rate-limited caller retries:
    - Network errors and HTTP 5xx
    - Rate limiting (HTTP 429)
    - Attempt timeouts
    """
    pass


class NonRetryableError(EnrichmentException):
    """
    Permanent failures that are terminal immediately:
    - Authentication failures (HTTP 401, 403)
    - Rejected requests (other HTTP 4xx)
    - Unusable generated content
    """
    pass


class NetworkError(RetryableError):
    """Network-level failure or server error from an external service."""
    pass


class RateLimitError(RetryableError):
    """Rate limiting errors (HTTP 429)."""

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None,
        retry_after: Optional[float] = None
    ):
        super().__init__(message, context, original_exception)
        self.retry_after = retry_after
        if retry_after:
            self.context["retry_after"] = retry_after


class CallTimeoutError(RetryableError):
    """A single call attempt exceeded the hard timeout."""
    pass


class AuthenticationError(NonRetryableError):
    """Credentials were rejected by an external service."""
    pass


class GenerationError(NonRetryableError):
    """The generation service rejected the request or returned nothing usable."""
    pass


class ContentValidationError(NonRetryableError):
    """
    Generated content failed validation.

    Context should include:
        - task_type: Task type whose output was rejected
        - question_id: Question being enriched (if applicable)
        - validation_rule: The rule that was violated
    """
    pass


class RetriesExhaustedError(EnrichmentException):
    """
    Terminal error after the caller used up its retry budget.

    Attributes:
        attempts: Number of attempts that were made
        last_error: The last transient error observed
    """

    def __init__(
        self,
        message: str,
        attempts: int,
        context: Optional[Dict[str, Any]] = None,
        last_error: Optional[Exception] = None
    ):
        super().__init__(message, context, original_exception=last_error)
        self.attempts = attempts
        self.last_error = last_error
        self.context["attempts"] = attempts


# ============================================================================
# Store Errors
# ============================================================================

class StoreError(EnrichmentException):
    """Base exception for work queue / question store failures."""
    pass


class DuplicatePendingError(StoreError):
    """
    A pending or processing work item already exists for (question_id, bot_type).

    This is the expected outcome of an idempotent orchestrator scan, not a fault.
    """
    pass


class WorkItemStateError(StoreError):
    """A work item was not in the state required for the requested transition."""
    pass


class FieldOwnershipError(StoreError):
    """A task type tried to write a question field it does not own."""
    pass


class QuestionNotFoundError(StoreError):
    """The question targeted by a work item does not exist."""
    pass


# ============================================================================
# Orchestrator Errors
# ============================================================================

class ClassificationError(EnrichmentException):
    """Channel / sub-channel reclassification produced an unusable answer."""
    pass
