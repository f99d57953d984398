"""
Core utilities and configuration for the question enrichment system.

This package provides foundational components used by every bot:

Modules:
    config: Application configuration and environment variable management
    database: Database engine and session management
    exceptions: Custom exception hierarchy for error handling
    logging: Logging configuration and utilities

Usage:
    from core.config import settings
    from core.database import async_session_maker
    from core.exceptions import DuplicatePendingError, RetryableError
    from core.logging import setup_logging

Example:
    setup_logging()

    async with async_session_maker() as session:
        store = WorkQueueStore(session)
"""

__all__ = [
    "settings",
    "async_session_maker",
    "setup_logging",
    # Exceptions
    "EnrichmentException",
    "RetryableError",
    "NonRetryableError",
    "NetworkError",
    "RateLimitError",
    "CallTimeoutError",
    "AuthenticationError",
    "GenerationError",
    "ContentValidationError",
    "RetriesExhaustedError",
    "StoreError",
    "DuplicatePendingError",
    "WorkItemStateError",
    "FieldOwnershipError",
    "QuestionNotFoundError",
    "ClassificationError",
]
