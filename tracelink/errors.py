"""tracelink error hierarchy and exceptions."""

from __future__ import annotations


class TracelinkError(Exception):
    """Base exception for all tracelink errors."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class ConfigError(TracelinkError):
    """Raised when configuration is invalid or conflicting."""
    pass


class InitializationError(TracelinkError):
    """Raised when backend initialization fails."""
    pass


class MissingTransactionError(TracelinkError):
    """Raised when trace metadata is serialized without an active transaction."""
    pass


class MalformedTokenError(TracelinkError):
    """Raised when a trace metadata token cannot be decoded."""
    pass


class TransactionStateError(TracelinkError):
    """Raised when a context is asked to start a second transaction or rename it."""
    pass
