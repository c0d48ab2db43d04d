"""
Exception hierarchy for phantom-pages.

Validation and state errors are raised synchronously, before any
asynchronous work is scheduled. Everything else travels through the
awaitable returned by an operation.
"""

from __future__ import annotations

from typing import Any, Optional


class PhantomPagesError(Exception):
    """Base class for every error raised by phantom-pages."""


class ValidationError(PhantomPagesError, TypeError):
    """Input had the wrong shape or type."""


class InvalidStateError(PhantomPagesError, RuntimeError):
    """Operation attempted on a closed engine or page handle."""


class ExternalEngineError(PhantomPagesError):
    """The rendering engine reported a failure.

    Raised when an engine completion carries an error value, or when a
    navigation finishes with a status other than ``"success"``.
    """

    def __init__(
        self,
        message: str,
        *,
        status: Optional[str] = None,
        cause: Optional[Any] = None,
    ) -> None:
        self.status = status
        self.cause = cause
        super().__init__(message)


class LoadTimeoutError(PhantomPagesError, TimeoutError):
    """``wait_for_load`` did not see the page finish within its budget."""

    def __init__(self, timeout_ms: float) -> None:
        self.timeout_ms = timeout_ms
        super().__init__(f"Loading took longer than {timeout_ms:g}ms")


class StagingError(PhantomPagesError):
    """A resource could not be staged safely under the staging root."""


class ConfigurationError(PhantomPagesError):
    """Configuration loading or parsing error."""


__all__ = [
    "PhantomPagesError",
    "ValidationError",
    "InvalidStateError",
    "ExternalEngineError",
    "LoadTimeoutError",
    "StagingError",
    "ConfigurationError",
]
