"""
Exception classes for the domain suggester system.

All exceptions inherit from DomainSuggesterError and provide structured
error information with codes, messages, and optional details.

Only ConfigurationUpstreamError is expected to escape a suggestion run;
everything else is either a caller error or handled locally and degraded
into a smaller result set.
"""

from typing import Optional


class DomainSuggesterError(Exception):
    """Base exception for all domain suggester errors."""

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[dict] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"

    def to_dict(self) -> dict:
        """Convert exception to dictionary for serialization."""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(DomainSuggesterError):
    """Raised when a query or domain input is rejected."""

    pass


class BatchLimitError(ValidationError):
    """Raised when more domains are passed to a single probe than upstream accepts."""

    pass


class UpstreamError(DomainSuggesterError):
    """Base class for failures of an external dependency."""

    pass


class TransientUpstreamError(UpstreamError):
    """Raised on network errors, timeouts and 5xx/429 responses."""

    pass


class ConfigurationUpstreamError(UpstreamError):
    """
    Raised when upstream rejects the request itself (credentials, parameters).

    Retrying cannot help, so these never count toward the circuit breaker
    and always propagate to the caller.
    """

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[dict] = None,
    ) -> None:
        if not message.startswith("Service misconfigured"):
            message = f"Service misconfigured: {message}"
        super().__init__(code, message, details)


class RejectedDomainError(UpstreamError):
    """
    Raised when upstream refuses a batch because of the domains in it.

    The request and credentials are fine; only the rejected names are
    unusable. Never counted by the circuit breaker.
    """

    pass


class ExtractionError(DomainSuggesterError):
    """Raised when no candidates can be recovered from model output."""

    pass


class RateLimitError(DomainSuggesterError):
    """Raised when the request throttle rejects a client key."""

    pass
