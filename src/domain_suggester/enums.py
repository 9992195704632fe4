"""
Enumeration types for the domain suggester system.

These enums provide type-safe constants for status codes, error codes,
and configuration options throughout the system.
"""

from enum import Enum


class LogLevel(Enum):
    """Logging severity levels."""

    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"

    @property
    def rank(self) -> int:
        return _LEVEL_RANKS[self]


_LEVEL_RANKS = {
    LogLevel.DEBUG: 10,
    LogLevel.INFO: 20,
    LogLevel.WARN: 30,
    LogLevel.ERROR: 40,
}


class BreakerState(Enum):
    """Circuit breaker state."""

    CLOSED = "closed"
    OPEN = "open"


class UpstreamErrorCode(Enum):
    """Error codes for registrar and generator client failures."""

    NETWORK_ERROR = "network_error"
    TIMEOUT = "timeout"
    SERVER_ERROR = "server_error"
    RATE_LIMITED = "rate_limited"
    PARSE_ERROR = "parse_error"
    AUTH_ERROR = "auth_error"
    INVALID_REQUEST = "invalid_request"
    TLS_ERROR = "tls_error"
    DOMAIN_REJECTED = "domain_rejected"


class ValidationErrorCode(Enum):
    """Error codes for rejected caller input."""

    EMPTY_INPUT = "empty_input"
    INVALID_DOMAIN = "invalid_domain"
    BATCH_LIMIT = "batch_limit"


class ExtractionErrorCode(Enum):
    """Error codes for candidate extraction failures."""

    EMPTY_OUTPUT = "empty_output"
    NO_CANDIDATES = "no_candidates"


class StopReason(Enum):
    """Why the suggestion loop terminated."""

    SATISFIED = "satisfied"
    EXHAUSTED = "exhausted"


class PremiumPolicy(Enum):
    """How premium (priced) available domains are treated by the orchestrator."""

    COUNT = "count"  # returned and counted toward the target
    INCLUDE = "include"  # returned but not counted
    EXCLUDE = "exclude"  # dropped


class SearchMode(Enum):
    """Kind of user input."""

    DOMAIN = "domain"
    SUGGESTION = "suggestion"
