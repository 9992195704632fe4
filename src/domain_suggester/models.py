"""
Data models for the domain suggester system.

This module defines the data structures that flow between the extractor,
the prober and the orchestrator, plus the response objects handed back
to callers.
"""

from dataclasses import dataclass, field
from typing import Generic, Optional, TypeVar

from .enums import StopReason

T = TypeVar("T")


@dataclass(frozen=True)
class SuggestionCandidate:
    """An unchecked, model-proposed name before any availability lookup."""

    name: str
    extension: Optional[str] = None  # Leading dot, e.g. ".io"
    reason: Optional[str] = None
    explicit_extension: bool = False  # Extension was part of the domain string


@dataclass(frozen=True)
class FullyQualifiedDomain:
    """A normalized domain ready for probing."""

    domain: str  # name + extension, lowercase
    extension: str


@dataclass(frozen=True)
class AvailabilityResult:
    """Availability of a single domain, from cache or a live probe."""

    domain: str
    available: bool
    is_premium: Optional[bool] = None
    price: Optional[float] = None


@dataclass
class CacheEntry(Generic[T]):
    """A cached value with its write time (monotonic seconds)."""

    value: T
    written_at: float


@dataclass(frozen=True)
class BreakerSnapshot:
    """Read-only view of circuit breaker state."""

    consecutive_failures: int
    disabled_until: Optional[float]


@dataclass(frozen=True)
class Suggestion:
    """An accepted available domain with the model's reasoning."""

    domain: str
    available: bool
    extension: str
    reason: Optional[str] = None
    is_premium: Optional[bool] = None
    price: Optional[float] = None

    def to_dict(self) -> dict:
        data = {
            "domain": self.domain,
            "available": self.available,
            "extension": self.extension,
        }
        if self.reason:
            data["reason"] = self.reason
        if self.is_premium:
            data["isPremium"] = True
            data["price"] = self.price
        return data


@dataclass(frozen=True)
class SearchRound:
    """Record of one generate-and-probe cycle."""

    index: int
    candidates: tuple[SuggestionCandidate, ...]
    checked: tuple[FullyQualifiedDomain, ...]
    available_found: int = 0
    generation_failed: bool = False  # transient upstream failure, no output
    extraction_failed: bool = False  # output had no recoverable candidates


@dataclass(frozen=True)
class SearchState:
    """
    Immutable accumulator folded over rounds.

    Each round produces a new state; termination is decided purely
    from the state and the orchestrator configuration.
    """

    round_index: int = 0
    accepted: tuple[Suggestion, ...] = ()
    counted: int = 0  # accepted results that count toward the target
    seen_names: tuple[str, ...] = ()
    rounds: tuple[SearchRound, ...] = ()
    degraded: bool = False
    estimated_tokens: int = 0

    @property
    def accepted_domains(self) -> frozenset[str]:
        return frozenset(s.domain for s in self.accepted)


@dataclass
class SuggestResponse:
    """What a suggestion run hands back to its caller."""

    suggestions: list[Suggestion]
    rounds_used: int
    stop_reason: StopReason
    degraded: bool = False

    def to_dict(self) -> dict:
        return {
            "suggestions": [s.to_dict() for s in self.suggestions],
            "roundsUsed": self.rounds_used,
            "stopReason": self.stop_reason.value,
            "degraded": self.degraded,
        }


@dataclass(frozen=True)
class DomainCheckResult:
    """Result of checking one exact name across extensions."""

    domain: str
    available: bool
    extension: str
    requested: bool = False
    score: Optional[int] = None
    is_premium: Optional[bool] = None
    price: Optional[float] = None

    def to_dict(self) -> dict:
        data = {
            "domain": self.domain,
            "available": self.available,
            "extension": self.extension,
            "requested": self.requested,
        }
        if self.score is not None:
            data["score"] = self.score
        if self.is_premium:
            data["isPremium"] = True
            data["price"] = self.price
        return data


@dataclass(frozen=True)
class ThrottleDecision:
    """Outcome of a throttle check for one client key."""

    allowed: bool
    remaining: int
    reset_at: float  # wall-clock epoch seconds


@dataclass
class SearchEvent:
    """A fire-and-forget record of one completed request."""

    kind: str  # 'suggestion' or 'domain'
    query: str
    rounds_used: int
    accepted_domains: list[str]
    estimated_tokens: int = 0
    estimated_cost: float = 0.0
    timestamp: str = ""
    data: dict = field(default_factory=dict)
