"""
Domain Suggester - available domain name suggestions for a business idea.

This package asks a generative model for candidate names, extracts them
from imperfect output, and verifies availability against a registrar in
bounded rounds until enough available domains have been found.
"""

__version__ = "0.1.0"
__author__ = "Domain Suggester Team"

from domain_suggester.exceptions import (
    DomainSuggesterError,
    ValidationError,
    BatchLimitError,
    UpstreamError,
    TransientUpstreamError,
    ConfigurationUpstreamError,
    ExtractionError,
    RateLimitError,
    RejectedDomainError,
)
from domain_suggester.enums import (
    BreakerState,
    ExtractionErrorCode,
    LogLevel,
    PremiumPolicy,
    SearchMode,
    StopReason,
    UpstreamErrorCode,
    ValidationErrorCode,
)
from domain_suggester.config import (
    BreakerConfig,
    CacheConfig,
    GeneratorConfig,
    LoggingConfig,
    OrchestratorConfig,
    RegistrarConfig,
    SystemConfig,
    ThrottleConfig,
    create_default_config,
    load_config_from_env,
    load_config_from_file,
    save_config_to_file,
)
from domain_suggester.models import (
    AvailabilityResult,
    DomainCheckResult,
    FullyQualifiedDomain,
    SearchEvent,
    SearchRound,
    SearchState,
    Suggestion,
    SuggestionCandidate,
    SuggestResponse,
    ThrottleDecision,
)
from domain_suggester.audit_logger import (
    AuditLogger,
    LogEntry,
)
from domain_suggester.ttl_cache import TTLCache
from domain_suggester.circuit_breaker import CircuitBreaker
from domain_suggester.registrar_client import (
    RegistrarClient,
    RegistrarDomainResult,
    parse_check_response,
)
from domain_suggester.domain_utils import (
    RoundPolicy,
    round_policy,
    parse_domain_input,
    detect_search_mode,
    score_domain,
    yearly_price,
)
from domain_suggester.extractor import CandidateExtractor
from domain_suggester.generator import (
    CandidateSource,
    ChatCompletionSource,
)
from domain_suggester.prober import AvailabilityProber
from domain_suggester.throttle import RequestThrottle
from domain_suggester.events import (
    EventRecorder,
    EventSink,
    JsonLinesEventSink,
    LoggingEventSink,
)
from domain_suggester.orchestrator import SuggestionOrchestrator
from domain_suggester.service import SuggestionService

__all__ = [
    # Version
    "__version__",
    # Exceptions
    "DomainSuggesterError",
    "ValidationError",
    "BatchLimitError",
    "UpstreamError",
    "TransientUpstreamError",
    "ConfigurationUpstreamError",
    "ExtractionError",
    "RateLimitError",
    "RejectedDomainError",
    # Enums
    "BreakerState",
    "ExtractionErrorCode",
    "LogLevel",
    "PremiumPolicy",
    "SearchMode",
    "StopReason",
    "UpstreamErrorCode",
    "ValidationErrorCode",
    # Config
    "BreakerConfig",
    "CacheConfig",
    "GeneratorConfig",
    "LoggingConfig",
    "OrchestratorConfig",
    "RegistrarConfig",
    "SystemConfig",
    "ThrottleConfig",
    "create_default_config",
    "load_config_from_env",
    "load_config_from_file",
    "save_config_to_file",
    # Models
    "AvailabilityResult",
    "DomainCheckResult",
    "FullyQualifiedDomain",
    "SearchEvent",
    "SearchRound",
    "SearchState",
    "Suggestion",
    "SuggestionCandidate",
    "SuggestResponse",
    "ThrottleDecision",
    # Logging
    "AuditLogger",
    "LogEntry",
    # Availability
    "TTLCache",
    "CircuitBreaker",
    "RegistrarClient",
    "RegistrarDomainResult",
    "parse_check_response",
    "AvailabilityProber",
    # Candidates
    "RoundPolicy",
    "round_policy",
    "parse_domain_input",
    "detect_search_mode",
    "score_domain",
    "yearly_price",
    "CandidateExtractor",
    "CandidateSource",
    "ChatCompletionSource",
    # Service
    "RequestThrottle",
    "EventRecorder",
    "EventSink",
    "JsonLinesEventSink",
    "LoggingEventSink",
    "SuggestionOrchestrator",
    "SuggestionService",
]
