"""
Suggestion Service for the domain suggester system.

The outer surface used by the CLI (and by any HTTP layer built on top):
- suggest: throttled, response-cached suggestion runs
- check: one exact name across the popular extensions, scored

Owns the process-wide collaborators: both caches, the circuit breaker,
the registrar and generation clients, the throttle and the event recorder.
"""

import asyncio
import random
from typing import Awaitable, Callable, Optional, Union

from .audit_logger import AuditLogger
from .circuit_breaker import CircuitBreaker
from .config import SystemConfig
from .domain_utils import (
    POPULAR_EXTENSIONS,
    format_domain_name,
    is_valid_domain,
    parse_domain_input,
    score_domain,
)
from .enums import LogLevel, UpstreamErrorCode, ValidationErrorCode
from .events import EventRecorder, JsonLinesEventSink, LoggingEventSink
from .exceptions import ConfigurationUpstreamError, RateLimitError, ValidationError
from .generator import CandidateSource, ChatCompletionSource
from .models import (
    AvailabilityResult,
    DomainCheckResult,
    FullyQualifiedDomain,
    SearchEvent,
    SuggestResponse,
)
from .orchestrator import SuggestionOrchestrator
from .prober import AvailabilityProber
from .registrar_client import RegistrarClient
from .throttle import RequestThrottle
from .ttl_cache import TTLCache


CachedResponse = Union[SuggestResponse, list[DomainCheckResult]]


def sort_check_results(results: list[DomainCheckResult]) -> list[DomainCheckResult]:
    """
    Order check results for display.

    The requested extension comes first even when taken; the rest are
    ordered by descending score.
    """
    return sorted(
        results,
        key=lambda r: (not r.requested, -(r.score or 0)),
    )


class SuggestionService:
    """
    Entry point that wires configuration to the orchestrator.

    Use as an async context manager to run the cache sweepers and close
    the HTTP clients on exit.
    """

    def __init__(
        self,
        config: SystemConfig,
        source: CandidateSource,
        prober: AvailabilityProber,
        throttle: Optional[RequestThrottle] = None,
        recorder: Optional[EventRecorder] = None,
        response_cache: Optional[TTLCache[CachedResponse]] = None,
        logger: Optional[AuditLogger] = None,
        rng: Optional[random.Random] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """
        Initialize the service.

        Args:
            config: System configuration
            source: Candidate source for suggestion runs
            prober: Availability prober (shared cache and breaker)
            throttle: Per-client request throttle
            recorder: Event recorder for completed requests
            response_cache: Cache of whole responses keyed by request
            logger: Optional audit logger
            rng: Random source for extension assignment
            sleep: Delay between rounds, injectable for tests
        """
        self._config = config
        self._source = source
        self._prober = prober
        self._throttle = throttle or RequestThrottle(config.throttle)
        self._recorder = recorder or EventRecorder(logger=logger)
        if response_cache is None:
            response_cache = TTLCache(
                ttl_seconds=config.cache.response_ttl_seconds,
                sweep_interval_seconds=config.cache.sweep_interval_seconds,
            )
        self._response_cache = response_cache
        self._logger = logger
        self._orchestrator = SuggestionOrchestrator(
            config=config.orchestrator,
            source=source,
            prober=prober,
            recorder=self._recorder,
            logger=logger,
            rng=rng,
            sleep=sleep,
            price_per_million_tokens=config.generator.price_per_million_tokens,
        )
        self._closers: list[Callable[[], Awaitable[None]]] = []
        self._sweeping: list[TTLCache] = [self._response_cache]

    @classmethod
    def from_config(
        cls,
        config: SystemConfig,
        logger: Optional[AuditLogger] = None,
    ) -> "SuggestionService":
        """Build a service with live registrar and generation clients."""
        availability_cache: TTLCache[AvailabilityResult] = TTLCache(
            ttl_seconds=config.cache.availability_ttl_seconds,
            sweep_interval_seconds=config.cache.sweep_interval_seconds,
            key_normalizer=str.lower,
        )
        breaker = CircuitBreaker(config.breaker, logger=logger)
        registrar = RegistrarClient(config.registrar, logger=logger)
        source = ChatCompletionSource(config.generator, logger=logger)

        recorder = EventRecorder(logger=logger)
        if logger:
            recorder.add_sink(LoggingEventSink(logger))
        if config.events_file:
            recorder.add_sink(JsonLinesEventSink(config.events_file))

        service = cls(
            config=config,
            source=source,
            prober=AvailabilityProber(registrar, availability_cache, breaker, logger=logger),
            recorder=recorder,
            logger=logger,
        )
        service._closers.extend([registrar.close, source.close])
        service._sweeping.append(availability_cache)
        return service

    @property
    def orchestrator(self) -> SuggestionOrchestrator:
        return self._orchestrator

    @property
    def recorder(self) -> EventRecorder:
        return self._recorder

    async def __aenter__(self) -> "SuggestionService":
        for cache in self._sweeping:
            cache.start_sweeper()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Stop sweepers, flush pending events and close clients."""
        for cache in self._sweeping:
            await cache.stop_sweeper()
        await self._recorder.drain()
        for close in self._closers:
            await close()

    def _admit(self, client_key: str) -> None:
        decision = self._throttle.allow(client_key)
        if not decision.allowed:
            self._log(LogLevel.WARN, "Request throttled", {"client_key": client_key})
            raise RateLimitError(
                code=UpstreamErrorCode.RATE_LIMITED.value,
                message="Too many requests. Please try again later.",
                details={"remaining": decision.remaining, "reset_at": decision.reset_at},
            )

    async def suggest(self, query: str, client_key: str = "anonymous") -> SuggestResponse:
        """
        Suggest available domains for a free-text query.

        Args:
            query: What the user is looking for
            client_key: Identifier used for throttling

        Returns:
            SuggestResponse (possibly empty, possibly degraded)

        Raises:
            ValidationError: Empty query
            RateLimitError: Client exceeded its request budget
            ConfigurationUpstreamError: Registrar or generator misconfigured
        """
        query = (query or "").strip()
        if not query:
            raise ValidationError(
                code=ValidationErrorCode.EMPTY_INPUT.value,
                message="Query is required",
            )

        self._admit(client_key)

        cache_key = f"suggest:{query.lower()}"
        cached = self._response_cache.get(cache_key)
        if cached is not None:
            self._log(LogLevel.DEBUG, "Serving cached suggestions", {"query": query[:100]})
            return cached

        try:
            response = await self._orchestrator.run(query)
        except ConfigurationUpstreamError as e:
            if self._logger:
                self._logger.log_error("SuggestionService", "Suggestion run aborted", error=e)
            raise

        # Degraded answers are not real data
        if not response.degraded:
            self._response_cache.set(cache_key, response)
        return response

    async def check(self, domain: str, client_key: str = "anonymous") -> list[DomainCheckResult]:
        """
        Check one exact name across extensions.

        With an explicit extension every popular extension is returned,
        requested one first. Without one, only available domains are
        returned, best score first.

        Raises:
            ValidationError: Empty or unusable input
            RateLimitError: Client exceeded its request budget
            ConfigurationUpstreamError: Registrar misconfigured
        """
        text = (domain or "").strip()
        if not text:
            raise ValidationError(
                code=ValidationErrorCode.EMPTY_INPUT.value,
                message="Domain is required",
            )

        self._admit(client_key)

        base, requested_ext = parse_domain_input(text)
        name = format_domain_name(base).strip(".-")

        extensions = [requested_ext] if requested_ext else []
        extensions += [ext for ext in POPULAR_EXTENSIONS if ext != requested_ext]

        targets = [
            FullyQualifiedDomain(domain=name + ext, extension=ext)
            for ext in extensions
            if is_valid_domain(name + ext)
        ]
        if not name or not targets:
            raise ValidationError(
                code=ValidationErrorCode.INVALID_DOMAIN.value,
                message=f"Not a valid domain name: {text}",
            )

        cache_key = f"domain:{name}{requested_ext or ''}"
        cached = self._response_cache.get(cache_key)
        if cached is not None:
            return cached

        availability = {
            result.domain: result for result in await self._prober.probe(targets)
        }
        degraded = self._prober.last_probe_degraded

        results = []
        for target in targets:
            result = availability[target.domain]
            requested = target.extension == requested_ext
            if not requested_ext and not result.available:
                continue
            results.append(DomainCheckResult(
                domain=target.domain,
                available=result.available,
                extension=target.extension,
                requested=requested,
                score=score_domain(target.domain, target.extension, requested) if result.available else None,
                is_premium=result.is_premium,
                price=result.price,
            ))

        results = sort_check_results(results)

        if not degraded:
            self._response_cache.set(cache_key, results)

        self._recorder.record_safely(SearchEvent(
            kind="domain",
            query=text,
            rounds_used=1,
            accepted_domains=[r.domain for r in results if r.available],
            data={"requested_extension": requested_ext, "degraded": degraded},
        ))
        return results

    def _log(self, level: LogLevel, message: str, data: dict) -> None:
        if self._logger:
            self._logger.log(level, "SuggestionService", message, data)
