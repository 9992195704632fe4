"""
Availability Prober for the domain suggester system.

Resolves a batch of fully-qualified domains to availability results with
as little upstream traffic as possible:

1. Cache hits are answered immediately.
2. Misses go out in one batched registrar call, unless the circuit breaker
   is open or no credentials are configured, in which case they are
   reported unavailable (fail-closed) and nothing is cached.
3. Transient failures are counted on the breaker and degrade to
   "unavailable"; configuration failures propagate.
4. A batch refused because of its domains is split in halves until the
   refused domains are isolated; those are reported unavailable.
"""

from typing import Optional

from .circuit_breaker import CircuitBreaker
from .enums import LogLevel, ValidationErrorCode
from .exceptions import BatchLimitError, RejectedDomainError, TransientUpstreamError
from .models import AvailabilityResult, FullyQualifiedDomain
from .registrar_client import (
    RegistrarClient,
    RegistrarDomainResult,
    get_domain_price,
    is_domain_available,
)
from .ttl_cache import TTLCache


class AvailabilityProber:
    """
    Cache- and breaker-aware batch availability lookup.

    Every requested domain is represented exactly once in the output:
    duplicate input domains are collapsed, and a domain missing from the
    registrar response is reported unavailable.
    """

    def __init__(
        self,
        client: RegistrarClient,
        cache: TTLCache[AvailabilityResult],
        breaker: CircuitBreaker,
        logger=None,
    ) -> None:
        """
        Initialize the prober.

        Args:
            client: Registrar client used for live lookups
            cache: Availability cache (domain -> full result, premium data included)
            breaker: Shared circuit breaker
            logger: Optional AuditLogger
        """
        self._client = client
        self._cache = cache
        self._breaker = breaker
        self._logger = logger
        self._last_probe_degraded = False
        self.live_calls = 0

    @property
    def last_probe_degraded(self) -> bool:
        """True if the last probe answered misses without real data."""
        return self._last_probe_degraded

    @property
    def batch_limit(self) -> int:
        return self._client.batch_limit

    async def probe(self, domains: list[FullyQualifiedDomain]) -> list[AvailabilityResult]:
        """
        Resolve availability for up to ``batch_limit`` domains.

        Args:
            domains: Domains to check

        Returns:
            One AvailabilityResult per distinct domain, hits first

        Raises:
            BatchLimitError: More than ``batch_limit`` distinct domains
            ConfigurationUpstreamError: Registrar rejected credentials or request
        """
        self._last_probe_degraded = False

        unique: list[str] = []
        seen = set()
        for fqd in domains:
            if fqd.domain not in seen:
                seen.add(fqd.domain)
                unique.append(fqd.domain)

        if len(unique) > self._client.batch_limit:
            raise BatchLimitError(
                code=ValidationErrorCode.BATCH_LIMIT.value,
                message=f"Cannot probe more than {self._client.batch_limit} domains at once",
                details={"requested": len(unique)},
            )

        hits: list[AvailabilityResult] = []
        misses: list[str] = []
        for domain in unique:
            cached = self._cache.get(domain)
            if cached is None:
                misses.append(domain)
            else:
                hits.append(cached)

        if not misses:
            return hits

        if self._breaker.is_open() or not self._client.has_credentials:
            self._last_probe_degraded = True
            self._log(
                LogLevel.INFO,
                "Live lookup skipped, reporting misses unavailable",
                {
                    "misses": len(misses),
                    "breaker_open": self._breaker.is_open(),
                    "has_credentials": self._client.has_credentials,
                },
            )
            return hits + self._unavailable(misses)

        try:
            registrar_results = await self._lookup(misses)
        except TransientUpstreamError as e:
            self._last_probe_degraded = True
            opened = self._breaker.record_transient_failure()
            if self._logger:
                self._logger.log_error(
                    "AvailabilityProber",
                    "Registrar lookup failed, reporting misses unavailable",
                    error=e,
                    additional_data={
                        "misses": len(misses),
                        "consecutive_failures": self._breaker.consecutive_failures,
                        "breaker_opened": opened,
                    },
                )
            return hits + self._unavailable(misses)

        self._breaker.record_success()

        by_domain = {result.domain: result for result in registrar_results}
        live: list[AvailabilityResult] = []
        for domain in misses:
            result = by_domain.get(domain)
            if result is None:
                live.append(AvailabilityResult(domain=domain, available=False))
                continue

            answer = AvailabilityResult(
                domain=domain,
                available=is_domain_available(result),
                is_premium=result.is_premium_name,
                price=get_domain_price(result),
            )
            self._cache.set(domain, answer)
            live.append(answer)

        self._log(
            LogLevel.DEBUG,
            "Probe complete",
            {
                "cache_hits": len(hits),
                "live": len(live),
                "available": sum(1 for r in live if r.available),
            },
        )
        return hits + live

    async def _lookup(self, domains: list[str]) -> list[RegistrarDomainResult]:
        """
        One registrar call, split in halves when the batch is refused.

        Refused single domains are left out of the result, so the caller
        reports them unavailable without caching them.
        """
        self.live_calls += 1
        try:
            return await self._client.check_domains(domains)
        except RejectedDomainError as e:
            if len(domains) == 1:
                self._log(
                    LogLevel.INFO,
                    "Registrar refused domain, reporting it unavailable",
                    {"domain": domains[0], "error_codes": e.details.get("errors", [])},
                )
                return []
            middle = len(domains) // 2
            return await self._lookup(domains[:middle]) + await self._lookup(domains[middle:])

    @staticmethod
    def _unavailable(domains: list[str]) -> list[AvailabilityResult]:
        return [AvailabilityResult(domain=domain, available=False) for domain in domains]

    def _log(self, level: LogLevel, message: str, data: Optional[dict] = None) -> None:
        if self._logger:
            self._logger.log(level, "AvailabilityProber", message, data)
