"""
Suggestion Orchestrator for the domain suggester system.

Runs the generate-and-probe loop. Each round asks the candidate source for
names, extracts and normalizes them under the round's extension policy,
probes availability in one batch, and folds newly available domains into
an immutable SearchState. The loop stops as soon as enough domains have
been accepted, or when the round budget is spent; neither is an error.

Failure handling per round:
- extraction failure or a transient generation failure: the round
  contributes no candidates and the loop carries on
- configuration error from generation or probing: the whole run aborts
"""

import asyncio
import random
import re
from dataclasses import replace
from typing import Awaitable, Callable, Optional

from .config import OrchestratorConfig
from .domain_utils import format_domain_name, round_policy, to_fully_qualified
from .enums import LogLevel, PremiumPolicy, StopReason
from .events import EventRecorder, estimate_cost, estimate_token_count
from .exceptions import ExtractionError, TransientUpstreamError
from .extractor import CandidateExtractor
from .generator import CandidateSource
from .models import (
    AvailabilityResult,
    FullyQualifiedDomain,
    SearchEvent,
    SearchRound,
    SearchState,
    SuggestionCandidate,
    Suggestion,
    SuggestResponse,
)
from .prober import AvailabilityProber


GENERATION_FAILED = "generation"
EXTRACTION_FAILED = "extraction"

KEY_PHRASE_PATTERNS = [
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"free\s+\w+",
        r"before\s+\w+",
        r"no\s+\w+",
        r"save\s+\w+",
        r"eliminate\s+\w+",
        r"automat\w+",
        r"proof\s+\w+",
    )
]


def preprocess_query(query: str, threshold: int = 500) -> str:
    """
    Shorten long business descriptions for the generation prompt.

    Queries over ``threshold`` characters become their first 300 characters
    plus the key phrases found in the full text.
    """
    if len(query) <= threshold:
        return query

    phrases = []
    for pattern in KEY_PHRASE_PATTERNS:
        match = pattern.search(query)
        if match:
            phrases.append(match.group(0))
    key_concepts = " ".join(phrases) or query[:100]

    return (
        f"Business description: {query[:300]}... KEY CONCEPTS: {key_concepts}\n\n"
        "Focus on their unique selling points and differentiators, "
        "not generic industry terms."
    )


def should_continue(state: SearchState, config: OrchestratorConfig) -> bool:
    """True while the target is unmet and rounds remain."""
    return state.counted < config.target_count and state.round_index < config.max_rounds


def stop_reason(state: SearchState, config: OrchestratorConfig) -> StopReason:
    if state.counted >= config.target_count:
        return StopReason.SATISFIED
    return StopReason.EXHAUSTED


def accept_results(
    state: SearchState,
    checked: list[FullyQualifiedDomain],
    results: list[AvailabilityResult],
    candidates: dict[str, SuggestionCandidate],
    premium_policy: PremiumPolicy,
) -> tuple[tuple[Suggestion, ...], int]:
    """
    Fold one round's probe results into the accepted set.

    Results are taken in the order the domains were checked; a domain
    already accepted is skipped.

    Returns:
        Tuple of (new accepted tuple, new counted total)
    """
    by_domain = {result.domain: result for result in results}
    accepted = list(state.accepted)
    accepted_domains = set(state.accepted_domains)
    counted = state.counted

    for fqd in checked:
        result = by_domain.get(fqd.domain)
        if result is None or not result.available or fqd.domain in accepted_domains:
            continue
        if result.is_premium and premium_policy == PremiumPolicy.EXCLUDE:
            continue

        candidate = candidates.get(fqd.domain)
        accepted.append(Suggestion(
            domain=fqd.domain,
            available=True,
            extension=fqd.extension,
            reason=candidate.reason if candidate else None,
            is_premium=result.is_premium,
            price=result.price,
        ))
        accepted_domains.add(fqd.domain)

        if not (result.is_premium and premium_policy == PremiumPolicy.INCLUDE):
            counted += 1

    return tuple(accepted), counted


class SuggestionOrchestrator:
    """
    Coordinates candidate generation, extraction and probing across rounds.

    Rounds are strictly sequential because each round's exclusion list
    depends on every earlier round. Cancelling the task running ``run``
    cancels whichever generation call, probe or inter-round delay is
    pending.
    """

    def __init__(
        self,
        config: OrchestratorConfig,
        source: CandidateSource,
        prober: AvailabilityProber,
        extractor: Optional[CandidateExtractor] = None,
        recorder: Optional[EventRecorder] = None,
        logger=None,
        rng: Optional[random.Random] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        price_per_million_tokens: float = 0.04,
    ) -> None:
        """
        Initialize the orchestrator.

        Args:
            config: Budgets and policies
            source: Candidate source (generation collaborator)
            prober: Availability prober
            extractor: Candidate extractor (built from config if omitted)
            recorder: Optional fire-and-forget event recorder
            logger: Optional AuditLogger
            rng: Random source for extension assignment
            sleep: Delay function, injectable for tests
            price_per_million_tokens: Used for cost estimates in events
        """
        self._config = config
        self._source = source
        self._prober = prober
        self._extractor = extractor or CandidateExtractor(
            salvage_enabled=config.salvage_enabled, logger=logger,
        )
        self._recorder = recorder
        self._logger = logger
        self._rng = rng or random.Random()
        self._sleep = sleep
        self._price_per_million = price_per_million_tokens

    @property
    def config(self) -> OrchestratorConfig:
        return self._config

    async def run(self, query: str) -> SuggestResponse:
        """
        Search for available domain suggestions.

        Args:
            query: Free-text description of what the user wants

        Returns:
            SuggestResponse with at most ``max_results`` unique suggestions

        Raises:
            ConfigurationUpstreamError: Generation or registrar misconfigured
        """
        prompt_query = preprocess_query(query, self._config.long_query_threshold)
        state = SearchState()

        self._log_info("Starting suggestion search", {"query": query[:100]})

        while should_continue(state, self._config):
            if state.round_index > 0:
                await self._sleep(self._config.round_delay_seconds)
            state = await self._run_round(state, prompt_query)

        suggestions = list(state.accepted[: self._config.max_results])
        reason = stop_reason(state, self._config)

        self._log_info(
            "Suggestion search finished",
            {
                "rounds_used": state.round_index,
                "accepted": len(state.accepted),
                "returned": len(suggestions),
                "stop_reason": reason.value,
                "degraded": state.degraded,
            },
        )

        if self._recorder:
            self._recorder.record_safely(SearchEvent(
                kind="suggestion",
                query=query,
                rounds_used=state.round_index,
                accepted_domains=[s.domain for s in suggestions],
                estimated_tokens=state.estimated_tokens,
                estimated_cost=estimate_cost(state.estimated_tokens, self._price_per_million),
                data={
                    "stop_reason": reason.value,
                    "degraded": state.degraded,
                    "candidates_per_round": [len(r.candidates) for r in state.rounds],
                },
            ))

        return SuggestResponse(
            suggestions=suggestions,
            rounds_used=state.round_index,
            stop_reason=reason,
            degraded=state.degraded,
        )

    async def _generate_candidates(
        self,
        state: SearchState,
        query: str,
    ) -> tuple[list[SuggestionCandidate], int, Optional[str]]:
        """
        Ask the source for candidates and extract them.

        Token usage reported by the source is preferred over the
        character-based estimate.

        Returns:
            Tuple of (candidates, tokens, failure) where failure is
            "generation", "extraction" or None
        """
        policy = self._policy(state.round_index)
        excluded = list(state.seen_names) if state.round_index > 0 else []

        try:
            raw_text = await self._source.generate(query, excluded, policy)
        except TransientUpstreamError as e:
            if self._logger:
                self._logger.log_error(
                    "SuggestionOrchestrator",
                    "Candidate generation failed, skipping round",
                    error=e,
                    additional_data={"round": state.round_index},
                )
            return [], estimate_token_count(query), GENERATION_FAILED

        reported = getattr(self._source, "last_usage_tokens", None)
        tokens = reported or estimate_token_count(query) + estimate_token_count(raw_text)

        try:
            candidates = self._extractor.extract(raw_text)
        except ExtractionError as e:
            self._log(
                LogLevel.WARN,
                "Could not extract candidates, skipping round",
                {"round": state.round_index, "error_code": e.code},
            )
            return [], tokens, EXTRACTION_FAILED

        return candidates, tokens, None

    async def _run_round(self, state: SearchState, query: str) -> SearchState:
        policy = self._policy(state.round_index)
        candidates, tokens, failure = await self._generate_candidates(state, query)

        checked: list[FullyQualifiedDomain] = []
        by_domain: dict[str, SuggestionCandidate] = {}
        for candidate in candidates:
            fqd = to_fully_qualified(candidate, policy, self._rng)
            if fqd is None or fqd.domain in by_domain:
                continue
            by_domain[fqd.domain] = candidate
            checked.append(fqd)

        limit = self._prober.batch_limit
        if len(checked) > limit:
            self._log(
                LogLevel.WARN,
                "Round produced more domains than one probe accepts, truncating",
                {"round": state.round_index, "domains": len(checked), "limit": limit},
            )
            checked = checked[:limit]

        results: list[AvailabilityResult] = []
        probe_degraded = False
        if checked:
            results = await self._prober.probe(checked)
            probe_degraded = self._prober.last_probe_degraded

        accepted, counted = accept_results(
            state, checked, results, by_domain, self._config.premium_policy,
        )

        seen = list(state.seen_names)
        seen_set = set(seen)
        for candidate in candidates:
            name = format_domain_name(candidate.name)
            if name and name not in seen_set:
                seen_set.add(name)
                seen.append(name)

        found = len(accepted) - len(state.accepted)
        self._log_info(
            f"Round {state.round_index + 1} complete",
            {
                "round": state.round_index,
                "candidates": len(candidates),
                "checked": len(checked),
                "new_available": found,
                "total_counted": counted,
            },
        )

        return replace(
            state,
            round_index=state.round_index + 1,
            accepted=accepted,
            counted=counted,
            seen_names=tuple(seen),
            rounds=state.rounds + (SearchRound(
                index=state.round_index,
                candidates=tuple(candidates),
                checked=tuple(checked),
                available_found=found,
                generation_failed=failure == GENERATION_FAILED,
                extraction_failed=failure == EXTRACTION_FAILED,
            ),),
            degraded=state.degraded or probe_degraded or failure == GENERATION_FAILED,
            estimated_tokens=state.estimated_tokens + tokens,
        )

    def _policy(self, index: int):
        return round_policy(
            index,
            default_extension=self._config.default_extension,
            default_share=self._config.default_extension_share,
        )

    def _log(self, level: LogLevel, message: str, data: dict) -> None:
        if self._logger:
            self._logger.log(level, "SuggestionOrchestrator", message, data)

    def _log_info(self, message: str, data: dict) -> None:
        self._log(LogLevel.INFO, message, data)
