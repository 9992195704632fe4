"""
Candidate sources: the generative collaborator that proposes names.

The orchestrator only depends on the ``CandidateSource`` protocol. The
bundled implementation talks to an OpenAI-compatible chat completions
endpoint (Groq by default) over httpx.
"""

from abc import abstractmethod
from typing import Optional, Protocol, runtime_checkable
from urllib.parse import urlparse

import httpx

from .config import GeneratorConfig
from .domain_utils import RoundPolicy
from .enums import LogLevel, UpstreamErrorCode
from .exceptions import ConfigurationUpstreamError, TransientUpstreamError


SYSTEM_PROMPT = """Generate 10 domain name suggestions. Output ONLY a JSON array starting with [ and ending with ].

For long business descriptions, first identify the unique value proposition,
the main customer benefit, what sets the business apart, and any emotional
hook. Build names around those specifics rather than generic industry terms.

JSON format:
[{"domain":"example.com","extension":".com","reason":"Brief reason"}]

Rules:
- Names under 15 characters
- Mix benefit-driven names with creative abstractions
- No thinking, no tags, no explanations: only the JSON array"""


@runtime_checkable
class CandidateSource(Protocol):
    """Protocol for anything that proposes raw candidate text."""

    @abstractmethod
    async def generate(
        self,
        query: str,
        excluded: list[str],
        policy: RoundPolicy,
    ) -> str:
        """
        Propose candidates for a query.

        Args:
            query: The (possibly preprocessed) user query
            excluded: Bare names already tried in earlier rounds
            policy: Extension policy for this round

        Returns:
            Raw model text, to be parsed by the extractor

        Raises:
            ConfigurationUpstreamError: Credentials rejected
            TransientUpstreamError: Any other failure
        """
        ...


def build_messages(query: str, excluded: list[str], policy: RoundPolicy) -> list[dict]:
    """Build the chat messages for one round."""
    system = SYSTEM_PROMPT + "\n- " + policy.directive()
    if excluded:
        system += (
            "\n\nIMPORTANT: Avoid these already suggested names: "
            + ", ".join(excluded)
            + "\nCreate completely different alternatives."
        )
    return [
        {"role": "system", "content": system},
        {"role": "user", "content": query},
    ]


class ChatCompletionSource:
    """
    Candidate source backed by an OpenAI-compatible chat completions API.

    Round 0 uses the base temperature; retry rounds use a slightly higher
    one for variety.
    """

    def __init__(
        self,
        config: GeneratorConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        logger=None,
    ) -> None:
        self._config = config
        self._transport = transport
        self._logger = logger
        self._client: Optional[httpx.AsyncClient] = None
        self.total_tokens = 0
        # Usage reported for the most recent call, None when not reported
        self.last_usage_tokens: Optional[int] = None

    @property
    def has_credentials(self) -> bool:
        return bool(self._config.api_key)

    async def __aenter__(self) -> "ChatCompletionSource":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                verify=True,
                timeout=httpx.Timeout(self._config.timeout_seconds),
                transport=self._transport,
            )
        return self._client

    async def generate(
        self,
        query: str,
        excluded: list[str],
        policy: RoundPolicy,
    ) -> str:
        if not self.has_credentials:
            raise ConfigurationUpstreamError(
                code=UpstreamErrorCode.AUTH_ERROR.value,
                message="No generation API key configured",
            )

        if urlparse(self._config.endpoint).scheme.lower() != "https":
            raise ConfigurationUpstreamError(
                code=UpstreamErrorCode.TLS_ERROR.value,
                message=f"Generation endpoint must use HTTPS: {self._config.endpoint}",
            )

        self.last_usage_tokens = None
        payload = {
            "model": self._config.model,
            "messages": build_messages(query, excluded, policy),
            "temperature": self._config.temperature if policy.index == 0 else self._config.retry_temperature,
            "max_tokens": self._config.max_tokens,
        }
        headers = {"Authorization": f"Bearer {self._config.api_key}"}

        try:
            response = await self._ensure_client().post(
                self._config.endpoint, json=payload, headers=headers,
            )
        except httpx.TimeoutException:
            raise TransientUpstreamError(
                code=UpstreamErrorCode.TIMEOUT.value,
                message=f"Generation request timed out after {self._config.timeout_seconds}s",
            )
        except httpx.HTTPError as e:
            raise TransientUpstreamError(
                code=UpstreamErrorCode.NETWORK_ERROR.value,
                message=f"Generation connection error: {e}",
            )

        if response.status_code in (401, 403):
            raise ConfigurationUpstreamError(
                code=UpstreamErrorCode.AUTH_ERROR.value,
                message="Invalid generation API key",
                details={"http_status_code": response.status_code},
            )
        if response.status_code >= 400:
            raise TransientUpstreamError(
                code=UpstreamErrorCode.SERVER_ERROR.value,
                message=f"Generation request failed: {response.status_code}",
                details={"http_status_code": response.status_code},
            )

        try:
            body = response.json()
            content = body["choices"][0]["message"]["content"] or ""
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise TransientUpstreamError(
                code=UpstreamErrorCode.PARSE_ERROR.value,
                message=f"Unexpected generation response shape: {e}",
            )

        usage = body.get("usage") or {}
        reported = usage.get("total_tokens")
        self.last_usage_tokens = int(reported) if reported else None
        self.total_tokens += self.last_usage_tokens or 0

        if self._logger:
            self._logger.log(
                LogLevel.DEBUG,
                "ChatCompletionSource",
                "Generated candidates",
                {"round": policy.index, "excluded": len(excluded), "chars": len(content)},
            )

        return content

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None
