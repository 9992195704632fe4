"""
Registrar Client for batched domain availability lookups.

This module provides an async client for the Namecheap ``domains.check``
XML API with TLS enforcement, parsing of the per-domain result attributes,
and classification of every failure as either transient (network, timeout,
5xx, throttling) or configuration (credentials, malformed request).
"""

import time
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse

import httpx

from .config import RegistrarConfig
from .enums import LogLevel, UpstreamErrorCode, ValidationErrorCode
from .exceptions import (
    BatchLimitError,
    ConfigurationUpstreamError,
    RejectedDomainError,
    TransientUpstreamError,
)


# Error numbers that mean the request itself is wrong; retrying cannot help
NAMECHEAP_ERROR_CODES: dict[str, str] = {
    "1011102": "API Key is invalid or API access has not been enabled",
    "2011170": "Missing required parameters",
    "2011165": "Invalid API key",
    "2011166": "Invalid IP address",
    "2011168": "Domain name is missing",
    "2011169": "Command parameter is missing",
    "2011280": "API access denied",
}

# Error numbers caused by a domain in the batch, not by the request
NAMECHEAP_DOMAIN_ERROR_CODES: dict[str, str] = {
    "2011338": "Domain name not valid",
    "2030280": "TLD not supported",
}

# Phrases in an ERROR response that indicate upstream throttling
THROTTLE_INDICATORS = ("too many", "limit", "throttle", "exceed")


@dataclass
class RegistrarDomainResult:
    """One ``DomainCheckResult`` element from the registrar response."""

    domain: str
    available: bool
    error_no: str = "0"
    description: str = ""
    is_premium_name: bool = False
    premium_registration_price: float = 0.0
    premium_renewal_price: float = 0.0
    icann_fee: float = 0.0
    eap_fee: float = 0.0


def is_domain_available(result: RegistrarDomainResult) -> bool:
    """Available for registration: flagged available with no per-domain error."""
    return result.available and result.error_no == "0"


def get_domain_price(result: RegistrarDomainResult) -> Optional[float]:
    """Premium registration price, or None for regular-priced domains."""
    if result.is_premium_name and result.premium_registration_price > 0:
        return result.premium_registration_price
    return None


def get_error_message(error_no: str) -> str:
    """Convert a registrar error number to a readable message."""
    if error_no in NAMECHEAP_DOMAIN_ERROR_CODES:
        return NAMECHEAP_DOMAIN_ERROR_CODES[error_no]
    return NAMECHEAP_ERROR_CODES.get(error_no, f"Unknown error (code: {error_no})")


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _to_float(value: Optional[str]) -> float:
    try:
        return float(value) if value else 0.0
    except ValueError:
        return 0.0


def _to_bool(value: Optional[str]) -> bool:
    return str(value).strip().lower() == "true"


def parse_check_response(xml_data: str) -> list[RegistrarDomainResult]:
    """
    Parse a ``domains.check`` XML response.

    Args:
        xml_data: Raw response body

    Returns:
        One result per ``DomainCheckResult`` element, in document order

    Raises:
        ConfigurationUpstreamError: The API rejected the request
        RejectedDomainError: A domain in the batch is invalid or unsupported
        TransientUpstreamError: The body is unparseable, reports throttling,
            or carries an unknown error
    """
    try:
        root = ET.fromstring(xml_data)
    except ET.ParseError as e:
        raise TransientUpstreamError(
            code=UpstreamErrorCode.PARSE_ERROR.value,
            message=f"Failed to parse registrar response: {e}",
            details={"snippet": xml_data[:300]},
        )

    status = root.attrib.get("Status", "").upper()
    if status != "OK":
        errors = [
            (elem.attrib.get("Number", "?"), (elem.text or "").strip())
            for elem in root.iter()
            if _local_name(elem.tag) == "Error"
        ]
        summary = "; ".join(f"{number}: {text}" for number, text in errors) or "no error detail"
        details = {"status": status, "errors": [number for number, _ in errors]}

        if any(indicator in summary.lower() for indicator in THROTTLE_INDICATORS):
            raise TransientUpstreamError(
                code=UpstreamErrorCode.RATE_LIMITED.value,
                message=f"Registrar throttled the request: {summary}",
                details=details,
            )
        if any(number in NAMECHEAP_ERROR_CODES for number, _ in errors):
            raise ConfigurationUpstreamError(
                code=UpstreamErrorCode.INVALID_REQUEST.value,
                message=f"Registrar rejected the request: {summary}",
                details=details,
            )
        if errors and all(number in NAMECHEAP_DOMAIN_ERROR_CODES for number, _ in errors):
            raise RejectedDomainError(
                code=UpstreamErrorCode.DOMAIN_REJECTED.value,
                message=f"Registrar rejected a domain in the batch: {summary}",
                details=details,
            )
        raise TransientUpstreamError(
            code=UpstreamErrorCode.SERVER_ERROR.value,
            message=f"Registrar returned an error status: {summary}",
            details=details,
        )

    results = []
    for elem in root.iter():
        if _local_name(elem.tag) != "DomainCheckResult":
            continue
        attrs = elem.attrib
        results.append(RegistrarDomainResult(
            domain=attrs.get("Domain", "").lower(),
            available=_to_bool(attrs.get("Available")),
            error_no=attrs.get("ErrorNo") or "0",
            description=attrs.get("Description", ""),
            is_premium_name=_to_bool(attrs.get("IsPremiumName")),
            premium_registration_price=_to_float(attrs.get("PremiumRegistrationPrice")),
            premium_renewal_price=_to_float(attrs.get("PremiumRenewalPrice")),
            icann_fee=_to_float(attrs.get("IcannFee")),
            eap_fee=_to_float(attrs.get("EapFee")),
        ))

    if not results:
        raise TransientUpstreamError(
            code=UpstreamErrorCode.PARSE_ERROR.value,
            message="Missing DomainCheckResult in registrar response",
        )

    return results


class RegistrarClient:
    """
    Async registrar client with TLS enforcement.

    One call checks up to ``batch_limit`` domains. The request carries an
    explicit short timeout; expiry is reported as a transient failure.
    """

    COMMAND = "namecheap.domains.check"

    def __init__(
        self,
        config: RegistrarConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        logger=None,
    ) -> None:
        """
        Initialize the registrar client.

        Args:
            config: Credentials, endpoint selection and timeout
            transport: Optional httpx transport (tests pass a MockTransport)
            logger: Optional AuditLogger
        """
        self._config = config
        self._transport = transport
        self._logger = logger
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def has_credentials(self) -> bool:
        return self._config.has_credentials

    @property
    def batch_limit(self) -> int:
        return self._config.batch_limit

    async def __aenter__(self) -> "RegistrarClient":
        self._ensure_client()
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

    def _validate_endpoint_url(self, endpoint: str) -> None:
        parsed = urlparse(endpoint)
        if parsed.scheme.lower() != "https":
            raise ConfigurationUpstreamError(
                code=UpstreamErrorCode.TLS_ERROR.value,
                message=f"Registrar endpoint must use HTTPS: {endpoint}",
                details={"endpoint": endpoint, "scheme": parsed.scheme},
            )

    def _build_params(self, domains: list[str]) -> dict[str, str]:
        return {
            "ApiUser": self._config.api_user,
            "ApiKey": self._config.api_key,
            "UserName": self._config.username or self._config.api_user,
            "Command": self.COMMAND,
            "ClientIp": self._config.client_ip,
            "DomainList": ",".join(domains),
        }

    async def check_domains(self, domains: list[str]) -> list[RegistrarDomainResult]:
        """
        Check availability of a batch of fully-qualified domains.

        Args:
            domains: Up to ``batch_limit`` lowercase domains

        Returns:
            Parsed per-domain results

        Raises:
            BatchLimitError: More domains than one request accepts
            ConfigurationUpstreamError: Credentials or request rejected
            RejectedDomainError: A domain in the batch was refused
            TransientUpstreamError: Network, timeout, 5xx, throttling
        """
        if not domains:
            return []

        if len(domains) > self._config.batch_limit:
            raise BatchLimitError(
                code=ValidationErrorCode.BATCH_LIMIT.value,
                message=f"Cannot check more than {self._config.batch_limit} domains at once",
                details={"requested": len(domains)},
            )

        endpoint = self._config.endpoint
        self._validate_endpoint_url(endpoint)
        client = self._ensure_client()

        start_time = time.perf_counter()
        self._log_debug(
            "Registrar request",
            {"endpoint": endpoint, "domain_count": len(domains)},
        )

        try:
            response = await client.get(endpoint, params=self._build_params(domains))
        except httpx.TimeoutException:
            raise TransientUpstreamError(
                code=UpstreamErrorCode.TIMEOUT.value,
                message=f"Registrar request timed out after {self._config.timeout_seconds}s",
                details={"domain_count": len(domains)},
            )
        except httpx.HTTPError as e:
            raise TransientUpstreamError(
                code=UpstreamErrorCode.NETWORK_ERROR.value,
                message=f"Registrar connection error: {e}",
                details={"domain_count": len(domains)},
            )

        elapsed_ms = (time.perf_counter() - start_time) * 1000

        if response.status_code in (401, 403):
            raise ConfigurationUpstreamError(
                code=UpstreamErrorCode.AUTH_ERROR.value,
                message="Invalid registrar API credentials",
                details={"http_status_code": response.status_code},
            )
        if response.status_code == 400:
            raise ConfigurationUpstreamError(
                code=UpstreamErrorCode.INVALID_REQUEST.value,
                message="Registrar rejected the request as malformed",
                details={"http_status_code": 400},
            )
        if response.status_code == 429:
            raise TransientUpstreamError(
                code=UpstreamErrorCode.RATE_LIMITED.value,
                message="Rate limited by registrar",
                details={"http_status_code": 429},
            )
        if response.status_code >= 400:
            raise TransientUpstreamError(
                code=UpstreamErrorCode.SERVER_ERROR.value,
                message=f"Registrar request failed: {response.status_code}",
                details={"http_status_code": response.status_code},
            )

        results = parse_check_response(response.text)
        self._log_debug(
            "Registrar response",
            {"domain_count": len(results), "response_time_ms": round(elapsed_ms, 1)},
        )
        return results

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    def _log_debug(self, message: str, data: dict) -> None:
        if self._logger:
            self._logger.log(LogLevel.DEBUG, "RegistrarClient", message, data)
