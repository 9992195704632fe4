"""
Configuration dataclasses for the domain suggester system.

This module defines all configuration structures used throughout the system,
including cache lifetimes, circuit breaker thresholds, registrar and
generator credentials, orchestration budgets, throttling and logging, and
the loaders that build them from the environment or a JSON file.
"""

import json
import os
import sys
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .enums import PremiumPolicy


NAMECHEAP_PRODUCTION_ENDPOINT = "https://api.namecheap.com/xml.response"
NAMECHEAP_SANDBOX_ENDPOINT = "https://api.sandbox.namecheap.com/xml.response"
GROQ_CHAT_ENDPOINT = "https://api.groq.com/openai/v1/chat/completions"

# Fields never written by save_config_to_file
SECRET_FIELDS = frozenset({"api_key"})


@dataclass
class CacheConfig:
    """TTL settings for the two in-process caches."""

    availability_ttl_seconds: float = 30 * 60
    response_ttl_seconds: float = 5 * 60
    sweep_interval_seconds: float = 5 * 60


@dataclass
class BreakerConfig:
    """Circuit breaker thresholds."""

    failure_threshold: int = 3
    cooldown_seconds: float = 5 * 60


@dataclass
class RegistrarConfig:
    """Credentials and transport settings for the registrar lookup API."""

    api_key: str = ""
    api_user: str = ""
    username: str = ""
    client_ip: str = ""
    use_sandbox: bool = False
    timeout_seconds: float = 5.0
    batch_limit: int = 50

    @property
    def endpoint(self) -> str:
        return NAMECHEAP_SANDBOX_ENDPOINT if self.use_sandbox else NAMECHEAP_PRODUCTION_ENDPOINT

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key and self.api_user)


@dataclass
class GeneratorConfig:
    """Settings for the chat-completion candidate source."""

    api_key: str = ""
    endpoint: str = GROQ_CHAT_ENDPOINT
    model: str = "llama-3.1-8b-instant"
    temperature: float = 0.3
    retry_temperature: float = 0.4
    max_tokens: int = 2000
    timeout_seconds: float = 30.0
    price_per_million_tokens: float = 0.04


@dataclass
class OrchestratorConfig:
    """Budgets and policies for the suggestion loop."""

    target_count: int = 5
    max_rounds: int = 5
    max_results: int = 10
    round_delay_seconds: float = 1.0
    default_extension: str = ".com"
    default_extension_share: float = 0.6
    premium_policy: PremiumPolicy = PremiumPolicy.COUNT
    salvage_enabled: bool = True
    long_query_threshold: int = 500


@dataclass
class ThrottleConfig:
    """Per-client sliding window throttle."""

    max_requests: int = 100
    window_seconds: float = 60.0


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "info"
    output_format: str = "text"  # 'json', 'text', 'both'


@dataclass
class SystemConfig:
    """Main system configuration combining all sub-configurations."""

    cache: CacheConfig = field(default_factory=CacheConfig)
    breaker: BreakerConfig = field(default_factory=BreakerConfig)
    registrar: RegistrarConfig = field(default_factory=RegistrarConfig)
    generator: GeneratorConfig = field(default_factory=GeneratorConfig)
    orchestrator: OrchestratorConfig = field(default_factory=OrchestratorConfig)
    throttle: ThrottleConfig = field(default_factory=ThrottleConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    events_file: Optional[Path] = None


def create_default_config() -> SystemConfig:
    """Create a system configuration with every default applied."""
    return SystemConfig()


def _bool_env(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


def _float_env(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        return default


def load_config_from_env(dotenv_path: Optional[Path] = None) -> SystemConfig:
    """
    Build configuration from environment variables.

    A ``.env`` file is loaded first (without overriding variables that are
    already set).

    Args:
        dotenv_path: Optional explicit path to a .env file

    Returns:
        SystemConfig populated from the environment
    """
    load_dotenv(dotenv_path=dotenv_path)

    config = create_default_config()

    config.registrar = RegistrarConfig(
        api_key=os.getenv("NAMECHEAP_API_KEY", "").strip(),
        api_user=os.getenv("NAMECHEAP_API_USER", "").strip(),
        username=os.getenv("NAMECHEAP_USERNAME", "").strip(),
        client_ip=os.getenv("NAMECHEAP_CLIENT_IP", "").strip(),
        use_sandbox=_bool_env("NAMECHEAP_USE_SANDBOX"),
        timeout_seconds=_float_env("NAMECHEAP_TIMEOUT", 5.0),
    )

    config.generator.api_key = os.getenv("GROQ_API_KEY", "").strip()
    config.generator.model = os.getenv("GROQ_MODEL", config.generator.model)

    config.throttle.max_requests = _int_env("RATE_LIMIT_PER_MINUTE", 100)

    config.logging.level = os.getenv("LOG_LEVEL", config.logging.level).lower()
    config.logging.output_format = os.getenv("LOG_FORMAT", config.logging.output_format).lower()

    events_file = os.getenv("EVENTS_FILE")
    if events_file:
        config.events_file = Path(events_file)

    return config


def load_config_from_file(config_path: Path) -> Optional[SystemConfig]:
    """
    Load configuration from a JSON file.

    Secrets missing from the file are taken from the environment so a
    config file can be committed without credentials.

    Args:
        config_path: Path to the configuration file

    Returns:
        SystemConfig if successful, None otherwise
    """
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = json.load(f)

        env_config = load_config_from_env()

        cache_data = data.get("cache", {})
        cache = CacheConfig(
            availability_ttl_seconds=cache_data.get("availability_ttl_seconds", 30 * 60),
            response_ttl_seconds=cache_data.get("response_ttl_seconds", 5 * 60),
            sweep_interval_seconds=cache_data.get("sweep_interval_seconds", 5 * 60),
        )

        breaker_data = data.get("breaker", {})
        breaker = BreakerConfig(
            failure_threshold=breaker_data.get("failure_threshold", 3),
            cooldown_seconds=breaker_data.get("cooldown_seconds", 5 * 60),
        )

        registrar_data = data.get("registrar", {})
        registrar = RegistrarConfig(
            api_key=registrar_data.get("api_key") or env_config.registrar.api_key,
            api_user=registrar_data.get("api_user") or env_config.registrar.api_user,
            username=registrar_data.get("username") or env_config.registrar.username,
            client_ip=registrar_data.get("client_ip") or env_config.registrar.client_ip,
            use_sandbox=registrar_data.get("use_sandbox", False),
            timeout_seconds=registrar_data.get("timeout_seconds", 5.0),
            batch_limit=registrar_data.get("batch_limit", 50),
        )

        generator_data = data.get("generator", {})
        generator = GeneratorConfig(
            api_key=generator_data.get("api_key") or env_config.generator.api_key,
            endpoint=generator_data.get("endpoint", GROQ_CHAT_ENDPOINT),
            model=generator_data.get("model", "llama-3.1-8b-instant"),
            temperature=generator_data.get("temperature", 0.3),
            retry_temperature=generator_data.get("retry_temperature", 0.4),
            max_tokens=generator_data.get("max_tokens", 2000),
            timeout_seconds=generator_data.get("timeout_seconds", 30.0),
            price_per_million_tokens=generator_data.get("price_per_million_tokens", 0.04),
        )

        orchestrator_data = data.get("orchestrator", {})
        orchestrator = OrchestratorConfig(
            target_count=orchestrator_data.get("target_count", 5),
            max_rounds=orchestrator_data.get("max_rounds", 5),
            max_results=orchestrator_data.get("max_results", 10),
            round_delay_seconds=orchestrator_data.get("round_delay_seconds", 1.0),
            default_extension=orchestrator_data.get("default_extension", ".com"),
            default_extension_share=orchestrator_data.get("default_extension_share", 0.6),
            premium_policy=PremiumPolicy(orchestrator_data.get("premium_policy", "count")),
            salvage_enabled=orchestrator_data.get("salvage_enabled", True),
            long_query_threshold=orchestrator_data.get("long_query_threshold", 500),
        )

        throttle_data = data.get("throttle", {})
        throttle = ThrottleConfig(
            max_requests=throttle_data.get("max_requests", 100),
            window_seconds=throttle_data.get("window_seconds", 60.0),
        )

        logging_data = data.get("logging", {})
        logging_config = LoggingConfig(
            level=logging_data.get("level", "info"),
            output_format=logging_data.get("output_format", "text"),
        )

        events_file = data.get("events_file")

        return SystemConfig(
            cache=cache,
            breaker=breaker,
            registrar=registrar,
            generator=generator,
            orchestrator=orchestrator,
            throttle=throttle,
            logging=logging_config,
            events_file=Path(events_file) if events_file else None,
        )

    except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        return None
    except FileNotFoundError:
        return None


def _strip_secrets(data):
    if isinstance(data, dict):
        return {
            key: _strip_secrets(value)
            for key, value in data.items()
            if key not in SECRET_FIELDS
        }
    return data


def save_config_to_file(config: SystemConfig, config_path: Path) -> bool:
    """
    Save configuration to a JSON file, omitting API keys.

    Args:
        config: Configuration to save
        config_path: Destination path

    Returns:
        True if the file was written
    """
    data = _strip_secrets(asdict(config))
    data["orchestrator"]["premium_policy"] = config.orchestrator.premium_policy.value
    data["events_file"] = str(config.events_file) if config.events_file else None

    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        return True
    except OSError as e:
        print(f"Error saving config: {e}", file=sys.stderr)
        return False
