"""
Command-line interface for the domain suggester system.

This module provides the main CLI entry point with commands for:
- suggest: Suggest available domains for a free-text description
- check: Check one name across popular extensions
- search: Pick suggest or check from the shape of the input
- config: Configuration management
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Optional

from . import __version__
from .audit_logger import AuditLogger
from .config import (
    SystemConfig,
    create_default_config,
    load_config_from_env,
    load_config_from_file,
    save_config_to_file,
)
from .domain_utils import detect_search_mode, yearly_price
from .enums import LogLevel, SearchMode
from .exceptions import DomainSuggesterError
from .models import DomainCheckResult, SuggestResponse
from .service import SuggestionService


DEFAULT_CONFIG_PATH = Path.home() / ".domain_suggester" / "config.json"


def resolve_config(config_path: Optional[str]) -> Optional[SystemConfig]:
    """
    Load configuration from a file if given, otherwise from the environment.

    Returns:
        SystemConfig, or None if the file could not be loaded
    """
    if config_path:
        config = load_config_from_file(Path(config_path))
        if config is None:
            print(f"Error: Could not load config from {config_path}", file=sys.stderr)
        return config
    return load_config_from_env()


def create_logger(config: SystemConfig, verbose: bool) -> AuditLogger:
    if verbose:
        return AuditLogger(
            output_format=config.logging.output_format,
            min_level=LogLevel.DEBUG,
        )
    logger = AuditLogger.from_config(config.logging)
    if logger.min_level.rank < LogLevel.WARN.rank:
        logger = AuditLogger(output_format=config.logging.output_format, min_level=LogLevel.WARN)
    return logger


def print_suggestions(response: SuggestResponse, verbose: bool = False) -> None:
    if not response.suggestions:
        print("No available domains found.")
    for suggestion in response.suggestions:
        line = f"  {suggestion.domain}"
        if suggestion.is_premium and suggestion.price:
            line += f"  (premium ${suggestion.price:.2f})"
        else:
            line += f"  ${yearly_price(suggestion.extension):.2f}/year"
        if suggestion.reason:
            line += f"  - {suggestion.reason}"
        print(line)

    print(
        f"\nFound {len(response.suggestions)} available domain(s) "
        f"in {response.rounds_used} round(s)"
    )
    if response.degraded:
        print("Note: availability lookups were degraded; results may be incomplete.")
    if verbose:
        print(f"  Stop reason: {response.stop_reason.value}")


def print_check_results(results: list[DomainCheckResult]) -> None:
    if not results:
        print("No available extensions found.")
    for result in results:
        marker = "+" if result.available else "-"
        line = f"  {marker} {result.domain}"
        if result.available:
            line += f"  score {result.score}"
            if result.is_premium and result.price:
                line += f"  (premium ${result.price:.2f})"
            else:
                line += f"  ${yearly_price(result.extension):.2f}/year"
        else:
            line += "  taken"
        if result.requested:
            line += "  [requested]"
        print(line)


async def run_suggest(
    query: str,
    config: SystemConfig,
    as_json: bool = False,
    verbose: bool = False,
) -> int:
    """
    Run one suggestion search.

    Returns:
        Exit code (0 if anything was found, 1 otherwise or on error)
    """
    logger = create_logger(config, verbose)

    if not as_json:
        print(f"Searching domains for: {query}")

    try:
        async with SuggestionService.from_config(config, logger=logger) as service:
            response = await service.suggest(query, client_key="cli")
    except DomainSuggesterError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

    if as_json:
        print(json.dumps(response.to_dict(), indent=2, ensure_ascii=False))
    else:
        print_suggestions(response, verbose=verbose)

    return 0 if response.suggestions else 1


async def run_check(
    domain: str,
    config: SystemConfig,
    as_json: bool = False,
    verbose: bool = False,
) -> int:
    """
    Check one name across extensions.

    Returns:
        Exit code (0 if any extension is available, 1 otherwise or on error)
    """
    logger = create_logger(config, verbose)

    if not as_json:
        print(f"Checking: {domain}")

    try:
        async with SuggestionService.from_config(config, logger=logger) as service:
            results = await service.check(domain, client_key="cli")
    except DomainSuggesterError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

    if as_json:
        print(json.dumps([r.to_dict() for r in results], indent=2, ensure_ascii=False))
    else:
        print_check_results(results)

    return 0 if any(r.available for r in results) else 1


def cmd_suggest(args: argparse.Namespace) -> int:
    """Handle the 'suggest' command."""
    config = resolve_config(args.config)
    if config is None:
        return 1

    return asyncio.run(run_suggest(
        query=" ".join(args.query),
        config=config,
        as_json=args.json,
        verbose=args.verbose,
    ))


def cmd_check(args: argparse.Namespace) -> int:
    """Handle the 'check' command."""
    config = resolve_config(args.config)
    if config is None:
        return 1

    return asyncio.run(run_check(
        domain=args.domain,
        config=config,
        as_json=args.json,
        verbose=args.verbose,
    ))


def cmd_search(args: argparse.Namespace) -> int:
    """Handle the 'search' command: several words suggest, a single name is checked."""
    config = resolve_config(args.config)
    if config is None:
        return 1

    text = " ".join(args.text)
    if detect_search_mode(text) == SearchMode.DOMAIN:
        return asyncio.run(run_check(
            domain=text,
            config=config,
            as_json=args.json,
            verbose=args.verbose,
        ))
    return asyncio.run(run_suggest(
        query=text,
        config=config,
        as_json=args.json,
        verbose=args.verbose,
    ))


def cmd_config(args: argparse.Namespace) -> int:
    """Handle the 'config' command."""
    config_path = Path(args.path) if args.path else DEFAULT_CONFIG_PATH

    if args.action == "show":
        config = load_config_from_file(config_path)
        if config is None:
            print(f"No configuration found at: {config_path}")
            print("Use 'config init' to create a default configuration.")
            return 1

        print(f"Configuration from: {config_path}")
        print(f"  Registrar endpoint: {config.registrar.endpoint}")
        print(f"  Registrar credentials: {'set' if config.registrar.has_credentials else 'not set'}")
        print(f"  Generator model: {config.generator.model}")
        print(f"  Generator API key: {'set' if config.generator.api_key else 'not set'}")
        print(f"  Target count: {config.orchestrator.target_count}")
        print(f"  Max rounds: {config.orchestrator.max_rounds}")
        print(f"  Premium policy: {config.orchestrator.premium_policy.value}")
        print(f"  Requests per window: {config.throttle.max_requests}/{config.throttle.window_seconds:g}s")
        print(f"  Log level: {config.logging.level}")
        return 0

    elif args.action == "init":
        if config_path.exists() and not args.force:
            print(f"Configuration already exists at: {config_path}")
            print("Use --force to overwrite.")
            return 1

        if save_config_to_file(create_default_config(), config_path):
            print(f"Configuration created at: {config_path}")
            print("API keys are read from NAMECHEAP_API_KEY and GROQ_API_KEY.")
            return 0
        return 1

    elif args.action == "validate":
        config = load_config_from_file(config_path)
        if config is None:
            print(f"Error: Could not load config from {config_path}", file=sys.stderr)
            return 1

        print(f"Configuration at {config_path} is valid.")
        return 0

    return 1


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config", "-c",
        help="Path to configuration file (defaults to environment variables)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print results as JSON",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose output",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="domain-suggester",
        description="Suggest available domain names for a business idea",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # 'suggest' command
    suggest_parser = subparsers.add_parser(
        "suggest",
        help="Suggest available domains for a description",
    )
    suggest_parser.add_argument(
        "query",
        nargs="+",
        help="Free-text description (e.g., pet food delivery)",
    )
    _add_common_arguments(suggest_parser)
    suggest_parser.set_defaults(func=cmd_suggest)

    # 'check' command
    check_parser = subparsers.add_parser(
        "check",
        help="Check one name across popular extensions",
    )
    check_parser.add_argument(
        "domain",
        help="Name or domain to check (e.g., example or example.io)",
    )
    _add_common_arguments(check_parser)
    check_parser.set_defaults(func=cmd_check)

    # 'search' command
    search_parser = subparsers.add_parser(
        "search",
        help="Suggest for a description, or check a single name",
    )
    search_parser.add_argument(
        "text",
        nargs="+",
        help="Description (several words) or a name (one word)",
    )
    _add_common_arguments(search_parser)
    search_parser.set_defaults(func=cmd_search)

    # 'config' command
    config_parser = subparsers.add_parser(
        "config",
        help="Configuration management",
    )
    config_parser.add_argument(
        "action",
        choices=["show", "init", "validate"],
        help="Configuration action",
    )
    config_parser.add_argument(
        "--path", "-p",
        help="Path to configuration file",
    )
    config_parser.add_argument(
        "--force", "-f",
        action="store_true",
        help="Force overwrite existing configuration",
    )
    config_parser.set_defaults(func=cmd_config)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
