"""Entry point for Advisor Orchestrator CLI."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

import yaml
from rich.console import Console
from rich.table import Table

from advisor_orchestrator.config.settings import Settings, get_settings, load_settings_from_yaml
from advisor_orchestrator.core.errors import ConfigurationError
from advisor_orchestrator.core.models import AdvisorProfile
from advisor_orchestrator.core.service import ConsultationResult, ConsultationService
from advisor_orchestrator.metrics.observability import (
    FanOutEventSink,
    LoggingEventSink,
    MetricsCollector,
)
from advisor_orchestrator.personas.library import PersonaLibrary
from advisor_orchestrator.utils import mask_secret

console = Console()


def setup_logging(verbose: bool = False, debug: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if debug else (logging.INFO if verbose else logging.WARNING)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="advisor-orchestrator",
        description="Multi-advisor consultation with provider failover",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Ask command
    ask_parser = subparsers.add_parser("ask", help="Ask a question to a set of advisors")
    ask_parser.add_argument(
        "-q", "--question",
        required=True,
        help="Question to ask",
    )
    ask_parser.add_argument(
        "--advisors",
        type=Path,
        help="YAML file with a list of advisors (id, name, role, ...)",
    )
    ask_parser.add_argument(
        "--persona",
        action="append",
        default=[],
        help="Persona id to consult; may be repeated",
    )
    ask_parser.add_argument(
        "--provider",
        help="Provider to try first",
    )
    ask_parser.add_argument(
        "--json",
        action="store_true",
        help="Print the full result as JSON",
    )
    ask_parser.add_argument(
        "--metrics-dir",
        type=Path,
        help="Directory to save consultation metrics",
    )

    # Providers command
    providers_parser = subparsers.add_parser(
        "providers",
        help="Show configured providers and their availability",
    )

    # Personas command
    personas_parser = subparsers.add_parser(
        "personas",
        help="List the persona table",
    )
    personas_parser.add_argument(
        "--persona-file",
        type=Path,
        help="Persona YAML file (default: bundled table)",
    )

    for sub in (ask_parser, providers_parser, personas_parser):
        sub.add_argument(
            "--config",
            type=Path,
            help="Settings YAML file",
        )
        sub.add_argument(
            "-v", "--verbose",
            action="store_true",
            help="Verbose output",
        )
        sub.add_argument(
            "--debug",
            action="store_true",
            help="Debug output",
        )

    return parser.parse_args(argv)


def load_settings(config: Path | None) -> Settings:
    """Settings from YAML when given, otherwise from the environment."""
    if config is not None:
        return load_settings_from_yaml(config)
    return get_settings()


def load_advisors(path: Path) -> list[AdvisorProfile]:
    """Load advisor profiles from a YAML list (or a mapping with ``advisors``)."""
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or []

    if isinstance(data, dict):
        data = data.get("advisors", [])
    return [AdvisorProfile.from_dict(entry) for entry in data]


def advisors_from_personas(library: PersonaLibrary, persona_ids: list[str]) -> list[AdvisorProfile]:
    """Build advisor profiles straight from persona ids."""
    advisors = []
    for persona_id in persona_ids:
        persona = library.get(persona_id)
        if persona is None:
            raise ConfigurationError(f"Unknown persona '{persona_id}'")
        advisors.append(AdvisorProfile(
            id=persona.id,
            name=persona.name or persona.id,
            role=persona.role,
            persona_id=persona.id,
            expertise=", ".join(persona.expertise_areas),
        ))
    return advisors


def print_result(result: ConsultationResult) -> None:
    """Print a consultation result for humans."""
    insight = result.insight
    print(f"\nQuestion: {result.question}")
    if insight:
        print(
            f"Analysis: {insight.domain} / {insight.question_type} "
            f"(confidence {insight.confidence:.0%}, complexity {insight.complexity.value})"
        )
    print(f"Responses: {result.live_count} live, {result.fallback_count} fallback "
          f"in {result.duration_seconds:.2f}s")

    for response in result.responses:
        source = response.provider if response.is_live else "offline"
        print("\n" + "=" * 60)
        print(f"{response.advisor_name} [{response.kind.value}, {source}, "
              f"confidence {response.confidence:.2f}]")
        print("=" * 60)
        print(response.content)


async def cmd_ask(args: argparse.Namespace) -> int:
    """Ask a question to the selected advisors."""
    settings = load_settings(args.config)
    metrics_dir = args.metrics_dir or (Path(settings.metrics_dir) if settings.metrics_dir else None)
    collector = MetricsCollector(output_dir=metrics_dir)

    service = ConsultationService.from_settings(
        settings,
        event_sink=FanOutEventSink(LoggingEventSink(), collector),
    )

    advisors: list[AdvisorProfile] = []
    if args.advisors:
        advisors.extend(load_advisors(args.advisors))
    advisors.extend(advisors_from_personas(service.personas, args.persona))
    if not advisors:
        print("No advisors given; use --advisors FILE or --persona ID")
        return 1

    if not service.is_available() and not args.json:
        print("No live provider available, answering in offline mode")

    overrides: dict[str, Any] = {}
    if args.provider:
        overrides["provider_hint"] = args.provider

    result = await service.consult(args.question, advisors, **overrides)

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        print_result(result)

    if args.verbose or args.debug:
        collector.print_summary()
    collector.save()
    return 0


async def cmd_providers(args: argparse.Namespace) -> int:
    """Show configured providers and availability."""
    settings = load_settings(args.config)
    service = ConsultationService.from_settings(settings)
    status = service.provider_status()

    if not status:
        console.print("[yellow]No providers configured[/yellow]")
        return 0

    table = Table(title=f"Providers (active: {service.registry.active})")
    table.add_column("Provider", style="cyan", no_wrap=True)
    table.add_column("Status", no_wrap=True)
    table.add_column("Model")
    table.add_column("Key", no_wrap=True)

    for name, available in status.items():
        cfg = settings.providers.get(name)
        table.add_row(
            name,
            "[green]available[/green]" if available else "[red]unavailable[/red]",
            (cfg.model if cfg else "") or "-",
            mask_secret(cfg.api_key if cfg else None),
        )

    console.print(table)
    return 0


async def cmd_personas(args: argparse.Namespace) -> int:
    """List the persona table."""
    persona_file = args.persona_file
    if persona_file is None and args.config is not None:
        configured = load_settings(args.config).persona_file
        persona_file = Path(configured) if configured else None

    library = PersonaLibrary.from_yaml(persona_file) if persona_file else PersonaLibrary.default()

    table = Table(title=f"Personas ({len(library.personas)})")
    table.add_column("Id", style="cyan", no_wrap=True)
    table.add_column("Role", style="green")
    table.add_column("Templates")

    for persona in library.personas:
        table.add_row(
            persona.id,
            persona.role,
            ", ".join(sorted(persona.templates)) or "generic only",
        )

    console.print(table)
    return 0


async def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    # Setup logging
    verbose = getattr(args, "verbose", False)
    debug = getattr(args, "debug", False)
    setup_logging(verbose=verbose, debug=debug)

    if args.command is None:
        print("Usage: python -m advisor_orchestrator ask -q 'Your question' --persona sarah-kim")
        print("       python -m advisor_orchestrator providers [--config settings.yaml]")
        print("       python -m advisor_orchestrator personas [--persona-file personas.yaml]")
        return 0

    try:
        if args.command == "ask":
            return await cmd_ask(args)
        elif args.command == "providers":
            return await cmd_providers(args)
        elif args.command == "personas":
            return await cmd_personas(args)
        else:
            print(f"Unknown command: {args.command}")
            return 1
    except ConfigurationError as e:
        print(f"\nConfiguration error: {e}")
        if debug:
            import traceback
            traceback.print_exc()
        return 2


def cli_main() -> None:
    """CLI entry point (synchronous wrapper)."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli_main()
