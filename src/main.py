# src/main.py — v1
"""CLI entry point: validate, phases, events commands.

Usage:
    tourflow validate <snapshot.json>
    tourflow phases
    tourflow events <events.json>
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import ValidationError

from tourflow.version import __version__

if TYPE_CHECKING:
    from tourflow.config.settings import Settings

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INVALID = 2


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    from tourflow.config.settings import ConfigurationError, load_settings

    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        settings = load_settings()
    except (ConfigurationError, ValidationError) as exc:
        _setup_logging(args.verbose)
        logger.error("Invalid configuration: %s", exc)
        return EXIT_ERROR

    _setup_logging(args.verbose, settings)
    args.settings = settings

    if not hasattr(args, "func"):
        parser.print_help()
        return EXIT_ERROR

    try:
        return args.func(args)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return EXIT_ERROR


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="tourflow",
        description=f"tourflow v{__version__}: pipeline consistency checks",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- validate ---
    p_validate = subparsers.add_parser(
        "validate", help="Validate a pipeline snapshot (JSON)",
    )
    p_validate.add_argument("snapshot", type=Path, help="Path to snapshot JSON")
    p_validate.set_defaults(func=_cmd_validate)

    # --- phases ---
    p_phases = subparsers.add_parser(
        "phases", help="Print the phase table",
    )
    p_phases.set_defaults(func=_cmd_phases)

    # --- events ---
    p_events = subparsers.add_parser(
        "events", help="Aggregate job progress from an events file (JSON)",
    )
    p_events.add_argument("events_file", type=Path, help="Path to events JSON")
    p_events.set_defaults(func=_cmd_events)

    return parser


def _cmd_validate(args: argparse.Namespace) -> int:
    """Validate one snapshot; exit 2 when it is in an illegal state."""
    from tourflow.api.facade import inspect_pipeline

    path: Path = args.snapshot
    if not path.is_file():
        logger.error("File not found: %s", path)
        return EXIT_ERROR

    snapshot = json.loads(path.read_text(encoding="utf-8"))
    report = inspect_pipeline(snapshot, args.settings)

    print(report.summary)
    for issue in report.validation.issues:
        line = f"  [{issue.severity.value}] {issue.type.value}: {issue.message}"
        if issue.recovery is not None:
            line += (
                f" -> {issue.recovery.phase.value}/step {issue.recovery.current_step}"
            )
        print(line)
    for item in report.attention:
        print(f"  [attention] {item.message}")
    print(f"  Next action: {report.available_action.cta_label}")

    return EXIT_OK if report.validation.is_valid else EXIT_INVALID


def _cmd_phases(args: argparse.Namespace) -> int:
    """Print phases in forward order with their step and kind."""
    from tourflow.pipeline.phases import PHASE_ORDER, PHASE_TABLE
    from tourflow.core.models import Phase

    for phase in (*PHASE_ORDER, Phase.FAILED):
        info = PHASE_TABLE[phase]
        step = "-" if info.step is None else str(info.step)
        print(f"  {step:>2}  {info.kind.value:<9} {phase.value}")
    return EXIT_OK


def _cmd_events(args: argparse.Namespace) -> int:
    """Print aggregated progress per job."""
    from tourflow.events.aggregator import load_events
    from tourflow.events.stream import EventStream

    path: Path = args.events_file
    if not path.is_file():
        logger.error("File not found: %s", path)
        return EXIT_ERROR

    stream = EventStream.from_settings(args.settings)
    for job_id, events in load_events(path).items():
        stream.extend(job_id, events)

    for job_id in stream.job_ids:
        progress = stream.progress(job_id)
        state = "complete" if progress.is_complete else "running"
        print(f"\nJob {job_id}:")
        print(f"  Progress:  {progress.progress}% ({state})")
        print(f"  Events:    {progress.event_count}")
        if progress.latest_message:
            print(f"  Latest:    {progress.latest_message}")
    return EXIT_OK


def _setup_logging(verbose: bool, settings: Settings | None = None) -> None:
    """Configure logging for CLI usage; ``-v`` overrides the configured level."""
    from tourflow.logging.logger import setup_logging

    if settings is None:
        setup_logging(level="DEBUG" if verbose else "WARNING", log_format="text")
        return
    setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=settings.log_file,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )


if __name__ == "__main__":
    sys.exit(main())
