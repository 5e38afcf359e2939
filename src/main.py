# src/main.py — v2
"""CLI entry point — analyze and cache maintenance commands.

Usage:
    tomatoscan analyze <image> [options]
    tomatoscan cache stats|sweep|clear
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from tomatoscan.version import __version__

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        _setup_logging(args.verbose)
        return asyncio.run(args.func(args))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def cli() -> None:
    sys.exit(main())


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="tomatoscan",
        description=f"tomatoscan v{__version__} — Tomato leaf disease diagnosis",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- analyze ---
    p_analyze = subparsers.add_parser(
        "analyze", help="Diagnose a single leaf photo",
    )
    p_analyze.add_argument("image", type=Path, help="Path to a JPEG or PNG photo")
    p_analyze.add_argument(
        "--offline", action="store_true",
        help="Never call the external validator (cached or template report only)",
    )
    p_analyze.add_argument(
        "--no-validator", action="store_true",
        help="Disable the external validator for this call",
    )
    p_analyze.add_argument(
        "--no-quality-check", action="store_true",
        help="Skip the photo quality gate",
    )
    p_analyze.add_argument(
        "--json", action="store_true",
        help="Print the full result as JSON",
    )
    p_analyze.set_defaults(func=_cmd_analyze)

    # --- cache ---
    p_cache = subparsers.add_parser(
        "cache", help="Inspect or maintain the result cache",
    )
    p_cache.add_argument(
        "action", choices=["stats", "sweep", "clear"],
        help="stats: show counts, sweep: drop expired entries, clear: drop everything",
    )
    p_cache.set_defaults(func=_cmd_cache)

    return parser


async def _cmd_analyze(args: argparse.Namespace) -> int:
    """Execute single-image analysis."""
    from tomatoscan.api.facade import apply_overrides, build_pipeline
    from tomatoscan.api.models import ConfigOverrides
    from tomatoscan.config.settings import Settings

    image_path: Path = args.image
    if not image_path.is_file():
        logger.error("File not found: %s", image_path)
        return 1

    overrides = ConfigOverrides(
        validator_enabled=False if args.no_validator else None,
        quality_check_enabled=False if args.no_quality_check else None,
    )
    settings = apply_overrides(Settings(), overrides)

    logger.info("Analyzing %s", image_path.name)
    async with build_pipeline(settings) as pipeline:
        if args.offline:
            result = await pipeline.analyze_fallback(image_path)
        else:
            result = await pipeline.analyze(image_path)

    if args.json:
        print(result.model_dump_json(indent=2))
    else:
        _print_result_summary(result)
    return 0 if result.success else 2


async def _cmd_cache(args: argparse.Namespace) -> int:
    """Run a cache maintenance action against the configured store."""
    from tomatoscan.cache.result_cache import ResultCache
    from tomatoscan.config.settings import Settings

    cache = ResultCache.from_settings(Settings())
    try:
        if args.action == "sweep":
            removed = await cache.evict_expired_and_overflow()
            print(f"Removed {removed} cache entries")
        elif args.action == "clear":
            await cache.clear()
            print("Cache cleared")
        else:
            stats = await cache.stats()
            print(f"\nCache ({cache.store_backend.__class__.__name__}):")
            print(f"  Entries:  {stats.total_entries}/{stats.max_entries}")
            print(f"  Valid:    {stats.valid_entries}")
            print(f"  Expired:  {stats.expired_entries}")
            print(f"  TTL:      {stats.ttl_seconds / 86400:.1f} days")
    finally:
        cache.store_backend.close()
    return 0


def _print_result_summary(result: object) -> None:
    """Print a human-readable summary of AnalysisResult."""
    if not result.success:
        print(f"\nAnalysis failed: {result.user_message}")
        for suggestion in result.suggestions:
            print(f"  - {suggestion}")
        return

    report = result.report
    print("\nAnalysis complete:")
    print(f"  Analysis ID:  {result.analysis_id}")
    print(f"  Disease:      {report.disease_name}")
    print(f"  Confidence:   {report.confidence_level}")
    print(f"  From cache:   {result.from_cache}")
    if report.is_preliminary:
        print("  Report:       preliminary (validator not consulted)")
    if result.warning is not None:
        print(f"  Warning:      validator unavailable ({result.warning.reason})")
    print(f"\n{report.full_report}")


def _setup_logging(verbose: bool) -> None:
    """Configure logging for CLI usage: text on stderr, plus LOG_FILE if set."""
    from tomatoscan.config.settings import Settings
    from tomatoscan.logging.logger import setup_logging_from_settings

    setup_logging_from_settings(
        Settings(), level="DEBUG" if verbose else None, log_format="text"
    )


if __name__ == "__main__":
    sys.exit(main())
