# src/main.py — v2
"""CLI entry point — quick, deep, poll, listings, stats commands.

Usage:
    research-cache quick --tenant ORG --role R --level L --industry I --location LOC
    research-cache deep --tenant ORG <cache_key> [--subject-id ID]
    research-cache poll --tenant ORG <cache_key>
    research-cache listings --tenant ORG --role R --level L --industry I --location LOC
    research-cache stats <calls.jsonl>

Results are printed to stdout as JSON; logs go to stderr.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

from researchcache.version import __version__

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    _setup_logging(args.verbose)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        return asyncio.run(args.func(args))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        code = getattr(exc, "code", type(exc).__name__)
        logger.error("Fatal error [%s]: %s", code, exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="research-cache",
        description=f"research-cache v{__version__} — Cached phased market research",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- quick ---
    p_quick = subparsers.add_parser(
        "quick", help="Quick-phase market insights (cache first)",
    )
    _add_tenant(p_quick)
    _add_role_args(p_quick)
    p_quick.add_argument(
        "--market-focus", choices=("irish", "global"), default=None,
        help="Market scope (default: MARKET_FOCUS_DEFAULT)",
    )
    _add_calls_log(p_quick)
    p_quick.set_defaults(func=_cmd_quick)

    # --- deep ---
    p_deep = subparsers.add_parser(
        "deep", help="Trigger deep research and wait for it to finish",
    )
    _add_tenant(p_deep)
    p_deep.add_argument("cache_key", help="Key returned by the quick command")
    p_deep.add_argument("--subject-id", default=None, help="Subject to propagate to")
    p_deep.add_argument(
        "--timeout", type=float, default=None,
        help="Max seconds to wait (default: DEEP_TIME_BUDGET_S)",
    )
    _add_calls_log(p_deep)
    p_deep.set_defaults(func=_cmd_deep)

    # --- poll ---
    p_poll = subparsers.add_parser(
        "poll", help="Deep research status for a cache key",
    )
    _add_tenant(p_poll)
    p_poll.add_argument("cache_key", help="Key returned by the quick command")
    p_poll.set_defaults(func=_cmd_poll)

    # --- listings ---
    p_listings = subparsers.add_parser(
        "listings", help="Competitor job listings via web search",
    )
    _add_tenant(p_listings)
    _add_role_args(p_listings)
    p_listings.set_defaults(func=_cmd_listings)

    # --- stats ---
    p_stats = subparsers.add_parser(
        "stats", help="Summarize a generation call log",
    )
    p_stats.add_argument("calls_log", type=Path, help="JSON Lines file from --calls-log")
    p_stats.set_defaults(func=_cmd_stats)

    return parser


def _add_tenant(p: argparse.ArgumentParser) -> None:
    p.add_argument("--tenant", required=True, help="Tenant (organization) id")


def _add_role_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--role", required=True)
    p.add_argument("--level", required=True)
    p.add_argument("--industry", required=True)
    p.add_argument("--location", required=True)


def _add_calls_log(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--calls-log", type=Path, default=None,
        help="Append generation call records to this JSON Lines file",
    )


def _role_payload(args: argparse.Namespace) -> dict[str, Any]:
    return {
        "role": args.role,
        "level": args.level,
        "industry": args.industry,
        "location": args.location,
    }


def _service():
    from researchcache.api.facade import ResearchService

    return ResearchService.from_settings()


async def _cmd_quick(args: argparse.Namespace) -> int:
    """Run the quick phase and print the response."""
    service = _service()
    try:
        payload = _role_payload(args)
        if args.market_focus:
            payload["market_focus"] = args.market_focus
        response = await service.market_insights(args.tenant, payload)
        _print_json(response.model_dump(mode="json"))
    finally:
        _save_calls(service, args.calls_log)
        await service.close()
    return 0


async def _cmd_deep(args: argparse.Namespace) -> int:
    """Trigger deep research, keep the process alive until it ends, then poll."""
    service = _service()
    try:
        accepted = await service.trigger_deep_research(
            args.tenant, {"cache_key": args.cache_key, "subject_id": args.subject_id},
        )
        logger.info("Deep research accepted at %s", accepted.accepted_at.isoformat())
        finished = await service.drain(args.timeout)
        if not finished:
            logger.warning("Deep research still running after %ss", args.timeout)
        for failure in service.runner.failures:
            logger.error("Deep job failed [%s]: %s", failure.error_code, failure.message)
        result = await service.poll_deep_research(args.tenant, args.cache_key)
        _print_json(result.model_dump(mode="json"))
    finally:
        _save_calls(service, args.calls_log)
        await service.close()
    return 0 if result.status == "complete" else 2


async def _cmd_poll(args: argparse.Namespace) -> int:
    service = _service()
    try:
        result = await service.poll_deep_research(args.tenant, args.cache_key)
        _print_json(result.model_dump(mode="json"))
    finally:
        await service.close()
    return 0


async def _cmd_listings(args: argparse.Namespace) -> int:
    service = _service()
    try:
        response = await service.competitor_listings(args.tenant, _role_payload(args))
        _print_json(response.model_dump(mode="json"))
    finally:
        await service.close()
    return 0


async def _cmd_stats(args: argparse.Namespace) -> int:
    """Display aggregate call statistics from a call log."""
    from researchcache.tracking.call_logger import CallLogger

    path: Path = args.calls_log
    if not path.is_file():
        logger.error("File not found: %s", path)
        return 1

    stats = CallLogger.load(path).stats()
    print(f"\nGeneration calls in {path}:")
    print(f"  Calls:        {stats.total_calls}")
    print(f"  Failures:     {stats.failures}")
    print(f"  Escalations:  {stats.escalations}")
    print(f"  Coercions:    {stats.coercions}")
    print(f"  Avg latency:  {stats.avg_latency_ms:.0f}ms")
    print(f"  Tokens:       {stats.total_input_tokens} in / {stats.total_output_tokens} out")
    for task, task_stats in sorted(stats.by_task.items()):
        print(f"    {task}: {task_stats.calls} call(s), {task_stats.failures} failed")
    return 0


def _save_calls(service: Any, path: Path | None) -> None:
    if path is not None and service.call_logger.total_calls:
        service.call_logger.save(path, append=True)


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))


def _setup_logging(verbose: bool) -> None:
    """Configure logging for CLI usage."""
    from researchcache.logging.logger import setup_logging

    setup_logging(
        level="DEBUG" if verbose else "INFO",
        log_format="text",
        stream=sys.stderr,
    )
    # Quiet noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


if __name__ == "__main__":
    sys.exit(main())
