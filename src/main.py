# src/main.py — v2
"""CLI entry point: search, answer, ingest, experts, setup and purge-cache commands.

Usage:
    expertmesh search "<query>"
    expertmesh answer "<question>" [--top-k N] [--context]
    expertmesh ingest <profiles.json>
    expertmesh experts [--limit N] [--ids ID,ID]
    expertmesh setup
    expertmesh purge-cache
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from expertmesh.version import __version__

if TYPE_CHECKING:
    from expertmesh.api.facade import Services

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        return asyncio.run(_dispatch(args))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def cli() -> None:
    """Console-script wrapper."""
    sys.exit(main())


def _id_list(value: str) -> list[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="expertmesh",
        description=f"ExpertMesh v{__version__}: multi-stage expert matching",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- search ---
    p_search = subparsers.add_parser(
        "search", help="Match a natural-language request to candidates",
    )
    p_search.add_argument("query", help="Free-text request")
    p_search.add_argument(
        "--json", action="store_true", dest="as_json",
        help="Print the full response as JSON",
    )
    p_search.set_defaults(func=_cmd_search)

    # --- answer ---
    p_answer = subparsers.add_parser(
        "answer", help="Write a short answer over the best-matching profiles",
    )
    p_answer.add_argument("query", help="Free-text question")
    p_answer.add_argument(
        "--top-k", type=int, default=None, dest="top_k",
        help="Profiles to retrieve (default: ANSWER_TOP_K)",
    )
    p_answer.add_argument(
        "--context", action="store_true", dest="include_context",
        help="Also print the profile context given to the LLM",
    )
    p_answer.add_argument(
        "--json", action="store_true", dest="as_json",
        help="Print the full response as JSON",
    )
    p_answer.set_defaults(func=_cmd_answer)

    # --- ingest ---
    p_ingest = subparsers.add_parser(
        "ingest", help="Import candidate profiles from a JSON file",
    )
    p_ingest.add_argument(
        "file", type=Path, help="JSON file holding a list of profiles",
    )
    p_ingest.set_defaults(func=_cmd_ingest)

    # --- experts ---
    p_experts = subparsers.add_parser(
        "experts", help="List stored candidate profiles",
    )
    p_experts.add_argument(
        "--limit", type=int, default=50,
        help="Maximum number of profiles (default: 50)",
    )
    p_experts.add_argument(
        "--ids", type=_id_list, default=None,
        help="Comma-separated profile ids to fetch",
    )
    p_experts.set_defaults(func=_cmd_experts)

    # --- setup ---
    p_setup = subparsers.add_parser(
        "setup", help="Provision store and cache indexes",
    )
    p_setup.set_defaults(func=_cmd_setup)

    # --- purge-cache ---
    p_purge = subparsers.add_parser(
        "purge-cache", help="Delete expired result cache entries",
    )
    p_purge.set_defaults(func=_cmd_purge_cache)

    return parser


async def _dispatch(args: argparse.Namespace) -> int:
    from expertmesh.api.facade import create_services
    from expertmesh.config.settings import load_settings
    from expertmesh.logging.logger import setup_logging

    settings = load_settings()
    setup_logging(
        level="DEBUG" if args.verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=str(settings.log_file) if settings.log_file else None,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )
    # Quiet noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    services = await create_services(settings)
    try:
        return await args.func(args, services)
    finally:
        services.close()


async def _cmd_search(args: argparse.Namespace, services: Services) -> int:
    """Run one query through the pipeline."""
    from expertmesh.api.facade import search

    response = await search(args.query, services)
    if args.as_json:
        print(response.model_dump_json(indent=2))
        return 0

    origin = "cache" if response.cached else "pipeline"
    print(f"\nQuery {response.query_id} ({origin}):")
    if not response.matches:
        print("  No matches found.")
    for rank, match in enumerate(response.matches, start=1):
        c = match.candidate
        print(f"  {rank}. {c.name}, {c.title}  [{match.score:.0%}]")
        for line in match.reasoning:
            print(f"       {line}")
    tokens = services.call_logger.summary(response.query_id).total_tokens
    if tokens:
        print(f"\n  LLM tokens:   {tokens}")
    return 0


async def _cmd_answer(args: argparse.Namespace, services: Services) -> int:
    """Answer a question from the stored profiles."""
    from expertmesh.api.facade import answer

    response = await answer(
        args.query, services,
        top_k=args.top_k, include_context=args.include_context,
    )
    if args.as_json:
        print(response.model_dump_json(indent=2))
        return 0

    print(f"\n{response.answer}\n")
    print(f"Experts ({response.retrieval_method} retrieval):")
    if not response.experts:
        print("  No matches found.")
    for expert in response.experts:
        print(f"  - {expert.name}, {expert.title}  [{expert.match_score:.2f}]")
    if response.context:
        print(f"\nContext:\n{response.context}")
    return 0


async def _cmd_ingest(args: argparse.Namespace, services: Services) -> int:
    """Import profiles from a JSON list."""
    from expertmesh.api.facade import ingest_candidates

    file_path: Path = args.file
    if not file_path.exists():
        logger.error("File not found: %s", file_path)
        return 1
    profiles = json.loads(file_path.read_text(encoding="utf-8"))
    if not isinstance(profiles, list):
        logger.error("Expected a JSON list of profiles in %s", file_path)
        return 1

    report = await ingest_candidates(profiles, services)
    print(f"\nIngest complete:")
    print(f"  Inserted:     {len(report.inserted)}")
    print(f"  Skipped:      {len(report.skipped)}")
    print(f"  Invalid:      {report.errors}")
    return 0


async def _cmd_experts(args: argparse.Namespace, services: Services) -> int:
    """List stored profiles."""
    from expertmesh.api.facade import list_candidates

    candidates = await list_candidates(services, limit=args.limit, ids=args.ids)
    for c in candidates:
        renown = c.renown_level or "-"
        print(f"  {c.id}  {c.name}, {c.title}  [{renown}, matched {c.match_count}x]")
    print(f"\n{len(candidates)} profiles")
    return 0


async def _cmd_setup(args: argparse.Namespace, services: Services) -> int:
    """Provision indexes."""
    from expertmesh.api.facade import setup

    report = await setup(services)
    print(f"\nSetup complete:")
    print(f"  Store:        {report.store_backend}")
    print(f"  Cache:        {report.cache_backend}")
    print(f"  Profiles:     {report.candidate_count}")
    return 0


async def _cmd_purge_cache(args: argparse.Namespace, services: Services) -> int:
    """Delete expired result cache entries."""
    from expertmesh.api.facade import purge_cache

    removed = await purge_cache(services)
    print(f"Removed {removed} expired entries")
    return 0


if __name__ == "__main__":
    sys.exit(main())
