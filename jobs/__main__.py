"""Command-line entrypoint for batch jobs."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
from typing import Iterable

from api.envelope import error_payload, success_payload
from jobs.config import SOURCE_CANDIDATES, iter_candidates
from jobs.warm_cache import fetch_latest
from jobs.warm_cache import main as run_warm_cache
from pipelines.orchestrator import Diagnostics, SourceCandidate, SourcesUnavailableError


def _format_candidate(candidate: SourceCandidate) -> str:
    supplements = ",".join(s.metric for s in candidate.supplements) or "(none)"
    return (
        f"{candidate.key}: kind={candidate.series_kind} source='{candidate.source}' "
        f"url={candidate.url} supplements={supplements}"
    )


def _resolve_candidates_from_cli(keys: Iterable[str] | None) -> tuple[SourceCandidate, ...]:
    if not keys:
        return tuple()
    candidates = tuple(iter_candidates(keys))
    unknown = set(keys) - {c.key for c in candidates}
    if unknown:
        raise SystemExit(f"Unknown source keys: {', '.join(sorted(unknown))}")
    return candidates


def _print_latest(candidates: tuple[SourceCandidate, ...], debug: bool) -> int:
    diagnostics = Diagnostics()
    try:
        result = asyncio.run(fetch_latest(candidates or None, diagnostics=diagnostics))
    except SourcesUnavailableError as exc:
        logs = [*diagnostics.logs, str(exc)] if debug else None
        print(json.dumps(error_payload(logs), ensure_ascii=False, indent=2))
        return 1
    payload = success_payload(result, diagnostics.logs if debug else None)
    print(json.dumps(payload, ensure_ascii=False, indent=2))
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="TÜFE latest job runner")
    subparsers = parser.add_subparsers(dest="command", required=True)

    source_help = "Comma-separated list of source keys to try, in order (defaults to all configured)"

    warm_parser = subparsers.add_parser(
        "warm-cache", help="Resolve the latest CPI figures and store them in the response cache"
    )
    warm_parser.add_argument("--sources", help=source_help)
    warm_parser.add_argument(
        "--log-level",
        help="Override LOG_LEVEL for this invocation (e.g. DEBUG, INFO)",
    )

    latest_parser = subparsers.add_parser("latest", help="Print the latest CPI figures as JSON")
    latest_parser.add_argument("--sources", help=source_help)
    latest_parser.add_argument(
        "--debug", action="store_true", help="Include per-source diagnostic logs"
    )

    subparsers.add_parser("list-sources", help="Show configured source candidates")

    args = parser.parse_args(argv)

    if args.command == "list-sources":
        for candidate in SOURCE_CANDIDATES:
            print(_format_candidate(candidate))
        return 0

    sources_arg = args.sources.split(",") if args.sources else None
    sources_arg = [item.strip() for item in sources_arg or [] if item.strip()]
    candidates = _resolve_candidates_from_cli(sources_arg)

    if args.command == "latest":
        logging.basicConfig(level=os.getenv("LOG_LEVEL", "WARNING"))
        return _print_latest(candidates, args.debug)

    if args.command == "warm-cache":
        if args.log_level:
            os.environ["LOG_LEVEL"] = args.log_level
        if candidates:
            return run_warm_cache(candidates)
        return run_warm_cache(None)

    parser.error("Unknown command")
    return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
