#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
import logging
import signal
import sys
from pathlib import Path
from typing import Any

import requests

from smartlists_backend.ingestion.external_lists import ExternalListAggregator, collect_external_list_urls
from smartlists_backend.integrations.external_list import CancellationToken, FetchCancelledError
from smartlists_backend.models.external_lists import FetchCache
from smartlists_backend.utils.env import ExternalListSettings


def _parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="prefetch_external_lists.py",
        description="Fetch external lists (MDBList, IMDb, TMDb, Trakt) into one batch cache and print a summary.",
    )
    parser.add_argument("urls", nargs="*", help="External list URL(s).")
    parser.add_argument(
        "--rules-json",
        type=str,
        default=None,
        help="JSON file holding a list of rule sets; ExternalList rule targets are added to the URLs.",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging.")
    return parser.parse_args(argv)


def _load_rule_sets(path: str) -> list[Any]:
    loaded = json.loads(Path(path).read_text(encoding="utf-8"))
    if isinstance(loaded, dict):
        loaded = loaded.get("ExpressionSets") or loaded.get("expression_sets") or []
    if not isinstance(loaded, list):
        raise ValueError("Rules file must hold a list of rule sets.")
    return loaded


def format_summary(urls: list[str], cache: FetchCache) -> list[str]:
    lines: list[str] = []
    for url in urls:
        result = cache.get(url)
        if result is None:
            lines.append(f"{url}: not fetched")
            continue
        counts = result.family_counts()
        lines.append(
            f"{url}: items={result.total_items} imdb={counts['imdb']} tmdb={counts['tmdb']} tvdb={counts['tvdb']}"
        )
    for warning in cache.warnings:
        lines.append(f"WARNING: {warning}")
    return lines


def run_from_cli(args: argparse.Namespace) -> int:
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    urls: list[str] = [u for u in (args.urls or []) if str(u).strip()]
    if args.rules_json:
        urls.extend(collect_external_list_urls(_load_rule_sets(args.rules_json)))
    if not urls:
        raise SystemExit("No external list URLs provided. Pass URLs and/or --rules-json.")

    settings = ExternalListSettings.from_env()
    cache = FetchCache()
    cancel_token = CancellationToken()

    def _on_sigint(signum: int, frame: Any) -> None:  # noqa: ARG001
        print("Cancelling after the current request...", file=sys.stderr)
        cancel_token.cancel()

    # One pooled session for every adapter, closed when the batch ends.
    with requests.Session() as session:
        aggregator = ExternalListAggregator.from_settings(settings, session=session)
        previous = signal.signal(signal.SIGINT, _on_sigint)
        try:
            aggregator.pre_fetch(urls, cache, cancel_token)
        except FetchCancelledError:
            print("Cancelled.", file=sys.stderr)
            for line in format_summary(urls, cache):
                print(line)
            return 130
        finally:
            signal.signal(signal.SIGINT, previous)

    for line in format_summary(urls, cache):
        print(line)
    return 0


def main(argv: list[str]) -> int:
    args = _parse_args(argv)
    return run_from_cli(args)


if __name__ == "__main__":
    raise SystemExit(main(list(sys.argv[1:])))
