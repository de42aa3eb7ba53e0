#!/usr/bin/env python3
"""
sanity_loader.py — CLI entry point.

Usage:
    # Named query from ./queries/posts.groq, cached in ./.sanity_loader_cache
    python sanity_loader.py posts

    # Inline query, cached under a name
    python sanity_loader.py posts --query "*[_type == 'post']"

    # Inline query, no cache
    python sanity_loader.py --query "*[_type == 'post']" --no-cache

    # Pin a cache version, write to a file
    python sanity_loader.py posts --version 3 --output posts.json

Environment (or a .env file, see --env-file):
    SANITY_PROJECT_ID   — required
    SANITY_DATASET      — required
    SANITY_API_TOKEN    — optional
    SANITY_API_VERSION  — optional (default: 2023-05-03)
    SANITY_USE_CDN      — optional (true/false)
"""

from __future__ import annotations
import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Optional

sys.path.insert(0, str(Path(__file__).parent))

from config import client_config_from_env
from errors import SanityLoaderError
from loader import create_sanity_loader


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Run a GROQ query through the cached Sanity loader.",
    )
    parser.add_argument("query_name", nargs="?", default=None,
                        help="Query name (cache key, and <queries-dir>/<name>.groq when --query is not given)")
    parser.add_argument("--query", default=None,
                        help="Inline GROQ query (overrides the .groq file)")
    parser.add_argument("--queries-dir", type=Path, default=Path("queries"),
                        help="Directory holding .groq files (default: ./queries)")
    parser.add_argument("--cache-dir", type=Path, default=None,
                        help="Cache directory (default: ./.sanity_loader_cache)")
    parser.add_argument("--no-cache", action="store_true",
                        help="Disable caching (always fetch)")
    parser.add_argument("--version", dest="expected_version", default=None,
                        help="Pin the cache entry to this version string")
    parser.add_argument("--per-call", action="store_true",
                        help="Check staleness on every loader call instead of once per process")
    parser.add_argument("--env-file", type=Path, default=None,
                        help="Path to a .env file (default: search from the current directory)")
    parser.add_argument("--output", "-o", type=Path, default=None,
                        help="Write the JSON result here instead of stdout")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Print cache/fetch progress")
    return parser


async def run(args: argparse.Namespace) -> object:
    client_config = client_config_from_env(args.env_file)
    paths = {"queries": args.queries_dir}
    if args.cache_dir is not None:
        paths["cache"] = args.cache_dir

    sanity = create_sanity_loader(
        client_config=client_config,
        paths=paths,
        invalidate_cache_per_call=args.per_call,
        verbose=args.verbose,
    )
    loader = sanity.define_loader(
        query_name=args.query_name,
        query=args.query,
        cache_enabled=not args.no_cache,
        expected_version=args.expected_version,
    )
    try:
        return await loader()
    finally:
        await sanity.client.aclose()


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.query_name and not args.query:
        parser.error("a query name or --query is required")

    try:
        result = asyncio.run(run(args))
    except SanityLoaderError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    output_text = json.dumps(result, indent=2, ensure_ascii=False)
    if args.output:
        args.output.write_text(output_text + "\n", encoding="utf-8")
        if args.verbose:
            print(f"📄 Result written to: {args.output}")
    else:
        print(output_text)
    return 0


if __name__ == "__main__":
    sys.exit(main())
