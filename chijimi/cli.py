"""
CLI interface for chijimi.

Usage:
    chijimi optimize --snapshot synonym-dict.json "コンピュータとアルゴリズムを活用した"
    chijimi build --strict -o static/synonym-dict.json
    chijimi publish --db chijimi.db --force
    chijimi refresh --db chijimi.db
    chijimi stats --db chijimi.db
    chijimi clear --db chijimi.db --force
    chijimi serve --db chijimi.db --port 8000
"""

import argparse
import json
import logging
import sys
from typing import Optional

from chijimi import __version__
from chijimi.config import STRICT_MIN_REDUCTION, Settings
from chijimi.dictionary import BUILD_SOURCE_PREBUILT, BUILD_SOURCE_SUDACHI, save_snapshot
from chijimi.service import DictionaryService, refresh_dictionary
from chijimi.store import SqliteStore, clear_store, get_stats, publish

logger = logging.getLogger(__name__)


# ============================================================================
# Helpers
# ============================================================================

def _settings(args) -> Settings:
    min_reduction = STRICT_MIN_REDUCTION if getattr(args, "strict", False) else None
    return Settings.from_env().with_overrides(
        source_url=getattr(args, "url", None),
        min_reduction=min_reduction,
        batch_size=getattr(args, "batch_size", None),
    )


def _load_service(args, settings: Settings) -> DictionaryService:
    """Create a service and publish a dictionary from whatever source was given."""
    service = DictionaryService(settings=settings)
    if getattr(args, "snapshot", None):
        service.load_snapshot(args.snapshot)
    elif getattr(args, "db", None):
        with SqliteStore(args.db) as store:
            service.load_store(store)
    elif getattr(args, "source", None):
        service.load_file(args.source)
    else:
        service.load_url()
    return service


def _add_source_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--source", help="Local synonyms.txt instead of downloading")
    parser.add_argument("--url", help="Download synonyms.txt from this URL")
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Only substitute when tokens drop by at least 20%%",
    )


def _add_dictionary_args(parser: argparse.ArgumentParser) -> None:
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--snapshot", help="Load a compiled JSON snapshot")
    group.add_argument("--db", help="Load the dictionary published to this SQLite store")
    _add_source_args(parser)


# ============================================================================
# Commands
# ============================================================================

def cmd_optimize(args) -> int:
    text = args.text if args.text is not None else sys.stdin.read()
    if not text.strip():
        print("Error: text is required", file=sys.stderr)
        return 1

    service = _load_service(args, _settings(args))
    result = service.optimize(text)

    if args.json:
        print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
    else:
        print(result.optimized)
        print(
            f"tokens: {result.original_tokens} -> {result.optimized_tokens} "
            f"({result.reduction_rate:.1%} saved)",
            file=sys.stderr,
        )
    return 0


def cmd_build(args) -> int:
    settings = _settings(args)
    service = DictionaryService(settings=settings)
    compiled = service.load_file(args.source) if args.source else service.load_url()
    save_snapshot(compiled, args.output)
    return 0


def cmd_publish(args) -> int:
    settings = _settings(args)
    service = _load_service(argparse.Namespace(source=args.source, snapshot=args.snapshot), settings)
    build_source = BUILD_SOURCE_PREBUILT if args.snapshot else BUILD_SOURCE_SUDACHI
    with SqliteStore(args.db) as store:
        metadata = publish(
            store,
            service.current_snapshot(),
            build_source=build_source,
            batch_size=settings.batch_size,
            retry_policy=service.retry_policy(),
            force=args.force,
        )
    print(f"Published {metadata.synonym_count} synonyms, {metadata.dictionary_word_count} dictionary words")
    return 0


def cmd_refresh(args) -> int:
    settings = _settings(args)
    service = DictionaryService(settings=settings)
    with SqliteStore(args.db) as store:
        metadata = refresh_dictionary(service, store, force=args.force)
    if metadata is None:
        print("Dictionary is up to date")
    return 0


def cmd_stats(args) -> int:
    with SqliteStore(args.db) as store:
        stats = get_stats(store)
    print(json.dumps(stats, ensure_ascii=False, indent=2))
    return 0


def cmd_clear(args) -> int:
    if not args.force:
        print("Error: refusing to clear without --force", file=sys.stderr)
        return 1
    with SqliteStore(args.db) as store:
        deleted = clear_store(store)
    print(f"Deleted {deleted} entries")
    return 0


def cmd_serve(args) -> int:
    from chijimi.api import create_app

    service = _load_service(args, _settings(args))
    app = create_app(service)
    app.run(host=args.host, port=args.port)
    return 0


# ============================================================================
# Main
# ============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chijimi",
        description="Rewrite Japanese text with token-saving synonyms",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Debug logging",
    )
    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"chijimi {__version__}",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("optimize", help="Optimize text (stdin if TEXT is omitted)")
    p.add_argument("text", nargs="?", help="Japanese text to optimize")
    p.add_argument("--json", "-j", action="store_true", help="Output as JSON")
    _add_dictionary_args(p)
    p.set_defaults(func=cmd_optimize)

    p = sub.add_parser("build", help="Compile synonyms.txt into a JSON snapshot")
    p.add_argument("--output", "-o", required=True, help="Snapshot path")
    _add_source_args(p)
    p.set_defaults(func=cmd_build)

    p = sub.add_parser("publish", help="Compile and write the dictionary to a store")
    p.add_argument("--db", required=True, help="SQLite store path")
    p.add_argument("--snapshot", help="Publish a snapshot instead of building")
    p.add_argument("--force", action="store_true", help="Replace an initialized store")
    p.add_argument("--batch-size", type=int, help="Entries per batch")
    _add_source_args(p)
    p.set_defaults(func=cmd_publish)

    p = sub.add_parser("refresh", help="Rebuild the stored dictionary if it is stale")
    p.add_argument("--db", required=True, help="SQLite store path")
    p.add_argument("--url", help="Download synonyms.txt from this URL")
    p.add_argument("--force", action="store_true", help="Rebuild even if fresh")
    p.set_defaults(func=cmd_refresh)

    p = sub.add_parser("stats", help="Show stored dictionary statistics")
    p.add_argument("--db", required=True, help="SQLite store path")
    p.set_defaults(func=cmd_stats)

    p = sub.add_parser("clear", help="Delete the stored dictionary")
    p.add_argument("--db", required=True, help="SQLite store path")
    p.add_argument("--force", action="store_true", help="Required to actually delete")
    p.set_defaults(func=cmd_clear)

    p = sub.add_parser("serve", help="Serve the optimization API")
    p.add_argument("--host", default="127.0.0.1")
    p.add_argument("--port", type=int, default=8000)
    _add_dictionary_args(p)
    p.set_defaults(func=cmd_serve)

    return parser


def main(argv: Optional[list] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        stream=sys.stderr,
    )

    try:
        return args.func(args)
    except Exception as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
