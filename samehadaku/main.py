"""
Command-line entry point for the Samehadaku scraper.
"""

import argparse
import asyncio
import json
import logging
import os
import sys
from dataclasses import asdict, is_dataclass
from pathlib import Path

# Load environment variables from .env file
from dotenv import load_dotenv

from samehadaku.config import BrowserConfig, ScraperConfig, BASE_URL
from samehadaku.document_source import SeleniumDocumentSource
from samehadaku.models import CollectionKind, CollectionQuery
from samehadaku.orchestrator import ScrapeOrchestrator
from samehadaku.resilience import TTLCache


def _load_env():
    env_path = Path.cwd() / '.env'
    if env_path.exists():
        load_dotenv(env_path)


def build_orchestrator(args) -> ScrapeOrchestrator:
    """Create an orchestrator with a Selenium source from CLI arguments."""
    config = ScraperConfig(
        base_url=args.base_url or os.getenv('BASE_URL', BASE_URL),
        browser=BrowserConfig(headless=not args.headed),
    )
    cache = TTLCache(name="cli", default_ttl=config.cache.default_ttl)
    return ScrapeOrchestrator(SeleniumDocumentSource(config.browser), cache, config=config)


def _dump(value) -> str:
    if is_dataclass(value) and not isinstance(value, type):
        value = asdict(value)
    elif isinstance(value, list):
        value = [asdict(v) if is_dataclass(v) else v for v in value]
    return json.dumps(value, indent=2, ensure_ascii=False)


async def run_total_pages(args) -> int:
    orchestrator = build_orchestrator(args)
    kind = CollectionKind(args.kind)
    total = await orchestrator.get_total_pages(kind, args.filter)

    print("\n" + "=" * 60)
    print("TOTAL PAGES")
    print("=" * 60)
    print(f"Collection:  {CollectionQuery(kind, 1, args.filter).collection_key}")
    print(f"Total pages: {total}")
    return 0 if total > 0 else 1


async def run_fetch(args) -> int:
    orchestrator = build_orchestrator(args)
    kind = CollectionKind(args.kind)
    result = await orchestrator.get_collection(CollectionQuery(kind, args.page, args.filter))
    if args.resolve:
        await orchestrator.drain()

    print(_dump(result.records))
    print("\n" + "=" * 60)
    print("FETCH COMPLETE")
    print("=" * 60)
    print(f"Success:     {result.ok}")
    print(f"Records:     {len(result.records)}")
    if result.pagination:
        p = result.pagination
        print(f"Page:        {p.current_page} / {p.total_pages}")
        print(f"Next page:   {p.next_page}")
    if args.resolve:
        key = CollectionQuery(kind, args.page, args.filter).collection_key
        print(f"Resolved:    {orchestrator.cached_total_pages(key)}")
    return 0 if result.ok else 1


async def run_home(args) -> int:
    orchestrator = build_orchestrator(args)
    result = await orchestrator.get_home()
    print(_dump(result.records))
    return 0 if result.ok else 1


async def run_detail(args) -> int:
    orchestrator = build_orchestrator(args)
    if args.command == 'episode':
        record = await orchestrator.get_episode(args.id)
    else:
        record = await orchestrator.get_detail(args.id)
    if record is None:
        print(f"✗ Not found: {args.id}")
        return 1
    print(_dump(record))
    return 0


def run_serve(args) -> int:
    from backend.run import serve
    serve(host=args.host, port=args.port, reload=args.reload)
    return 0


def main(argv=None):
    _load_env()
    kinds = [k.value for k in CollectionKind]

    parser = argparse.ArgumentParser(
        description='Samehadaku scraper',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Resolve the last page of the ongoing listing
  samehadaku total-pages ongoing

  # Fetch page 3 of a genre listing and wait for its total pages
  samehadaku fetch genre --filter action --page 3 --resolve

  # Anime detail / episode links
  samehadaku detail one-piece
  samehadaku episode one-piece-episode-1100

  # Run the API server
  samehadaku serve --port 8000
"""
    )
    parser.add_argument('--base-url', type=str, default=None, help='Site base URL (default: BASE_URL env)')
    parser.add_argument('--headed', action='store_true', help='Show the browser window')
    parser.add_argument('--log-level', type=str, default=os.getenv('LOG_LEVEL', 'INFO'), help='Logging level')

    subparsers = parser.add_subparsers(dest='command', required=True)

    p = subparsers.add_parser('total-pages', help='Resolve the last page of a collection')
    p.add_argument('kind', choices=kinds)
    p.add_argument('--filter', type=str, default=None, help='Genre id or search term')

    p = subparsers.add_parser('fetch', help='Fetch one collection page as JSON')
    p.add_argument('kind', choices=kinds)
    p.add_argument('--page', type=int, default=1)
    p.add_argument('--filter', type=str, default=None, help='Genre id or search term')
    p.add_argument('--resolve', action='store_true', help='Wait for background total-page resolution')

    subparsers.add_parser('home', help='Fetch the home page sections as JSON')

    p = subparsers.add_parser('detail', help='Fetch an anime detail page')
    p.add_argument('id')

    p = subparsers.add_parser('episode', help='Fetch an episode page')
    p.add_argument('id')

    p = subparsers.add_parser('serve', help='Run the HTTP API')
    p.add_argument('--host', type=str, default=None)
    p.add_argument('--port', type=int, default=None)
    p.add_argument('--reload', action='store_true')

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == 'serve':
        return run_serve(args)
    if getattr(args, 'page', 1) < 1:
        parser.error('--page must be >= 1')
    if args.command in ('total-pages', 'fetch') and CollectionKind(args.kind).is_filtered and not args.filter:
        parser.error(f'{args.kind} requires --filter')

    handlers = {
        'total-pages': run_total_pages,
        'fetch': run_fetch,
        'home': run_home,
        'detail': run_detail,
        'episode': run_detail,
    }
    return asyncio.run(handlers[args.command](args))


if __name__ == '__main__':
    sys.exit(main())
