"""
Command line entry point.

    feedsync import <feed.xml|https://...> [--dry] [--verbose]
        [--group=auto|item_group_id|mpn|parent|titlebrand|idprefix|regex]
        [--idsep=- --idparts=2]        # group=idprefix
        [--idregex="^(.+?)-[A-Z]+$"]   # group=regex, first capture group = parent
        [--map=map.json]               # custom field mapping
    feedsync stock [--since=MINUTES | --full] [--dry] [--verbose]
"""

import argparse
import asyncio
import logging
import sys

from feedsync.config import get_settings
from feedsync.exceptions import ConfigurationError, EmptyFeedError, FeedFormatError
from feedsync.feed.fetch_feed import load_field_map
from feedsync.normalizer.grouping import GroupStrategy
from feedsync.services.shopify_sync import ImportOptions
from feedsync.services.sync_manager import run_import, run_stock_sync

logger = logging.getLogger("feedsync")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="feedsync", description="Google Merchant feed → Shopify sync")
    sub = parser.add_subparsers(dest="command", required=True)

    imp = sub.add_parser("import", help="import a merchant feed into Shopify")
    imp.add_argument("feed", help="feed file path or http(s) URL")
    imp.add_argument("--group", default=GroupStrategy.AUTO.value, choices=[s.value for s in GroupStrategy])
    imp.add_argument("--idsep", default="-")
    imp.add_argument("--idparts", type=int, default=2)
    imp.add_argument("--idregex", default=None)
    imp.add_argument("--map", dest="map_file", default=None)
    imp.add_argument("--dry", action="store_true", help="no writes, lookups stay live")
    imp.add_argument("--verbose", action="store_true")

    stock = sub.add_parser("stock", help="push StoreGest quantities to Shopify")
    window = stock.add_mutually_exclusive_group()
    window.add_argument("--since", type=int, default=None, help="look-back window in minutes")
    window.add_argument("--full", action="store_true", help="every SKU")
    stock.add_argument("--dry", action="store_true")
    stock.add_argument("--verbose", action="store_true")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    if args.verbose:
        logger.setLevel(logging.DEBUG)

    try:
        if args.command == "import":
            options = ImportOptions(
                group=args.group,
                id_separator=args.idsep,
                id_parts=args.idparts,
                id_regex=args.idregex,
                field_map=load_field_map(args.map_file),
                dry_run=args.dry,
            )
            asyncio.run(run_import(args.feed, settings, options))
        else:
            asyncio.run(run_stock_sync(settings, since_minutes=args.since, full=args.full, dry_run=args.dry))
    except (ConfigurationError, EmptyFeedError, FeedFormatError) as e:
        logger.error(f"❌ {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
