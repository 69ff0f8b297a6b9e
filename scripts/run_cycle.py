#!/usr/bin/env python3
"""Run ingestion tasks from the command line."""

import argparse
import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from feed_digest.config.feeds import get_feeds
from feed_digest.config.settings import settings
from feed_digest.errors import FeedDigestError
from feed_digest.ingestion.fetcher import FeedFetcher
from feed_digest.logging_config import configure_logging
from feed_digest.notifications.discord import DiscordNotifier
from feed_digest.pipeline.cycle import IngestionPipeline
from feed_digest.storage.factory import get_article_storage
from feed_digest.summarization.summarizer import Summarizer


def print_header(title: str):
    print("\n" + "=" * 50)
    print(title)
    print("=" * 50 + "\n")


def cmd_run(args):
    print_header("FEED DIGEST - INGESTION CYCLE")
    pipeline = IngestionPipeline(storage=get_article_storage())
    report = asyncio.run(pipeline.run())

    print("RESULTS:")
    print(f"  Processed: {report.processed_count}")
    print(f"  New articles: {report.new_articles_count}")
    print(f"  Errors: {report.error_count}")
    print(f"  Notifications sent: {report.notified}")
    for source_id, stats in report.sources.items():
        print(f"    {source_id}: {stats.fetched} fetched, {stats.new} new, {stats.errors} errors")
    print(f"TIME: {report.elapsed_seconds:.1f}s\n")


def cmd_backfill(args):
    print_header("FEED DIGEST - SUMMARY BACKFILL")
    pipeline = IngestionPipeline(storage=get_article_storage())
    updated = asyncio.run(pipeline.backfill_summaries(limit=args.limit))
    print(f"  Summaries added: {updated}\n")


def cmd_prune(args):
    print_header("FEED DIGEST - PRUNE")
    pipeline = IngestionPipeline(storage=get_article_storage())
    deleted = pipeline.prune(days_to_keep=args.days)
    print(f"  Articles deleted: {deleted}\n")


async def _debug_summary(feed_ids, per_feed: int):
    summarizer = Summarizer()
    feeds = [f for f in get_feeds() if not feed_ids or f.id in feed_ids]

    async with FeedFetcher() as fetcher:
        for feed in feeds:
            print(f"\n--- {feed.display_name} ({feed.id}) ---")
            try:
                items = await fetcher.fetch_feed(feed)
            except FeedDigestError as e:
                print(f"  fetch failed: {e}")
                continue

            for item in items[:per_feed]:
                print(f"\n  {item.title}")
                print(f"  {item.url}")
                print(f"  published: {item.published_date}{' (fallback)' if item.date_was_fallback else ''}")
                try:
                    response = await summarizer.summarize(item.title, item.content)
                    print(f"  summary ({len(response.summary)} chars): {response.summary}")
                except FeedDigestError as e:
                    print(f"  summary failed: {e}")


def cmd_debug_summary(args):
    print_header("FEED DIGEST - SUMMARY DEBUG")
    print(f"  Provider: {settings.llm_provider} / {settings.llm_model}")
    print(f"  Max length: {settings.summary_max_length}")
    asyncio.run(_debug_summary(args.feed, args.count))
    print()


def cmd_test_notify(args):
    print_header("FEED DIGEST - DISCORD TEST")
    ok = asyncio.run(DiscordNotifier().test_notification())
    print("  Sent successfully\n" if ok else "  Failed (see log)\n")
    if not ok:
        sys.exit(1)


def main():
    parser = argparse.ArgumentParser(description="Feed digest ingestion tasks")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    subparsers.add_parser("run", help="Run one ingestion cycle")

    p = subparsers.add_parser("backfill", help="Summarize stored articles missing a summary")
    p.add_argument("--limit", type=int, default=50, help="Max articles")

    p = subparsers.add_parser("prune", help="Delete old articles")
    p.add_argument("--days", type=int, default=None, help="Days to keep")

    p = subparsers.add_parser("debug-summary", help="Fetch feeds and print summaries without saving")
    p.add_argument("--feed", action="append", help="Feed id (repeatable)")
    p.add_argument("--count", type=int, default=1, help="Items per feed")

    subparsers.add_parser("test-notify", help="Send a Discord test notification")

    args = parser.parse_args()

    configure_logging(storage=get_article_storage() if args.command in ("run", "backfill", "prune") else None)

    if args.command == "run":
        cmd_run(args)
    elif args.command == "backfill":
        cmd_backfill(args)
    elif args.command == "prune":
        cmd_prune(args)
    elif args.command == "debug-summary":
        cmd_debug_summary(args)
    elif args.command == "test-notify":
        cmd_test_notify(args)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
