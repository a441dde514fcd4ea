# ABOUTME: CLI entry point for termfeed.
# ABOUTME: Supports 'init', 'add', 'update', 'rm' and 'feeds' commands.

import argparse
import asyncio
import sys

import structlog

from termfeed.config import get_settings
from termfeed.errors import TermfeedError
from termfeed.log_config import configure_logging
from termfeed.models import BatchUpdateCancelled, UpdateProgress

log = structlog.get_logger()


def _print_progress(progress: UpdateProgress) -> None:
    print(
        f"[{progress.current_index}/{progress.total_feeds}] "
        f"Updating {progress.current_feed_title} ({progress.current_feed_url})"
    )


async def _run(command=None) -> None:
    from termfeed.db.session import close_db, init_db

    await init_db()
    try:
        if command is not None:
            await command()
    finally:
        await close_db()


def cmd_init(_args: argparse.Namespace) -> None:
    """Create the database schema."""
    asyncio.run(_run())
    print(f"Database ready at {get_settings().db_path}")


def cmd_add(args: argparse.Namespace) -> None:
    """Subscribe to a feed and store its current articles."""
    from termfeed.services.feed_service import FeedService

    async def add() -> None:
        result = await FeedService().add_feed(args.url)
        print(f"Added: {result.feed.title} (id {result.feed.id})")
        print(f"{result.articles_count} articles stored.")

    asyncio.run(_run(add))


def cmd_update(args: argparse.Namespace) -> None:
    """Update one feed, or all feeds in order."""
    from termfeed.services.feed_service import FeedService

    async def update() -> None:
        service = FeedService()
        if args.feed is not None:
            print(f"Updating feed ID: {args.feed}")
            result = await service.update_feed(args.feed)
            print(f"Feed updated successfully! {result.new_articles_count} new articles added.")
            return

        print("Updating all feeds...")
        outcome = await service.update_all_feeds(on_progress=_print_progress)
        if isinstance(outcome, BatchUpdateCancelled):
            print(
                f"\nUpdate cancelled after processing "
                f"{outcome.processed_feeds}/{outcome.total_feeds} feeds."
            )
        else:
            print("\nUpdate summary:")
            print(f"- Total feeds: {outcome.summary.total_feeds}")
            print(f"- Successful: {outcome.summary.success_count}")
            print(f"- Failed: {outcome.summary.failure_count}")

        if outcome.failed:
            print("\nFailed feeds:")
            for failure in outcome.failed:
                print(f"- Feed {failure.feed_id} ({failure.feed_url}): {failure.error}")

    asyncio.run(_run(update))


def cmd_rm(args: argparse.Namespace) -> None:
    """Unsubscribe from a feed and delete its articles."""
    from termfeed.services.feed_service import FeedService

    async def remove() -> None:
        await FeedService().remove_feed(args.feed_id)
        print(f"Removed feed {args.feed_id}")

    asyncio.run(_run(remove))


def cmd_feeds(args: argparse.Namespace) -> None:
    """List subscribed feeds with unread counts."""
    from termfeed.services.feed_service import FeedService

    async def list_feeds() -> None:
        service = FeedService()
        if args.unread:
            for feed in await service.get_unread_feeds():
                print(f"{feed.id:>4}  {feed.unread_count:>4} unread  {feed.title}  <{feed.url}>")
            return
        feeds = await service.get_feed_list()
        unread = await service.get_unread_counts()
        if not feeds:
            print("No feeds registered.")
            return
        for feed in feeds:
            print(f"{feed.id:>4}  {unread.get(feed.id, 0):>4} unread  {feed.title}  <{feed.url}>")

    asyncio.run(_run(list_feeds))


def main() -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(prog="termfeed", description="Terminal RSS/Atom feed reader")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("init", help="Create the database")

    add_parser = subparsers.add_parser("add", help="Add a feed")
    add_parser.add_argument("url")

    update_parser = subparsers.add_parser("update", help="Fetch new articles")
    update_parser.add_argument("-f", "--feed", type=int, default=None, help="Feed ID to update")

    rm_parser = subparsers.add_parser("rm", help="Remove a feed")
    rm_parser.add_argument("feed_id", type=int)

    feeds_parser = subparsers.add_parser("feeds", help="List feeds")
    feeds_parser.add_argument(
        "--unread", action="store_true", help="Only feeds with unread articles, most unread first"
    )

    args = parser.parse_args()
    configure_logging(get_settings().log_level)

    handlers = {
        "init": cmd_init,
        "add": cmd_add,
        "update": cmd_update,
        "rm": cmd_rm,
        "feeds": cmd_feeds,
    }
    handler = handlers.get(args.command)
    if handler is None:
        parser.print_help()
        sys.exit(1)

    try:
        handler(args)
    except TermfeedError as e:
        log.error("command_failed", command=args.command, error=str(e))
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
