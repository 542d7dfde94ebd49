"""Manual feed runner for checking the normalized deal feed.

Runs one fetch cycle against the configured content source and prints
what a feed screen would show for each visible post.

Usage:
    python scripts/run_feed.py
    python scripts/run_feed.py --query shoe --store Nike
    python scripts/run_feed.py --search "air fryer" --limit 5 --resolve-images
    python scripts/run_feed.py --list-stores
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

import httpx
import structlog

from dealfeed.config import settings
from dealfeed.models.post import Post
from dealfeed.scrapers.feed_client import get_feed_client
from dealfeed.scrapers.image_resolver import get_image_resolver, resolve_post_image
from dealfeed.services.cache_service import get_image_cache_service
from dealfeed.services.feed_service import get_feed_aggregator


def configure_logging(level_name: str) -> None:
    """Console logging for interactive runs."""
    level = logging.getLevelName(level_name.upper())
    if not isinstance(level, int):
        level = logging.INFO
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="%H:%M:%S"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


async def run_feed(
    search: Optional[str] = None,
    query: str = "",
    store: Optional[str] = None,
    limit: int = 20,
    resolve_images: bool = False,
    list_stores: bool = False,
) -> int:
    """Run one fetch cycle and display the results.

    Args:
        search: Optional server-side search term
        query: Client-side title filter
        store: Client-side store filter
        limit: Maximum number of posts to display
        resolve_images: Look up images for posts without one
        list_stores: Print the store facet instead of posts

    Returns:
        Process exit code
    """
    print(f"\n{'='*70}")
    print(f"  Deal feed: {settings.FEED_BASE_URL}")
    print(f"{'='*70}")
    if search:
        print(f"  🔍 Search: {search}")
    if query:
        print(f"  🏷️  Query: {query}")
    if store:
        print(f"  🏬 Store: {store}")
    print(f"  📊 Display Limit: {limit}")
    print(f"{'='*70}\n")

    async with httpx.AsyncClient() as http_client:
        aggregator = get_feed_aggregator(get_feed_client(http_client))
        await aggregator.refresh(search=search)

        if not aggregator.state.is_loaded:
            print("❌ Couldn't load deals:")
            print(f"   {aggregator.state.message}\n")
            return 1

        if list_stores:
            stores = aggregator.stores_last_week
            print(f"✅ {len(stores)} stores in {len(aggregator.posts)} posts\n")
            for name in stores:
                print(f"   - {name}")
            print()
            return 0

        aggregator.set_query(query)
        aggregator.select_store(store)
        visible = aggregator.visible_posts
        print(f"✅ Loaded {len(aggregator.posts)} posts, {len(visible)} visible\n")

        if not visible:
            if aggregator.criteria.is_active:
                print("⚠️  No results. Change filters or try a different keyword.\n")
            else:
                print("⚠️  The feed returned no posts.\n")
            return 0

        shown = visible[:limit]
        images: List[Optional[str]] = [post.primary_image_url for post in shown]
        if resolve_images:
            resolver = get_image_resolver(get_image_cache_service(), http_client)
            images = list(
                await asyncio.gather(*(resolve_post_image(post, resolver) for post in shown))
            )

        for i, (post, image_url) in enumerate(zip(shown, images), 1):
            _print_post(i, post, image_url)

    return 0


def _print_post(index: int, post: Post, image_url: Optional[str]) -> None:
    print(f"[{index}] {post.clean_title}")
    if post.store_name:
        print(f"    🏬 Store: {post.store_name}")
    if post.price:
        print(f"    💰 Price: {post.price}")
    print(f"    🕒 {post.display_timestamp(settings.DISPLAY_TIMEZONE)}")
    print(f"    🖼️  Image: {image_url or '(placeholder)'}")
    print(f"    🔗 URL: {post.permalink}")
    print()


def main():
    """Parse arguments and run the feed."""
    parser = argparse.ArgumentParser(
        description="Fetch the deal feed and print the normalized posts",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/run_feed.py
  python scripts/run_feed.py --query shoe --store Nike
  python scripts/run_feed.py --search "air fryer" --limit 5 --resolve-images
  python scripts/run_feed.py --list-stores
        """,
    )

    parser.add_argument(
        "--search",
        help="Server-side search term sent to the content API",
    )

    parser.add_argument(
        "--query",
        default="",
        help="Client-side filter on the raw title (case-insensitive)",
    )

    parser.add_argument(
        "--store",
        help="Client-side store filter (e.g., 'Amazon')",
    )

    parser.add_argument(
        "--limit",
        type=int,
        default=20,
        help="Maximum number of posts to display (default: 20)",
    )

    parser.add_argument(
        "--resolve-images",
        action="store_true",
        help="Scrape post pages for an image when the post has none",
    )

    parser.add_argument(
        "--list-stores",
        action="store_true",
        help="Print the store names found in the feed and exit",
    )

    args = parser.parse_args()
    configure_logging(settings.LOG_LEVEL)

    try:
        exit_code = asyncio.run(
            run_feed(
                search=args.search,
                query=args.query,
                store=args.store,
                limit=args.limit,
                resolve_images=args.resolve_images,
                list_stores=args.list_stores,
            )
        )
    except KeyboardInterrupt:
        print("\n\nInterrupted.")
        exit_code = 130
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
