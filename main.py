#!/usr/bin/env python3
"""Main entry point for the Peoples Thread ingestion pipeline.

Usage:
    python main.py              # Run one commit ingestion (same as "commit")
    python main.py preview      # Fetch and classify without saving
    python main.py schedule     # Run commit ingestion on the configured interval
    python main.py serve        # Start the trigger API
    python main.py stats        # Show store statistics
    python main.py --help       # Show help
"""

import argparse
import asyncio
import logging
import sys

from dotenv import load_dotenv

# Load environment variables before importing config
load_dotenv()

from peoples_thread.config import settings
from peoples_thread.models import IngestionResult
from peoples_thread.pipeline import IngestionPipeline
from peoples_thread.scheduler import get_scheduler
from peoples_thread.storage import ArticleDatabase

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[
        logging.StreamHandler(sys.stdout),
    ],
)
logger = logging.getLogger(__name__)


def print_result(result: IngestionResult) -> None:
    """Print a run summary."""
    print(f"\n{result.message}")
    if result.dry_run:
        for item in result.items:
            print(f"  - {item.title}")
            print(f"    {item.url} ({item.content_length} chars)")
    elif result.duplicates_skipped:
        print(f"  Duplicates skipped: {result.duplicates_skipped}")
    for error in result.errors:
        print(f"  ! {error}")


async def run_schedule() -> None:
    """Run the scheduler until interrupted."""
    scheduler = get_scheduler()
    scheduler.initialize()
    try:
        # Run once immediately, then on every interval
        await scheduler.tick()
        await asyncio.Event().wait()
    finally:
        scheduler.stop()


def build_parser() -> argparse.ArgumentParser:
    """Command-line parser for the entry point."""
    parser = argparse.ArgumentParser(
        description="Peoples Thread - Feed ingestion for working-class news"
    )
    parser.add_argument(
        "command",
        nargs="?",
        default="commit",
        choices=["commit", "preview", "schedule", "serve", "stats"],
        help="Command to run (default: one commit ingestion)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging",
    )
    return parser


async def main() -> int:
    """Main entry point."""
    args = build_parser().parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    if args.command == "commit":
        result = await IngestionPipeline.from_settings(settings).commit()
        print_result(result)
        return 0 if result.success else 1

    elif args.command == "preview":
        result = await IngestionPipeline.from_settings(settings).preview()
        print_result(result)
        return 0 if result.success else 1

    elif args.command == "schedule":
        await run_schedule()

    elif args.command == "serve":
        import uvicorn

        config = uvicorn.Config(
            "peoples_thread.api:create_app",
            factory=True,
            host=settings.api_host,
            port=settings.api_port,
        )
        await uvicorn.Server(config).serve()

    elif args.command == "stats":
        stats = ArticleDatabase().get_stats()
        print("\nStore Statistics (last 30 days):")
        print(f"  Total articles: {stats['total_articles']:,}")
        print(f"  Ingestion runs: {stats['ingestion_runs']} ({stats['failed_runs']} failed)")
        print("\nArticles by category:")
        for category, count in stats["articles_by_category"].items():
            print(f"  {category}: {count}")

    return 0


if __name__ == "__main__":
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        logger.info("Interrupted")
