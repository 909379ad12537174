"""Batch entry point: run the aggregation pipeline once and write the news document."""
import argparse
import logging
import sys
from typing import List, Optional

import config
from ai_processor import create_summarizer
from config import ConfigurationError, load_settings
from feed_store import FeedStoreError
from pipeline import AggregationPipeline

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Fetch RSS feeds, summarize new articles and update the news document.")
    parser.add_argument("--feeds", default=config.FEEDS_PATH, help="Path to the feeds JSON file.")
    parser.add_argument("--provider", choices=config.PROVIDERS, help="Summarizer provider to use.")
    parser.add_argument("--items-per-feed", type=int, help="Number of items read from each feed.")
    parser.add_argument("--delay", type=float, help="Seconds to wait between summarizer calls.")
    parser.add_argument("--dry-run", action="store_true", help="Run the pipeline without writing the document.")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s - %(levelname)s - %(module)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    try:
        settings = load_settings(
            feeds_path=args.feeds,
            provider=args.provider,
            items_per_feed=args.items_per_feed,
            request_delay=args.delay,
        )
        settings.validate_for_run()
        summarizer = create_summarizer(settings)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 1

    try:
        _, stats = AggregationPipeline(settings, summarizer).run(save=not args.dry_run)
    except FeedStoreError as e:
        logger.error(f"Could not write news document: {e}", exc_info=True)
        return 1

    if args.dry_run:
        logger.info(f"Dry run: {stats.after_trim} items not written")
    return 0


if __name__ == "__main__":
    sys.exit(main())
