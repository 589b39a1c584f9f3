"""Feed-by-feed import loop."""
import logging
import time
from typing import Callable, Optional, Sequence

import requests

from processor.models import FAILED, FeedResult, ImportSummary, ItemResult
from processor.reconciler import EventReconciler
from scraper.feed_reader import FeedError, FeedReader
from settings import FeedSource

logger = logging.getLogger(__name__)


class ImportPipeline:
    """Run the reconciler over every item of every configured feed, in order."""

    def __init__(
        self,
        feeds: Sequence[FeedSource],
        feed_reader: FeedReader,
        reconciler: EventReconciler,
        item_delay: float = 0.5,
        sleep: Callable[[float], None] = time.sleep
    ):
        self.feeds = tuple(feeds)
        self.feed_reader = feed_reader
        self.reconciler = reconciler
        self.item_delay = item_delay
        self.sleep = sleep

    def run(self, feeds: Optional[Sequence[FeedSource]] = None) -> ImportSummary:
        """
        Import every feed.

        Args:
            feeds: Feeds to process (default: the configured feeds)

        Returns:
            ImportSummary with per-feed and overall counts
        """
        summary = ImportSummary()
        for source in (self.feeds if feeds is None else feeds):
            summary = summary.add(self.process_feed(source))

        logger.info(
            f"Import complete: {summary.total} items, {summary.created} created, "
            f"{summary.updated} updated, {summary.skipped} skipped, "
            f"{summary.failed} failed",
            extra={'summary': summary.as_dict()}
        )
        return summary

    def process_feed(self, source: FeedSource) -> FeedResult:
        """
        Import one feed.

        A feed that cannot be fetched yields a zero-count result with ``error``
        set; item failures are counted and never stop the feed.
        """
        logger.info(f"Fetching RSS feed: {source.name}", extra={'url': source.url})

        try:
            items = self.feed_reader.fetch_items(source)
        except (requests.RequestException, FeedError) as e:
            logger.error(f"Failed to process feed {source.name}: {e}")
            return FeedResult(source=source.source, error=str(e))

        result = FeedResult(source=source.source, total=len(items))
        for index, item in enumerate(items):
            if index:
                self.sleep(self.item_delay)

            try:
                item_result = self.reconciler.process_item(item, source)
            except Exception as e:
                logger.error(
                    f"Unexpected error processing '{item.title}': {e}",
                    extra={'error_type': type(e).__name__},
                    exc_info=True
                )
                item_result = ItemResult(FAILED, 'unexpected_error', error=str(e))

            logger.info(
                f"{item_result.status}: {item.title}",
                extra={'status': item_result.status, 'reason': item_result.reason}
            )
            result = result.record(item_result)

        logger.info(
            f"Feed results for {source.name}: {result.created} created, "
            f"{result.updated} updated, {result.skipped} skipped, "
            f"{result.failed} failed",
            extra={'feed': source.source, 'results': result.as_dict()}
        )
        return result
