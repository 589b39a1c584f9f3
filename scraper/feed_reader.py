"""RSS feed reader for event sources."""
import logging
import time
from typing import Callable, List, Optional

import feedparser
import requests
from bs4 import BeautifulSoup

from processor.models import FeedItem
from settings import FeedSource

logger = logging.getLogger(__name__)


class FeedError(Exception):
    """Raised when a feed body cannot be parsed."""


class FeedReader:
    """Reader for the event RSS feeds."""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: float = 15,
        max_retries: int = 3,
        base_delay: float = 1,
        sleep: Callable[[float], None] = time.sleep
    ):
        """
        Initialize the feed reader.

        Args:
            session: HTTP session to use (default: new session)
            timeout: HTTP request timeout in seconds
            max_retries: Attempts per feed before giving up
            base_delay: First retry delay in seconds, doubled on each retry
            sleep: Function used to wait between retries
        """
        self.session = session or requests.Session()
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.base_delay = base_delay
        self.sleep = sleep

    def fetch_items(self, source: FeedSource) -> List[FeedItem]:
        """
        Fetch and parse one feed.

        Args:
            source: Feed to read

        Returns:
            List of FeedItem objects in feed order

        Raises:
            requests.RequestException: If all retry attempts fail
            FeedError: If the response is not a readable feed
        """
        body = self._fetch_feed(source.url)
        feed = feedparser.parse(body)

        if feed.bozo and not feed.entries:
            raise FeedError(f"Malformed feed at {source.url}: {feed.get('bozo_exception')}")

        items = [self._entry_to_item(entry) for entry in feed.entries]
        logger.info(f"Found {len(items)} items in feed {source.name}")
        return items

    def _fetch_feed(self, url: str) -> bytes:
        for attempt in range(self.max_retries):
            try:
                logger.info(f"Fetching feed {url} (attempt {attempt + 1}/{self.max_retries})")
                response = self.session.get(url, timeout=self.timeout)
                response.raise_for_status()
                return response.content

            except requests.RequestException as e:
                if attempt < self.max_retries - 1:
                    delay = self.base_delay * (2 ** attempt)
                    logger.warning(
                        f"Request failed (attempt {attempt + 1}/{self.max_retries}): {e}. "
                        f"Retrying in {delay} seconds..."
                    )
                    self.sleep(delay)
                else:
                    logger.error(
                        f"All {self.max_retries} retry attempts failed. Last error: {e}"
                    )
                    raise

    def _entry_to_item(self, entry) -> FeedItem:
        summary_html = entry.get('summary', '') or ''
        content = summary_html
        if entry.get('content'):
            content = entry.content[0].get('value', '') or summary_html
        summary = BeautifulSoup(summary_html, 'html.parser').get_text(' ', strip=True)

        link = (entry.get('link') or '').strip()
        return FeedItem(
            title=(entry.get('title') or '').strip(),
            link=link,
            guid=(entry.get('id') or link).strip(),
            content=content,
            summary=summary,
        )
