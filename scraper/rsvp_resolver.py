"""RSVP link resolution for imported events."""
import logging
from typing import Optional

import requests
from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)


class RsvpLinkResolver:
    """Find the registration link for an event, preferring the event page."""

    WEBSITE_SELECTOR = '.single_event_website a[href]'

    def __init__(self, session: Optional[requests.Session] = None, timeout: float = 15):
        """
        Initialize the resolver.

        Args:
            session: HTTP session for page fetches (default: new session)
            timeout: HTTP request timeout in seconds
        """
        self.session = session or requests.Session()
        self.timeout = timeout

    def scrape(self, page_url: str) -> Optional[str]:
        """
        Scrape the event page's Website field.

        Returns:
            The linked URL, or None if the page is unreachable or has no such field
        """
        if not page_url:
            return None

        logger.info(f"Scraping event page for RSVP link: {page_url}")
        try:
            response = self.session.get(page_url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            logger.warning(f"Failed to scrape event page {page_url}: {e}")
            return None

        soup = BeautifulSoup(response.text, 'html.parser')
        link = soup.select_one(self.WEBSITE_SELECTOR)
        if link is None or not link['href'].strip():
            logger.info("No Website field found on event page")
            return None

        href = link['href'].strip()
        logger.info(f"Found RSVP link on event page: {href}")
        return href

    def resolve(self, page_url: str, content_link: Optional[str] = None) -> Optional[str]:
        """
        Pick the best RSVP link.

        Args:
            page_url: Event page to scrape
            content_link: Link found in the feed content (Luma before Meetup)

        Returns:
            The scraped link if there is one, otherwise ``content_link``
        """
        rsvp_url = self.scrape(page_url) or content_link
        if rsvp_url:
            logger.info(f"Final RSVP URL: {rsvp_url}")
        else:
            logger.warning("No RSVP URL found")
        return rsvp_url
