"""Extraction of event fields from feed item HTML."""
import logging
import re
from typing import List, Optional, Tuple
from urllib.parse import urlparse

from bs4 import BeautifulSoup

from processor.models import ParsedContent

logger = logging.getLogger(__name__)

WEEKDAY_YEAR_PATTERN = re.compile(
    r'(?:Monday|Tuesday|Wednesday|Thursday|Friday|Saturday|Sunday).*\d{4}'
)
TIME_MARKER_PATTERN = re.compile(r'Time:\s*', re.IGNORECASE)
# Emoji and other decorative symbols at the start of a line
GLYPH_PATTERN = re.compile(r'^[^\w\s]+\s*')
BR_PATTERN = re.compile(r'<br\s*/?>', re.IGNORECASE)

LUMA_HOSTS = ('lu.ma', 'luma.com')
MEETUP_HOSTS = ('meetup.com', 'meetu.ps')


def strip_glyph(line: str) -> str:
    return GLYPH_PATTERN.sub('', line).strip()


def has_glyph(line: str) -> bool:
    return bool(GLYPH_PATTERN.match(line))


def host_matches(url: str, hosts: Tuple[str, ...]) -> bool:
    """True when the URL's host is one of ``hosts`` or a sub-domain of one."""
    try:
        host = (urlparse(url).hostname or '').lower()
    except ValueError:
        return False
    return any(host == h or host.endswith('.' + h) for h in hosts)


class ContentExtractor:
    """Extractor for the rich-content HTML embedded in event feed items."""

    DESCRIPTION_STOP_MARKERS = ('Time:', 'Find Hotels')

    def extract(self, html: str) -> Optional[ParsedContent]:
        """
        Extract event fields from feed item HTML.

        Args:
            html: Content of the feed item (content:encoded)

        Returns:
            ParsedContent, or None when the content has no blockquote
        """
        soup = BeautifulSoup(html or '', 'html.parser')

        blockquote = soup.find('blockquote')
        if blockquote is None or not blockquote.get_text(strip=True):
            logger.warning("No blockquote found in content")
            return None

        date_text, time_text, venue_name, venue_address = self._parse_details(
            self._blockquote_lines(blockquote)
        )

        first_img = soup.find('img')
        image_url = first_img.get('src') if first_img else None

        luma_url, meetup_url = self._find_rsvp_links(soup)

        return ParsedContent(
            date_text=date_text,
            time_text=time_text,
            venue_name=venue_name,
            venue_address=venue_address,
            image_url=image_url or None,
            description=self._extract_description(soup, blockquote),
            luma_url=luma_url,
            meetup_url=meetup_url,
        )

    def _blockquote_lines(self, blockquote) -> List[str]:
        lines = []
        for fragment in BR_PATTERN.split(blockquote.decode_contents()):
            text = BeautifulSoup(fragment, 'html.parser').get_text('\n')
            lines.extend(line.strip() for line in text.split('\n'))
        return [line for line in lines if line]

    def _parse_details(self, lines: List[str]):
        date_text = None
        time_text = None
        venue_name = None
        venue_address = None
        date_index = None

        for i, line in enumerate(lines):
            is_time_line = bool(TIME_MARKER_PATTERN.search(line))

            if date_text is None and WEEKDAY_YEAR_PATTERN.search(line):
                date_text = strip_glyph(line)
                date_index = i
                continue

            if time_text is None and is_time_line:
                time_text = TIME_MARKER_PATTERN.split(line, maxsplit=1)[1].strip()
                continue

            if (venue_name is None and date_index is not None
                    and not is_time_line and has_glyph(line)):
                venue_name = strip_glyph(line) or None
                if venue_name and i + 1 < len(lines):
                    next_line = lines[i + 1]
                    if (not TIME_MARKER_PATTERN.search(next_line)
                            and not has_glyph(next_line)):
                        venue_address = next_line

        logger.debug(
            f"Parsed details: date={date_text!r} time={time_text!r} "
            f"venue={venue_name!r} address={venue_address!r}"
        )
        return date_text, time_text, venue_name, venue_address

    def _extract_description(self, soup: BeautifulSoup, blockquote) -> str:
        # Everything inside or after the blockquote is event details, not narrative
        after_blockquote = {id(el) for el in blockquote.find_all_next('p')}

        parts = []
        for paragraph in soup.find_all('p'):
            if id(paragraph) in after_blockquote:
                break
            text = paragraph.get_text().strip()
            if any(marker in text for marker in self.DESCRIPTION_STOP_MARKERS):
                break
            if text and paragraph.find('img') is None:
                parts.append(text)

        return '\n\n'.join(parts)

    def _find_rsvp_links(self, soup: BeautifulSoup) -> Tuple[Optional[str], Optional[str]]:
        luma_url = None
        meetup_url = None

        for anchor in soup.find_all('a', href=True):
            href = anchor['href'].strip()
            if luma_url is None and host_matches(href, LUMA_HOSTS):
                luma_url = href
                logger.info(f"Found Luma URL in content: {href}")
            elif meetup_url is None and host_matches(href, MEETUP_HOSTS):
                meetup_url = href
                logger.info(f"Found Meetup URL in content: {href}")

        return luma_url, meetup_url
