"""Date and time parsing for imported events."""
import logging
import re
from datetime import datetime, timedelta
from typing import Optional, Tuple

import pytz

from processor.models import EventTimes

logger = logging.getLogger(__name__)

CIVIL_FORMAT = '%Y-%m-%dT%H:%M:%S'

MONTHS = {
    name: index + 1
    for index, name in enumerate([
        'january', 'february', 'march', 'april', 'may', 'june', 'july',
        'august', 'september', 'october', 'november', 'december'
    ])
}

# Hyphen, en dash, em dash
TIME_RANGE_PATTERN = re.compile(
    r'(\d{1,2}:\d{2}\s*[AP]M)\s*[—–-]\s*(\d{1,2}:\d{2}\s*[AP]M)',
    re.IGNORECASE
)
TIME_PATTERN = re.compile(r'^(\d{1,2}):(\d{2}) ([AP]M)$', re.IGNORECASE)

# (name, pattern, use fullmatch); tried in order
DATE_RULES = (
    ('strict', re.compile(r'[^,]+,\s+(\w+)\s+(\d{1,2}),\s+(\d{4})\s*'), True),
    ('lenient', re.compile(r'(\w+)\s+(\d{1,2}),\s+(\d{4})'), False),
)


class DateTimeParseError(ValueError):
    """Raised when an event's date or time text cannot be resolved."""

    def __init__(self, reason: str, message: str):
        super().__init__(message)
        self.reason = reason


def civil_now(timezone_name: str = 'America/New_York') -> datetime:
    """Current wall-clock time in the civil zone, without tzinfo."""
    return datetime.now(pytz.timezone(timezone_name)).replace(tzinfo=None)


def format_civil(value: datetime) -> str:
    """Format a civil timestamp for storage (no UTC offset)."""
    return value.strftime(CIVIL_FORMAT)


def normalize_time_token(token: str) -> str:
    """Ensure exactly one space before the AM/PM marker: '10:30AM' -> '10:30 AM'."""
    return re.sub(
        r'(\d)\s*([AP]M)', lambda m: f"{m.group(1)} {m.group(2).upper()}",
        token.strip(), flags=re.IGNORECASE
    )


class DateTimeResolver:
    """
    Resolve event date/time strings into civil start and end timestamps.

    Input looks like ``"Monday, January 26, 2026"`` and
    ``"6:00 PM — 10:00 PM EST"``. Output timestamps are naive and read as
    wall-clock time in the importer's civil zone; no UTC conversion is done.
    """

    def resolve(self, date_text: Optional[str], time_text: Optional[str]) -> EventTimes:
        """
        Resolve date and time-range text.

        Args:
            date_text: Date line from the event content
            time_text: Time range from the event content

        Returns:
            EventTimes with start and end

        Raises:
            DateTimeParseError: If either input cannot be resolved
        """
        if not date_text or not time_text:
            raise DateTimeParseError(
                'missing_input',
                f"Missing date or time: {date_text!r} / {time_text!r}"
            )

        start_token, end_token = self._split_time_range(time_text)
        year, month, day = self._parse_date(date_text)

        start = self._combine(year, month, day, start_token)
        end = self._combine(year, month, day, end_token)

        if end < start:
            end += timedelta(days=1)

        logger.debug(
            f"Resolved {date_text!r} {time_text!r} to "
            f"{format_civil(start)} - {format_civil(end)}"
        )
        return EventTimes(start=start, end=end)

    def _split_time_range(self, time_text: str) -> Tuple[str, str]:
        match = TIME_RANGE_PATTERN.search(time_text)
        if not match:
            raise DateTimeParseError(
                'time_range_not_found',
                f"Could not parse time range: {time_text!r}"
            )
        return (
            normalize_time_token(match.group(1)),
            normalize_time_token(match.group(2)),
        )

    def _parse_date(self, date_text: str) -> Tuple[int, int, int]:
        text = date_text.strip()
        for name, pattern, full in DATE_RULES:
            match = pattern.fullmatch(text) if full else pattern.search(text)
            if not match:
                logger.debug(f"Date rule '{name}' did not match {text!r}")
                continue

            month_name, day, year = match.groups()
            month = MONTHS.get(month_name.lower())
            if month is None:
                raise DateTimeParseError(
                    'invalid_month', f"Invalid month name: {month_name!r}"
                )
            return int(year), month, int(day)

        raise DateTimeParseError(
            'date_pattern_not_recognized',
            f"Could not extract date components from {text!r}"
        )

    def _combine(self, year: int, month: int, day: int, token: str) -> datetime:
        match = TIME_PATTERN.match(token)
        if not match:
            raise DateTimeParseError('invalid_time', f"Invalid time: {token!r}")

        hour, minute = int(match.group(1)), int(match.group(2))
        meridiem = match.group(3).upper()
        if not 1 <= hour <= 12 or minute > 59:
            raise DateTimeParseError('invalid_time', f"Invalid time: {token!r}")

        if meridiem == 'PM' and hour != 12:
            hour += 12
        elif meridiem == 'AM' and hour == 12:
            hour = 0

        try:
            return datetime(year, month, day, hour, minute)
        except ValueError as e:
            raise DateTimeParseError(
                'invalid_date', f"Invalid date {year}-{month}-{day}: {e}"
            )
