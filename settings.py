"""Configuration for the RSS events importer."""
import os
from dataclasses import dataclass, replace
from typing import Iterable, Mapping, Optional, Tuple, Union


class ConfigurationError(Exception):
    """Raised when the importer cannot start with the given environment."""


@dataclass(frozen=True)
class FeedSource:
    """One RSS feed to import events from."""
    url: str
    source: str
    name: str


@dataclass(frozen=True)
class TagRule:
    """Attach ``tag_name`` to events whose title contains ``keyword``."""
    keyword: str
    tag_name: str

    def matches(self, title: str) -> bool:
        return bool(title) and self.keyword.lower() in title.lower()


DEFAULT_FEEDS: Tuple[FeedSource, ...] = (
    FeedSource(
        url='https://bitcoinonly.events/tag/washington-dc/feed/',
        source='washington-dc',
        name='Washington DC'
    ),
    FeedSource(
        url='https://bitcoinonly.events/tag/maryland/feed/',
        source='maryland',
        name='Maryland'
    ),
    FeedSource(
        url='https://bitcoinonly.events/tag/virginia/feed/',
        source='virginia',
        name='Virginia'
    ),
)

DEFAULT_TAG_RULES: Tuple[TagRule, ...] = (
    TagRule(keyword='bitplebs', tag_name='bitplebs'),
)

# Checked in order, first non-empty value wins
TOKEN_ENV_VARS = (
    'DIRECTUS_EVENTS_TOKEN',
    'DIRECTUS_STATIC_TOKEN',
    'DIRECTUS_ADMIN_TOKEN',
)


@dataclass(frozen=True)
class ImporterConfig:
    """Settings shared by every component of one import run."""
    directus_url: str
    token: str
    feeds: Tuple[FeedSource, ...] = DEFAULT_FEEDS
    tag_rules: Tuple[TagRule, ...] = DEFAULT_TAG_RULES
    request_timeout: float = 15.0
    item_delay: float = 0.5
    max_retries: int = 3
    civil_timezone: str = 'America/New_York'
    log_level: str = 'INFO'
    user_agent: str = 'rss-events-importer/1.0'

    def select_feeds(self, sources: Union[str, Iterable[str], None]) -> 'ImporterConfig':
        """
        Restrict the run to the named feed sources.

        Declaration order is kept regardless of the order of ``sources``.
        A single name may be passed as a plain string.

        Raises:
            ConfigurationError: If a name does not match any configured feed
        """
        if not sources:
            return self
        if isinstance(sources, str):
            sources = [sources]

        wanted = set(sources)
        known = {feed.source for feed in self.feeds}
        unknown = sorted(wanted - known)
        if unknown:
            raise ConfigurationError(
                f"Unknown feed source(s): {', '.join(unknown)}. "
                f"Known sources: {', '.join(sorted(known))}"
            )

        return replace(
            self,
            feeds=tuple(feed for feed in self.feeds if feed.source in wanted)
        )


def resolve_token(environ: Mapping[str, str]) -> Optional[str]:
    """Return the first non-empty Directus token from the environment."""
    for name in TOKEN_ENV_VARS:
        value = (environ.get(name) or '').strip()
        if value:
            return value
    return None


def _number(environ: Mapping[str, str], name: str, default, cast,
            minimum=None, allow_minimum: bool = True):
    raw = environ.get(name)
    if raw is None or raw.strip() == '':
        return default
    try:
        value = cast(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}")

    if minimum is not None:
        in_range = value >= minimum if allow_minimum else value > minimum
        if not in_range:
            bound = 'at least' if allow_minimum else 'greater than'
            raise ConfigurationError(f"{name} must be {bound} {minimum}, got {raw!r}")
    return value


def load_config(environ: Optional[Mapping[str, str]] = None) -> ImporterConfig:
    """
    Build the importer configuration from environment variables.

    Args:
        environ: Mapping to read from (default: os.environ)

    Returns:
        ImporterConfig instance

    Raises:
        ConfigurationError: If no Directus token is configured, or a numeric
            setting is not a number or is out of range
    """
    if environ is None:
        environ = os.environ

    token = resolve_token(environ)
    if not token:
        raise ConfigurationError(
            "No Directus authentication token found. Set one of: "
            + ', '.join(TOKEN_ENV_VARS)
        )

    directus_url = (
        environ.get('PUBLIC_DIRECTUS_URL') or 'http://localhost:8055'
    ).rstrip('/')

    return ImporterConfig(
        directus_url=directus_url,
        token=token,
        request_timeout=_number(
            environ, 'REQUEST_TIMEOUT_SECONDS', 15.0, float, minimum=0, allow_minimum=False
        ),
        item_delay=_number(environ, 'ITEM_DELAY_SECONDS', 0.5, float, minimum=0),
        max_retries=_number(environ, 'MAX_RETRIES', 3, int, minimum=1),
        log_level=environ.get('LOG_LEVEL', 'INFO'),
    )
