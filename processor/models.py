"""Data models for event importing."""
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, Optional, Tuple, Union


CREATED = 'created'
UPDATED = 'updated'
SKIPPED = 'skipped'
FAILED = 'failed'


@dataclass(frozen=True)
class FeedItem:
    """One entry from an RSS feed."""
    title: str
    link: str
    guid: str
    content: str
    summary: str = ''


@dataclass(frozen=True)
class ParsedContent:
    """Structured fields extracted from a feed item's HTML."""
    date_text: Optional[str]
    time_text: Optional[str]
    venue_name: Optional[str] = None
    venue_address: Optional[str] = None
    image_url: Optional[str] = None
    description: str = ''
    luma_url: Optional[str] = None
    meetup_url: Optional[str] = None

    @property
    def content_rsvp_url(self) -> Optional[str]:
        """RSVP link found in the content, Luma before Meetup."""
        return self.luma_url or self.meetup_url


@dataclass(frozen=True)
class EventTimes:
    """Start and end as civil (naive) timestamps."""
    start: datetime
    end: datetime


@dataclass(frozen=True)
class CandidateEvent:
    """Event built from one feed item, not yet persisted."""
    title: str
    source_url: str
    source_guid: str
    source_label: str
    raw_content: str
    content: ParsedContent
    times: EventTimes
    summary: str = ''
    rsvp_url: Optional[str] = None

    @property
    def description(self) -> str:
        return self.content.description or self.summary or ''


@dataclass(frozen=True)
class Reference:
    """Relation stored as a bare id."""
    id: Any


@dataclass(frozen=True)
class Expanded:
    """Relation returned as the full related record."""
    record: Dict[str, Any]

    @property
    def id(self) -> Any:
        return self.record.get('id')


Relation = Union[Reference, Expanded]


def to_relation(value: Any) -> Optional[Relation]:
    """Wrap a relation field from the content store."""
    if value is None or value == '' or value == []:
        return None
    if isinstance(value, dict):
        return Expanded(value)
    if isinstance(value, list):
        # Many-to-many fields come back as lists; the first entry is enough
        return to_relation(value[0])
    return Reference(value)


def relation_id(relation: Optional[Relation]) -> Any:
    """Return the related record's id whichever shape it was returned in."""
    if relation is None:
        return None
    return relation.id


@dataclass(frozen=True)
class StoredEvent:
    """Event record as held by the content store."""
    id: Any
    external_url: Optional[str]
    image: Optional[Relation] = None
    rsvp_url: Optional[str] = None
    tag: Optional[Relation] = None
    venue: Optional[Relation] = None

    @classmethod
    def from_item(cls, item: Dict[str, Any]) -> 'StoredEvent':
        return cls(
            id=item.get('id'),
            external_url=item.get('external_url'),
            image=to_relation(item.get('image')),
            rsvp_url=item.get('rsvp_url') or None,
            tag=to_relation(item.get('tags')),
            venue=to_relation(item.get('location')),
        )


@dataclass(frozen=True)
class ItemResult:
    """Outcome of processing one feed item."""
    status: str
    reason: Optional[str] = None
    item_id: Any = None
    error: Optional[str] = None


@dataclass(frozen=True)
class FeedResult:
    """Counts for one feed."""
    source: str
    total: int = 0
    created: int = 0
    updated: int = 0
    skipped: int = 0
    failed: int = 0
    error: Optional[str] = None

    def record(self, result: ItemResult) -> 'FeedResult':
        """Return a copy with ``result`` counted."""
        return replace(
            self, **{result.status: getattr(self, result.status) + 1}
        )

    def as_dict(self) -> Dict[str, Any]:
        data = {
            'total': self.total,
            'created': self.created,
            'updated': self.updated,
            'skipped': self.skipped,
            'failed': self.failed,
        }
        if self.error:
            data['error'] = self.error
        return data


@dataclass(frozen=True)
class ImportSummary:
    """Counts for a whole run, folded from per-feed results."""
    feeds: Tuple[FeedResult, ...] = field(default_factory=tuple)

    def add(self, feed_result: FeedResult) -> 'ImportSummary':
        return ImportSummary(feeds=self.feeds + (feed_result,))

    def _sum(self, name: str) -> int:
        return sum(getattr(feed, name) for feed in self.feeds)

    @property
    def total(self) -> int:
        return self._sum('total')

    @property
    def created(self) -> int:
        return self._sum('created')

    @property
    def updated(self) -> int:
        return self._sum('updated')

    @property
    def skipped(self) -> int:
        return self._sum('skipped')

    @property
    def failed(self) -> int:
        return self._sum('failed')

    def as_dict(self) -> Dict[str, Any]:
        return {
            'total': self.total,
            'created': self.created,
            'updated': self.updated,
            'skipped': self.skipped,
            'failed': self.failed,
            'feeds': {feed.source: feed.as_dict() for feed in self.feeds},
        }
