"""Reconcile feed items against events already in the content store."""
import logging
from datetime import datetime
from functools import partial
from typing import Any, Callable, Dict, Optional, Sequence

from processor.datetime_resolver import (
    DateTimeParseError,
    DateTimeResolver,
    civil_now,
    format_civil,
)
from processor.models import (
    CREATED,
    FAILED,
    SKIPPED,
    UPDATED,
    CandidateEvent,
    FeedItem,
    ItemResult,
    StoredEvent,
    relation_id,
)
from scraper.content_extractor import ContentExtractor
from scraper.rsvp_resolver import RsvpLinkResolver
from settings import FeedSource, TagRule
from storage.asset_importer import AssetImporter
from storage.directus_client import EVENTS, ContentStoreError, DirectusClient
from storage.entity_resolver import EntityResolver

logger = logging.getLogger(__name__)


class EventReconciler:
    """
    Turn one feed item into a create, a back-fill update, or a skip.

    Each item moves through parsing, date resolution, a past-event check and
    an existence check by source URL. New events are created complete;
    existing events only get their empty image, RSVP URL and tag filled in.
    """

    def __init__(
        self,
        store: DirectusClient,
        extractor: ContentExtractor,
        datetime_resolver: DateTimeResolver,
        rsvp_resolver: RsvpLinkResolver,
        entity_resolver: EntityResolver,
        asset_importer: AssetImporter,
        tag_rules: Sequence[TagRule] = (),
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.store = store
        self.extractor = extractor
        self.datetime_resolver = datetime_resolver
        self.rsvp_resolver = rsvp_resolver
        self.entity_resolver = entity_resolver
        self.asset_importer = asset_importer
        self.tag_rules = tuple(tag_rules)
        self.clock = clock or partial(civil_now, 'America/New_York')

    def process_item(self, item: FeedItem, source: FeedSource) -> ItemResult:
        """
        Process one feed item.

        Args:
            item: Feed entry
            source: Feed the entry came from

        Returns:
            ItemResult describing what happened
        """
        logger.info(f"Processing: {item.title}", extra={'url': item.link})

        parsed = self.extractor.extract(item.content)
        if parsed is None:
            logger.error(f"Failed to parse event details for {item.link}")
            return ItemResult(FAILED, 'parse_error')

        try:
            times = self.datetime_resolver.resolve(parsed.date_text, parsed.time_text)
        except DateTimeParseError as e:
            logger.error(
                f"Failed to parse event date/time: {e}",
                extra={'reason': e.reason}
            )
            return ItemResult(FAILED, 'date_parse_error', error=str(e))

        now = self.clock()
        if times.start < now:
            logger.info(
                f"Event is in the past ({times.start:%Y-%m-%d}), skipping"
            )
            return ItemResult(SKIPPED, 'past_event')

        candidate = CandidateEvent(
            title=item.title,
            source_url=item.link,
            source_guid=item.guid,
            source_label=source.source,
            raw_content=item.content,
            content=parsed,
            times=times,
            summary=item.summary,
            rsvp_url=self.rsvp_resolver.resolve(item.link, parsed.content_rsvp_url),
        )

        try:
            existing = self.store.list_items(
                EVENTS, {'external_url': candidate.source_url}, limit=1
            )
        except ContentStoreError as e:
            logger.error(
                f"Error checking for existing event: {e}",
                extra={'payload': e.payload}
            )
            return ItemResult(FAILED, 'lookup_error', error=str(e))

        if existing:
            return self._back_fill(candidate, StoredEvent.from_item(existing[0]))
        return self._create(candidate)

    def matching_tag(self, title: str) -> Optional[str]:
        """Name of the first tag whose keyword appears in ``title``."""
        for rule in self.tag_rules:
            if rule.matches(title):
                return rule.tag_name
        return None

    def _create(self, candidate: CandidateEvent) -> ItemResult:
        image_id = self.asset_importer.import_image(candidate.content.image_url)
        venue_id = self.entity_resolver.find_or_create_venue(
            candidate.content.venue_name, candidate.content.venue_address
        )

        tag_id = None
        tag_name = self.matching_tag(candidate.title)
        if tag_name:
            logger.info(f"Title matches tag '{tag_name}', adding tag")
            tag_id = self.entity_resolver.find_or_create_tag(tag_name)

        fields = self._event_fields(candidate, image_id, venue_id, tag_id)
        logger.info("Creating event in Directus")
        try:
            created = self.store.create_item(EVENTS, fields) or {}
        except ContentStoreError as e:
            logger.error(f"Failed to create event: {e}\nDetails: {e.details()}")
            return ItemResult(FAILED, 'create_error', error=e.details())

        logger.info(f"Event created successfully (ID: {created.get('id')})")
        return ItemResult(CREATED, item_id=created.get('id'))

    def _back_fill(self, candidate: CandidateEvent, stored: StoredEvent) -> ItemResult:
        logger.info(f"Event already exists (ID: {stored.id})")
        patch = self._back_fill_patch(candidate, stored)

        if not patch:
            return ItemResult(SKIPPED, 'already_exists', item_id=stored.id)

        try:
            self.store.update_item(EVENTS, stored.id, patch)
        except ContentStoreError as e:
            logger.warning(
                f"Failed to update event {stored.id}: {e}",
                extra={'payload': e.payload}
            )
            return ItemResult(SKIPPED, 'already_exists', item_id=stored.id)

        logger.info(f"Updated existing event ({', '.join(patch)})")
        return ItemResult(UPDATED, 'fields_updated', item_id=stored.id)

    def _back_fill_patch(self, candidate: CandidateEvent, stored: StoredEvent) -> Dict[str, Any]:
        patch = {}

        if relation_id(stored.image) is None and candidate.content.image_url:
            logger.info("Event missing image, will re-import")
            image_id = self.asset_importer.import_image(candidate.content.image_url)
            if image_id:
                patch['image'] = image_id

        if not stored.rsvp_url and candidate.rsvp_url:
            logger.info(f"Event missing RSVP URL, will add {candidate.rsvp_url}")
            patch['rsvp_url'] = candidate.rsvp_url

        if relation_id(stored.tag) is None:
            tag_name = self.matching_tag(candidate.title)
            if tag_name:
                logger.info(f"Event missing tag '{tag_name}', will add")
                tag_id = self.entity_resolver.find_or_create_tag(tag_name)
                if tag_id:
                    patch['tags'] = tag_id

        return patch

    def _event_fields(self, candidate: CandidateEvent, image_id: Any,
                      venue_id: Any, tag_id: Any) -> Dict[str, Any]:
        return {
            'title': candidate.title,
            'description': candidate.description,
            'start_date_time': format_civil(candidate.times.start),
            'end_date_time': format_civil(candidate.times.end),
            'location': venue_id,
            'image': image_id,
            'external_url': candidate.source_url,
            'external_id': candidate.source_guid,
            'rsvp_url': candidate.rsvp_url or None,
            'source_feed': candidate.source_label,
            'is_imported': True,
            'raw_description': candidate.raw_content,
            'parsed_venue_name': candidate.content.venue_name,
            'parsed_venue_address': candidate.content.venue_address,
            'tags': tag_id,
            'status': 'published',
        }
