"""Find-or-create lookups for venues and tags."""
import logging
from typing import Any, Dict, Optional

from storage.directus_client import TAGS, VENUES, ContentStoreError, DirectusClient

logger = logging.getLogger(__name__)


class EntityResolver:
    """
    Resolve venue and tag names to content store ids.

    Names are matched exactly; two spellings of the same venue are two venues.
    """

    def __init__(self, store: DirectusClient):
        self.store = store

    def find_or_create_venue(self, name: Optional[str], address: Optional[str] = None) -> Any:
        """
        Return the id of the venue called ``name``, creating it if needed.

        Returns:
            Venue id, or None if there is no name or the store call failed
        """
        if not name:
            return None
        return self._find_or_create(VENUES, name, {'name': name, 'address': address or ''})

    def find_or_create_tag(self, name: Optional[str]) -> Any:
        """Return the id of the tag called ``name``, creating it if needed."""
        if not name:
            return None
        return self._find_or_create(TAGS, name, {'name': name})

    def _find_or_create(self, collection: str, name: str, fields: Dict[str, Any]) -> Any:
        try:
            existing = self.store.list_items(collection, {'name': name}, limit=1)
            if existing:
                return existing[0].get('id')

            logger.info(f"Creating {collection} record: {name}")
            created = self.store.create_item(collection, fields) or {}
            logger.info(f"Created {collection} record {created.get('id')}")
            return created.get('id')

        except ContentStoreError as e:
            logger.warning(
                f"Failed to resolve {collection} record {name!r}: {e}",
                extra={'payload': e.payload}
            )
            return None
