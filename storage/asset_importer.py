"""Copy remote event images into the content store."""
import logging
import posixpath
from typing import Any, Optional
from urllib.parse import unquote, urlparse

import requests

from storage.directus_client import ContentStoreError, DirectusClient

logger = logging.getLogger(__name__)


class AssetImporter:
    """Download images and re-upload them as content store files."""

    DEFAULT_FILENAME = 'event-image.jpg'
    DEFAULT_CONTENT_TYPE = 'image/jpeg'

    def __init__(self, store: DirectusClient, session: Optional[requests.Session] = None,
                 timeout: float = 15):
        self.store = store
        self.session = session or requests.Session()
        self.timeout = timeout

    def import_image(self, image_url: Optional[str]) -> Any:
        """
        Download ``image_url`` and upload it to the content store.

        Failures are logged and never raised; the event is then saved without
        an image.

        Returns:
            The stored file id, or None
        """
        if not image_url:
            return None

        logger.info(f"Downloading image: {image_url}")
        try:
            response = self.session.get(image_url, timeout=self.timeout)
            if not response.ok:
                logger.warning(
                    f"Failed to download image {image_url}: "
                    f"{response.status_code} {response.reason}"
                )
                return None

            content_type = (
                response.headers.get('Content-Type', '').split(';')[0].strip()
                or self.DEFAULT_CONTENT_TYPE
            )
            uploaded = self.store.upload_file(
                response.content, self.filename_for(image_url), content_type
            )
        except (requests.RequestException, ContentStoreError) as e:
            logger.warning(f"Failed to upload image {image_url}: {e}")
            return None

        file_id = (uploaded or {}).get('id')
        if file_id is None:
            logger.warning(f"Upload of {image_url} returned no file id")
            return None

        logger.info(f"Image uploaded: {file_id}")
        return file_id

    @classmethod
    def filename_for(cls, image_url: str) -> str:
        """Last path segment of the URL, or a generic name."""
        try:
            path = urlparse(image_url).path
        except ValueError:
            return cls.DEFAULT_FILENAME
        return unquote(posixpath.basename(path)) or cls.DEFAULT_FILENAME
