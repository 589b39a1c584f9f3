"""Directus REST client for content store operations."""
import json
import logging
from typing import Any, Dict, List, Optional

import requests

logger = logging.getLogger(__name__)

EVENTS = 'Events'
VENUES = 'Venues'
TAGS = 'tags'


class ContentStoreError(Exception):
    """Raised when the content store rejects a request or cannot be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None, payload: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload

    def details(self) -> str:
        """Error payload formatted for logging."""
        if self.payload is None:
            return str(self)
        return json.dumps(self.payload, indent=2, default=str)


class DirectusClient:
    """Client for the Directus items and files endpoints."""

    def __init__(self, base_url: str, token: str, timeout: float = 15,
                 session: Optional[requests.Session] = None):
        """
        Initialize the client.

        Args:
            base_url: Directus base URL
            token: Static bearer token
            timeout: HTTP request timeout in seconds
            session: HTTP session to use (default: new session)
        """
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers['Authorization'] = f"Bearer {token}"
        logger.info(f"Initialized DirectusClient for {self.base_url}")

    def list_items(self, collection: str, filters: Dict[str, Any],
                   limit: int = 1) -> List[Dict[str, Any]]:
        """
        List items matching exact-value filters.

        Args:
            collection: Collection name
            filters: Field name to required value
            limit: Maximum number of items to return

        Returns:
            List of item dictionaries
        """
        directus_filter = {name: {'_eq': value} for name, value in filters.items()}
        data = self._request(
            'GET', f"items/{collection}",
            params={'filter': json.dumps(directus_filter), 'limit': limit}
        )
        return data or []

    def create_item(self, collection: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Create an item and return it."""
        return self._request('POST', f"items/{collection}", json=fields)

    def update_item(self, collection: str, item_id: Any,
                    fields: Dict[str, Any]) -> Dict[str, Any]:
        """Patch the given fields of an item and return it."""
        return self._request('PATCH', f"items/{collection}/{item_id}", json=fields)

    def upload_file(self, content: bytes, filename: str,
                    content_type: str) -> Dict[str, Any]:
        """
        Upload a file.

        Returns:
            The new file record (its ``id`` is the file reference)
        """
        return self._request(
            'POST', 'files', files={'file': (filename, content, content_type)}
        )

    def _request(self, method: str, path: str, **kwargs) -> Any:
        url = f"{self.base_url}/{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise ContentStoreError(f"{method} {path} failed: {e}") from e

        if not response.ok:
            try:
                payload = response.json()
            except ValueError:
                payload = {'error': response.reason or response.text}
            raise ContentStoreError(
                f"{method} {path} returned {response.status_code}",
                status_code=response.status_code,
                payload=payload
            )

        if response.status_code == 204 or not response.content:
            return None

        try:
            body = response.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            raise ContentStoreError(
                f"{method} {path} returned undecodable body",
                status_code=response.status_code,
                payload={'error': response.text[:500]}
            )
        return body.get('data')
