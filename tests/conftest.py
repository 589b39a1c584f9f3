"""Shared fixtures for importer tests."""
from collections import defaultdict
from datetime import datetime

import pytest

from processor.models import FeedItem
from sample_content import EVENT_HTML
from settings import FeedSource
from storage.directus_client import ContentStoreError


class FakeContentStore:
    """In-memory stand-in for DirectusClient."""

    def __init__(self):
        self.collections = defaultdict(list)
        self.files = []
        self.calls = []
        self.fail_on = set()
        self._next_id = 1

    def _new_id(self):
        new_id = self._next_id
        self._next_id += 1
        return new_id

    def _maybe_fail(self, operation, collection):
        if (operation, collection) in self.fail_on:
            raise ContentStoreError(
                f"{operation} {collection} rejected",
                status_code=400,
                payload={'errors': [{'message': 'rejected'}]}
            )

    def add(self, collection, **fields):
        fields.setdefault('id', self._new_id())
        self.collections[collection].append(dict(fields))
        return fields['id']

    def list_items(self, collection, filters, limit=1):
        self.calls.append(('list', collection, dict(filters)))
        self._maybe_fail('list', collection)
        matches = [
            dict(item) for item in self.collections[collection]
            if all(item.get(k) == v for k, v in filters.items())
        ]
        return matches[:limit]

    def create_item(self, collection, fields):
        self.calls.append(('create', collection, dict(fields)))
        self._maybe_fail('create', collection)
        item = dict(fields, id=self._new_id())
        self.collections[collection].append(item)
        return dict(item)

    def update_item(self, collection, item_id, fields):
        self.calls.append(('update', collection, dict(fields)))
        self._maybe_fail('update', collection)
        for item in self.collections[collection]:
            if item['id'] == item_id:
                item.update(fields)
                return dict(item)
        raise ContentStoreError('not found', status_code=404)

    def upload_file(self, content, filename, content_type):
        self.calls.append(('upload', 'files', {'filename': filename}))
        self._maybe_fail('upload', 'files')
        record = {'id': f"file-{self._new_id()}", 'filename_download': filename,
                  'type': content_type}
        self.files.append(record)
        return record

    @property
    def writes(self):
        return [call for call in self.calls if call[0] != 'list']


@pytest.fixture
def store():
    return FakeContentStore()


@pytest.fixture
def feed_source():
    return FeedSource(
        url='https://bitcoinonly.events/tag/washington-dc/feed/',
        source='washington-dc',
        name='Washington DC'
    )


@pytest.fixture
def fixed_now():
    return datetime(2026, 1, 1, 12, 0)


@pytest.fixture
def event_item():
    return FeedItem(
        title='BitPlebs DC Monthly Meetup',
        link='https://bitcoinonly.events/event/dc-monthly-meetup/',
        guid='https://bitcoinonly.events/?p=101',
        content=EVENT_HTML,
        summary='Join us for our monthly meetup.'
    )
