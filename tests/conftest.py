"""Shared fixtures for journalsync tests."""

import json
from datetime import datetime
from unittest.mock import AsyncMock

import pytest

from journalsync.models import Entry, Mood
from journalsync.store import LocalStore
from journalsync.sync import EntryController

BASE_URL = "https://journal-test.firebaseio.com/entries"
WHEN = datetime(2020, 6, 10, 12, 0)


def wire_entry(identifier, title, body="", mood="neutral", timestamp=WHEN):
    """Build one remote document value."""
    data = {
        "title": title,
        "bodyText": body,
        "timestamp": timestamp.isoformat(),
        "mood": mood,
    }
    if identifier is not None:
        data["identifier"] = identifier
    return data


def collection_bytes(*values, key_prefix="key"):
    """Encode a keyed collection the way the remote store returns it."""
    collection = {}
    for i, value in enumerate(values):
        key = value.get("identifier") or f"{key_prefix}-{i}"
        collection[key] = value
    return json.dumps(collection).encode("utf-8")


def make_entry(identifier="id1", title="A title", body="Some text", mood=Mood.HAPPY):
    return Entry(
        identifier=identifier,
        title=title,
        body_text=body,
        timestamp=WHEN,
        mood=mood,
    )


@pytest.fixture
def store():
    """Create an in-memory LocalStore for testing."""
    store = LocalStore(":memory:")
    store.connect()
    yield store
    store.close()


@pytest.fixture
def transport():
    """Remote transport double."""
    transport = AsyncMock()
    transport.get.return_value = b"null"
    return transport


@pytest.fixture
def controller(store, transport):
    """Controller wired to the in-memory store and mock transport."""
    controller = EntryController(store, BASE_URL, transport=transport)
    yield controller
    controller._executor.shutdown(wait=True)
