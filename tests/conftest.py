"""
Pytest configuration and shared fixtures.
"""

import itertools
from datetime import datetime

import pytest

from newsdesk.news.errors import StorageFailure
from newsdesk.news.moderation import RuleBasedPolicy
from newsdesk.news.models import PublishedItem
from newsdesk.news.pipeline import PublicationPipeline
from newsdesk.news.store import SubmissionStore
from newsdesk.storage import MemoryKeyValueStore


FIXED_NOW = datetime(2026, 10, 19, 12, 0, 0)

SPRING_FESTIVAL_DESCRIPTION = (
    "The annual spring festival returns to Riverside Park this Saturday with "
    "local food stalls, live music and activities for children."
)


@pytest.fixture
def app():
    """Create application for testing."""
    from newsdesk import create_app

    app = create_app('testing')
    return app


@pytest.fixture
def app_context(app):
    """Application context for testing."""
    with app.app_context():
        yield


@pytest.fixture
def db(app, app_context):
    """Database for testing."""
    from newsdesk import db as _db

    _db.create_all()
    yield _db
    _db.session.remove()
    _db.drop_all()


@pytest.fixture
def cli_runner(app):
    return app.test_cli_runner()


class FailingKeyValueStore(MemoryKeyValueStore):
    """Memory store whose writes fail for chosen keys, after an optional number of successes."""

    def __init__(self, fail_keys=(), succeed_first=0):
        super().__init__()
        self.fail_keys = set(fail_keys)
        self.succeed_first = succeed_first
        self.writes = 0

    def put_many(self, collections):
        if self.fail_keys.intersection(collections):
            if self.writes >= self.succeed_first:
                raise StorageFailure(f"simulated write failure for {sorted(collections)}")
        self.writes += 1
        super().put_many(collections)


class RecordingPolicy:
    """Wraps a policy and remembers every candidate it saw."""

    name = 'recording'

    def __init__(self, inner=None):
        self.inner = inner or RuleBasedPolicy()
        self.candidates = []

    def evaluate(self, candidate):
        self.candidates.append(candidate)
        return self.inner.evaluate(candidate)


@pytest.fixture
def kv():
    return MemoryKeyValueStore()


@pytest.fixture
def store(kv):
    return SubmissionStore(kv)


@pytest.fixture
def id_factory():
    counter = itertools.count(1)
    return lambda: f"id-{next(counter)}"


@pytest.fixture
def pipeline(store, id_factory):
    return PublicationPipeline(store, clock=lambda: FIXED_NOW, id_factory=id_factory)


def make_fields(**overrides):
    fields = {
        'title': 'Annual Spring Festival Returns',
        'description': SPRING_FESTIVAL_DESCRIPTION,
        'city': 'Springfield',
        'category': 'Festival',
        'publisher_name': 'Jane Doe',
        'publisher_phone': '5551234567',
    }
    fields.update(overrides)
    return fields


def make_item(item_id, category='Festival', city='Springfield', published_at=FIXED_NOW):
    return PublishedItem(
        id=item_id,
        original_submission_id=f"sub-{item_id}",
        edited_title=f"Item {item_id}",
        edited_summary="Something happened. It was local.",
        city=city,
        category=category,
        publisher_name='Jane Doe',
        masked_phone='555*****67',
        published_at=published_at,
    )
