"""Shared test fixtures for notification feed tests."""

import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

from common.content import SanityImageUrlResolver
from common.storage import MemoryLocalStore
from app.services.notifications.aggregator import NotificationAggregator
from app.services.notifications.interaction_fetcher import InteractionFetcher
from app.services.notifications.read_state_store import ReadStateStore
from app.services.notifications.types import RawInteractionData

from factories import make_user, make_comment, make_like


@pytest.fixture
def now():
    return datetime.now(timezone.utc).replace(microsecond=0)


@pytest.fixture
def subject_user_id():
    return "user-owner"


@pytest.fixture
def alice():
    return make_user("user-alice", "Alice", "Andersson", "alice", "https://cdn.example.com/alice.png")


@pytest.fixture
def bob():
    return make_user("user-bob", "Bob", "Berg", "bob", "image-bobavatar-200x200-png")


@pytest.fixture
def raw_result(now, alice, bob):
    """
    Repository result for one post (P) and one video (V).

    P has comments from alice (T1) and bob (T2 > T1) and a like from alice.
    V has likes from alice and bob.
    """
    t1 = now - timedelta(hours=2)
    t2 = now - timedelta(hours=1)
    return {
        "postLikes": [
            {
                "_id": "P",
                "title": "My first post",
                "snippet": "Hello world",
                "likedBy": [make_like("lk1", "user-alice", t1)],
                "likedByUsers": [alice],
            }
        ],
        "postComments": [
            {
                "_id": "P",
                "title": "My first post",
                "snippet": "Hello world",
                "comments": [
                    make_comment("c1", alice, "Nice post!", t1),
                    make_comment("c2", bob, "Totally agree", t2),
                ],
            }
        ],
        "videoLikes": [
            {
                "_id": "V",
                "title": "Trip video",
                "thumbnail": "https://cdn.example.com/thumb.jpg",
                "likedBy": [
                    make_like("vl1", "user-alice", now - timedelta(minutes=30)),
                    make_like("vl2", "user-bob", now - timedelta(minutes=10)),
                ],
                "likedByUsers": [alice, bob],
            }
        ],
        "videoComments": [
            {"_id": "V", "title": "Trip video", "thumbnail": "https://cdn.example.com/thumb.jpg", "comments": None}
        ],
    }


@pytest.fixture
def raw_data(raw_result):
    return RawInteractionData(collections=raw_result)


@pytest.fixture
def image_resolver():
    return SanityImageUrlResolver(project_id="proj123", dataset="production")


@pytest.fixture
def aggregator(image_resolver):
    return NotificationAggregator(image_resolver=image_resolver)


@pytest.fixture
def mock_sanity_client(raw_result):
    client = AsyncMock()
    client.fetch = AsyncMock(return_value=raw_result)
    return client


@pytest.fixture
def fetcher(mock_sanity_client):
    return InteractionFetcher(mock_sanity_client)


@pytest.fixture
def local_store():
    return MemoryLocalStore()


@pytest.fixture
def read_state_store(local_store):
    return ReadStateStore(local_store)
