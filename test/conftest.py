"""
Pytest configuration and fixtures for chat backend tests
"""

import os
import sys

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))  # noqa: PTH100, PTH118, PTH120

from app.graphql.context import GraphQLContext  # noqa: E402
from app.services.pubsub import TopicBus  # noqa: E402
from utils.fakes import InMemoryChatStore  # noqa: E402


@pytest.fixture
def store() -> InMemoryChatStore:
    return InMemoryChatStore()


@pytest.fixture
def bus() -> TopicBus:
    return TopicBus(max_queue_size=10)


@pytest.fixture
def alice(store):
    return store.add_user("alice")


@pytest.fixture
def bob(store):
    return store.add_user("bob")


@pytest.fixture
def conversation(store, alice):
    """A conversation alice participates in and bob does not."""
    return store.add_conversation("general", participants=[alice])


@pytest.fixture
def make_context(store, bus):
    """Build a fresh GraphQLContext for the given user (or anonymous)."""

    def _make(user=None) -> GraphQLContext:
        return GraphQLContext(user=user, store=store, bus=bus)

    return _make
