"""GraphQL context carrying the current user, data store and topic bus into resolvers."""

from __future__ import annotations

from typing import TYPE_CHECKING

from strawberry.fastapi import BaseContext

if TYPE_CHECKING:
    from app.models.user import User
    from app.services.chat_store import ChatStore
    from app.services.pubsub import TopicBus


class GraphQLContext(BaseContext):
    """Context passed to every GraphQL resolver.

    HTTP requests get a fresh context each. A WebSocket connection keeps one
    context for its lifetime; ``user`` is filled in once the connection_init
    payload arrives.
    """

    def __init__(self, user: User | None, store: ChatStore, bus: TopicBus) -> None:
        super().__init__()
        self.user = user
        self.store = store
        self.bus = bus
