"""
GraphQL HTTP/WebSocket router.

HTTP requests resolve the caller from the Authorization header while the
context is built. WebSocket connections resolve it from the connection_init
payload in ``on_ws_connect``; a bad or missing credential still gets the
connection acknowledged, and the access rules reject what the anonymous
caller is not allowed to do.
"""

import logging
from collections.abc import Mapping

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.requests import HTTPConnection
from strawberry import UNSET
from strawberry.fastapi import GraphQLRouter

from app.auth import ConnectionParams, resolve_identity
from app.database import get_db
from app.graphql.context import GraphQLContext
from app.graphql.schema import schema
from app.services.chat_store import ChatStore
from app.services.pubsub import TopicBus, get_topic_bus

logger = logging.getLogger(__name__)


async def get_chat_store(db: AsyncSession = Depends(get_db)) -> ChatStore:
    return ChatStore(db)


async def get_context(
    connection: HTTPConnection,
    store: ChatStore = Depends(get_chat_store),
    bus: TopicBus = Depends(get_topic_bus),
) -> GraphQLContext:
    user = None
    if connection.scope["type"] == "http":
        user = await resolve_identity(connection.headers, store)
        connection.state.user = user
    return GraphQLContext(user=user, store=store, bus=bus)


class ChatGraphQLRouter(GraphQLRouter):
    async def on_ws_connect(self, context: GraphQLContext):
        params = getattr(context, "connection_params", None)
        if not isinstance(params, Mapping):
            params = {}
        context.user = await resolve_identity(ConnectionParams(params), context.store)
        logger.info(f"GraphQL WebSocket connected (user: {context.user.id if context.user else None})")
        return UNSET


def create_graphql_router() -> ChatGraphQLRouter:
    return ChatGraphQLRouter(schema, context_getter=get_context)
