"""GraphQL Subscription resolvers."""

import logging
from collections.abc import AsyncGenerator
from contextlib import aclosing

import strawberry
from strawberry.types import Info

from app.graphql.context import GraphQLContext
from app.graphql.permissions import gate
from app.graphql.types import MessageType
from app.services.pubsub import conversation_topic

logger = logging.getLogger(__name__)


@strawberry.type
class Subscription:
    """Root GraphQL subscription type."""

    @strawberry.subscription(
        description="New messages posted to a conversation you participate in.",
        permission_classes=gate("Subscription.message"),
    )
    async def message(
        self,
        info: Info[GraphQLContext, None],
        conversation_id: strawberry.ID,
    ) -> AsyncGenerator[MessageType, None]:
        topic = conversation_topic(int(conversation_id))
        user_id = info.context.user.id
        logger.info(f"User {user_id} subscribed to conversation {topic}")
        try:
            async with aclosing(info.context.bus.subscribe(topic)) as events:
                async for event in events:
                    yield event.message
        finally:
            logger.info(f"User {user_id} unsubscribed from conversation {topic}")
