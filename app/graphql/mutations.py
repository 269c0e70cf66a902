"""GraphQL Mutation resolvers."""

import logging

import strawberry
from strawberry.types import Info

from app.auth import create_access_token
from app.exceptions import ConversationNotFoundError, ValidationError
from app.graphql.context import GraphQLContext
from app.graphql.permissions import gate
from app.graphql.types import (
    ConversationType,
    MessageType,
    SignInResponse,
    SignInUserType,
    conversation_to_type,
    message_to_type,
)
from app.services.pubsub import MessageEvent, conversation_topic

logger = logging.getLogger(__name__)


def _parse_id(value: strawberry.ID, field: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid id: {value!r}", field=field) from e


def _require_text(value: str, field: str) -> str:
    text = value.strip()
    if not text:
        raise ValidationError(f"{field} must not be blank", field=field)
    return text


@strawberry.type
class Mutation:
    """Root GraphQL mutation type."""

    @strawberry.mutation(description="Sign in by nickname, creating the user on first use.")
    async def signin(self, info: Info[GraphQLContext, None], nickname: str) -> SignInResponse:
        nickname = _require_text(nickname, "nickname")
        store = info.context.store

        if await store.user_exists(nickname=nickname):
            user = await store.get_user(nickname=nickname)
        else:
            user = await store.create_user(nickname)

        token = create_access_token(user.id, user.nickname)
        logger.info(f"User signed in: id={user.id}")
        return SignInResponse(
            user=SignInUserType(id=strawberry.ID(str(user.id)), nickname=user.nickname),
            token=token,
        )

    @strawberry.mutation(
        description="Start a new conversation. Requires authentication.",
        permission_classes=gate("Mutation.createConversation"),
    )
    async def create_conversation(self, info: Info[GraphQLContext, None], title: str) -> ConversationType:
        title = _require_text(title, "title")
        conversation = await info.context.store.create_conversation(title, info.context.user.id)
        return conversation_to_type(conversation)

    @strawberry.mutation(
        description="Join a conversation. Joining twice leaves the participants unchanged.",
        permission_classes=gate("Mutation.joinToConversation"),
    )
    async def join_to_conversation(
        self,
        info: Info[GraphQLContext, None],
        conversation_id: strawberry.ID,
    ) -> ConversationType:
        store = info.context.store
        conv_id = _parse_id(conversation_id, "conversationId")

        conversation = await store.get_conversation(conv_id)
        if conversation is None:
            raise ConversationNotFoundError(conversation_id)

        await store.add_participant(conv_id, info.context.user.id)
        return conversation_to_type(conversation)

    @strawberry.mutation(
        description="Post a message to a conversation you participate in.",
        permission_classes=gate("Mutation.sendMessage"),
    )
    async def send_message(
        self,
        info: Info[GraphQLContext, None],
        body: str,
        conversation_id: strawberry.ID,
    ) -> MessageType:
        conv_id = _parse_id(conversation_id, "conversationId")
        message = await info.context.store.create_message(info.context.user.id, conv_id, body)

        payload = message_to_type(message)
        delivered = await info.context.bus.publish(
            conversation_topic(conv_id),
            MessageEvent(conversation_id=conv_id, message=payload),
        )
        logger.debug(f"Message {message.id} delivered to {delivered} subscriber(s)")
        return payload
