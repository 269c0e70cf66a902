"""Strawberry GraphQL types mapped from the chat SQLAlchemy models."""

from __future__ import annotations

import strawberry
from strawberry.types import Info

from app.exceptions import ConversationNotFoundError, UserNotFoundError
from app.graphql.context import GraphQLContext
from app.graphql.permissions import gate
from app.graphql.scalars import Date


@strawberry.type(name="User")
class UserType:
    """A chat user."""

    id: strawberry.ID
    nickname: str

    @strawberry.field(permission_classes=gate("User.conversations"))
    async def conversations(self, info: Info[GraphQLContext, None]) -> list[ConversationType]:
        rows = await info.context.store.list_conversations(int(self.id))
        return [conversation_to_type(c) for c in rows]

    @strawberry.field(permission_classes=gate("User.messages"))
    async def messages(self, info: Info[GraphQLContext, None]) -> list[MessageType]:
        rows = await info.context.store.list_messages(int(self.id))
        return [message_to_type(m) for m in rows]


@strawberry.type(name="Conversation")
class ConversationType:
    """A conversation users can join and post to."""

    id: strawberry.ID
    title: str
    started_at: Date
    disabled: bool

    @strawberry.field(permission_classes=gate("Conversation.participants"))
    async def participants(self, info: Info[GraphQLContext, None]) -> list[UserType]:
        rows = await info.context.store.get_conversation_participants(int(self.id))
        return [user_to_type(u) for u in rows]

    @strawberry.field(permission_classes=gate("Conversation.messages"))
    async def messages(self, info: Info[GraphQLContext, None]) -> list[MessageType]:
        rows = await info.context.store.list_conversation_messages(int(self.id))
        return [message_to_type(m) for m in rows]


@strawberry.type(name="Message")
class MessageType:
    """A message posted to a conversation."""

    id: strawberry.ID
    body: str
    created_at: Date
    author_id: strawberry.Private[int]
    conversation_id: strawberry.Private[int]

    @strawberry.field
    async def author(self, info: Info[GraphQLContext, None]) -> UserType:
        user = await info.context.store.get_user(user_id=self.author_id)
        if user is None:
            raise UserNotFoundError(self.author_id)
        return user_to_type(user)

    @strawberry.field
    async def conversation(self, info: Info[GraphQLContext, None]) -> ConversationType:
        conversation = await info.context.store.get_conversation(self.conversation_id)
        if conversation is None:
            raise ConversationNotFoundError(self.conversation_id)
        return conversation_to_type(conversation)


@strawberry.type(name="SignInUserResponse")
class SignInUserType:
    id: strawberry.ID
    nickname: str


@strawberry.type
class SignInResponse:
    """Result of signin: the user and a bearer token for later requests."""

    user: SignInUserType
    token: str


# ============================================================================
# Helper conversion functions
# ============================================================================


def user_to_type(user) -> UserType:
    return UserType(id=strawberry.ID(str(user.id)), nickname=user.nickname)


def conversation_to_type(conversation) -> ConversationType:
    return ConversationType(
        id=strawberry.ID(str(conversation.id)),
        title=conversation.title,
        started_at=conversation.started_at,
        disabled=bool(conversation.disabled),
    )


def message_to_type(message) -> MessageType:
    return MessageType(
        id=strawberry.ID(str(message.id)),
        body=message.body,
        created_at=message.created_at,
        author_id=message.author_id,
        conversation_id=message.conversation_id,
    )
