"""GraphQL Query resolvers."""

import strawberry
from strawberry.types import Info

from app.exceptions import ConversationNotFoundError
from app.graphql.context import GraphQLContext
from app.graphql.permissions import gate
from app.graphql.types import ConversationType, UserType, conversation_to_type, user_to_type


@strawberry.type
class Query:
    """Root GraphQL query type."""

    @strawberry.field(description="Get the currently authenticated user.", permission_classes=gate("Query.me"))
    async def me(self, info: Info[GraphQLContext, None]) -> UserType:
        return user_to_type(info.context.user)

    @strawberry.field(
        description="Get a conversation the current user participates in.",
        permission_classes=gate("Query.conversation"),
    )
    async def conversation(
        self,
        info: Info[GraphQLContext, None],
        conversation_id: strawberry.ID,
    ) -> ConversationType:
        conversation = await info.context.store.get_conversation(int(conversation_id))
        if conversation is None:
            raise ConversationNotFoundError(conversation_id)
        return conversation_to_type(conversation)
