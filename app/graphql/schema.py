"""GraphQL schema: root types plus error logging."""

import logging
from typing import Optional

import strawberry
from graphql import GraphQLError
from strawberry.types import ExecutionContext

from app.exceptions import ChatError
from app.graphql.mutations import Mutation
from app.graphql.queries import Query
from app.graphql.subscriptions import Subscription

logger = logging.getLogger(__name__)


class ChatSchema(strawberry.Schema):
    """Schema that tags domain errors with a machine-readable code."""

    def process_errors(
        self,
        errors: list[GraphQLError],
        execution_context: Optional[ExecutionContext] = None,
    ) -> None:
        for error in errors:
            original = error.original_error
            if isinstance(original, ChatError):
                error.extensions = {**(error.extensions or {}), "code": original.error_code.value}
                logger.warning(f"GraphQL error at {error.path}: {original.message}")
            elif isinstance(original, GraphQLError):
                # Permission rejections and other errors raised as GraphQLError
                logger.info(f"GraphQL error at {error.path}: {error.message}")
            elif original is not None:
                logger.error(f"Unhandled error at {error.path}: {original}", exc_info=original)
            else:
                logger.info(f"GraphQL error: {error.message}")


schema = ChatSchema(query=Query, mutation=Mutation, subscription=Subscription)
