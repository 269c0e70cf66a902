"""
Chat Store

Data store for users, conversations, participants and messages.
Every call hits the database; nothing is cached between calls.
"""

import logging
from contextlib import asynccontextmanager

from sqlalchemy import exists, insert, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import DatabaseError
from app.models.conversation import Conversation
from app.models.conversation_participants import conversation_participants
from app.models.message import Message
from app.models.user import User

logger = logging.getLogger(__name__)


def _user_filter(user_id: int | None, nickname: str | None):
    if (user_id is None) == (nickname is None):
        raise ValueError("Exactly one of user_id or nickname must be given")
    if user_id is not None:
        return User.id == user_id
    return User.nickname == nickname


class ChatStore:
    """Service for chat persistence."""

    def __init__(self, db: AsyncSession):
        self.db = db

    @asynccontextmanager
    async def _guard(self, operation: str):
        try:
            yield
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Store operation '{operation}' failed: {e}")
            raise DatabaseError(operation=operation) from e

    # ── Users ────────────────────────────────────────────────────────────────

    async def user_exists(self, user_id: int | None = None, nickname: str | None = None) -> bool:
        condition = _user_filter(user_id, nickname)
        async with self._guard("user_exists"):
            return bool(await self.db.scalar(select(exists().where(condition))))

    async def get_user(self, user_id: int | None = None, nickname: str | None = None) -> User | None:
        condition = _user_filter(user_id, nickname)
        async with self._guard("get_user"):
            result = await self.db.execute(select(User).where(condition))
            return result.scalar_one_or_none()

    async def create_user(self, nickname: str) -> User:
        user = User(nickname=nickname)
        async with self._guard("create_user"):
            self.db.add(user)
            await self.db.commit()
            await self.db.refresh(user)

        logger.info(f"User created: id={user.id}, nickname={nickname}")
        return user

    # ── Conversations ────────────────────────────────────────────────────────

    async def get_conversation(self, conversation_id: int) -> Conversation | None:
        async with self._guard("get_conversation"):
            return await self.db.get(Conversation, conversation_id)

    async def create_conversation(self, title: str, creator_id: int) -> Conversation:
        """Create a conversation with its creator as the first participant."""
        conversation = Conversation(title=title)
        async with self._guard("create_conversation"):
            self.db.add(conversation)
            await self.db.flush()
            await self.db.execute(
                insert(conversation_participants).values(conversation_id=conversation.id, user_id=creator_id)
            )
            await self.db.commit()
            await self.db.refresh(conversation)

        logger.info(f"Conversation created: id={conversation.id}, creator={creator_id}")
        return conversation

    async def get_conversation_participants(self, conversation_id: int) -> list[User]:
        async with self._guard("get_conversation_participants"):
            result = await self.db.execute(
                select(User)
                .join(conversation_participants, conversation_participants.c.user_id == User.id)
                .where(conversation_participants.c.conversation_id == conversation_id)
                .order_by(User.id)
            )
            return list(result.scalars().all())

    async def add_participant(self, conversation_id: int, user_id: int) -> bool:
        """
        Connect a user to a conversation if not already connected.

        Returns:
            True if the user was added, False if already a participant
        """
        async with self._guard("add_participant"):
            already = await self.db.scalar(
                select(
                    exists().where(
                        conversation_participants.c.conversation_id == conversation_id,
                        conversation_participants.c.user_id == user_id,
                    )
                )
            )
            if already:
                return False

            try:
                await self.db.execute(
                    insert(conversation_participants).values(conversation_id=conversation_id, user_id=user_id)
                )
                await self.db.commit()
            except IntegrityError:
                # A concurrent join won the insert
                await self.db.rollback()
                logger.info(f"User {user_id} already joined conversation {conversation_id}")
                return False

        logger.info(f"User {user_id} joined conversation {conversation_id}")
        return True

    async def list_conversations(self, participant_id: int) -> list[Conversation]:
        async with self._guard("list_conversations"):
            result = await self.db.execute(
                select(Conversation)
                .join(conversation_participants, conversation_participants.c.conversation_id == Conversation.id)
                .where(conversation_participants.c.user_id == participant_id)
                .order_by(Conversation.id)
            )
            return list(result.scalars().all())

    # ── Messages ─────────────────────────────────────────────────────────────

    async def create_message(self, author_id: int, conversation_id: int, body: str) -> Message:
        message = Message(author_id=author_id, conversation_id=conversation_id, body=body)
        async with self._guard("create_message"):
            self.db.add(message)
            await self.db.commit()
            await self.db.refresh(message)

        logger.info(f"Message created: id={message.id}, conversation={conversation_id}, author={author_id}")
        return message

    async def list_messages(self, author_id: int) -> list[Message]:
        async with self._guard("list_messages"):
            result = await self.db.execute(
                select(Message).where(Message.author_id == author_id).order_by(Message.created_at, Message.id)
            )
            return list(result.scalars().all())

    async def list_conversation_messages(self, conversation_id: int) -> list[Message]:
        async with self._guard("list_conversation_messages"):
            result = await self.db.execute(
                select(Message)
                .where(Message.conversation_id == conversation_id)
                .order_by(Message.created_at, Message.id)
            )
            return list(result.scalars().all())
