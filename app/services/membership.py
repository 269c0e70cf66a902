"""Conversation membership check used by the access rules."""

import logging

logger = logging.getLogger(__name__)


async def is_member(store, user_id: int, conversation_id: int) -> bool:
    """Return True if the user is a participant of the conversation.

    The participant list is read from the store on every call so that
    joins made earlier in the same session are always visible.
    """
    participants = await store.get_conversation_participants(conversation_id)
    member = any(participant.id == user_id for participant in participants)
    logger.debug(f"Membership check user={user_id} conversation={conversation_id}: {member}")
    return member
