from .conversation_participants import conversation_participants
from .user import User
from .conversation import Conversation
from .message import Message

__all__ = [
    "conversation_participants",
    "User",
    "Conversation",
    "Message",
]
