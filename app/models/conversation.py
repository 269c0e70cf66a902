"""
Conversation Model

A titled chat room. Participants are linked through the
conversation_participants association table.
"""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Integer, String

from app.database import Base


class Conversation(Base):
    __tablename__ = "conversations"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    title = Column(String, nullable=False)
    started_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    disabled = Column(Boolean, default=False, nullable=False)

    def __repr__(self) -> str:
        return f"<Conversation(id={self.id}, title={self.title!r})>"
