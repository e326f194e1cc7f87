from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, true
from sqlalchemy.sql import func

from fluentify.db.base import Base

SENDER_LEARNER = "learner"
SENDER_AI = "ai"


class ChatSession(Base):
    __tablename__ = "chat_sessions"

    id = Column(Integer, primary_key=True, index=True)

    learner_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    language = Column(String(100), nullable=True)
    title = Column(String(255), nullable=False, default="New Chat")
    session_token = Column(String(64), nullable=False, unique=True, index=True)

    is_active = Column(Boolean, nullable=False, default=True, server_default=true())
    message_count = Column(Integer, nullable=False, default=0)

    started_at = Column(DateTime(timezone=True), server_default=func.now())
    ended_at = Column(DateTime(timezone=True), nullable=True)


class ChatMessage(Base):
    __tablename__ = "chat_messages"

    id = Column(Integer, primary_key=True, index=True)

    session_id = Column(Integer, ForeignKey("chat_sessions.id", ondelete="CASCADE"), nullable=False, index=True)
    sender = Column(String(20), nullable=False)  # learner | ai
    message = Column(Text, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
