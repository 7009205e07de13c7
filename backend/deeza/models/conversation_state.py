"""
Conversation State Model — Persistent flow storage.

One row per chat. The row is replaced (delete then insert) on every
transition and deleted when the flow completes or is cancelled.
"""
from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from sqlalchemy.types import JSON

from deeza.db.base import Base


class ConversationState(Base):
    """
    Persists the active flow per Telegram chat.

    Schema:
        chat_id: Telegram chat identifier (unique)
        flow_state: Current step (e.g., "awaiting_proof", "awaiting_answer")
        payload: JSON blob with collected flow data (recipient, amount, code, ...)
        updated_at: Last transition
        expires_at: Set only for TTL'd quick actions; NULL means no expiry
    """
    __tablename__ = "deeza_contexts"

    id = Column(Integer, primary_key=True, index=True)
    chat_id = Column(String(64), unique=True, nullable=False, index=True)
    flow_state = Column(String(64), nullable=False)
    payload = Column(JSON, nullable=True, default=dict)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    expires_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<ConversationState chat_id={self.chat_id} flow_state={self.flow_state}>"
