"""
Conversation Context Store - one active context per chat, persisted.

save() replaces the whole record (delete then insert, never merge). The
orchestrator reads a context, mutates a copy and writes it back.

Two lifetimes:
- gift flows: no expiry, the row lives until advanced or cancelled
- quick actions: a single pending_action slot that expires after a TTL
"""
import copy
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from deeza.db.session import SessionLocal
from deeza.models.conversation_state import ConversationState as DBConversationState

logger = logging.getLogger(__name__)


@dataclass
class ConversationContext:
    chat_id: str
    flow_state: str
    flow_data: dict = field(default_factory=dict)
    expires_at: Optional[datetime] = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_aware(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite drops tzinfo on the way back
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class ContextStore:
    """Keyed context store backed by the deeza_contexts table."""

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._session_factory = session_factory
        self._clock = clock

    def save(self, chat_id, flow_state: str, flow_data: dict, ttl_seconds: Optional[int] = None) -> bool:
        """Atomically replace the context for chat_id.

        Returns:
            True on success, False if the write failed (nothing is half-written)
        """
        chat_key = str(chat_id)
        expires_at = self._clock() + timedelta(seconds=ttl_seconds) if ttl_seconds else None
        db = self._session_factory()
        try:
            db.query(DBConversationState).filter(
                DBConversationState.chat_id == chat_key
            ).delete(synchronize_session=False)
            db.add(DBConversationState(
                chat_id=chat_key,
                flow_state=flow_state,
                payload=copy.deepcopy(flow_data or {}),
                expires_at=expires_at,
            ))
            db.commit()
            logger.info(f"[Context] ✅ Saved chat_id={chat_key}, state={flow_state}")
            return True
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"[Context] Save failed for chat_id={chat_key}: {e}")
            return False
        finally:
            db.close()

    def get(self, chat_id) -> Optional[ConversationContext]:
        """Current context or None. Expired quick-action rows are removed on read."""
        chat_key = str(chat_id)
        db = self._session_factory()
        try:
            record = db.query(DBConversationState).filter(
                DBConversationState.chat_id == chat_key
            ).first()
            if record is None:
                return None

            expires_at = _as_aware(record.expires_at)
            if expires_at is not None and expires_at <= self._clock():
                logger.info(f"[Context] Expired {record.flow_state} for chat_id={chat_key}")
                db.delete(record)
                db.commit()
                return None

            payload = record.payload if isinstance(record.payload, dict) else {}
            return ConversationContext(
                chat_id=chat_key,
                flow_state=record.flow_state,
                flow_data=copy.deepcopy(payload),
                expires_at=expires_at,
            )
        finally:
            db.close()

    def clear(self, chat_id) -> None:
        """Idempotent removal."""
        chat_key = str(chat_id)
        db = self._session_factory()
        try:
            deleted = db.query(DBConversationState).filter(
                DBConversationState.chat_id == chat_key
            ).delete(synchronize_session=False)
            db.commit()
            if deleted:
                logger.info(f"[Context] Cleared chat_id={chat_key}")
        finally:
            db.close()
