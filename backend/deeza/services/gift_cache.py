"""Gift cache - local mirror written after createGift succeeds."""
import logging
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from deeza.db.session import SessionLocal
from deeza.models.cached_gift import CachedGift

logger = logging.getLogger(__name__)


class GiftCache:

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal):
        self._session_factory = session_factory

    def record(self, gifter_chat_id, draft: dict) -> bool:
        """Upsert by code. Failures are logged; the chain already has the gift."""
        db = self._session_factory()
        try:
            row = db.query(CachedGift).filter(CachedGift.code == draft["code"]).first()
            if row is None:
                row = CachedGift(code=draft["code"])
                db.add(row)
            row.gift_id = draft["gift_id"]
            row.gifter_chat_id = str(gifter_chat_id)
            row.recipient_handle = draft.get("recipient")
            row.recipient_wallet = draft.get("recipient_wallet")
            row.token_symbol = draft.get("token")
            row.token_address = draft.get("token_address")
            row.amount = str(draft["amount_units"])
            row.content_link = draft.get("content_link")
            db.commit()
            return True
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"[GiftCache] Could not cache gift {draft.get('code')}: {e}")
            return False
        finally:
            db.close()

    def recipient_wallet(self, code: str) -> Optional[str]:
        db = self._session_factory()
        try:
            row = db.query(CachedGift).filter(CachedGift.code == code).first()
            return row.recipient_wallet if row else None
        finally:
            db.close()
