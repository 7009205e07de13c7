"""
User Registry - chat identity ↔ wallet address.

Recipients are looked up by lower-cased Telegram handle; senders and
claimants by chat id.
"""
import logging
import re
from dataclasses import dataclass
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from web3 import Web3

from deeza.db.session import SessionLocal
from deeza.models.user import User as DBUser

logger = logging.getLogger(__name__)

ADDRESS_PATTERN = re.compile(r"0x[a-fA-F0-9]{40}")


def find_address(text: str) -> Optional[str]:
    """First wallet-looking token in free text, or None."""
    match = ADDRESS_PATTERN.search(text or "")
    return match.group(0) if match else None


def is_valid_address(value: str) -> bool:
    return bool(value) and ADDRESS_PATTERN.fullmatch(value) is not None


def normalize_handle(handle: Optional[str]) -> str:
    return (handle or "").strip().lstrip("@").lower()


@dataclass
class UserProfile:
    chat_id: str
    display_name: Optional[str]
    wallet_address: Optional[str]
    bonus_granted: bool = False


def _to_profile(record: DBUser) -> UserProfile:
    return UserProfile(
        chat_id=record.chat_id,
        display_name=record.display_name,
        wallet_address=record.wallet_address,
        bonus_granted=bool(record.bonus_granted),
    )


class UserRegistry:

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal):
        self._session_factory = session_factory

    def get_or_create(self, chat_id, display_name: Optional[str]) -> UserProfile:
        chat_key = str(chat_id)
        name = normalize_handle(display_name) or None
        db = self._session_factory()
        try:
            record = db.query(DBUser).filter(DBUser.chat_id == chat_key).first()
            if record:
                # Telegram handles can change; keep the lookup key current
                if name and record.display_name != name:
                    record.display_name = name
                    db.commit()
                return _to_profile(record)

            record = DBUser(chat_id=chat_key, display_name=name, wallet_address=None)
            db.add(record)
            db.commit()
            db.refresh(record)
            logger.info(f"[Registry] New user chat_id={chat_key}, name={name}")
            return _to_profile(record)
        finally:
            db.close()

    def get(self, chat_id) -> Optional[UserProfile]:
        db = self._session_factory()
        try:
            record = db.query(DBUser).filter(DBUser.chat_id == str(chat_id)).first()
            return _to_profile(record) if record else None
        finally:
            db.close()

    def get_by_handle(self, handle: str) -> Optional[UserProfile]:
        name = normalize_handle(handle)
        if not name:
            return None
        db = self._session_factory()
        try:
            record = (
                db.query(DBUser)
                .filter(DBUser.display_name == name)
                .order_by(DBUser.id)
                .first()
            )
            return _to_profile(record) if record else None
        finally:
            db.close()

    def set_wallet(self, chat_id, address: str) -> bool:
        """Upsert the wallet for chat_id. Rejects anything that is not an address."""
        if not is_valid_address(address):
            logger.warning(f"[Registry] Rejected wallet for chat_id={chat_id}: invalid format")
            return False

        checksum = Web3.to_checksum_address(address)
        chat_key = str(chat_id)
        db = self._session_factory()
        try:
            record = db.query(DBUser).filter(DBUser.chat_id == chat_key).first()
            if record is None:
                record = DBUser(chat_id=chat_key)
                db.add(record)
            record.wallet_address = checksum
            db.commit()
            logger.info(f"[Registry] Wallet set for chat_id={chat_key}: {checksum[:10]}...")
            return True
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"[Registry] Wallet update failed for chat_id={chat_key}: {e}")
            return False
        finally:
            db.close()

    def mark_bonus_granted(self, chat_id) -> None:
        db = self._session_factory()
        try:
            record = db.query(DBUser).filter(DBUser.chat_id == str(chat_id)).first()
            if record:
                record.bonus_granted = True
                db.commit()
        finally:
            db.close()
