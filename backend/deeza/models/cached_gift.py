"""Local mirror of gifts created through the bot.

The chain stays authoritative for gift status; this table is only consulted
as a fallback when resolving the wallet a release should pay out to.
"""
from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func

from deeza.db.base import Base


class CachedGift(Base):
    __tablename__ = "deeza_gift_cache"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(128), unique=True, nullable=False, index=True)
    gift_id = Column(String(66), nullable=False)
    gifter_chat_id = Column(String(64), nullable=False)
    recipient_handle = Column(String(255), nullable=True)
    recipient_wallet = Column(String(42), nullable=True)
    token_symbol = Column(String(32), nullable=True)
    token_address = Column(String(42), nullable=True)
    amount = Column(String(78), nullable=False)  # base units as decimal string
    content_link = Column(String(512), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
