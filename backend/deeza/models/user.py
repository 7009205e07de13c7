from sqlalchemy import Column, Integer, String, Boolean, DateTime
from sqlalchemy.sql import func

from deeza.db.base import Base


class User(Base):
    """Chat identity ↔ wallet address. Created on first interaction, never deleted."""
    __tablename__ = "deeza_users"

    id = Column(Integer, primary_key=True, index=True)
    chat_id = Column(String(64), unique=True, nullable=False, index=True)
    display_name = Column(String(255), nullable=True, index=True)  # lower-cased @handle
    wallet_address = Column(String(42), nullable=True)
    bonus_granted = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<User chat_id={self.chat_id} name={self.display_name}>"
