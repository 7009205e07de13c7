"""Create all tables. Run on app and bot startup."""
import logging

from deeza.db.base import Base
from deeza.db.session import engine
from deeza.models import user, conversation_state, cached_gift  # noqa: F401 - register models

logger = logging.getLogger(__name__)


def init_db(bind=None):
    Base.metadata.create_all(bind=bind or engine)
    logger.info("[DB] Tables ready")
