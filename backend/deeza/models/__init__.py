from deeza.models.user import User
from deeza.models.conversation_state import ConversationState
from deeza.models.cached_gift import CachedGift

__all__ = ["User", "ConversationState", "CachedGift"]
