"""Process-wide orchestrator wired to the real collaborators."""
import logging
from typing import Optional

from deeza.agent.orchestrator import GiftOrchestrator
from deeza.services.blockchain import BlockchainGateway
from deeza.services.content_store import ContentStore
from deeza.services.context_store import ContextStore
from deeza.services.gift_cache import GiftCache
from deeza.services.token_info import TokenLookup
from deeza.services.user_registry import UserRegistry

logger = logging.getLogger(__name__)

_orchestrator: Optional[GiftOrchestrator] = None
_gateway: Optional[BlockchainGateway] = None


def get_gateway() -> BlockchainGateway:
    """Shared gateway (one RPC connection per process)."""
    global _gateway
    if _gateway is None:
        _gateway = BlockchainGateway.from_settings()
    return _gateway


def get_orchestrator() -> GiftOrchestrator:
    """Get or create the singleton orchestrator.

    The transport sets `notifier` once the bot application exists.
    """
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = GiftOrchestrator(
            contexts=ContextStore(),
            registry=UserRegistry(),
            gateway=get_gateway(),
            content_store=ContentStore(),
            tokens=TokenLookup(),
            gift_cache=GiftCache(),
        )
        logger.info("[Agent] Orchestrator ready")
    return _orchestrator
