"""FastAPI dependencies: the shared chain gateway."""
from deeza.agent.factory import get_gateway
from deeza.services.blockchain import BlockchainGateway


def get_chain() -> BlockchainGateway:
    """Overridden in tests with a fake gateway."""
    return get_gateway()
