"""
Token Info - symbol → address and USD price via GeckoTerminal.

Best effort: every lookup returns None on failure instead of raising.
On testnet every ERC-20 symbol resolves to the ZAZZ mock token.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Optional

import requests

from deeza.core.config import settings
from deeza.schemas.gift import ZERO_ADDRESS

logger = logging.getLogger(__name__)

NATIVE_SYMBOLS = {"SOMI", "STT"}
TESTNET_TOKEN_SYMBOL = "ZAZZ"


@dataclass
class TokenInfo:
    token_address: str
    symbol: str
    name: str
    pool_address: Optional[str] = None
    liquidity_usd: float = 0.0


def is_native_symbol(symbol: Optional[str]) -> bool:
    return (symbol or "").upper() in NATIVE_SYMBOLS


class TokenLookup:
    """GeckoTerminal client for the Somnia network."""

    def __init__(self, session: Optional[requests.Session] = None, base_url: str = None, network: str = None):
        self.session = session or requests.Session()
        self.base_url = (base_url or settings.GECKOTERMINAL_BASE).rstrip("/")
        self.network = network or settings.GECKOTERMINAL_NETWORK

    def _get_json(self, path: str, params: dict = None) -> Optional[dict]:
        try:
            response = self.session.get(
                f"{self.base_url}{path}", params=params, timeout=settings.HTTP_TIMEOUT_SECONDS
            )
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning(f"[Price] GeckoTerminal request failed for {path}: {e}")
            return None
        return data if isinstance(data, dict) else None

    def search_token(self, symbol: str) -> Optional[TokenInfo]:
        """Most liquid pool for a symbol (GeckoTerminal orders results)."""
        data = self._get_json("/search/pools", params={"query": symbol, "network": self.network})
        pools = (data or {}).get("data") or []
        if not pools:
            return None

        best_pool = pools[0]
        attributes = best_pool.get("attributes") or {}
        base_token = attributes.get("base_token") or {}
        token_ref = (((best_pool.get("relationships") or {}).get("base_token") or {}).get("data") or {}).get("id", "")
        # ids look like "somnia_0xabc..."
        parts = token_ref.split("_")
        token_address = parts[1] if len(parts) > 1 else symbol

        try:
            liquidity = float(attributes.get("reserve_in_usd") or 0)
        except (TypeError, ValueError):
            liquidity = 0.0

        return TokenInfo(
            token_address=token_address,
            symbol=base_token.get("symbol") or symbol,
            name=base_token.get("name") or "Unknown Token",
            pool_address=attributes.get("address") or best_pool.get("id"),
            liquidity_usd=liquidity,
        )

    def pool_price_usd(self, pool_address: str) -> Optional[float]:
        data = self._get_json(f"/networks/{self.network}/pools/{pool_address}")
        attributes = ((data or {}).get("data") or {}).get("attributes") or {}
        try:
            price = float(attributes.get("base_token_price_usd") or 0)
        except (TypeError, ValueError):
            return None
        return price if price > 0 else None

    def resolve_token_address(self, symbol: Optional[str]) -> Optional[str]:
        """Zero address for native symbols, ZAZZ on testnet, else GeckoTerminal lookup."""
        if not symbol or is_native_symbol(symbol):
            return ZERO_ADDRESS

        if settings.IS_TESTNET:
            if not settings.ZAZZ_TOKEN_ADDRESS or settings.ZAZZ_TOKEN_ADDRESS == ZERO_ADDRESS:
                logger.warning("[Price] ZAZZ_TOKEN_ADDRESS not set - cannot resolve testnet token")
                return None
            return settings.ZAZZ_TOKEN_ADDRESS

        info = self.search_token(symbol)
        return info.token_address if info else None

    def usd_to_tokens(self, symbol: str, usd_amount) -> Optional[Decimal]:
        """USD → token amount at the pool price. None when no price is available."""
        symbol = (symbol or "").upper()
        if is_native_symbol(symbol):
            symbol = settings.NATIVE_TOKEN

        info = self.search_token(symbol)
        if not info or not info.pool_address:
            return None
        price = self.pool_price_usd(info.pool_address)
        if not price:
            return None
        try:
            return Decimal(str(usd_amount)) / Decimal(str(price))
        except (InvalidOperation, ValueError, ZeroDivisionError):
            return None
