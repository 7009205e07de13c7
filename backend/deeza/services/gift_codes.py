"""Gift codes, ids and amount conversion.

A code is what people type ("bob42"); the on-chain id is keccak256(code),
the same value ethers.id(code) produces.
"""
import random
from decimal import Decimal, InvalidOperation, ROUND_DOWN, localcontext
from typing import Optional, Union

from web3 import Web3

from deeza.core.config import settings

UINT256_MAX = 2 ** 256 - 1


def generate_gift_code(recipient: str, rng: Optional[random.Random] = None) -> str:
    """lowercase(recipient) + random number in 0..99"""
    rng = rng or random
    return f"{recipient.strip().lstrip('@').lower()}{rng.randint(0, 99)}"


def derive_gift_id(code: str) -> str:
    """0x-prefixed keccak256 of the UTF-8 code."""
    return Web3.to_hex(Web3.keccak(text=code))


def parse_amount(value: Union[str, int, float, Decimal, None]) -> Optional[Decimal]:
    """Positive Decimal or None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = Decimal(str(value).replace(",", "").strip())
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite() or amount <= 0:
        return None
    return amount


def to_base_units(amount: Union[str, Decimal], decimals: int = None) -> int:
    """Fixed-point conversion, truncating below the token's precision.

    Raises:
        ValueError: amount is not positive, exceeds MAX_GIFT_AMOUNT or overflows uint256
    """
    decimals = settings.TOKEN_DECIMALS if decimals is None else decimals
    value = parse_amount(amount)
    if value is None:
        raise ValueError("Amount must be a positive number")
    if value > settings.MAX_GIFT_AMOUNT:
        raise ValueError(f"Amount exceeds the maximum of {settings.MAX_GIFT_AMOUNT}")

    with localcontext() as ctx:
        ctx.prec = 100
        units = int((value * (Decimal(10) ** decimals)).to_integral_value(rounding=ROUND_DOWN))
    if units <= 0:
        raise ValueError("Amount is below the smallest unit")
    if units > UINT256_MAX:
        raise ValueError("Amount overflows uint256")
    return units


def format_base_units(units: int, decimals: int = None) -> str:
    decimals = settings.TOKEN_DECIMALS if decimals is None else decimals
    with localcontext() as ctx:
        ctx.prec = 100
        value = Decimal(units) / (Decimal(10) ** decimals)
        return format(value.normalize(), "f")
