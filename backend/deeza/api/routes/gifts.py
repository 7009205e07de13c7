"""Read-only gift lookup by code or by wallet address."""
from typing import List

from fastapi import APIRouter, Depends, Query

from deeza.api.deps import get_chain
from deeza.core.exceptions import ApiError, GiftError, NotFound
from deeza.schemas.gift import GiftResponse
from deeza.services.blockchain import BlockchainGateway
from deeza.services.gift_codes import derive_gift_id
from deeza.services.user_registry import is_valid_address

router = APIRouter()


@router.get("/by-address/{address}", response_model=List[GiftResponse])
async def gifts_by_address(
    address: str,
    role: str = Query("received", pattern="^(sent|received)$"),
    chain: BlockchainGateway = Depends(get_chain),
):
    """Gifts a wallet has sent or received."""
    if not is_valid_address(address):
        raise ApiError.bad_request("Invalid wallet address")
    try:
        if role == "sent":
            gifts = await chain.get_gifts_by_gifter(address)
        else:
            gifts = await chain.get_gifts_by_recipient(address)
    except GiftError as e:
        raise ApiError.unavailable(e)
    return [GiftResponse.from_record(g) for g in gifts]


@router.get("/{code}", response_model=GiftResponse)
async def get_gift(code: str, chain: BlockchainGateway = Depends(get_chain)):
    """On-chain state of one gift, with whether it can be claimed right now."""
    code = code.strip().lower()
    try:
        gift = await chain.get_gift(derive_gift_id(code))
        if not gift.exists:
            raise ApiError.not_found("Gift", reason=code)
        now = await chain.get_block_timestamp()
    except NotFound:
        raise ApiError.not_found("Gift", reason=code)
    except GiftError as e:
        raise ApiError.unavailable(e)
    return GiftResponse.from_record(gift, claimable=gift.is_claimable(now))
