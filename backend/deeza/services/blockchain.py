"""
Blockchain Gateway - DeezaAgent contract on Somnia.

Design:
- Sync web3 calls wrapped in run_in_executor() (web3.py async is fragile)
- Embedded minimal ABI, only the functions we call
- Gas estimation + 20% buffer, nonce from chain
- Every call goes through with_retry(); release gets one extra attempt
- Contract reverts are mapped onto the gift error taxonomy
- Lockout math uses the latest block timestamp, never the local clock
"""
import asyncio
import logging
from decimal import Decimal
from typing import Callable, List, Optional, TypeVar

import requests
from web3 import Web3
from web3.exceptions import ContractLogicError, TimeExhausted

from deeza.core.config import settings
from deeza.core.exceptions import (
    AlreadyClaimed,
    DuplicateGift,
    GatewayNotConfigured,
    GiftError,
    LockedOut,
    NetworkTimeout,
    NotDeposited,
    NotFound,
    Unauthorized,
)
from deeza.core.retry import with_retry
from deeza.schemas.gift import GiftRecord, ZERO_ADDRESS
from deeza.services.gift_codes import derive_gift_id

logger = logging.getLogger(__name__)

T = TypeVar("T")


# ============================================================
# MINIMAL ABI: only functions we call at runtime
# ============================================================

_GIFT_TUPLE = {
    "components": [
        {"name": "gifter", "type": "address"},
        {"name": "recipient", "type": "address"},
        {"name": "token", "type": "address"},
        {"name": "amount", "type": "uint256"},
        {"name": "code", "type": "string"},
        {"name": "ipfsLink", "type": "string"},
        {"name": "claimer", "type": "address"},
        {"name": "claimDeadline", "type": "uint256"},
        {"name": "attempts", "type": "uint8"},
        {"name": "deposited", "type": "bool"},
        {"name": "claimed", "type": "bool"},
    ],
    "name": "",
    "type": "tuple",
}

DEEZA_ABI = [
    {
        "inputs": [
            {"name": "id", "type": "bytes32"},
            {"name": "code", "type": "string"},
            {"name": "ipfsLink", "type": "string"},
            {"name": "recipient", "type": "address"},
            {"name": "token", "type": "address"},
            {"name": "amount", "type": "uint256"},
        ],
        "name": "createGift",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [{"name": "id", "type": "bytes32"}],
        "name": "release",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [
            {"name": "id", "type": "bytes32"},
            {"name": "minutes", "type": "uint256"},
        ],
        "name": "extendClaimTime",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [{"name": "id", "type": "bytes32"}],
        "name": "getGift",
        "outputs": [_GIFT_TUPLE],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [{"name": "gifter", "type": "address"}],
        "name": "getGiftsByGifter",
        "outputs": [dict(_GIFT_TUPLE, type="tuple[]")],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [{"name": "recipient", "type": "address"}],
        "name": "getGiftsByRecipient",
        "outputs": [dict(_GIFT_TUPLE, type="tuple[]")],
        "stateMutability": "view",
        "type": "function",
    },
]

# ZAZZ mock token (testnet): mint for the registration bonus, balanceOf for balances
ZAZZ_ABI = [
    {
        "inputs": [
            {"name": "to", "type": "address"},
            {"name": "amount", "type": "uint256"},
        ],
        "name": "mint",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "constant": True,
        "inputs": [{"name": "account", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"name": "", "type": "uint256"}],
        "type": "function",
    },
]

# Revert reason fragment → taxonomy (checked in order, lower-case)
REVERT_REASONS = [
    ("locked", LockedOut),
    ("only bot", Unauthorized),
    ("unauthorized", Unauthorized),
    ("claimed", AlreadyClaimed),
    ("deposit", NotDeposited),
    ("already exists", DuplicateGift),
    ("not found", NotFound),
    ("does not exist", NotFound),
]


def map_chain_error(exc: Exception) -> GiftError:
    """Translate a web3/transport exception into the gift error taxonomy."""
    if isinstance(exc, GiftError):
        return exc
    if isinstance(exc, ContractLogicError):
        reason = str(exc).lower()
        for fragment, error_cls in REVERT_REASONS:
            if fragment in reason:
                return error_cls(detail=str(exc))
        return NetworkTimeout(f"reverted: {exc}")
    if isinstance(exc, (TimeExhausted, requests.exceptions.RequestException, TimeoutError, ConnectionError)):
        return NetworkTimeout(f"{type(exc).__name__}: {exc}")
    logger.warning(f"[Chain] Unclassified error treated as transient: {type(exc).__name__}: {exc}")
    return NetworkTimeout(f"{type(exc).__name__}: {exc}")


def _record_from_raw(raw, gift_id: Optional[str] = None) -> GiftRecord:
    (gifter, recipient, token, amount, code, link, claimer, deadline, attempts, deposited, claimed) = raw
    return GiftRecord(
        gift_id=gift_id or (derive_gift_id(code) if code else ""),
        code=code,
        gifter_address=gifter,
        recipient_address=recipient,
        token_address=token,
        amount=int(amount),
        content_link=link,
        claimer_address=None if claimer == ZERO_ADDRESS else claimer,
        claim_deadline=int(deadline),
        wrong_attempts=int(attempts),
        deposited=bool(deposited),
        claimed=bool(claimed),
    )


def _id_bytes(gift_id: str) -> bytes:
    return Web3.to_bytes(hexstr=gift_id)


class BlockchainGateway:
    """
    Gift CRUD on the DeezaAgent contract.

    Usage:
        gateway = BlockchainGateway.from_settings()
        gift = await gateway.get_gift(derive_gift_id("bob42"))
        await gateway.release(gift.gift_id)
    """

    def __init__(
        self,
        w3=None,
        contract=None,
        private_key: str = "",
        token_contract=None,
        chain_id: int = None,
        attempts: int = None,
        release_attempts: int = None,
        delay_seconds: float = None,
    ):
        self.w3 = w3
        self.contract = contract
        self.token_contract = token_contract
        self._private_key = private_key
        self._address = ""
        if private_key and w3 is not None:
            self._address = w3.eth.account.from_key(private_key).address
        self.chain_id = chain_id if chain_id is not None else settings.SOMNIA_CHAIN_ID
        self.attempts = attempts if attempts is not None else settings.CHAIN_RETRY_ATTEMPTS
        self.release_attempts = (
            release_attempts if release_attempts is not None else settings.CHAIN_RELEASE_ATTEMPTS
        )
        self.delay_seconds = delay_seconds if delay_seconds is not None else settings.CHAIN_RETRY_DELAY_SECONDS

    @classmethod
    def from_settings(cls) -> "BlockchainGateway":
        """Connect to SOMNIA_RPC. Missing contract/key leaves the gateway unconfigured."""
        w3 = Web3(Web3.HTTPProvider(
            settings.SOMNIA_RPC,
            request_kwargs={"timeout": settings.RPC_TIMEOUT_SECONDS},
        ))
        contract = None
        if settings.DEEZA_AGENT_CONTRACT:
            contract = w3.eth.contract(
                address=Web3.to_checksum_address(settings.DEEZA_AGENT_CONTRACT), abi=DEEZA_ABI
            )
        else:
            logger.warning("[Chain] DEEZA_AGENT_CONTRACT not set - gift calls disabled")

        token_contract = None
        if settings.IS_TESTNET and settings.ZAZZ_TOKEN_ADDRESS:
            token_contract = w3.eth.contract(
                address=Web3.to_checksum_address(settings.ZAZZ_TOKEN_ADDRESS), abi=ZAZZ_ABI
            )

        private_key = settings.BOT_PRIVATE_KEY
        if not private_key:
            logger.warning("[Chain] BOT_PRIVATE_KEY not set - transactions disabled")

        gateway = cls(w3=w3, contract=contract, private_key=private_key, token_contract=token_contract)
        logger.info(
            f"[Chain] Gateway ready: rpc={settings.SOMNIA_RPC} chain_id={settings.SOMNIA_CHAIN_ID} "
            f"testnet={settings.IS_TESTNET}"
        )
        return gateway

    @property
    def is_configured(self) -> bool:
        return self.contract is not None

    @property
    def can_transact(self) -> bool:
        return self.contract is not None and bool(self._private_key)

    # ============================================================
    # PLUMBING
    # ============================================================

    async def _run(self, fn: Callable[[], T]) -> T:
        try:
            return await asyncio.get_running_loop().run_in_executor(None, fn)
        except Exception as e:
            raise map_chain_error(e) from e

    async def _retrying(self, label: str, fn: Callable[[], T], attempts: int = None) -> T:
        return await with_retry(
            lambda: self._run(fn),
            max_attempts=attempts or self.attempts,
            delay_seconds=self.delay_seconds,
            label=label,
        )

    def _require_contract(self):
        if self.contract is None:
            raise GatewayNotConfigured("DEEZA_AGENT_CONTRACT not set")

    def _require_signer(self):
        self._require_contract()
        if not self._private_key:
            raise GatewayNotConfigured("BOT_PRIVATE_KEY not set")

    def _transact(self, tx_fn, sent: Optional[List[str]] = None) -> str:
        """Build, sign, send and wait. Returns the tx hash hex; `sent` collects hashes once broadcast."""
        w3 = self.w3
        tx = tx_fn.build_transaction({
            "from": self._address,
            "nonce": w3.eth.get_transaction_count(self._address),
            "gasPrice": w3.eth.gas_price,
            "chainId": self.chain_id,
        })

        # Gas estimation + 20% buffer
        try:
            tx["gas"] = int(w3.eth.estimate_gas(tx) * 1.2)
        except ContractLogicError:
            raise
        except Exception as gas_err:
            logger.warning(f"[Chain] Gas estimation failed, using default 300k: {gas_err}")
            tx["gas"] = 300_000

        signed = w3.eth.account.sign_transaction(tx, self._private_key)
        tx_hash = w3.eth.send_raw_transaction(signed.raw_transaction)
        tx_hash_hex = Web3.to_hex(tx_hash)
        if sent is not None:
            sent.append(tx_hash_hex)
        receipt = w3.eth.wait_for_transaction_receipt(tx_hash, timeout=settings.TX_RECEIPT_TIMEOUT_SECONDS)

        if receipt["status"] != 1:
            raise NetworkTimeout(f"TX reverted: {tx_hash_hex}")

        logger.info(f"[Chain] TX SUCCESS {tx_hash_hex[:18]}... gas={receipt.get('gasUsed', 0)}")
        return tx_hash_hex

    async def _write(
        self,
        label: str,
        tx_fn,
        applied: Callable[[GiftRecord], bool],
        gift_id: str,
        attempts: int = None,
    ) -> str:
        """
        Send a state-changing call with retries.

        Once a transaction has been broadcast, a later failure (receipt
        timeout, or a revert because the earlier tx already landed) is checked
        against the gift on chain. When `applied` holds, the write succeeded.
        """
        sent: List[str] = []

        async def attempt() -> str:
            try:
                return await self._run(lambda: self._transact(tx_fn, sent))
            except GiftError:
                if sent and await self._write_landed(gift_id, applied):
                    logger.info(f"[Chain] {label} already applied on chain by {sent[-1][:18]}...")
                    return sent[-1]
                raise

        return await with_retry(
            attempt,
            max_attempts=attempts or self.attempts,
            delay_seconds=self.delay_seconds,
            label=label,
        )

    async def _write_landed(self, gift_id: str, applied: Callable[[GiftRecord], bool]) -> bool:
        try:
            raw = await self._run(lambda: self.contract.functions.getGift(_id_bytes(gift_id)).call())
        except GiftError as e:
            logger.warning(f"[Chain] Could not re-read gift after failed write: {e}")
            return False
        return applied(_record_from_raw(raw, gift_id=gift_id))

    # ============================================================
    # WRITES
    # ============================================================

    async def create_gift(
        self, gift_id: str, code: str, content_link: str, recipient: str, token: str, amount: int
    ) -> str:
        self._require_signer()
        tx_fn = self.contract.functions.createGift(
            _id_bytes(gift_id),
            code,
            content_link,
            Web3.to_checksum_address(recipient),
            Web3.to_checksum_address(token or ZERO_ADDRESS),
            int(amount),
        )
        logger.info(f"[Chain] createGift code={code} recipient={recipient[:10]}... amount={amount}")
        return await self._write(
            "createGift", tx_fn, lambda gift: gift.exists and gift.content_link == content_link, gift_id
        )

    async def release(self, gift_id: str) -> str:
        self._require_signer()
        tx_fn = self.contract.functions.release(_id_bytes(gift_id))
        logger.info(f"[Chain] release id={gift_id[:18]}...")
        return await self._write(
            "release", tx_fn, lambda gift: gift.claimed, gift_id, attempts=self.release_attempts
        )

    async def extend_claim_time(self, gift_id: str, minutes: int) -> str:
        self._require_signer()
        tx_fn = self.contract.functions.extendClaimTime(_id_bytes(gift_id), int(minutes))
        logger.info(f"[Chain] extendClaimTime id={gift_id[:18]}... minutes={minutes}")
        return await self._retrying("extendClaimTime", lambda: self._transact(tx_fn))

    async def mint_registration_bonus(self, address: str) -> bool:
        """Testnet-only ZAZZ mint for a first wallet registration. Never raises."""
        if not settings.IS_TESTNET:
            return False
        if self.token_contract is None or not self._private_key:
            logger.warning("[Chain] ZAZZ token or bot key missing - cannot send registration bonus")
            return False
        amount = settings.ZAZZ_BONUS_AMOUNT * 10 ** settings.TOKEN_DECIMALS
        tx_fn = self.token_contract.functions.mint(Web3.to_checksum_address(address), amount)
        try:
            await self._retrying("mint", lambda: self._transact(tx_fn))
            logger.info(f"[Chain] ✅ Registration bonus sent to {address[:10]}...")
            return True
        except GiftError as e:
            logger.error(f"[Chain] Registration bonus error: {e}")
            return False

    # ============================================================
    # READS
    # ============================================================

    async def get_gift(self, gift_id: str) -> GiftRecord:
        self._require_contract()
        raw = await self._retrying(
            "getGift", lambda: self.contract.functions.getGift(_id_bytes(gift_id)).call()
        )
        return _record_from_raw(raw, gift_id=gift_id)

    async def get_gifts_by_gifter(self, address: str) -> List[GiftRecord]:
        self._require_contract()
        raws = await self._retrying(
            "getGiftsByGifter",
            lambda: self.contract.functions.getGiftsByGifter(Web3.to_checksum_address(address)).call(),
        )
        return [_record_from_raw(raw) for raw in raws]

    async def get_gifts_by_recipient(self, address: str) -> List[GiftRecord]:
        self._require_contract()
        raws = await self._retrying(
            "getGiftsByRecipient",
            lambda: self.contract.functions.getGiftsByRecipient(Web3.to_checksum_address(address)).call(),
        )
        return [_record_from_raw(raw) for raw in raws]

    async def get_block_timestamp(self) -> int:
        block = await self._retrying("getBlock", lambda: self.w3.eth.get_block("latest"))
        return int(block["timestamp"])

    async def remaining_lockout_seconds(self, gift: GiftRecord) -> int:
        """Seconds until claim_deadline by chain time; 0 when not locked."""
        if gift.claim_deadline <= 0:
            return 0
        now = await self.get_block_timestamp()
        return max(0, gift.claim_deadline - now)

    async def get_wallet_balances(self, address: str) -> dict:
        """Native balance and, on testnet, the ZAZZ balance (token units)."""
        checksum = Web3.to_checksum_address(address)
        native_wei = await self._retrying("getBalance", lambda: self.w3.eth.get_balance(checksum))
        balances = {
            "native": Decimal(native_wei) / Decimal(10 ** settings.TOKEN_DECIMALS),
            "token": None,
        }
        if self.token_contract is not None:
            raw = await self._retrying(
                "balanceOf", lambda: self.token_contract.functions.balanceOf(checksum).call()
            )
            balances["token"] = Decimal(raw) / Decimal(10 ** settings.TOKEN_DECIMALS)
        return balances

