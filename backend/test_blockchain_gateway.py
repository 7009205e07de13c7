"""
Blockchain gateway against a fake web3 object.

Tests:
1. getGift tuples decode into GiftRecord
2. Lockout uses chain time, not the local clock
3. Transient RPC errors are retried, reverts are not
4. Transactions get a 20% gas buffer and are signed by the bot key
5. Missing contract or key raises GatewayNotConfigured
6. A write retried after a receipt timeout is settled by re-reading the gift
"""
import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__)))

import asyncio
from decimal import Decimal

import pytest
from web3.exceptions import ContractLogicError, TimeExhausted

from deeza.core.exceptions import DuplicateGift, GatewayNotConfigured, NetworkTimeout, NotFound
from deeza.schemas.gift import ZERO_ADDRESS
from deeza.services.blockchain import BlockchainGateway
from deeza.services.gift_codes import derive_gift_id

GIFTER = "0x" + "a" * 40
RECIPIENT = "0x" + "b" * 40
BOT = "0x" + "e" * 40
NOW = 1_700_000_000


def raw_gift(code="bob42", deadline=0, attempts=0, deposited=True, claimed=False):
    return (
        GIFTER, RECIPIENT, ZERO_ADDRESS, 10 * 10 ** 18, code, "ipfs://Qm1",
        ZERO_ADDRESS, deadline, attempts, deposited, claimed,
    )


class FakeCall:
    """One contract function call; raises the queued errors first."""

    def __init__(self, result, errors=None, name=""):
        self.result = result
        self.errors = errors if errors is not None else []
        self.name = name
        self.calls = 0
        self.args = ()

    def __call__(self, *args):
        self.args = args
        return self

    def call(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.result

    def build_transaction(self, params):
        return dict(params, to="contract", data=self.name)


class FakeFunctions:
    def __init__(self):
        self.getGift = FakeCall(raw_gift())
        self.getGiftsByGifter = FakeCall([raw_gift("bob42"), raw_gift("bob7", claimed=True)])
        self.getGiftsByRecipient = FakeCall([])
        self.createGift = FakeCall(None, name="createGift")
        self.release = FakeCall(None, name="release")
        self.extendClaimTime = FakeCall(None, name="extendClaimTime")


class FakeContract:
    def __init__(self):
        self.functions = FakeFunctions()


class FakeSigned:
    raw_transaction = b"\x01signed"


class FakeAccountApi:
    def __init__(self):
        self.signed = []

    def from_key(self, key):
        return type("Account", (), {"address": BOT})()

    def sign_transaction(self, tx, key):
        self.signed.append((tx, key))
        return FakeSigned()


class FakeEth:
    def __init__(self):
        self.account = FakeAccountApi()
        self.gas_price = 10
        self.sent = []
        self.receipt_status = 1
        self.gas_errors = []
        self.receipt_errors = []
        self.on_mined = None

    def get_block(self, tag):
        return {"timestamp": NOW}

    def get_balance(self, address):
        return 3 * 10 ** 18

    def get_transaction_count(self, address):
        return 7

    def estimate_gas(self, tx):
        error = self.gas_errors.pop(0) if self.gas_errors else None
        if error:
            raise error
        return 100_000

    def send_raw_transaction(self, raw):
        self.sent.append(raw)
        return b"\x12" * 32

    def wait_for_transaction_receipt(self, tx_hash, timeout=None):
        if self.on_mined:
            self.on_mined()
        if self.receipt_errors:
            raise self.receipt_errors.pop(0)
        return {"status": self.receipt_status, "gasUsed": 90_000}


class FakeWeb3:
    def __init__(self):
        self.eth = FakeEth()


def make_gateway(private_key="0x" + "1" * 64, contract=None, **kwargs):
    return BlockchainGateway(
        w3=FakeWeb3(),
        contract=contract if contract is not None else FakeContract(),
        private_key=private_key,
        chain_id=50312,
        attempts=3,
        release_attempts=4,
        delay_seconds=0,
        **kwargs,
    )


def test_get_gift_decodes_record():
    print("\n" + "=" * 70)
    print("TEST 1: getGift decoding")
    print("=" * 70)
    gateway = make_gateway()
    gift_id = derive_gift_id("bob42")
    gift = asyncio.run(gateway.get_gift(gift_id))

    assert gift.gift_id == gift_id
    assert gift.code == "bob42"
    assert gift.gifter_address == GIFTER
    assert gift.amount == 10 * 10 ** 18
    assert gift.claimer_address is None
    assert gift.deposited and not gift.claimed
    assert gateway.contract.functions.getGift.args == (bytes.fromhex(gift_id[2:]),)
    print("  PASS: 11-field tuple decoded")


def test_gift_lists():
    gateway = make_gateway()
    sent = asyncio.run(gateway.get_gifts_by_gifter(GIFTER))
    assert [g.code for g in sent] == ["bob42", "bob7"]
    assert sent[1].claimed
    assert sent[0].gift_id == derive_gift_id("bob42")
    assert asyncio.run(gateway.get_gifts_by_recipient(RECIPIENT)) == []


def test_lockout_uses_chain_time():
    print("\n" + "=" * 70)
    print("TEST 2: lockout by block timestamp")
    print("=" * 70)
    gateway = make_gateway()
    functions = gateway.contract.functions

    functions.getGift.result = raw_gift(deadline=NOW + 90)
    gift = asyncio.run(gateway.get_gift(derive_gift_id("bob42")))
    assert asyncio.run(gateway.remaining_lockout_seconds(gift)) == 90

    functions.getGift.result = raw_gift(deadline=NOW - 1)
    gift = asyncio.run(gateway.get_gift(derive_gift_id("bob42")))
    assert asyncio.run(gateway.remaining_lockout_seconds(gift)) == 0

    functions.getGift.result = raw_gift(deadline=0)
    gift = asyncio.run(gateway.get_gift(derive_gift_id("bob42")))
    assert asyncio.run(gateway.remaining_lockout_seconds(gift)) == 0
    print("  PASS: 90s remaining by chain time")


def test_transient_read_errors_are_retried():
    gateway = make_gateway()
    get_gift = gateway.contract.functions.getGift
    get_gift.errors = [TimeoutError("slow"), ConnectionError("reset")]

    gift = asyncio.run(gateway.get_gift(derive_gift_id("bob42")))
    assert gift.code == "bob42"
    assert get_gift.calls == 3

    get_gift.errors = [TimeoutError("slow")] * 5
    get_gift.calls = 0
    with pytest.raises(NetworkTimeout):
        asyncio.run(gateway.get_gift(derive_gift_id("bob42")))
    assert get_gift.calls == 3


def test_revert_is_not_retried():
    gateway = make_gateway()
    get_gift = gateway.contract.functions.getGift
    get_gift.errors = [ContractLogicError("execution reverted: Gift not found")]

    with pytest.raises(NotFound):
        asyncio.run(gateway.get_gift(derive_gift_id("nobody1")))
    assert get_gift.calls == 1


def test_create_gift_transaction():
    print("\n" + "=" * 70)
    print("TEST 4: createGift transaction")
    print("=" * 70)
    gateway = make_gateway()
    gift_id = derive_gift_id("bob42")

    tx_hash = asyncio.run(gateway.create_gift(gift_id, "bob42", "ipfs://Qm1", RECIPIENT, ZERO_ADDRESS, 10 ** 18))
    assert tx_hash == "0x" + "12" * 32

    create = gateway.contract.functions.createGift
    assert create.args[1:3] == ("bob42", "ipfs://Qm1")
    assert create.args[3].lower() == RECIPIENT
    assert create.args[5] == 10 ** 18

    tx, key = gateway.w3.eth.account.signed[0]
    assert tx["gas"] == 120_000
    assert tx["nonce"] == 7
    assert tx["chainId"] == 50312
    assert tx["from"] == BOT
    print("  PASS: gas 100k -> 120k, signed by the bot")


def test_failed_receipt_is_transient():
    gateway = make_gateway()
    gateway.w3.eth.receipt_status = 0
    with pytest.raises(NetworkTimeout):
        asyncio.run(gateway.release(derive_gift_id("bob42")))
    # release gets the larger attempt budget
    assert len(gateway.w3.eth.sent) == 4


def test_unconfigured_gateway():
    no_contract = BlockchainGateway(w3=FakeWeb3(), contract=None, private_key="", delay_seconds=0)
    assert not no_contract.is_configured
    with pytest.raises(GatewayNotConfigured):
        asyncio.run(no_contract.get_gift(derive_gift_id("bob42")))

    read_only = make_gateway(private_key="")
    assert read_only.is_configured and not read_only.can_transact
    with pytest.raises(GatewayNotConfigured):
        asyncio.run(read_only.release(derive_gift_id("bob42")))
    assert asyncio.run(read_only.mint_registration_bonus(RECIPIENT)) is False


def test_wallet_balances():
    gateway = make_gateway()
    balances = asyncio.run(gateway.get_wallet_balances(RECIPIENT))
    assert balances["native"] == Decimal(3)
    assert balances["token"] is None


EMPTY_GIFT = (ZERO_ADDRESS, ZERO_ADDRESS, ZERO_ADDRESS, 0, "", "", ZERO_ADDRESS, 0, 0, False, False)


def test_create_mined_after_receipt_timeout_is_success():
    print("\n" + "=" * 70)
    print("TEST 6: createGift lands although the receipt wait timed out")
    print("=" * 70)
    gateway = make_gateway()
    eth = gateway.w3.eth
    get_gift = gateway.contract.functions.getGift
    get_gift.result = EMPTY_GIFT

    def mined():
        get_gift.result = raw_gift(deposited=False)

    eth.on_mined = mined
    eth.receipt_errors = [TimeExhausted("no receipt after 120s")]

    tx_hash = asyncio.run(
        gateway.create_gift(derive_gift_id("bob42"), "bob42", "ipfs://Qm1", RECIPIENT, ZERO_ADDRESS, 10 ** 18)
    )
    assert tx_hash == "0x" + "12" * 32
    assert len(eth.sent) == 1
    print("  PASS: chain re-read confirms the gift, no second send")


def test_create_retry_reverting_as_existing_is_success():
    gateway = make_gateway()
    eth = gateway.w3.eth
    get_gift = gateway.contract.functions.getGift
    get_gift.result = EMPTY_GIFT
    # First re-read fails, so a second attempt is sent and reverts
    get_gift.errors = [TimeoutError("slow")]

    def mined():
        get_gift.result = raw_gift(deposited=False)

    eth.on_mined = mined
    eth.receipt_errors = [TimeExhausted("no receipt")]
    eth.gas_errors = [None, ContractLogicError("execution reverted: Gift already exists")]

    tx_hash = asyncio.run(
        gateway.create_gift(derive_gift_id("bob42"), "bob42", "ipfs://Qm1", RECIPIENT, ZERO_ADDRESS, 10 ** 18)
    )
    assert tx_hash == "0x" + "12" * 32
    assert len(eth.sent) == 1


def test_create_on_taken_code_is_duplicate():
    gateway = make_gateway()
    gateway.w3.eth.gas_errors = [ContractLogicError("execution reverted: Gift already exists")]

    with pytest.raises(DuplicateGift):
        asyncio.run(
            gateway.create_gift(derive_gift_id("bob42"), "bob42", "ipfs://Qm9", RECIPIENT, ZERO_ADDRESS, 1)
        )
    assert gateway.w3.eth.sent == []


def test_release_retry_reverting_as_claimed_is_success():
    gateway = make_gateway()
    eth = gateway.w3.eth
    get_gift = gateway.contract.functions.getGift
    get_gift.errors = [TimeoutError("slow")]

    def mined():
        get_gift.result = raw_gift(claimed=True)

    eth.on_mined = mined
    eth.receipt_errors = [TimeExhausted("no receipt")]
    eth.gas_errors = [None, ContractLogicError("execution reverted: Already claimed")]

    tx_hash = asyncio.run(gateway.release(derive_gift_id("bob42")))
    assert tx_hash == "0x" + "12" * 32
    assert len(eth.sent) == 1


if __name__ == "__main__":
    test_get_gift_decodes_record()
    test_gift_lists()
    test_lockout_uses_chain_time()
    test_transient_read_errors_are_retried()
    test_revert_is_not_retried()
    test_create_gift_transaction()
    test_failed_receipt_is_transient()
    test_create_mined_after_receipt_timeout_is_success()
    test_create_retry_reverting_as_existing_is_success()
    test_create_on_taken_code_is_duplicate()
    test_release_retry_reverting_as_claimed_is_success()
    test_unconfigured_gateway()
    test_wallet_balances()
    print("\n✅ ALL GATEWAY TESTS PASSED")
