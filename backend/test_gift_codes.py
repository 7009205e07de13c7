"""Gift codes, ids, amount conversion and the gift data contracts."""
import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__)))

import random
import re
from decimal import Decimal

import pytest

from deeza.schemas.gift import ContentBlob, GiftRecord, GiftResponse, ZERO_ADDRESS
from deeza.services.gift_codes import (
    UINT256_MAX,
    derive_gift_id,
    format_base_units,
    generate_gift_code,
    parse_amount,
    to_base_units,
)


def test_code_is_handle_plus_number():
    rng = random.Random(7)
    for _ in range(50):
        code = generate_gift_code("@Bob", rng=rng)
        assert re.fullmatch(r"bob\d{1,2}", code), code


def test_gift_id_is_keccak_of_code():
    gift_id = derive_gift_id("bob42")
    assert gift_id.startswith("0x")
    assert len(gift_id) == 66
    assert gift_id == derive_gift_id("bob42")
    assert gift_id != derive_gift_id("bob43")
    # keccak256("") is a well known constant
    assert derive_gift_id("") == "0xc5d2460186f7233c927e7db2dcc703c0e500b653ca82273b7bfad8045d85a470"


def test_parse_amount():
    assert parse_amount("10") == Decimal("10")
    assert parse_amount("1,000.5") == Decimal("1000.5")
    assert parse_amount(0) is None
    assert parse_amount("-3") is None
    assert parse_amount("abc") is None
    assert parse_amount("NaN") is None
    assert parse_amount(None) is None
    assert parse_amount(True) is None


def test_to_base_units():
    print("\n" + "=" * 70)
    print("TEST: amount -> base units")
    print("=" * 70)
    assert to_base_units("10") == 10 * 10 ** 18
    assert to_base_units("0.5") == 5 * 10 ** 17
    assert to_base_units("1.5", decimals=6) == 1_500_000
    # Truncates below the token's precision
    assert to_base_units("1.1234567", decimals=6) == 1_123_456
    assert to_base_units(Decimal("123456789.123456789123456789")) == 123456789123456789123456789
    print("  PASS: exact fixed-point conversion")


def test_to_base_units_rejects_bad_amounts():
    with pytest.raises(ValueError):
        to_base_units("0")
    with pytest.raises(ValueError):
        to_base_units("-1")
    with pytest.raises(ValueError):
        to_base_units("0.0000001", decimals=6)
    with pytest.raises(ValueError):
        to_base_units("10000000000000000")
    with pytest.raises(ValueError):
        to_base_units("1", decimals=100)
    assert UINT256_MAX == 2 ** 256 - 1


def test_format_base_units():
    assert format_base_units(10 * 10 ** 18) == "10"
    assert format_base_units(5 * 10 ** 17) == "0.5"
    assert format_base_units(1_500_000, decimals=6) == "1.5"


def test_content_blob_normalises_older_shapes():
    print("\n" + "=" * 70)
    print("TEST: content blob normalisation")
    print("=" * 70)
    legacy = ContentBlob.model_validate({"question": "Where did we meet?", "answer": "paris"})
    assert legacy.expected_answers == ["paris"]
    assert legacy.canonical_answer == "paris"

    proofs = ContentBlob.model_validate({"proofs": ["paris", "france"], "message": "  "})
    assert proofs.expected_answers == ["paris", "france"]
    assert proofs.question == "What's the proof?"
    assert proofs.message is None

    empty = ContentBlob.model_validate({"question": "?"})
    assert empty.expected_answers == []
    assert empty.canonical_answer is None

    upload = ContentBlob(question="Q", expected_answers=["a"], message="hi", gifter="alice", recipient="bob").to_upload()
    assert upload["answer"] == "a"
    assert upload["proofs"] == ["a"]
    assert upload["expected_answers"] == ["a"]
    print("  PASS: answer/proofs/expected_answers all read the same")


def test_gift_record_status():
    missing = GiftRecord()
    assert not missing.exists

    gift = GiftRecord(
        gift_id=derive_gift_id("bob42"),
        code="bob42",
        gifter_address="0x" + "a" * 40,
        recipient_address="0x" + "b" * 40,
        amount=10 * 10 ** 18,
        deposited=True,
    )
    assert gift.exists
    assert gift.token_address == ZERO_ADDRESS
    assert gift.status_label == "pending"
    assert gift.is_claimable(1000)
    assert gift.amount_tokens() == Decimal(10)

    locked = gift.model_copy(update={"claim_deadline": 2000})
    assert locked.is_locked(1999)
    assert not locked.is_claimable(1999)
    assert locked.is_claimable(2000)

    claimed = gift.model_copy(update={"claimed": True})
    assert claimed.status_label == "claimed"
    assert not claimed.is_claimable(1000)

    response = GiftResponse.from_record(gift, claimable=True)
    assert response.amount == "10"
    assert response.token == ZERO_ADDRESS
    assert response.status == "pending"


if __name__ == "__main__":
    test_code_is_handle_plus_number()
    test_gift_id_is_keccak_of_code()
    test_parse_amount()
    test_to_base_units()
    test_to_base_units_rejects_bad_amounts()
    test_format_base_units()
    test_content_blob_normalises_older_shapes()
    test_gift_record_status()
    print("\n✅ ALL GIFT CODE TESTS PASSED")
