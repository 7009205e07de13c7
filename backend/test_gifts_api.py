"""Read-only gift API against a fake chain gateway."""
import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__)))

from fastapi.testclient import TestClient

from deeza.api.deps import get_chain
from deeza.core.exceptions import NetworkTimeout
from deeza.main import app
from deeza.schemas.gift import GiftRecord
from deeza.services.gift_codes import derive_gift_id

GIFTER = "0x" + "a" * 40
RECIPIENT = "0x" + "b" * 40


class FakeChain:
    def __init__(self, gifts=None, now=1_700_000_000, error=None):
        self.gifts = gifts or {}
        self.now = now
        self.error = error

    async def get_gift(self, gift_id):
        if self.error:
            raise self.error
        return self.gifts.get(gift_id, GiftRecord(gift_id=gift_id))

    async def get_block_timestamp(self):
        return self.now

    async def get_gifts_by_gifter(self, address):
        if self.error:
            raise self.error
        return [g for g in self.gifts.values() if g.gifter_address == address]

    async def get_gifts_by_recipient(self, address):
        if self.error:
            raise self.error
        return [g for g in self.gifts.values() if g.recipient_address == address]


def _gift(code, **overrides):
    data = dict(
        gift_id=derive_gift_id(code),
        code=code,
        gifter_address=GIFTER,
        recipient_address=RECIPIENT,
        amount=25 * 10 ** 17,
        content_link="ipfs://Qm1",
        deposited=True,
    )
    data.update(overrides)
    return GiftRecord(**data)


def client_with(chain):
    app.dependency_overrides[get_chain] = lambda: chain
    return TestClient(app)


def teardown_function(function):
    app.dependency_overrides.clear()


def test_health():
    response = TestClient(app).get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["network"] in ("testnet", "mainnet")
    assert response.headers["X-Content-Type-Options"] == "nosniff"


def test_gift_by_code():
    print("\n" + "=" * 70)
    print("TEST: GET /gifts/{code}")
    print("=" * 70)
    chain = FakeChain({derive_gift_id("bob42"): _gift("bob42")})
    response = client_with(chain).get("/gifts/BOB42")
    assert response.status_code == 200
    body = response.json()
    assert body["code"] == "bob42"
    assert body["amount"] == "2.5"
    assert body["status"] == "pending"
    assert body["claimable"] is True
    print("  PASS: pending gift is claimable")


def test_locked_gift_is_not_claimable():
    chain = FakeChain({derive_gift_id("bob42"): _gift("bob42", claim_deadline=1_700_000_600)})
    body = client_with(chain).get("/gifts/bob42").json()
    assert body["claimable"] is False
    assert body["claim_deadline"] == 1_700_000_600


def test_unknown_gift_is_404():
    response = client_with(FakeChain()).get("/gifts/nobody1")
    assert response.status_code == 404


def test_chain_failure_is_503():
    response = client_with(FakeChain(error=NetworkTimeout("rpc down"))).get("/gifts/bob42")
    assert response.status_code == 503
    assert "rpc down" not in response.text


def test_gifts_by_address():
    chain = FakeChain({
        derive_gift_id("bob42"): _gift("bob42"),
        derive_gift_id("bob7"): _gift("bob7", claimed=True),
    })
    client = client_with(chain)

    received = client.get(f"/gifts/by-address/{RECIPIENT}")
    assert received.status_code == 200
    assert sorted(g["code"] for g in received.json()) == ["bob42", "bob7"]

    sent = client.get(f"/gifts/by-address/{GIFTER}", params={"role": "sent"})
    assert len(sent.json()) == 2
    assert {g["status"] for g in sent.json()} == {"pending", "claimed"}

    assert client.get("/gifts/by-address/0x123").status_code == 400
    assert client.get(f"/gifts/by-address/{GIFTER}", params={"role": "everyone"}).status_code == 422


if __name__ == "__main__":
    test_health()
    test_gift_by_code()
    test_locked_gift_is_not_claimable()
    test_unknown_gift_is_404()
    test_chain_failure_is_503()
    test_gifts_by_address()
    app.dependency_overrides.clear()
    print("\n✅ ALL API TESTS PASSED")
