"""
Intent parsing: keyword fallback, LLM output validation, schema cleaning.

Tests:
1. Fallback parser recognises every action
2. Addresses and @handles never leak into amount/token detection
3. Malformed LLM output becomes a chat reply, never an action
4. LLM transport failure falls back to keywords
5. amount vs amount_usd conflicts resolved from the original text
"""
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent))

from ai.fallback import parse_message_fallback
from ai.intent_parser import TROUBLE_MESSAGE, extract_json_object, parse_message_with_ai
from ai.intent_schema import ParsedIntent, clean_amount, clean_handle
from ai.phrasing import classify_confirmation, enhance_gift_message, proof_to_question

ADDRESS = "0x" + "c" * 40


class FakeClient:
    """Stands in for GroqClient: returns canned replies in order."""

    def __init__(self, *replies, available=True):
        self.replies = list(replies)
        self.available = available
        self.prompts = []

    def is_available(self):
        return self.available

    def complete(self, prompt, system=None, temperature=None, max_tokens=None, max_retries=2):
        self.prompts.append(prompt)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


def test_fallback_send_gift():
    print("\n" + "=" * 70)
    print("TEST 1: Fallback gift parsing")
    print("=" * 70)
    result = parse_message_fallback("gift @Bob 10 USDC")
    assert result["action"] == "send_gift"
    assert result["params"] == {"recipient": "bob", "amount": "10", "token": "USDC"}

    result = parse_message_fallback("send $5 of SOMI to alice")
    assert result["action"] == "send_gift"
    assert result["params"]["recipient"] == "alice"
    assert result["params"]["amount_usd"] == "5"
    assert "amount" not in result["params"]
    assert result["params"]["token"] == "SOMI"

    result = parse_message_fallback(f"gift @carol 2.5 STT {ADDRESS}")
    assert result["params"]["address"] == ADDRESS
    assert result["params"]["amount"] == "2.5"
    assert result["params"]["token"] == "STT"
    print("  PASS: recipient, amount, USD amount, token, address")


def test_fallback_other_actions():
    claim = parse_message_fallback("claim Bob42")
    assert claim["action"] == "claim_gift"
    assert claim["params"] == {"code": "bob42"}

    register = parse_message_fallback(f"register me {ADDRESS}")
    assert register["action"] == "register_wallet"
    assert register["params"] == {"address": ADDRESS}

    show = parse_message_fallback("show my sent gifts")
    assert show["action"] == "show_gifts"
    assert show["params"] == {"type": "sent"}

    chat = parse_message_fallback("hello there")
    assert chat["action"] == "chat"
    assert chat["params"] == {}
    assert chat["message"]


def test_malformed_llm_output_is_chat():
    print("\n" + "=" * 70)
    print("TEST 2: Malformed LLM output")
    print("=" * 70)
    for reply in ("not json at all", '{"action": "send_gift", ', '{"action": "launch_rocket", "params": {}}'):
        result = parse_message_with_ai("gift @bob 10 USDC", client=FakeClient(reply))
        assert result["action"] == "chat", reply
        assert result["params"] == {}
        assert result["message"] == TROUBLE_MESSAGE
        assert result["source"] == "llm"
    print("  PASS: no action produced from bad output")


def test_llm_output_validated():
    reply = '```json\n{"action": "send_gift", "params": {"recipient": "@Bob", "amount": "10", "token": "usdc", "code": "x"}, "message": ""}\n```'
    result = parse_message_with_ai("gift @bob 10 usdc", client=FakeClient(reply))
    assert result["action"] == "send_gift"
    assert result["params"] == {"recipient": "bob", "amount": "10", "token": "USDC"}
    assert result["source"] == "llm"


def test_llm_unavailable_or_failing_uses_fallback():
    unavailable = parse_message_with_ai("claim bob42", client=FakeClient(available=False))
    assert unavailable["action"] == "claim_gift"
    assert unavailable["source"] == "fallback"

    failing = parse_message_with_ai("claim bob42", client=FakeClient(RuntimeError("boom")))
    assert failing["action"] == "claim_gift"
    assert failing["source"] == "fallback"

    silent = parse_message_with_ai("claim bob42", client=FakeClient(None))
    assert silent["source"] == "fallback"

    empty = parse_message_with_ai("   ", client=FakeClient())
    assert empty["action"] == "chat"


def test_amount_conflict_uses_source_text():
    print("\n" + "=" * 70)
    print("TEST 3: amount vs amount_usd")
    print("=" * 70)
    data = {"action": "send_gift", "params": {"recipient": "bob", "amount": "5", "amount_usd": "5"}}

    usd = ParsedIntent.model_validate(data, context={"source_text": "gift bob $5 of SOMI"})
    assert usd.params.get("amount_usd") == "5"
    assert "amount" not in usd.params

    tokens = ParsedIntent.model_validate(data, context={"source_text": "gift bob 5 SOMI"})
    assert tokens.params.get("amount") == "5"
    assert "amount_usd" not in tokens.params
    print("  PASS: only one amount survives")


def test_schema_helpers():
    assert clean_handle(" @Bob ") == "bob"
    assert clean_handle("@") is None
    assert clean_handle(42) is None
    assert clean_amount("1,000") == "1000"
    assert clean_amount("$2.50") == "2.5"
    assert clean_amount("-1") is None
    assert clean_amount(True) is None

    intent = ParsedIntent.model_validate({"action": "SHOW_GIFTS", "params": {"type": "weird"}})
    assert intent.to_dict() == {"action": "show_gifts", "params": {"type": "all"}, "message": ""}

    chat = ParsedIntent.model_validate({"action": "chat", "params": {"recipient": "x"}, "message": "hi"})
    assert chat.params == {}


def test_extract_json_object():
    assert extract_json_object('Sure! {"correct": true} hope that helps') == {"correct": True}
    assert extract_json_object("[1, 2]") is None
    assert extract_json_object("") is None


def test_phrasing_helpers():
    question, answer = proof_to_question(
        "Their favorite color is red",
        client=FakeClient('{"question": "What is your favorite color?", "answer": "Red"}'),
    )
    assert question == "What is your favorite color?"
    assert answer == "red"

    assert proof_to_question("we met in paris", client=FakeClient(available=False)) == (
        "we met in paris", "we met in paris"
    )
    assert proof_to_question("x", client=FakeClient("garbage")) == ("x", "x")

    assert classify_confirmation("sure thing", client=FakeClient('{"isConfirm": true, "isCancel": false}')) == "confirm"
    assert classify_confirmation("nah", client=FakeClient(available=False)) is None

    assert enhance_gift_message("happy bday", client=FakeClient('"Happy birthday! 🎉"')) == "Happy birthday! 🎉"
    assert enhance_gift_message("happy bday", client=FakeClient(RuntimeError("down"))) == "happy bday"


if __name__ == "__main__":
    test_fallback_send_gift()
    test_fallback_other_actions()
    test_malformed_llm_output_is_chat()
    test_llm_output_validated()
    test_llm_unavailable_or_failing_uses_fallback()
    test_amount_conflict_uses_source_text()
    test_schema_helpers()
    test_extract_json_object()
    test_phrasing_helpers()
    print("\n✅ ALL INTENT PARSER TESTS PASSED")
