"""
LLM-based Intent Parser — Groq LLM for free-text chat messages.

================================================================================
WHAT LLM DOES (INTENT PLANNER ONLY):
- Picks one action: register_wallet | send_gift | set_proof | claim_gift |
  show_gifts | chat
- Extracts params (recipient, amount / amount_usd, token, code, type, proof)
- Writes a short reply for chat

WHAT LLM DOES NOT DO:
- It does NOT move money or touch the database
- Output is VALIDATED against the ParsedIntent schema
- The orchestrator re-validates every field before acting

FAILURE MODES (all deterministic, never raise):
- LLM not configured / transport error → keyword fallback parser
- Malformed or schema-invalid output → chat with a "rephrase" message
================================================================================
"""

import json
import logging
import re
from typing import Optional

from pydantic import ValidationError

from .groq_client import get_groq_client
from .prompts import build_intent_prompt, intent_system_prompt
from .intent_schema import ParsedIntent, ActionType
from .fallback import parse_message_fallback

logger = logging.getLogger(__name__)

TROUBLE_MESSAGE = "I had trouble understanding that. Can you try rephrasing?"

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


def parse_message_with_ai(message: str, context: dict = None, client=None) -> dict:
    """
    Parse a chat message into {action, params, message}.

    Args:
        message: Raw user message
        context: Optional active context ({"flow_state": ...}); only used as a hint
        client: GroqClient override (tests)

    Returns:
        {"action": str, "params": dict, "message": str, "source": "llm" | "fallback"}
    """
    message = (message or "").strip()
    if not message:
        logger.debug("Empty message - returning chat")
        return _chat_intent("", source="fallback")

    groq_client = client or get_groq_client()

    if not groq_client.is_available():
        logger.debug("LLM not available - using fallback")
        return _with_source(parse_message_fallback(message), "fallback")

    try:
        llm_response = groq_client.complete(
            build_intent_prompt(message, context=context),
            system=intent_system_prompt(),
            temperature=0,
        )
    except Exception as e:
        logger.error(f"❌ Error in LLM call: {e}")
        llm_response = None

    if llm_response is None:
        logger.debug("LLM returned None - using fallback")
        return _with_source(parse_message_fallback(message), "fallback")

    parsed_intent = _parse_and_validate_json(llm_response, source_text=message)
    if parsed_intent is None:
        return _chat_intent(TROUBLE_MESSAGE, source="llm")

    result = parsed_intent.to_dict()
    result["source"] = "llm"
    logger.info(f"✅ LLM parsed: action={result['action']}, params={list(result['params'])}")
    return result


def extract_json_object(llm_response: str) -> Optional[dict]:
    """First {...} block in a model reply (tolerates markdown fences and chatter)."""
    match = _JSON_OBJECT.search(llm_response or "")
    if not match:
        return None
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        logger.warning(f"Invalid JSON from LLM: {e}")
        return None
    return data if isinstance(data, dict) else None


def _parse_and_validate_json(llm_response: str, source_text: str = "") -> Optional[ParsedIntent]:
    """Extract and validate JSON from LLM response. None if invalid."""
    data = extract_json_object(llm_response)
    if data is None:
        return None
    try:
        return ParsedIntent.model_validate(data, context={"source_text": source_text})
    except ValidationError as e:
        logger.warning(f"Schema validation failed: {e.error_count()} errors")
        return None


def _with_source(result: dict, source: str) -> dict:
    result["source"] = source
    return result


def _chat_intent(message: str, source: str) -> dict:
    return {
        "action": ActionType.CHAT.value,
        "params": {},
        "message": message,
        "source": source,
    }
