"""Keyword fallback parser.

Used when the LLM is not configured or its transport fails. Recognises the same
vocabulary as the LLM prompt and returns the same {action, params, message} shape.
"""
import re
import logging
from typing import Optional

from .intent_schema import ActionType, ParsedIntent

logger = logging.getLogger(__name__)

SEND_KEYWORDS = r'\b(gift|send|give|transfer|pay)\b'
CLAIM_PATTERN = re.compile(r'\bclaim\s+([A-Za-z0-9_]+)', re.IGNORECASE)
REGISTER_KEYWORDS = r'\bregister\b'
SHOW_KEYWORDS = r'\b(show|list|my)\b.*\bgifts?\b|\bgifts?\b.*\b(sent|received|pending|active)\b'

HANDLE_PATTERN = re.compile(r'@([A-Za-z0-9_]{2,32})')
TO_HANDLE_PATTERN = re.compile(r'\bto\s+([A-Za-z][A-Za-z0-9_]{1,31})\b', re.IGNORECASE)
ADDRESS_PATTERN = re.compile(r'0x[a-fA-F0-9]{40}')
USD_PREFIX_PATTERN = re.compile(r'\$\s*(\d[\d,]*(?:\.\d+)?)')
USD_SUFFIX_PATTERN = re.compile(r'(\d[\d,]*(?:\.\d+)?)\s*(?:\$|usd\b|dollars?\b)', re.IGNORECASE)
AMOUNT_PATTERN = re.compile(r'(?<![\w.])(\d[\d,]*(?:\.\d+)?)(?![\w.])')

# Words that look like token symbols but are not
_NOT_TOKENS = {
    "GIFT", "SEND", "GIVE", "TRANSFER", "PAY", "TO", "WORTH", "OF", "USD", "DOLLAR",
    "DOLLARS", "AND", "THE", "FOR", "PLEASE", "MY", "ME", "A", "AN", "SOME",
}

HELP_MESSAGE = (
    "I can help you gift crypto to friends! Try: \"gift @friend 10 USDC\", "
    "\"claim bob42\", \"register me\" or \"show my gifts\" 😉"
)


def parse_message_fallback(message: str) -> dict:
    """Keyword parse of a chat message into {action, params, message}."""
    text = (message or "").strip()
    text_lower = text.lower()

    logger.debug(f"Fallback parsing: {text[:50]}...")

    action = _detect_action(text_lower)
    params = {}
    reply = ""

    if action == ActionType.SEND_GIFT:
        params = _extract_gift_params(text)
    elif action == ActionType.CLAIM_GIFT:
        match = CLAIM_PATTERN.search(text)
        params = {"code": match.group(1)}
    elif action == ActionType.SHOW_GIFTS:
        params = {"type": _detect_gift_type(text_lower)}
    elif action == ActionType.REGISTER_WALLET:
        address = ADDRESS_PATTERN.search(text)
        if address:
            params = {"address": address.group(0)}
    else:
        reply = HELP_MESSAGE

    parsed = ParsedIntent.model_validate(
        {"action": action.value, "params": params, "message": reply},
        context={"source_text": text},
    )
    result = parsed.to_dict()
    logger.info(f"🔄 Fallback parsed: action={result['action']}")
    return result


def _detect_action(message: str) -> ActionType:
    """Detect action from keyword patterns (message is lower-cased)."""
    if CLAIM_PATTERN.search(message):
        return ActionType.CLAIM_GIFT
    if re.search(REGISTER_KEYWORDS, message):
        return ActionType.REGISTER_WALLET
    if re.search(SHOW_KEYWORDS, message):
        return ActionType.SHOW_GIFTS
    if re.search(SEND_KEYWORDS, message):
        return ActionType.SEND_GIFT
    return ActionType.CHAT


def _detect_gift_type(message: str) -> str:
    for gift_type in ("sent", "received", "pending", "active"):
        if gift_type in message:
            return gift_type
    return "all"


def _extract_gift_params(message: str) -> dict:
    """Recipient, amount or USD amount, token symbol and pasted address."""
    params = {}

    recipient = _extract_recipient(message)
    if recipient:
        params["recipient"] = recipient

    address = ADDRESS_PATTERN.search(message)
    if address:
        params["address"] = address.group(0)
    # Keep hex digits out of amount/token detection
    scrubbed = ADDRESS_PATTERN.sub(" ", message)
    scrubbed = HANDLE_PATTERN.sub(" ", scrubbed)

    usd = USD_PREFIX_PATTERN.search(scrubbed) or USD_SUFFIX_PATTERN.search(scrubbed)
    if usd:
        params["amount_usd"] = usd.group(1)
    else:
        amount = AMOUNT_PATTERN.search(scrubbed)
        if amount:
            params["amount"] = amount.group(1)

    token = _extract_token(scrubbed)
    if token:
        params["token"] = token

    return params


def _extract_recipient(message: str) -> Optional[str]:
    match = HANDLE_PATTERN.search(message)
    if match:
        return match.group(1)
    match = TO_HANDLE_PATTERN.search(message)
    if match:
        return match.group(1)
    return None


def _extract_token(message: str) -> Optional[str]:
    """First symbol-looking word after a number, else any upper-case symbol."""
    match = re.search(r'\d[\d,.]*\s*(?:\$\s*)?(?:worth\s+of\s+)?\$?([A-Za-z][A-Za-z0-9]{1,9})\b', message)
    if match and match.group(1).upper() not in _NOT_TOKENS:
        return match.group(1).upper()
    for word in re.findall(r'\b([A-Z][A-Z0-9]{1,9})\b', message):
        if word not in _NOT_TOKENS:
            return word
    return None
