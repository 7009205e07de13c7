"""Small LLM helpers used inside the gift flow.

All three are best effort: on any failure they return a value the caller can
use directly (the proof text, None, the original message).
"""
import logging
from typing import Optional, Tuple

from .groq_client import get_groq_client
from .intent_parser import extract_json_object
from .prompts import (
    CONFIRM_SYSTEM_PROMPT,
    ENHANCE_SYSTEM_PROMPT,
    PROOF_SYSTEM_PROMPT,
    build_confirm_prompt,
    build_enhance_prompt,
    build_proof_prompt,
)

logger = logging.getLogger(__name__)


def proof_to_question(proof: str, client=None) -> Tuple[str, str]:
    """'Their favorite color is red' -> ('What is your favorite color?', 'red').

    Falls back to (proof, proof).
    """
    groq_client = client or get_groq_client()
    if not groq_client.is_available():
        return proof, proof
    try:
        response = groq_client.complete(
            build_proof_prompt(proof), system=PROOF_SYSTEM_PROMPT, temperature=0.2, max_tokens=100
        )
    except Exception as e:
        logger.error(f"[Phrasing] Proof conversion error: {e}")
        return proof, proof

    data = extract_json_object(response) if response else None
    if not data:
        return proof, proof
    question = data.get("question") if isinstance(data.get("question"), str) else ""
    answer = data.get("answer") if isinstance(data.get("answer"), str) else ""
    question = question.strip() or proof
    answer = answer.strip().lower() or proof
    logger.info(f"[Phrasing] Proof → Q: \"{question}\"")
    return question, answer


def classify_confirmation(text: str, client=None) -> Optional[str]:
    """"confirm", "cancel", or None when the model is unavailable or undecided."""
    groq_client = client or get_groq_client()
    if not groq_client.is_available():
        return None
    try:
        response = groq_client.complete(
            build_confirm_prompt(text), system=CONFIRM_SYSTEM_PROMPT, temperature=0.1, max_tokens=50
        )
    except Exception as e:
        logger.error(f"[Phrasing] Confirmation classifier error: {e}")
        return None

    data = extract_json_object(response) if response else None
    if not data:
        return None
    if data.get("isCancel") is True:
        return "cancel"
    if data.get("isConfirm") is True:
        return "confirm"
    return None


def enhance_gift_message(message: str, client=None) -> str:
    """Warmer wording for the gifter's message. Cosmetic; returns the original on failure."""
    groq_client = client or get_groq_client()
    if not message or not groq_client.is_available():
        return message
    try:
        response = groq_client.complete(
            build_enhance_prompt(message), system=ENHANCE_SYSTEM_PROMPT, temperature=0.7, max_tokens=150
        )
    except Exception as e:
        logger.warning(f"[Phrasing] Message enhancement failed: {e}")
        return message

    enhanced = (response or "").strip()
    if len(enhanced) >= 2 and enhanced.startswith('"') and enhanced.endswith('"'):
        enhanced = enhanced[1:-1].strip()
    return enhanced or message
