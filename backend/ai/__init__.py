"""AI Module for Groq LLM Integration.

Intent parsing, answer judging and small phrasing helpers for the gift bot.
Every entry point has a deterministic fallback, so the bot keeps working
without GROQ_API_KEY.
"""

from .intent_parser import parse_message_with_ai
from .fallback import parse_message_fallback
from .judge import AnswerJudge, JudgeResult
from .phrasing import classify_confirmation, enhance_gift_message, proof_to_question

__all__ = [
    "parse_message_with_ai",
    "parse_message_fallback",
    "AnswerJudge",
    "JudgeResult",
    "classify_confirmation",
    "enhance_gift_message",
    "proof_to_question",
]
