"""Answer Judge - decides whether a claim answer matches the gifter's proof.

Order:
1. case-insensitive exact match (trimmed)
2. case-insensitive substring match, either direction
3. semantic classifier (Groq)

The classifier is injectable; any classifier failure counts as incorrect.
"""
import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from .groq_client import get_groq_client
from .intent_parser import extract_json_object
from .prompts import JUDGE_SYSTEM_PROMPT, build_judge_prompt

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class JudgeResult:
    correct: bool
    reason: str


ERROR_RESULT = JudgeResult(correct=False, reason="Error judging answer")

Classifier = Callable[[str, str], JudgeResult]


def groq_classifier(user_answer: str, expected_answer: str) -> JudgeResult:
    """Ask the LLM; anything other than a clean {"correct": bool} is an error result."""
    client = get_groq_client()
    if not client.is_available():
        logger.debug("[Judge] LLM not available - no semantic match")
        return ERROR_RESULT

    response = client.complete(
        build_judge_prompt(user_answer, expected_answer),
        system=JUDGE_SYSTEM_PROMPT,
        temperature=0.3,
        max_tokens=200,
    )
    data = extract_json_object(response) if response else None
    if not data or not isinstance(data.get("correct"), bool):
        return JudgeResult(correct=False, reason="Failed to parse response")
    return JudgeResult(correct=data["correct"], reason=str(data.get("reason") or "Semantic match"))


class AnswerJudge:
    """
    Usage:
        judge = AnswerJudge()  # Groq-backed
        judge = AnswerJudge(classifier=lambda a, e: JudgeResult(False, "no"))  # tests
    """

    def __init__(self, classifier: Optional[Classifier] = None):
        self._classifier = classifier or groq_classifier

    def judge(self, user_answer: str, expected_answer: str) -> JudgeResult:
        user_lower = (user_answer or "").strip().lower()
        expected_lower = (expected_answer or "").strip().lower()

        # An empty string is a substring of everything
        if not user_lower or not expected_lower:
            return JudgeResult(correct=False, reason="Empty answer")

        if user_lower == expected_lower:
            logger.info("[Judge] ✅ Exact match")
            return JudgeResult(correct=True, reason="Exact match")

        if expected_lower in user_lower or user_lower in expected_lower:
            logger.info("[Judge] ✅ Partial match")
            return JudgeResult(correct=True, reason="Partial match")

        try:
            result = self._classifier(user_answer.strip(), expected_answer.strip())
        except Exception as e:
            logger.error(f"[Judge] Classifier error: {e}")
            return ERROR_RESULT

        if not isinstance(result, JudgeResult):
            return ERROR_RESULT
        logger.info(f"[Judge] {'✅' if result.correct else '❌'} Semantic: {result.reason}")
        return result

    def judge_any(self, user_answer: str, expected_answers: Iterable[str]) -> JudgeResult:
        """First correct verdict wins; otherwise the last verdict is returned."""
        last = JudgeResult(correct=False, reason="No expected answers")
        for expected in expected_answers:
            last = self.judge(user_answer, expected)
            if last.correct:
                return last
        return last
