"""
Conversation State Management - gift flow states and keyword vocabularies.

Each chat has at most one active context. Its flow_state decides which
branch parses the next message; free-text intent parsing only runs when
there is no context.
"""


class FlowState:
    """Persisted flow_state values. IDLE is represented by having no context."""
    IDLE = "idle"
    AWAITING_WALLET_ADDRESS = "awaiting_wallet_address"
    AWAITING_WALLET_CHANGE_CONFIRM = "awaiting_wallet_change_confirm"
    AWAITING_PROOF = "awaiting_proof"
    AWAITING_MESSAGE = "awaiting_message"
    AWAITING_CONFIRM = "awaiting_confirm"
    AWAITING_ANSWER = "awaiting_answer"
    AWAITING_RELEASE_RETRY = "awaiting_release_retry"


class FlowFamily:
    """Context lifetime per flow family."""
    GIFT = "gift"  # indefinite, lives until advanced or cancelled
    QUICK_ACTION = "quick_action"  # single pending_action slot with a TTL


FLOW_FAMILY = {
    FlowState.AWAITING_WALLET_ADDRESS: FlowFamily.GIFT,
    FlowState.AWAITING_WALLET_CHANGE_CONFIRM: FlowFamily.GIFT,
    FlowState.AWAITING_PROOF: FlowFamily.GIFT,
    FlowState.AWAITING_MESSAGE: FlowFamily.GIFT,
    FlowState.AWAITING_CONFIRM: FlowFamily.GIFT,
    FlowState.AWAITING_ANSWER: FlowFamily.GIFT,
    FlowState.AWAITING_RELEASE_RETRY: FlowFamily.QUICK_ACTION,
}

# Human-readable names used when a flow is cancelled
FLOW_NAMES = {
    FlowState.AWAITING_WALLET_ADDRESS: "wallet registration",
    FlowState.AWAITING_WALLET_CHANGE_CONFIRM: "wallet update confirmation",
    FlowState.AWAITING_PROOF: "gift creation (proof setup)",
    FlowState.AWAITING_MESSAGE: "gift creation (message)",
    FlowState.AWAITING_CONFIRM: "gift creation (final confirmation)",
    FlowState.AWAITING_ANSWER: "gift claim",
    FlowState.AWAITING_RELEASE_RETRY: "gift claim (release retry)",
}


def flow_name(flow_state: str) -> str:
    return FLOW_NAMES.get(flow_state, "current process")


CANCEL_PHRASES = {"cancel", "cancel this", "stop", "reset", "/cancel"}

SKIP_WORDS = {"skip", "no", "n", "none", ""}

# Wallet change confirmation
WALLET_CONFIRM_WORDS = ["yes", "yep", "ok", "okay", "sure", "confirm", "go", "change"]
WALLET_CANCEL_WORDS = ["no", "cancel", "abort", "stop"]

# Gift confirmation keyword fallback
GIFT_CONFIRM_WORDS = [
    "yes", "yep", "ok", "okay", "sure", "confirm", "go", "create", "proceed",
    "do it", "yeah", "alright", "fine", "sounds good",
]
GIFT_CANCEL_WORDS = ["no", "nah", "cancel", "abort", "stop", "dont", "don't", "nope", "nevermind"]

# Leaving the wallet-address prompt by starting something else
ESCAPE_PATTERNS = {
    "send": r"^(send|transfer|give|gift|pay)\s",
    "claim": r"^claim\s",
    "other": r"^(show|balance|help)",
}


def is_cancel(text: str) -> bool:
    return text.lower().strip() in CANCEL_PHRASES


def is_skip(text: str) -> bool:
    return text.lower().strip() in SKIP_WORDS


def _has_word(text: str, words) -> bool:
    tokens = text.replace(",", " ").replace("!", " ").replace(".", " ").split()
    return any(w in tokens if " " not in w else w in text for w in words)


def is_wallet_confirm(text: str) -> bool:
    return _has_word(text.lower().strip(), WALLET_CONFIRM_WORDS)


def is_wallet_cancel(text: str) -> bool:
    return _has_word(text.lower().strip(), WALLET_CANCEL_WORDS)


def keyword_confirmation(text: str) -> str:
    """Classify a reply as "confirm", "cancel" or "unclear" by keywords only."""
    text_lower = text.lower().strip()
    if any(text_lower == w or text_lower.startswith(w + " ") for w in GIFT_CANCEL_WORDS):
        return "cancel"
    if _has_word(text_lower, GIFT_CONFIRM_WORDS):
        return "confirm"
    return "unclear"
