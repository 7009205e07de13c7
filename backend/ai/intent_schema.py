"""Intent Schema - Strict JSON structure for LLM output validation.

The LLM is FORCED to output ONLY this schema:
    {"action": ..., "params": {...}, "message": "..."}
Any deviation is rejected by the parser.
"""

import re
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, ValidationInfo, field_validator, model_validator


class ActionType(str, Enum):
    """Allowed actions - FIXED, cannot be extended by LLM."""
    REGISTER_WALLET = "register_wallet"
    SEND_GIFT = "send_gift"
    SET_PROOF = "set_proof"
    CLAIM_GIFT = "claim_gift"
    SHOW_GIFTS = "show_gifts"
    CHAT = "chat"


SHOW_GIFT_TYPES = {"sent", "received", "pending", "active", "all"}

_USD_MARKER = re.compile(r"\$|\busd\b", re.IGNORECASE)


def clean_handle(value: Any) -> Optional[str]:
    """'@Bob ' -> 'bob'; empty or non-string -> None."""
    if not isinstance(value, str):
        return None
    handle = value.strip().lstrip("@").strip().lower()
    return handle or None


def clean_amount(value: Any) -> Optional[str]:
    """Positive finite number as a plain decimal string, else None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = Decimal(str(value).replace(",", "").replace("$", "").strip())
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite() or amount <= 0:
        return None
    return format(amount.normalize(), "f")


class ParsedIntent(BaseModel):
    """Validated output from LLM (or the keyword fallback).

    Fields:
        action: One of ActionType
        params: Action-specific parameters, cleaned per action
        message: Reply text for chat actions
    """
    action: ActionType = ActionType.CHAT
    params: Dict[str, Any] = Field(default_factory=dict)
    message: str = ""

    @field_validator("action", mode="before")
    @classmethod
    def lower_action(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("params", mode="before")
    @classmethod
    def params_dict(cls, v):
        return v if isinstance(v, dict) else {}

    @field_validator("message", mode="before")
    @classmethod
    def message_str(cls, v):
        return v if isinstance(v, str) else ""

    @model_validator(mode="after")
    def clean_params(self, info: ValidationInfo):
        """Keep only the params an action understands, normalised."""
        raw = self.params
        source_text = ""
        if info.context:
            source_text = info.context.get("source_text", "") or ""

        if self.action == ActionType.SEND_GIFT:
            params = {}
            recipient = clean_handle(raw.get("recipient"))
            if recipient:
                params["recipient"] = recipient
            amount = clean_amount(raw.get("amount"))
            amount_usd = clean_amount(raw.get("amount_usd"))
            if amount and amount_usd:
                # Both present: the text decides which one the user meant
                if _USD_MARKER.search(source_text):
                    amount = None
                else:
                    amount_usd = None
            if amount:
                params["amount"] = amount
            if amount_usd:
                params["amount_usd"] = amount_usd
            token = raw.get("token")
            if isinstance(token, str) and token.strip():
                params["token"] = token.strip().lstrip("$").upper()
            address = raw.get("address") or raw.get("wallet")
            if isinstance(address, str) and address.strip():
                params["address"] = address.strip()
            self.params = params

        elif self.action == ActionType.CLAIM_GIFT:
            code = raw.get("code")
            self.params = {"code": code.strip().lower()} if isinstance(code, str) and code.strip() else {}

        elif self.action == ActionType.SHOW_GIFTS:
            gift_type = raw.get("type")
            gift_type = gift_type.strip().lower() if isinstance(gift_type, str) else "all"
            self.params = {"type": gift_type if gift_type in SHOW_GIFT_TYPES else "all"}

        elif self.action == ActionType.SET_PROOF:
            proof = raw.get("proof")
            self.params = {"proof": proof.strip()} if isinstance(proof, str) and proof.strip() else {}

        elif self.action == ActionType.REGISTER_WALLET:
            address = raw.get("address")
            self.params = {"address": address.strip()} if isinstance(address, str) and address.strip() else {}

        else:
            self.params = {}

        return self

    def to_dict(self) -> dict:
        """Convert to the {action, params, message} dict the orchestrator consumes."""
        return {
            "action": self.action.value,
            "params": dict(self.params),
            "message": self.message,
        }
