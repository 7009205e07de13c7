"""Gift data contracts: on-chain record, content blob, API response."""
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


class GiftRecord(BaseModel):
    """A gift as returned by the DeezaAgent contract."""
    gift_id: str = ""
    code: str = ""
    gifter_address: str = ZERO_ADDRESS
    recipient_address: str = ZERO_ADDRESS
    token_address: str = ZERO_ADDRESS
    amount: int = 0
    content_link: str = ""
    claimer_address: Optional[str] = None
    claim_deadline: int = 0
    wrong_attempts: int = 0
    deposited: bool = False
    claimed: bool = False

    @property
    def exists(self) -> bool:
        # Unknown ids come back as an all-zero struct
        return not (self.gifter_address == ZERO_ADDRESS and not self.deposited)

    def is_locked(self, chain_now: int) -> bool:
        return self.claim_deadline > 0 and chain_now < self.claim_deadline

    def is_claimable(self, chain_now: int) -> bool:
        """deposited && !claimed && (claim_deadline == 0 || now >= claim_deadline)"""
        return self.deposited and not self.claimed and not self.is_locked(chain_now)

    def amount_tokens(self, decimals: int = 18) -> Decimal:
        return Decimal(self.amount) / (Decimal(10) ** decimals)

    @property
    def status_label(self) -> str:
        if self.claimed:
            return "claimed"
        if self.deposited:
            return "pending"
        return "not_deposited"


class ContentBlob(BaseModel):
    """Question/answer payload stored off-chain.

    Older uploads carry a single `answer` string or a `proofs` list instead of
    `expected_answers`; both are normalised on read.
    """
    question: str = "What's the proof?"
    expected_answers: List[str] = Field(default_factory=list)
    message: Optional[str] = None
    gifter: Optional[str] = None
    recipient: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def normalise_answers(cls, data):
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if not data.get("expected_answers"):
            proofs = data.get("proofs")
            answer = data.get("answer")
            if isinstance(proofs, list) and proofs:
                answers = proofs
            elif isinstance(answer, list):
                answers = answer
            elif answer:
                answers = [answer]
            else:
                answers = []
            data["expected_answers"] = [str(a) for a in answers if a]
        if not data.get("question"):
            data.pop("question", None)
        if isinstance(data.get("message"), str) and not data["message"].strip():
            data["message"] = None
        return data

    @property
    def canonical_answer(self) -> Optional[str]:
        return self.expected_answers[0] if self.expected_answers else None

    def to_upload(self) -> dict:
        """Serialised form; keeps `answer` and `proofs` for readers of older blobs."""
        return {
            "question": self.question,
            "answer": self.canonical_answer,
            "expected_answers": self.expected_answers,
            "proofs": self.expected_answers,
            "gifter": self.gifter,
            "recipient": self.recipient,
            "message": self.message,
        }


class GiftResponse(BaseModel):
    code: str
    gift_id: str
    gifter: str
    recipient: str
    token: str
    amount: str
    content_link: str
    claim_deadline: int
    attempts: int
    deposited: bool
    claimed: bool
    status: str
    claimable: Optional[bool] = None

    @classmethod
    def from_record(cls, gift: GiftRecord, claimable: Optional[bool] = None) -> "GiftResponse":
        return cls(
            code=gift.code,
            gift_id=gift.gift_id,
            gifter=gift.gifter_address,
            recipient=gift.recipient_address,
            token=gift.token_address,
            amount=str(gift.amount_tokens()),
            content_link=gift.content_link,
            claim_deadline=gift.claim_deadline,
            attempts=gift.wrong_attempts,
            deposited=gift.deposited,
            claimed=gift.claimed,
            status=gift.status_label,
            claimable=claimable,
        )
