"""Pydantic schemas for the triage endpoint and its internal contracts."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Sender(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class RiskLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


_SENDER_ALIASES = {
    "user": Sender.USER,
    "patient": Sender.USER,
    "assistant": Sender.ASSISTANT,
    "ai": Sender.ASSISTANT,
}


class Message(BaseModel):
    model_config = ConfigDict(frozen=True)

    content: str
    sender: Sender

    @field_validator("sender", mode="before")
    @classmethod
    def _normalize_sender(cls, value: Any) -> Any:
        if isinstance(value, Sender):
            return value
        token = str(value or "").strip().lower()
        if token in _SENDER_ALIASES:
            return _SENDER_ALIASES[token]
        raise ValueError("sender must be one of: user, assistant")


class TriageResult(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    risk_level: RiskLevel = Field(alias="riskLevel")
    rationale: str
    action_plan: list[str] = Field(default_factory=list, alias="actionPlan")
    emergency: bool = False
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)


class TriageRequest(BaseModel):
    message: str
    history: list[Message] = Field(default_factory=list)
    language: str | None = None


class TriageTurnResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str = Field(min_length=1)
    triage_result: TriageResult | None = Field(default=None, alias="triageResult")
    demo: bool = False

    def to_payload(self) -> dict[str, Any]:
        payload = self.model_dump(mode="json", by_alias=True)
        if not self.demo:
            payload.pop("demo", None)
        return payload
