# Command request/response and parsed intent schemas

from enum import Enum
from typing import Optional, Dict, Any

from pydantic import Field, ConfigDict, field_validator

from core.schemas.events import SwarmBaseModel


class Intent(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
    QUERY = "QUERY"
    ALERT = "ALERT"
    ANALYZE = "ANALYZE"
    CONFIG = "CONFIG"
    STOP = "STOP"
    STATUS = "STATUS"

    @property
    def is_trade(self) -> bool:
        return self in (Intent.BUY, Intent.SELL)


class Entities(SwarmBaseModel):
    """Structured parameters extracted from free text; every field optional"""
    model_config = ConfigDict(frozen=True)

    symbol: Optional[str] = None
    amount: Optional[float] = Field(default=None, ge=0)
    price: Optional[float] = Field(default=None, ge=0)
    quantity: Optional[int] = Field(default=None, ge=0)
    timeframe: Optional[str] = None
    condition: Optional[str] = None

    @field_validator("symbol", mode="before")
    @classmethod
    def normalize_symbol(cls, v):
        if v is None:
            return None
        v = str(v).strip().upper()
        return v or None


class ParsedCommand(SwarmBaseModel):
    """One resolved inbound command. Never mutated after creation."""
    model_config = ConfigDict(frozen=True)

    intent: Intent
    entities: Entities = Field(default_factory=Entities)
    original_text: str
    confidence: float
    needs_confirmation: bool = False

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp_confidence(cls, v):
        v = float(v)
        return min(1.0, max(0.0, v))

    def summary(self) -> Dict[str, Any]:
        """Partially-resolved view attached to confirmation prompts."""
        return {
            "intent": self.intent.value,
            "entities": self.entities.to_wire(),
            "confidence": self.confidence,
        }


class CommandRequest(SwarmBaseModel):
    """Inbound envelope at the process boundary"""
    command: str = Field(..., min_length=1)
    user_id: str = "anonymous"
    session_id: str = "default"
    context: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("user_id", "session_id", mode="before")
    @classmethod
    def default_when_null(cls, v, info):
        if v is None:
            return "anonymous" if info.field_name == "user_id" else "default"
        return v

    @field_validator("context", mode="before")
    @classmethod
    def context_default(cls, v):
        return v or {}

    @property
    def confirmed(self) -> bool:
        return bool(self.context.get("confirmed"))

    @property
    def confirmation_token(self) -> Optional[str]:
        return self.context.get("confirmationToken")

    @property
    def execution_confirmed(self) -> bool:
        return bool(self.context.get("executionConfirmed"))


class CommandResponse(SwarmBaseModel):
    """Externally visible outcome of one pipeline run"""
    success: bool
    message: str
    data: Optional[Dict[str, Any]] = None
    follow_up: Optional[str] = None
