# Execution models: pre-trade proposal and risk engine verdict
from enum import Enum
from typing import List, Optional, Dict, Any

from pydantic import Field, field_validator

from core.schemas.events import SwarmBaseModel


class RiskStatus(str, Enum):
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class RiskLimits(SwarmBaseModel):
    """Deployment constants handed to the risk engine"""
    max_gross: float
    max_single: float


class TradeProposal(SwarmBaseModel):
    """What the risk engine is asked to approve"""
    symbol: str
    side: str
    qty: int = Field(..., ge=1)
    price: Optional[float] = None
    limits: RiskLimits
    current: List[Dict[str, Any]] = Field(default_factory=list)

    @property
    def notional(self) -> Optional[float]:
        return self.qty * self.price if self.price is not None else None


class RiskCheckResult(SwarmBaseModel):
    """Result of a pre-trade risk check"""
    status: RiskStatus
    breaches: List[str] = Field(default_factory=list)

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v):
        # Anything the engine does not explicitly approve is a rejection
        v = str(v or "").upper()
        return v if v == RiskStatus.APPROVED.value else RiskStatus.REJECTED.value

    @field_validator("breaches", mode="before")
    @classmethod
    def breaches_default(cls, v):
        return [str(b) for b in v or []]

    @property
    def approved(self) -> bool:
        return self.status is RiskStatus.APPROVED
