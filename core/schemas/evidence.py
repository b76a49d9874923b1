# Evidence record and consensus verdict schemas

from enum import Enum
from typing import Optional, List, Dict, Any

from pydantic import Field, field_validator

from core.schemas.events import SwarmBaseModel


def _clamp(v, low: float, high: float) -> float:
    return min(high, max(low, float(v)))


class Trend(str, Enum):
    BULLISH = "Bullish"
    BEARISH = "Bearish"
    SIDEWAYS = "Sideways"


class Recommendation(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"


class SourceOrigin(str, Enum):
    LIVE = "live"
    DEFAULT = "default"


class MarketData(SwarmBaseModel):
    price: float = Field(..., ge=0)
    change_pct: float
    volume: float = Field(..., ge=0)


class Sentiment(SwarmBaseModel):
    score: float
    confidence: float
    sources: List[str] = Field(default_factory=list)

    @field_validator("score", "confidence", mode="before")
    @classmethod
    def clamp_unit(cls, v):
        return _clamp(v, 0.0, 1.0)


class Technical(SwarmBaseModel):
    trend: Trend
    rsi: float
    support: float
    resistance: float

    @field_validator("rsi", mode="before")
    @classmethod
    def clamp_rsi(cls, v):
        return _clamp(v, 0.0, 100.0)


class RiskAssessment(SwarmBaseModel):
    status: str
    score: float
    factors: List[str] = Field(default_factory=list)

    @field_validator("score", mode="before")
    @classmethod
    def clamp_score(cls, v):
        return _clamp(v, 0.0, 10.0)


class Strategy(SwarmBaseModel):
    recommendation: Recommendation
    confidence: float
    reasoning: str

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp_unit(cls, v):
        return _clamp(v, 0.0, 1.0)


class SourceResult(SwarmBaseModel):
    """Outcome of one remote evidence call, tagged live or defaulted"""
    source: str
    origin: SourceOrigin
    error: Optional[str] = None

    @property
    def defaulted(self) -> bool:
        return self.origin is SourceOrigin.DEFAULT


class EvidenceRecord(SwarmBaseModel):
    """Per-symbol evidence bundle; each dimension may be absent"""
    symbol: str
    market_data: Optional[MarketData] = None
    sentiment: Optional[Sentiment] = None
    technical: Optional[Technical] = None
    risk: Optional[RiskAssessment] = None
    strategy: Optional[Strategy] = None
    sources: List[SourceResult] = Field(default_factory=list)

    @property
    def defaulted_sources(self) -> List[str]:
        return [s.source for s in self.sources if s.defaulted]


class ConsensusVerdict(SwarmBaseModel):
    """Derived proceed/abstain decision; never persisted"""
    should_proceed: bool
    decision: str
    confidence: float = Field(..., ge=0.0, le=1.0)
    reason: str
    suggested_quantity: int = Field(..., ge=1)
    suggested_price: Optional[float] = None
    positive_signals: int = 0
    total_signals: int = 0

    def summary(self) -> Dict[str, Any]:
        return self.to_wire()
