# Standardized event envelope and order bus payloads
# Everything published on the order bus is wrapped in EventEnvelope

from pydantic import BaseModel, Field, ConfigDict
from pydantic.alias_generators import to_camel
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Dict, Any
from core.utils.ids import generate_event_id


class SwarmBaseModel(BaseModel):
    """Base model for all Swarm Command schemas.

    Fields are snake_case in Python and camelCase on the wire; both spellings
    are accepted on input.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_wire(self) -> Dict[str, Any]:
        """JSON-ready dict with camelCase keys and unset optionals dropped."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class EventType(str, Enum):
    ORDER_REQUESTED = "order_requested"
    TRADING_HALTED = "trading_halted"
    TRADING_RESUMED = "trading_resumed"


class OrderType(str, Enum):
    MARKET = "MARKET"
    LIMIT = "LIMIT"


class EventEnvelope(BaseModel):
    """MANDATORY standardized envelope for ALL events"""
    id: str = Field(default_factory=generate_event_id, description="Globally unique event ID for deduplication")
    correlation_id: str = Field(..., description="Links the event to the command that caused it")
    type: EventType
    ts: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    key: str = Field(..., description="Partitioning key for ordering")
    source: str = Field(..., description="Service that generated this event")
    version: int = Field(default=1, description="Schema version for compatibility")
    data: Dict[str, Any] = Field(..., description="Actual event payload")


class OrderRecord(SwarmBaseModel):
    """Order handed to the downstream execution layer"""
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    symbol: str
    action: str  # BUY | SELL
    quantity: int = Field(..., ge=1)
    price: Optional[float] = Field(default=None, ge=0.0)
    order_type: OrderType
    source: str = "command-agent"


class TradingControlEvent(SwarmBaseModel):
    """Halt/resume notification for the execution layer"""
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    action: str  # emergency_stop | resume
    reason: Optional[str] = None
    source: str = "command-agent"
