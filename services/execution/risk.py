# Pre-trade risk check through the risk engine
from typing import Any, Dict, Protocol

from pydantic import ValidationError

from core.schemas.topics import ServiceNames, ToolNames
from core.utils.exceptions import RiskCheckError, ServiceError
from .models import RiskCheckResult, TradeProposal


class ServiceCaller(Protocol):
    async def call(self, service: str, operation: str, payload: Dict[str, Any]) -> Any:
        ...


class RiskEngineClient:
    """check(proposal) -> RiskCheckResult; raises RiskCheckError when no verdict is obtained"""

    def __init__(self, client: ServiceCaller):
        self.client = client

    async def check(self, proposal: TradeProposal) -> RiskCheckResult:
        try:
            response = await self.client.call(
                ServiceNames.RISK_ENGINE,
                ToolNames.PRETRADE_CHECK,
                proposal.model_dump(mode="json", by_alias=True),
            )
        except ServiceError as e:
            raise RiskCheckError(f"Risk check unavailable: {e.message}",
                                 details={"status": e.status}) from e

        try:
            return RiskCheckResult.model_validate(response)
        except ValidationError as e:
            raise RiskCheckError("Risk engine returned an unreadable verdict") from e
