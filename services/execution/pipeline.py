# Execution pipeline: risk gate, final confirmation, order publication
import math
from typing import Any, Dict, Optional

from core.config.settings import ExecutionSettings, TradingSettings
from core.logging.service_logger import get_service_logger
from core.schemas.commands import CommandRequest, CommandResponse, ParsedCommand
from core.schemas.events import EventType, OrderRecord, OrderType
from core.schemas.evidence import ConsensusVerdict, EvidenceRecord
from core.schemas.topics import PartitioningKeys
from core.utils.exceptions import PublicationError, RiskCheckError
from .models import RiskLimits, TradeProposal
from .order_bus import OrderBus
from .risk import RiskEngineClient

FINAL_CONFIRMATION_FOLLOW_UP = (
    "Reply with 'yes' to confirm or 'no' to cancel. All sources have provided their input above."
)


def _join(analysis: str, line: str) -> str:
    return f"{analysis}\n\n{line}" if analysis else line


class ExecutionPipeline:
    """Turns an approved verdict into a published order.

    Only reached for confirmed commands whose consensus says proceed. The
    risk engine has the last word; an approval then either asks for the
    final go-ahead or publishes the order.
    """

    def __init__(
        self,
        risk_engine: RiskEngineClient,
        order_bus: OrderBus,
        trading: TradingSettings,
        settings: ExecutionSettings,
    ):
        self.risk_engine = risk_engine
        self.order_bus = order_bus
        self.trading = trading
        self.settings = settings
        self.loggers = get_service_logger("execution", "pipeline")
        self.logger = self.loggers.main

    def build_proposal(self, command: ParsedCommand, verdict: ConsensusVerdict) -> TradeProposal:
        entities = command.entities
        price = entities.price or verdict.suggested_price

        if entities.quantity:
            quantity = entities.quantity
        elif entities.amount and price:
            quantity = max(1, math.floor(entities.amount / price))
        else:
            quantity = verdict.suggested_quantity or 1

        return TradeProposal(
            symbol=entities.symbol,
            side=command.intent.value,
            qty=quantity,
            price=price,
            limits=RiskLimits(
                max_gross=self.trading.max_gross_exposure,
                max_single=self.trading.max_single_order,
            ),
        )

    async def execute(
        self,
        command: ParsedCommand,
        request: CommandRequest,
        evidence: EvidenceRecord,
        verdict: ConsensusVerdict,
        analysis: str = "",
    ) -> CommandResponse:
        proposal = self.build_proposal(command, verdict)
        audit_data: Dict[str, Any] = {
            "evidence": evidence.to_wire(),
            "recommendation": verdict.to_wire(),
            "proposal": proposal.to_wire(),
        }

        try:
            risk_check = await self.risk_engine.check(proposal)
        except RiskCheckError as e:
            self.loggers.error.error("Pre-trade risk check failed", symbol=proposal.symbol, error=e.message)
            return CommandResponse(
                success=False,
                message=_join(analysis, f"Failed to process {command.intent.value} order: {e.message}"),
                data=audit_data,
            )

        audit_data["riskCheck"] = risk_check.to_wire()
        if not risk_check.approved:
            breaches = ", ".join(risk_check.breaches) or "Risk limits exceeded"
            self.logger.warning(
                "Pre-trade risk check rejected",
                symbol=proposal.symbol,
                notional=proposal.notional,
                breaches=risk_check.breaches,
            )
            return CommandResponse(
                success=False,
                message=_join(analysis, f"Final risk check failed: {breaches}"),
                data=audit_data,
            )

        if self.settings.require_final_confirmation and not request.execution_confirmed:
            return CommandResponse(
                success=True,
                message=_join(
                    analysis,
                    f"Confirm: {command.intent.value} {proposal.qty} shares of {proposal.symbol}?",
                ),
                data={
                    "requiresConfirmation": True,
                    "stage": "execution",
                    "parsedCommand": command.summary(),
                    **audit_data,
                },
                follow_up=FINAL_CONFIRMATION_FOLLOW_UP,
            )

        return await self._publish(command, proposal, audit_data, analysis)

    async def _publish(
        self,
        command: ParsedCommand,
        proposal: TradeProposal,
        audit_data: Dict[str, Any],
        analysis: str,
    ) -> CommandResponse:
        order = OrderRecord(
            symbol=proposal.symbol,
            action=proposal.side,
            quantity=proposal.qty,
            price=proposal.price,
            order_type=OrderType.LIMIT if command.entities.price else OrderType.MARKET,
            source=self.settings.source_tag,
        )

        try:
            ack = await self.order_bus.publish(
                self.settings.order_topic,
                order.to_wire(),
                key=PartitioningKeys.order_key(order.symbol, order.action),
                event_type=EventType.ORDER_REQUESTED,
            )
        except PublicationError as e:
            self.loggers.error.error("Order publication failed", symbol=order.symbol, error=e.message)
            return CommandResponse(
                success=False,
                message=_join(analysis, f"Order could not be submitted: {e.message}"),
                data={**audit_data, "order": order.to_wire()},
            )

        self.loggers.audit.info(
            "Order published",
            topic=self.settings.order_topic,
            ack=ack,
            symbol=order.symbol,
            action=order.action,
            quantity=order.quantity,
            order_type=order.order_type.value,
        )
        price_text = f"LIMIT ${order.price:.2f}" if order.order_type is OrderType.LIMIT else "MARKET"
        return CommandResponse(
            success=True,
            message=_join(
                analysis,
                f"Order submitted: {order.action} {order.quantity} shares of {order.symbol} at {price_text}",
            ),
            data={**audit_data, "order": order.to_wire(), "ack": ack},
        )
