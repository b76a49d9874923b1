# Routes resolved commands to their intent handlers
import time
from typing import Any, Dict, List, Optional, Protocol

from core.config.settings import ConfirmationSettings, ExecutionSettings, TradingSettings
from core.logging.service_logger import get_service_logger
from core.schemas.commands import CommandRequest, CommandResponse, Intent, ParsedCommand
from core.schemas.events import EventType, TradingControlEvent
from core.schemas.evidence import ConsensusVerdict, EvidenceRecord
from core.schemas.topics import PartitioningKeys, ServiceNames, ToolNames
from core.utils.exceptions import PublicationError, ServiceError, create_error_context
from services.confirmation.gate import format_amount
from services.consensus import ConsensusSynthesizer
from services.evidence import EvidenceAggregator
from services.execution import ExecutionPipeline
from services.execution.order_bus import OrderBus

ROUTING_FAILURE_MESSAGE = "Failed to execute command. Please try again."
MISSING_SYMBOL_MESSAGE = "Please specify a stock symbol for trading commands."
HALTED_MESSAGE = "Trading is halted. Resume trading before placing new orders."

HELP_FOLLOW_UP = 'Try: "buy AAPL", "show status", "analyze TSLA", or "alert me when AAPL hits $150"'

EVIDENCE_SOURCES = [
    ServiceNames.MARKET_DATA,
    ServiceNames.SENTIMENT,
    ServiceNames.RISK_ENGINE,
]


class ServiceCaller(Protocol):
    async def call(self, service: str, operation: str, payload: Dict[str, Any]) -> Any:
        ...


def _pct(value: float) -> str:
    return f"{value * 100:.0f}%"


def summarize_evidence(evidence: EvidenceRecord) -> List[str]:
    """One plain line per evidence dimension; defaulted sources are marked."""
    defaulted = set(evidence.defaulted_sources)

    def tag(source: str) -> str:
        return " [default]" if source in defaulted else ""

    lines = [f"Evidence for {evidence.symbol}:"]
    if evidence.market_data:
        m = evidence.market_data
        lines.append(
            f"- Market data: ${m.price:.2f} ({m.change_pct:+.2f}%), volume {m.volume:,.0f}"
            f"{tag(ServiceNames.MARKET_DATA)}"
        )
    if evidence.sentiment:
        s = evidence.sentiment
        lines.append(
            f"- Sentiment: {_pct(s.score)} (confidence {_pct(s.confidence)})"
            f"{tag(ServiceNames.SENTIMENT)}"
        )
    if evidence.technical:
        t = evidence.technical
        lines.append(
            f"- Technical: {t.trend.value} trend, RSI {t.rsi:.0f}, "
            f"support ${t.support:.2f}, resistance ${t.resistance:.2f}"
        )
    if evidence.strategy:
        st = evidence.strategy
        lines.append(f"- Strategy: {st.recommendation.value} (confidence {_pct(st.confidence)})")
    if evidence.risk:
        r = evidence.risk
        lines.append(f"- Risk: {r.status} (score {r.score:g}/10){tag(ServiceNames.RISK_ENGINE)}")
    return lines


def render_analysis(evidence: EvidenceRecord, verdict: ConsensusVerdict) -> str:
    lines = summarize_evidence(evidence)
    lines.append("")
    lines.append(f"Consensus: {verdict.decision}")
    return "\n".join(lines)


class CommandRouter:
    """Dispatches a ParsedCommand to the handler for its intent.

    BUY and SELL run the full decision pipeline: evidence, consensus and the
    execution pipeline. The other intents are answered locally or through a
    single service call. STOP flips an in-memory halt switch that refuses
    new trades until `resume()` is called.
    """

    def __init__(
        self,
        aggregator: EvidenceAggregator,
        synthesizer: ConsensusSynthesizer,
        pipeline: ExecutionPipeline,
        client: ServiceCaller,
        order_bus: OrderBus,
        trading: TradingSettings,
        execution: ExecutionSettings,
        confirmation: Optional[ConfirmationSettings] = None,
    ):
        self.aggregator = aggregator
        self.synthesizer = synthesizer
        self.pipeline = pipeline
        self.client = client
        self.order_bus = order_bus
        self.trading = trading
        self.execution = execution
        self.confirmation = confirmation or ConfirmationSettings()

        self.halted = False
        self.halt_reason: Optional[str] = None

        self.loggers = get_service_logger("command_agent", "router")
        self.logger = self.loggers.main

        self._handlers = {
            Intent.BUY: self._handle_trade,
            Intent.SELL: self._handle_trade,
            Intent.STATUS: self._handle_status,
            Intent.QUERY: self._handle_query,
            Intent.ALERT: self._handle_alert,
            Intent.ANALYZE: self._handle_analyze,
            Intent.CONFIG: self._handle_config,
            Intent.STOP: self._handle_stop,
        }

    async def route(self, command: ParsedCommand, request: CommandRequest) -> CommandResponse:
        self.logger.info(
            "Routing command",
            intent=command.intent.value,
            entities=command.entities.to_wire(),
        )
        handler = self._handlers.get(command.intent)
        if handler is None:
            return CommandResponse(success=False, message=f"Unknown command intent: {command.intent}")

        try:
            return await handler(command, request)
        except Exception as e:
            self.loggers.error.error(
                "Command routing failed",
                **create_error_context(e, "route", {"intent": command.intent.value}),
            )
            return CommandResponse(success=False, message=ROUTING_FAILURE_MESSAGE)

    async def _handle_trade(self, command: ParsedCommand, request: CommandRequest) -> CommandResponse:
        symbol = command.entities.symbol
        if not symbol:
            return CommandResponse(success=False, message=MISSING_SYMBOL_MESSAGE)
        if self.halted:
            return CommandResponse(
                success=False,
                message=HALTED_MESSAGE,
                data={"tradingHalted": True, "reason": self.halt_reason},
            )

        evidence = await self.aggregator.gather(symbol, command.intent)
        verdict = self.synthesizer.synthesize(evidence, command.intent)
        analysis = render_analysis(evidence, verdict)

        if not verdict.should_proceed:
            return CommandResponse(
                success=False,
                message=f"{analysis}\n\nSources recommend AGAINST this trade: {verdict.reason}",
                data={"evidence": evidence.to_wire(), "recommendation": verdict.to_wire()},
            )

        return await self.pipeline.execute(command, request, evidence, verdict, analysis)

    async def _handle_status(self, command: ParsedCommand, request: CommandRequest) -> CommandResponse:
        state = "HALTED" if self.halted else "ACTIVE"
        lines = [
            "Command agent status",
            f"- Evidence sources: {', '.join(EVIDENCE_SOURCES)}",
            f"- Trading: {state}" + (f" ({self.halt_reason})" if self.halted and self.halt_reason else ""),
            f"- Consensus threshold: {_pct(self.trading.consensus_threshold)}",
            f"- Limits: max gross ${format_amount(self.trading.max_gross_exposure)}, "
            f"max single order ${format_amount(self.trading.max_single_order)}",
        ]
        return CommandResponse(
            success=True,
            message="\n".join(lines),
            data={
                "evidenceSources": EVIDENCE_SOURCES,
                "tradingHalted": self.halted,
                "consensusThreshold": self.trading.consensus_threshold,
                "limits": {
                    "maxGross": self.trading.max_gross_exposure,
                    "maxSingle": self.trading.max_single_order,
                },
                "confirmationMode": self.confirmation.mode.value,
                "finalConfirmation": self.execution.require_final_confirmation,
            },
            follow_up='Say "analyze <symbol>" to see the evidence for a ticker.',
        )

    async def _handle_query(self, command: ParsedCommand, request: CommandRequest) -> CommandResponse:
        return CommandResponse(
            success=True,
            message=(
                f'I understand you\'re asking: "{command.original_text}". '
                "I can place trades after checking market data, sentiment and risk, "
                "analyze a symbol, set price alerts or report status."
            ),
            follow_up=HELP_FOLLOW_UP,
        )

    async def _handle_alert(self, command: ParsedCommand, request: CommandRequest) -> CommandResponse:
        entities = command.entities
        if not entities.symbol or not entities.price:
            return CommandResponse(
                success=False,
                message='Please specify both symbol and price for alerts (e.g., "alert me when AAPL hits $150")',
            )

        price = format_amount(entities.price)
        alert_id = f"alert_{entities.symbol}_{price}_{int(time.time() * 1000)}"
        try:
            await self.client.call(ServiceNames.CONFIG, ToolNames.CONFIG_SET, {
                "key": f"alerts.{alert_id}",
                "value": {
                    "symbol": entities.symbol,
                    "price": entities.price,
                    "condition": entities.condition or "crosses",
                    "active": True,
                },
            })
        except ServiceError as e:
            self.loggers.error.error("Alert could not be stored", alert_id=alert_id, error=e.message)
            return CommandResponse(success=False, message="Failed to set alert. Please try again.")

        self.loggers.audit.info("Alert stored", alert_id=alert_id, symbol=entities.symbol, price=entities.price)
        return CommandResponse(
            success=True,
            message=f"Alert set for {entities.symbol} at ${price}",
            data={"alertId": alert_id},
            follow_up="I'll notify you when the price condition is met.",
        )

    async def _handle_analyze(self, command: ParsedCommand, request: CommandRequest) -> CommandResponse:
        symbol = command.entities.symbol
        if not symbol:
            return CommandResponse(
                success=False,
                message='Please specify a stock symbol to analyze (e.g., "analyze AAPL").',
            )

        # Analysis is read from the buyer's side; nothing is executed
        evidence = await self.aggregator.gather(symbol, Intent.BUY)
        verdict = self.synthesizer.synthesize(evidence, Intent.BUY)
        return CommandResponse(
            success=True,
            message=f"{render_analysis(evidence, verdict)}\n\nAnalysis only; no order was placed.",
            data={
                "evidence": evidence.to_wire(),
                "recommendation": verdict.to_wire(),
                "timeframe": command.entities.timeframe or "1d",
            },
            follow_up=f'Say "buy {symbol}" to act on this analysis.',
        )

    async def _handle_config(self, command: ParsedCommand, request: CommandRequest) -> CommandResponse:
        return CommandResponse(
            success=True,
            message="Configuration commands are not yet supported.",
            follow_up="Settings are read from the environment at startup.",
        )

    async def _handle_stop(self, command: ParsedCommand, request: CommandRequest) -> CommandResponse:
        reason = command.original_text
        self.halted = True
        self.halt_reason = reason
        self.loggers.audit.warning("Trading halted", reason=reason, session_id=request.session_id)

        published = await self._publish_control("emergency_stop", reason, EventType.TRADING_HALTED)
        message = "EMERGENCY STOP ACTIVATED. All trading operations have been suspended."
        if not published:
            message += " The halt applies to this agent only; the control event could not be published."

        return CommandResponse(
            success=True,
            message=message,
            data={"action": "emergency_stop", "tradingHalted": True, "controlEventPublished": published},
            follow_up="Trading stays halted until it is resumed.",
        )

    async def resume(self, reason: Optional[str] = None) -> CommandResponse:
        was_halted = self.halted
        self.halted = False
        self.halt_reason = None
        if not was_halted:
            return CommandResponse(success=True, message="Trading is already active.", data={"tradingHalted": False})

        self.loggers.audit.info("Trading resumed", reason=reason)
        published = await self._publish_control("resume", reason, EventType.TRADING_RESUMED)
        return CommandResponse(
            success=True,
            message="Trading resumed.",
            data={"action": "resume", "tradingHalted": False, "controlEventPublished": published},
        )

    async def _publish_control(self, action: str, reason: Optional[str], event_type: EventType) -> bool:
        event = TradingControlEvent(action=action, reason=reason, source=self.execution.source_tag)
        try:
            await self.order_bus.publish(
                self.execution.control_topic,
                event.to_wire(),
                key=PartitioningKeys.control_key(),
                event_type=event_type,
            )
        except PublicationError as e:
            self.loggers.error.error("Control event publication failed", action=action, error=e.message)
            return False
        return True
