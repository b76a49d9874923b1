"""
Unit tests for intent routing, the trade flow and the trading halt switch.
"""

import pytest

from core.config.settings import EvidenceSettings, ExecutionSettings, TradingSettings
from core.schemas.commands import CommandRequest, Entities, Intent, ParsedCommand
from core.schemas.events import EventType
from core.schemas.topics import ToolNames
from services.command_agent import CommandRouter
from services.consensus import ConsensusSynthesizer
from services.evidence import EvidenceAggregator
from services.execution import ExecutionPipeline, RiskEngineClient
from tests.fakes import FakeMCPClient, FakeOrderBus, bullish_responses


def _command(intent, text="test", **entities):
    return ParsedCommand(
        intent=intent,
        entities=Entities(**entities),
        original_text=text,
        confidence=0.9,
        needs_confirmation=intent.is_trade,
    )


def _request(**context):
    return CommandRequest(command="test", context=context)


def _router(responses=None, order_bus=None, require_final_confirmation=True, client=None):
    client = client or FakeMCPClient(bullish_responses() if responses is None else responses)
    order_bus = order_bus or FakeOrderBus()
    trading = TradingSettings()
    execution = ExecutionSettings(require_final_confirmation=require_final_confirmation)
    return CommandRouter(
        aggregator=EvidenceAggregator(client, EvidenceSettings()),
        synthesizer=ConsensusSynthesizer(trading.consensus_threshold),
        pipeline=ExecutionPipeline(RiskEngineClient(client), order_bus, trading, execution),
        client=client,
        order_bus=order_bus,
        trading=trading,
        execution=execution,
    )


class TestTradeRouting:
    @pytest.mark.asyncio
    async def test_missing_symbol(self):
        response = await _router().route(_command(Intent.BUY), _request(confirmed=True))
        assert response.success is False
        assert response.message == "Please specify a stock symbol for trading commands."

    @pytest.mark.asyncio
    async def test_agreeing_sources_reach_final_confirmation(self):
        response = await _router().route(_command(Intent.BUY, symbol="AAPL"), _request(confirmed=True))

        assert response.success is True
        assert response.message.startswith("Evidence for AAPL:")
        assert "Consensus: 4/4 sources agree - PROCEED" in response.message
        assert response.message.endswith("Confirm: BUY 10 shares of AAPL?")
        assert response.data["stage"] == "execution"

    @pytest.mark.asyncio
    async def test_disagreeing_sources_abstain(self):
        responses = bullish_responses()
        responses[ToolNames.ANALYZE_SENTIMENT] = {"sentiment": 0.2}
        responses[ToolNames.ASSESS_SYMBOL] = {"riskScore": 9}
        responses[ToolNames.GET_OHLCV] = {"rows": [{"close": 100}, {"close": 99}]}
        order_bus = FakeOrderBus()

        response = await _router(responses, order_bus).route(
            _command(Intent.BUY, symbol="AAPL"), _request(confirmed=True, executionConfirmed=True)
        )

        assert response.success is False
        assert "Sources recommend AGAINST this trade: " in response.message
        assert "Risk too high" in response.message
        assert order_bus.published == []

    @pytest.mark.asyncio
    async def test_defaulted_sources_are_marked(self):
        response = await _router(responses={}).route(_command(Intent.BUY, symbol="AAPL"), _request(confirmed=True))
        assert "[default]" in response.message
        assert response.success is False

    @pytest.mark.asyncio
    async def test_executes_when_confirmed_twice(self):
        order_bus = FakeOrderBus()
        response = await _router(order_bus=order_bus).route(
            _command(Intent.BUY, symbol="AAPL"), _request(confirmed=True, executionConfirmed=True)
        )
        assert response.success is True
        assert len(order_bus.published) == 1

    @pytest.mark.asyncio
    async def test_unexpected_error_is_caught(self):
        router = _router()
        router.aggregator = None  # gather() now fails with AttributeError

        response = await router.route(_command(Intent.BUY, symbol="AAPL"), _request(confirmed=True))

        assert response.success is False
        assert response.message == "Failed to execute command. Please try again."


class TestTradingHalt:
    @pytest.mark.asyncio
    async def test_stop_halts_and_publishes_control_event(self):
        order_bus = FakeOrderBus()
        router = _router(order_bus=order_bus)

        response = await router.route(_command(Intent.STOP, text="stop everything"), _request())

        assert response.success is True
        assert router.halted is True
        [event] = order_bus.published
        assert event["topic"] == "orders.control"
        assert event["event_type"] is EventType.TRADING_HALTED
        assert event["payload"]["action"] == "emergency_stop"

        blocked = await router.route(_command(Intent.BUY, symbol="AAPL"), _request(confirmed=True))
        assert blocked.success is False
        assert "halted" in blocked.message

    @pytest.mark.asyncio
    async def test_stop_holds_even_when_publication_fails(self):
        router = _router(order_bus=FakeOrderBus(fail=True))
        response = await router.route(_command(Intent.STOP), _request())
        assert router.halted is True
        assert response.data["controlEventPublished"] is False

    @pytest.mark.asyncio
    async def test_resume(self):
        order_bus = FakeOrderBus()
        router = _router(order_bus=order_bus)
        await router.route(_command(Intent.STOP), _request())

        response = await router.resume(reason="all clear")

        assert response.success is True
        assert router.halted is False
        assert order_bus.published[-1]["event_type"] is EventType.TRADING_RESUMED

        again = await router.resume()
        assert again.message == "Trading is already active."


class TestOtherIntents:
    @pytest.mark.asyncio
    async def test_status(self):
        response = await _router().route(_command(Intent.STATUS), _request())
        assert response.success is True
        assert response.data["tradingHalted"] is False
        assert response.data["consensusThreshold"] == 0.6
        assert response.data["limits"] == {"maxGross": 100000.0, "maxSingle": 10000.0}

    @pytest.mark.asyncio
    async def test_query_echoes_text(self):
        response = await _router().route(_command(Intent.QUERY, text="what can you do"), _request())
        assert response.success is True
        assert '"what can you do"' in response.message
        assert response.follow_up.startswith("Try:")

    @pytest.mark.asyncio
    async def test_alert_is_stored_in_config_service(self):
        responses = bullish_responses()
        responses[ToolNames.CONFIG_SET] = {"ok": True}
        client = FakeMCPClient(responses)

        response = await _router(client=client).route(
            _command(Intent.ALERT, symbol="TSLA", price=200), _request()
        )

        assert response.success is True
        assert response.message == "Alert set for TSLA at $200"
        [call] = client.calls
        assert call["operation"] == ToolNames.CONFIG_SET
        assert call["payload"]["key"] == f"alerts.{response.data['alertId']}"
        assert call["payload"]["value"]["condition"] == "crosses"

    @pytest.mark.asyncio
    async def test_alert_needs_symbol_and_price(self):
        response = await _router().route(_command(Intent.ALERT, symbol="TSLA"), _request())
        assert response.success is False

    @pytest.mark.asyncio
    async def test_alert_storage_failure(self):
        response = await _router().route(_command(Intent.ALERT, symbol="TSLA", price=200), _request())
        assert response.success is False
        assert response.message == "Failed to set alert. Please try again."

    @pytest.mark.asyncio
    async def test_analyze_never_executes(self):
        order_bus = FakeOrderBus()
        client = FakeMCPClient(bullish_responses())
        response = await _router(order_bus=order_bus, client=client).route(
            _command(Intent.ANALYZE, symbol="AAPL"), _request(confirmed=True, executionConfirmed=True)
        )

        assert response.success is True
        assert response.data["recommendation"]["shouldProceed"] is True
        assert order_bus.published == []
        assert ToolNames.PRETRADE_CHECK not in client.operations()

    @pytest.mark.asyncio
    async def test_analyze_needs_symbol(self):
        response = await _router().route(_command(Intent.ANALYZE), _request())
        assert response.success is False

    @pytest.mark.asyncio
    async def test_config_not_supported(self):
        response = await _router().route(_command(Intent.CONFIG), _request())
        assert response.success is True
        assert "not yet supported" in response.message
