"""
End-to-end tests of the command agent over in-memory collaborators.
"""

import pytest
from unittest.mock import AsyncMock

from core.config.settings import (
    ConfirmationMode,
    ConfirmationSettings,
    EvidenceSettings,
    ExecutionSettings,
    TradingSettings,
)
from core.schemas.commands import CommandRequest
from core.utils.exceptions import UnknownToolError
from services.command_agent import CommandAgentService, CommandRouter, SessionHistoryStore
from services.confirmation import ConfirmationGate
from services.consensus import ConsensusSynthesizer
from services.evidence import EvidenceAggregator
from services.execution import ExecutionPipeline, RiskEngineClient
from services.intent_parser import IntentResolutionService
from tests.fakes import FakeMCPClient, FakeOrderBus, bullish_responses


def _agent(mode=ConfirmationMode.CONTEXT, resolver=None):
    client = FakeMCPClient(bullish_responses())
    order_bus = FakeOrderBus()
    trading = TradingSettings()
    execution = ExecutionSettings()
    router = CommandRouter(
        aggregator=EvidenceAggregator(client, EvidenceSettings()),
        synthesizer=ConsensusSynthesizer(trading.consensus_threshold),
        pipeline=ExecutionPipeline(RiskEngineClient(client), order_bus, trading, execution),
        client=client,
        order_bus=order_bus,
        trading=trading,
        execution=execution,
    )
    agent = CommandAgentService(
        resolver=resolver or IntentResolutionService(),
        gate=ConfirmationGate(ConfirmationSettings(mode=mode)),
        router=router,
        history=SessionHistoryStore(),
    )
    return agent, client, order_bus


def _request(command="Buy $5000 of AAPL", session_id="s1", **context):
    return CommandRequest(command=command, session_id=session_id, context=context)


class TestContextConfirmation:
    @pytest.mark.asyncio
    async def test_unconfirmed_trade_never_reaches_evidence_or_execution(self):
        agent, client, order_bus = _agent()

        response = await agent.process_command(_request())

        assert response.success is True
        assert response.message == "Confirm: Buy $5000 of AAPL?"
        assert response.data["parsedCommand"]["entities"] == {"symbol": "AAPL", "amount": 5000.0}
        assert client.calls == []
        assert order_bus.published == []

    @pytest.mark.asyncio
    async def test_three_turn_flow_publishes_order(self):
        agent, client, order_bus = _agent()

        await agent.process_command(_request())
        final = await agent.process_command(_request(confirmed=True))
        assert final.data["stage"] == "execution"
        assert final.message.endswith("Confirm: BUY 48 shares of AAPL?")
        assert order_bus.published == []

        done = await agent.process_command(_request(confirmed=True, executionConfirmed=True))

        assert done.success is True
        [order] = order_bus.published
        assert order["payload"]["symbol"] == "AAPL"
        assert order["payload"]["quantity"] == 48

    @pytest.mark.asyncio
    async def test_trade_without_symbol_asks_for_symbol_before_confirming(self):
        agent, client, order_bus = _agent()

        response = await agent.process_command(_request("buy something"))

        assert response.success is False
        assert response.message == "Please specify a stock symbol for trading commands."
        assert "None" not in response.message
        assert not (response.data or {}).get("requiresConfirmation")
        assert client.calls == []
        assert order_bus.published == []
        assert agent.history.get("s1")[-1]["success"] is False

    @pytest.mark.asyncio
    async def test_low_impact_command_needs_no_confirmation(self):
        agent, _, _ = _agent()
        response = await agent.process_command(_request("show portfolio status"))
        assert response.success is True
        assert "requiresConfirmation" not in (response.data or {})


class TestTokenConfirmation:
    @pytest.mark.asyncio
    async def test_token_flow(self):
        agent, _, order_bus = _agent(ConfirmationMode.TOKEN)

        prompt = await agent.process_command(_request())
        token = prompt.data["confirmationToken"]

        # A client-side flag is not accepted in token mode
        ignored = await agent.process_command(_request(confirmed=True))
        assert ignored.data["requiresConfirmation"] is True
        assert "stage" not in ignored.data

        final = await agent.process_command(_request(confirmationToken=token))
        assert final.data["stage"] == "execution"
        next_token = final.data["confirmationToken"]
        assert next_token != token

        done = await agent.process_command(_request(confirmationToken=next_token, executionConfirmed=True))
        assert done.success is True
        assert len(order_bus.published) == 1

    @pytest.mark.asyncio
    async def test_confirmation_state_is_not_sent_to_resolver(self):
        resolver = IntentResolutionService()
        resolver.resolve = AsyncMock(wraps=resolver.resolve)
        agent, _, _ = _agent(ConfirmationMode.TOKEN, resolver=resolver)

        token = (await agent.process_command(_request(channel="chat"))).data["confirmationToken"]
        await agent.process_command(
            _request(confirmationToken=token, confirmed=True, executionConfirmed=True, channel="chat")
        )

        context = resolver.resolve.await_args.args[1]
        assert set(context) == {"channel", "history"}
        assert token not in str(context)

    @pytest.mark.asyncio
    async def test_replayed_token_is_refused(self):
        agent, _, order_bus = _agent(ConfirmationMode.TOKEN)
        token = (await agent.process_command(_request())).data["confirmationToken"]

        await agent.process_command(_request(confirmationToken=token))
        replay = await agent.process_command(_request(confirmationToken=token, executionConfirmed=True))

        assert "stage" not in replay.data
        assert order_bus.published == []


class TestHistoryAndErrors:
    @pytest.mark.asyncio
    async def test_recent_history_is_passed_to_resolver(self):
        resolver = IntentResolutionService()
        resolver.resolve = AsyncMock(wraps=resolver.resolve)
        agent, _, _ = _agent(resolver=resolver)

        for text in ("show status", "what is up", "show status", "hello"):
            await agent.process_command(_request(text))

        context = resolver.resolve.await_args.args[1]
        assert len(context["history"]) == 3
        assert context["history"][-1]["command"] == "hello"
        assert len(agent.history.get("s1")) == 8

    @pytest.mark.asyncio
    async def test_unexpected_error_becomes_generic_failure(self):
        resolver = AsyncMock()
        resolver.resolve.side_effect = RuntimeError("resolver crashed")
        agent, _, _ = _agent(resolver=resolver)

        response = await agent.process_command(_request())

        assert response.success is False
        assert response.message.startswith("I encountered an error processing your request.")
        assert response.data == {"error": "resolver crashed"}


class TestToolInterface:
    def test_exposes_command_tool(self):
        agent, _, _ = _agent()
        [tool] = agent.get_tools()
        assert tool["name"] == "command-agent.process"
        assert tool["inputSchema"]["required"] == ["command"]

    @pytest.mark.asyncio
    async def test_tool_call_processes_command(self):
        agent, _, _ = _agent()
        response = await agent.handle_tool_call("command-agent.process", {"command": "show status", "sessionId": "t"})
        assert response.success is True
        assert agent.history.get("t")

    @pytest.mark.asyncio
    async def test_unknown_tool(self):
        agent, _, _ = _agent()
        with pytest.raises(UnknownToolError):
            await agent.handle_tool_call("command-agent.teleport", {})
