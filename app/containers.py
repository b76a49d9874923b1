# COMPLETE DI container - NO MISSING PROVIDERS
from typing import Optional

from dependency_injector import containers, providers

from core.config.settings import IntentSettings, Settings
from core.streaming.infrastructure import MessageProducer
from services.command_agent import CommandAgentService, CommandRouter, SessionHistoryStore
from services.confirmation import ConfirmationGate
from services.consensus import ConsensusSynthesizer
from services.evidence import EvidenceAggregator, MCPServiceClient
from services.execution import ExecutionPipeline, RiskEngineClient
from services.execution.order_bus import RedpandaOrderBus
from services.intent_parser import EntityFallbackResolver, IntentResolutionService
from services.intent_parser.semantic import OpenAIIntentResolver


def build_semantic_resolver(settings: IntentSettings) -> Optional[OpenAIIntentResolver]:
    """The semantic resolver is only wired when an api key is configured."""
    resolver = OpenAIIntentResolver(settings)
    return resolver if resolver.enabled else None


class AppContainer(containers.DeclarativeContainer):
    """Application dependency injection container"""

    # Configuration
    settings = providers.Singleton(Settings)

    # --- Outbound clients ---
    mcp_client = providers.Singleton(
        MCPServiceClient,
        settings=settings.provided.evidence,
    )

    message_producer = providers.Singleton(
        MessageProducer,
        config=settings.provided.redpanda,
        service_name="command_agent",
    )

    order_bus = providers.Singleton(
        RedpandaOrderBus,
        producer=message_producer,
    )

    # --- Intent resolution ---
    semantic_resolver = providers.Singleton(
        build_semantic_resolver,
        settings=settings.provided.intent,
    )

    fallback_resolver = providers.Singleton(EntityFallbackResolver)

    intent_resolver = providers.Singleton(
        IntentResolutionService,
        semantic=semantic_resolver,
        fallback=fallback_resolver,
    )

    # --- Decision pipeline ---
    confirmation_gate = providers.Singleton(
        ConfirmationGate,
        settings=settings.provided.confirmation,
    )

    evidence_aggregator = providers.Singleton(
        EvidenceAggregator,
        client=mcp_client,
        settings=settings.provided.evidence,
    )

    consensus_synthesizer = providers.Singleton(
        ConsensusSynthesizer,
        threshold=settings.provided.trading.consensus_threshold,
    )

    risk_engine = providers.Singleton(
        RiskEngineClient,
        client=mcp_client,
    )

    execution_pipeline = providers.Singleton(
        ExecutionPipeline,
        risk_engine=risk_engine,
        order_bus=order_bus,
        trading=settings.provided.trading,
        settings=settings.provided.execution,
    )

    # --- Command agent ---
    command_router = providers.Singleton(
        CommandRouter,
        aggregator=evidence_aggregator,
        synthesizer=consensus_synthesizer,
        pipeline=execution_pipeline,
        client=mcp_client,
        order_bus=order_bus,
        trading=settings.provided.trading,
        execution=settings.provided.execution,
        confirmation=settings.provided.confirmation,
    )

    session_history = providers.Singleton(
        SessionHistoryStore,
        capacity=settings.provided.history.capacity,
        max_sessions=settings.provided.history.max_sessions,
    )

    command_agent = providers.Singleton(
        CommandAgentService,
        resolver=intent_resolver,
        gate=confirmation_gate,
        router=command_router,
        history=session_history,
        context_entries=settings.provided.history.context_entries,
    )
