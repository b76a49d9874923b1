"""
Pytest configuration and shared fixtures for Swarm Command tests.
"""
import pytest
from typing import Optional

from core.config.settings import (
    ConfirmationSettings,
    EvidenceSettings,
    ExecutionSettings,
    Settings,
    TradingSettings,
)
from core.schemas.evidence import EvidenceRecord, MarketData, RiskAssessment, Sentiment, Technical, Trend
from services.consensus import ConsensusSynthesizer
from services.evidence import EvidenceAggregator
from services.execution import ExecutionPipeline, RiskEngineClient
from tests.fakes import FakeMCPClient, FakeOrderBus, bullish_responses


@pytest.fixture
def test_settings():
    """Test settings configuration."""
    return Settings(
        environment="testing",
        evidence=EvidenceSettings(mcp_host_url="http://mcp.test", call_timeout_seconds=0.5),
        trading=TradingSettings(),
        confirmation=ConfirmationSettings(),
        execution=ExecutionSettings(),
    )


@pytest.fixture
def fake_mcp():
    return FakeMCPClient(bullish_responses())


@pytest.fixture
def fake_order_bus():
    return FakeOrderBus()


@pytest.fixture
def aggregator(fake_mcp, test_settings):
    return EvidenceAggregator(fake_mcp, test_settings.evidence)


@pytest.fixture
def synthesizer(test_settings):
    return ConsensusSynthesizer(threshold=test_settings.trading.consensus_threshold)


@pytest.fixture
def pipeline(fake_mcp, fake_order_bus, test_settings):
    return ExecutionPipeline(
        risk_engine=RiskEngineClient(fake_mcp),
        order_bus=fake_order_bus,
        trading=test_settings.trading,
        settings=test_settings.execution,
    )


@pytest.fixture
def evidence_factory():
    """Factory for evidence records with chosen dimensions."""
    def _create(
        symbol: str = "AAPL",
        change_pct: Optional[float] = 1.0,
        sentiment: Optional[float] = 0.8,
        trend: Optional[Trend] = Trend.BULLISH,
        risk_score: Optional[float] = 3,
        price: float = 150.0,
    ) -> EvidenceRecord:
        return EvidenceRecord(
            symbol=symbol,
            market_data=MarketData(price=price, change_pct=change_pct, volume=1_000_000)
            if change_pct is not None else None,
            sentiment=Sentiment(score=sentiment, confidence=0.8) if sentiment is not None else None,
            technical=Technical(trend=trend, rsi=55, support=price * 0.95, resistance=price * 1.05)
            if trend is not None else None,
            risk=RiskAssessment(status="LOW", score=risk_score) if risk_score is not None else None,
        )

    return _create
