# Concurrent evidence gathering with per-source defaults
import asyncio
from datetime import date, timedelta
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, Tuple

from core.config.settings import EvidenceSettings
from core.logging.service_logger import get_service_logger
from core.schemas.commands import Intent
from core.schemas.evidence import (
    EvidenceRecord,
    MarketData,
    RiskAssessment,
    Sentiment,
    SourceOrigin,
    SourceResult,
)
from core.schemas.topics import ServiceNames, ToolNames
from core.utils.exceptions import EvidenceSourceError
from .derivations import derive_strategy, derive_technical


class ServiceCaller(Protocol):
    async def call(self, service: str, operation: str, payload: Dict[str, Any]) -> Any:
        ...


DEFAULT_MARKET = MarketData(price=100.0, change_pct=0.0, volume=1_000_000)
DEFAULT_SENTIMENT = Sentiment(score=0.5, confidence=0.7, sources=["default"])
DEFAULT_RISK = RiskAssessment(status="MEDIUM", score=5, factors=["volatility"])


def parse_market(symbol: str, data: Any) -> Tuple[MarketData, List[float]]:
    """OHLCV rows -> latest close, day-over-day change and volume."""
    rows = data.get("rows") if isinstance(data, dict) else None
    rows = [r for r in rows or [] if isinstance(r, dict) and r.get("close") is not None]
    if not rows:
        raise EvidenceSourceError(f"No OHLCV rows returned for {symbol}", source=ServiceNames.MARKET_DATA)

    closes = [float(r["close"]) for r in rows]
    latest = rows[-1]
    price = closes[-1]
    previous = closes[-2] if len(closes) > 1 else None
    change_pct = ((price - previous) / previous) * 100 if previous else 0.0
    volume = latest.get("volume") or DEFAULT_MARKET.volume
    return MarketData(price=price, change_pct=change_pct, volume=volume), closes


def parse_sentiment(symbol: str, data: Any) -> Sentiment:
    if not isinstance(data, dict) or data.get("sentiment") is None:
        raise EvidenceSourceError(f"No sentiment score returned for {symbol}", source=ServiceNames.SENTIMENT)
    return Sentiment(
        score=data["sentiment"],
        confidence=data.get("confidence", DEFAULT_SENTIMENT.confidence),
        sources=data.get("sources") or ["unspecified"],
    )


def parse_risk(symbol: str, data: Any) -> RiskAssessment:
    if not isinstance(data, dict) or data.get("riskScore") is None:
        raise EvidenceSourceError(f"No risk score returned for {symbol}", source=ServiceNames.RISK_ENGINE)
    return RiskAssessment(
        status=data.get("status") or DEFAULT_RISK.status,
        score=data["riskScore"],
        factors=data.get("factors") or ["volatility", "liquidity"],
    )


class EvidenceAggregator:
    """Gathers market, sentiment and risk evidence concurrently.

    Every remote call is isolated: a failure, timeout or empty answer is
    replaced by that source's default and tagged as such, so the returned
    EvidenceRecord is always complete. Technical and strategy evidence are
    derived locally from the gathered values.
    """

    def __init__(self, client: ServiceCaller, settings: EvidenceSettings):
        self.client = client
        self.settings = settings
        self.loggers = get_service_logger("evidence", "aggregator")
        self.logger = self.loggers.main

    async def gather(self, symbol: str, intent: Intent) -> EvidenceRecord:
        today = date.today()
        market_call = self._guarded(
            ServiceNames.MARKET_DATA,
            lambda: self.client.call(ServiceNames.MARKET_DATA, ToolNames.GET_OHLCV, {
                "symbol": symbol,
                "start": (today - timedelta(days=self.settings.lookback_days)).isoformat(),
                "end": today.isoformat(),
                "interval": "1d",
            }),
            lambda data: parse_market(symbol, data),
            (DEFAULT_MARKET, []),
        )
        sentiment_call = self._guarded(
            ServiceNames.SENTIMENT,
            lambda: self.client.call(ServiceNames.SENTIMENT, ToolNames.ANALYZE_SENTIMENT, {
                "text": f"{symbol} stock market sentiment analysis",
                "symbol": symbol,
            }),
            lambda data: parse_sentiment(symbol, data),
            DEFAULT_SENTIMENT,
        )
        risk_call = self._guarded(
            ServiceNames.RISK_ENGINE,
            lambda: self.client.call(ServiceNames.RISK_ENGINE, ToolNames.ASSESS_SYMBOL, {
                "symbol": symbol,
                "intent": intent.value.lower(),
            }),
            lambda data: parse_risk(symbol, data),
            DEFAULT_RISK,
        )

        (market_result, (market, closes)), (sentiment_result, sentiment), (risk_result, risk) = (
            await asyncio.gather(market_call, sentiment_call, risk_call)
        )

        technical = derive_technical(market, closes)
        record = EvidenceRecord(
            symbol=symbol,
            market_data=market,
            sentiment=sentiment,
            technical=technical,
            risk=risk,
            strategy=derive_strategy(intent, sentiment, technical),
            sources=[market_result, sentiment_result, risk_result],
        )

        self.logger.info(
            "Evidence gathered",
            symbol=symbol,
            intent=intent.value,
            defaulted_sources=record.defaulted_sources,
        )
        return record

    async def _guarded(
        self,
        source: str,
        call: Callable[[], Awaitable[Any]],
        parse: Callable[[Any], Any],
        default: Any,
    ) -> Tuple[SourceResult, Any]:
        """Run one source call to completion-or-failure; never raises."""
        try:
            data = await asyncio.wait_for(call(), timeout=self.settings.call_timeout_seconds)
            value = parse(data)
            return SourceResult(source=source, origin=SourceOrigin.LIVE), value
        except asyncio.TimeoutError:
            error = f"timed out after {self.settings.call_timeout_seconds}s"
        except Exception as e:
            error = str(e) or type(e).__name__

        self.logger.warning("Evidence source defaulted", source=source, reason=error)
        return SourceResult(source=source, origin=SourceOrigin.DEFAULT, error=error), default
