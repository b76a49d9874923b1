# Locally derived evidence: technical picture and strategy recommendation
from typing import Sequence

from core.schemas.commands import Intent
from core.schemas.evidence import (
    MarketData,
    Recommendation,
    Sentiment,
    Strategy,
    Technical,
    Trend,
)

TREND_THRESHOLD_PCT = 2.0
NEUTRAL_RSI = 50.0
RSI_PERIOD = 14
SUPPORT_FACTOR = 0.95
RESISTANCE_FACTOR = 1.05


def classify_trend(change_pct: float) -> Trend:
    if change_pct > TREND_THRESHOLD_PCT:
        return Trend.BULLISH
    if change_pct < -TREND_THRESHOLD_PCT:
        return Trend.BEARISH
    return Trend.SIDEWAYS


def compute_rsi(closes: Sequence[float], period: int = RSI_PERIOD) -> float:
    """RSI from mean gains and losses over the last `period` moves; neutral without history."""
    if len(closes) < 2:
        return NEUTRAL_RSI

    deltas = [b - a for a, b in zip(closes, closes[1:])][-period:]
    gains = sum(d for d in deltas if d > 0) / len(deltas)
    losses = sum(-d for d in deltas if d < 0) / len(deltas)

    if losses == 0:
        return 100.0 if gains > 0 else NEUTRAL_RSI
    rs = gains / losses
    return round(100.0 - 100.0 / (1.0 + rs), 2)


def derive_technical(market: MarketData, closes: Sequence[float] = ()) -> Technical:
    return Technical(
        trend=classify_trend(market.change_pct),
        rsi=compute_rsi(closes),
        support=round(market.price * SUPPORT_FACTOR, 2),
        resistance=round(market.price * RESISTANCE_FACTOR, 2),
    )


def derive_strategy(intent: Intent, sentiment: Sentiment, technical: Technical) -> Strategy:
    """BUY wants sentiment > 0.6 and a non-bearish trend, SELL the mirror."""
    if intent is Intent.BUY:
        aligned = sentiment.score > 0.6 and technical.trend is not Trend.BEARISH
        recommendation = Recommendation.BUY if aligned else Recommendation.HOLD
    elif intent is Intent.SELL:
        aligned = sentiment.score < 0.4 and technical.trend is not Trend.BULLISH
        recommendation = Recommendation.SELL if aligned else Recommendation.HOLD
    else:
        recommendation = Recommendation.HOLD

    return Strategy(
        recommendation=recommendation,
        confidence=min(0.9, sentiment.confidence * 0.8 + 0.2),
        reasoning=f"Based on sentiment ({sentiment.score * 100:.0f}%) and technical analysis",
    )
