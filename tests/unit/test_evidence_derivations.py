import pytest

from core.schemas.commands import Intent
from core.schemas.evidence import MarketData, Recommendation, Sentiment, Technical, Trend
from services.evidence.derivations import classify_trend, compute_rsi, derive_strategy, derive_technical


@pytest.mark.parametrize("change,trend", [
    (2.5, Trend.BULLISH),
    (2.0, Trend.SIDEWAYS),
    (0.0, Trend.SIDEWAYS),
    (-2.0, Trend.SIDEWAYS),
    (-2.1, Trend.BEARISH),
])
def test_classify_trend(change, trend):
    assert classify_trend(change) is trend


def test_rsi_without_history_is_neutral():
    assert compute_rsi([]) == 50.0
    assert compute_rsi([100.0]) == 50.0


def test_rsi_only_gains():
    assert compute_rsi([1, 2, 3, 4]) == 100.0


def test_rsi_flat_series_is_neutral():
    assert compute_rsi([5, 5, 5]) == 50.0


def test_rsi_mixed_moves():
    # gains 2, losses 1 -> rs 2 -> 66.67
    assert compute_rsi([10, 12, 11]) == pytest.approx(66.67)


def test_rsi_stays_in_range():
    closes = [100, 90, 95, 80, 70, 75, 60, 65, 50, 55, 40, 45, 30, 35, 20, 25]
    assert 0.0 <= compute_rsi(closes) <= 100.0


def test_technical_levels_follow_price():
    technical = derive_technical(MarketData(price=200, change_pct=3, volume=1))
    assert technical.trend is Trend.BULLISH
    assert technical.support == 190.0
    assert technical.resistance == 210.0


def _technical(trend):
    return Technical(trend=trend, rsi=50, support=95, resistance=105)


def test_buy_strategy():
    strategy = derive_strategy(Intent.BUY, Sentiment(score=0.7, confidence=0.7), _technical(Trend.SIDEWAYS))
    assert strategy.recommendation is Recommendation.BUY
    assert strategy.confidence == pytest.approx(0.76)

    strategy = derive_strategy(Intent.BUY, Sentiment(score=0.7, confidence=0.7), _technical(Trend.BEARISH))
    assert strategy.recommendation is Recommendation.HOLD


def test_sell_strategy_mirrors_buy():
    strategy = derive_strategy(Intent.SELL, Sentiment(score=0.2, confidence=1.0), _technical(Trend.BEARISH))
    assert strategy.recommendation is Recommendation.SELL
    assert strategy.confidence == 0.9

    strategy = derive_strategy(Intent.SELL, Sentiment(score=0.2, confidence=1.0), _technical(Trend.BULLISH))
    assert strategy.recommendation is Recommendation.HOLD


def test_non_trade_intent_holds():
    strategy = derive_strategy(Intent.ANALYZE, Sentiment(score=0.9, confidence=0.9), _technical(Trend.BULLISH))
    assert strategy.recommendation is Recommendation.HOLD
