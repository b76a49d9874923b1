# Weighted-consensus synthesis of evidence into a proceed/abstain verdict
import math
from typing import List, Tuple

from core.logging.service_logger import get_service_logger
from core.schemas.commands import Intent
from core.schemas.evidence import ConsensusVerdict, EvidenceRecord, Trend

MAX_SUGGESTED_QUANTITY = 10
RISK_SCORE_CEILING = 6


class ConsensusSynthesizer:
    """Scores each present evidence dimension for or against the intent.

    Dimensions are evaluated in a fixed order (market, sentiment, technical,
    risk) and the rationale strings keep that order. Absent dimensions do not
    count toward the denominator.
    """

    def __init__(self, threshold: float = 0.6):
        self.threshold = threshold
        self.logger = get_service_logger("consensus", "synthesizer").main

    def _signals(self, evidence: EvidenceRecord, intent: Intent) -> List[Tuple[bool, str]]:
        buying = intent is Intent.BUY
        signals: List[Tuple[bool, str]] = []

        if evidence.market_data is not None:
            change = evidence.market_data.change_pct
            aligned = change > 0 if buying else change < 0
            if aligned:
                signals.append((True, "Price momentum positive" if buying else "Price momentum negative"))
            else:
                signals.append((False, "Price momentum not aligned"))

        if evidence.sentiment is not None:
            score = evidence.sentiment.score
            if buying and score > 0.6:
                signals.append((True, "Sentiment bullish"))
            elif not buying and score < 0.4:
                signals.append((True, "Sentiment bearish"))
            else:
                signals.append((False, "Sentiment not aligned"))

        if evidence.technical is not None:
            wanted = Trend.BULLISH if buying else Trend.BEARISH
            if evidence.technical.trend is wanted:
                signals.append((True, "Technical trend aligned"))
            else:
                signals.append((False, "Technical trend not aligned"))

        if evidence.risk is not None:
            if evidence.risk.score <= RISK_SCORE_CEILING:
                signals.append((True, "Risk acceptable"))
            else:
                signals.append((False, "Risk too high"))

        return signals

    def synthesize(self, evidence: EvidenceRecord, intent: Intent) -> ConsensusVerdict:
        signals = self._signals(evidence, intent)
        total = len(signals)
        positive = sum(1 for ok, _ in signals if ok)
        consensus = positive / total if total else 0.0
        should_proceed = total > 0 and consensus >= self.threshold

        if should_proceed:
            decision = f"{positive}/{total} sources agree - PROCEED"
            suggested_quantity = max(1, math.floor(MAX_SUGGESTED_QUANTITY * consensus))
        else:
            decision = f"Only {positive}/{total} sources agree - CAUTION"
            suggested_quantity = 1

        verdict = ConsensusVerdict(
            should_proceed=should_proceed,
            decision=decision,
            confidence=consensus,
            reason=", ".join(reason for _, reason in signals) or "No evidence available",
            suggested_quantity=suggested_quantity,
            suggested_price=evidence.market_data.price if evidence.market_data else None,
            positive_signals=positive,
            total_signals=total,
        )

        self.logger.info(
            "Consensus reached",
            symbol=evidence.symbol,
            intent=intent.value,
            consensus=round(consensus, 4),
            should_proceed=should_proceed,
        )
        return verdict
