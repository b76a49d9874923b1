# Deterministic keyword/regex intent resolution
import re
from typing import Optional, List

from core.schemas.commands import Intent, Entities, ParsedCommand


SYMBOL_CANDIDATE = re.compile(r"\b([A-Za-z]{1,5})\b")
DOLLAR_AMOUNT = re.compile(r"\$(\d{1,3}(?:,\d{3})+|\d+)(?!\d|,\d)")

STOP_WORDS = frozenset({"buy", "sell", "of", "the", "and", "or", "at", "for", "in", "on"})

BUY_KEYWORDS = ("buy", "purchase")
SELL_KEYWORDS = ("sell",)
STATUS_KEYWORDS = ("status", "portfolio")

# Fixed per-branch confidences; looser than a successful semantic parse
BUY_CONFIDENCE = 0.7
SELL_CONFIDENCE = 0.6
STATUS_CONFIDENCE = 0.7
QUERY_CONFIDENCE = 0.3


def extract_symbol(text: str) -> Optional[str]:
    """First 1-5 letter token that is not a stop word, upper-cased."""
    candidates: List[str] = SYMBOL_CANDIDATE.findall(text)
    for word in candidates:
        if word.lower() not in STOP_WORDS:
            return word.upper()
    return None


def extract_amount(text: str) -> Optional[int]:
    """First `$1,234` / `$5000` style amount as an int."""
    match = DOLLAR_AMOUNT.search(text)
    if not match:
        return None
    try:
        return int(match.group(1).replace(",", ""))
    except ValueError:
        return None


class EntityFallbackResolver:
    """Maps any text to a valid ParsedCommand without external calls.

    This is the terminal fallback for the semantic resolver, so it must
    never raise.
    """

    def resolve(self, text: str) -> ParsedCommand:
        text = text or ""
        lowered = text.lower()

        if any(k in lowered for k in BUY_KEYWORDS):
            return self._trade(Intent.BUY, text, BUY_CONFIDENCE)

        if any(k in lowered for k in SELL_KEYWORDS):
            return self._trade(Intent.SELL, text, SELL_CONFIDENCE)

        if any(k in lowered for k in STATUS_KEYWORDS):
            return ParsedCommand(
                intent=Intent.STATUS,
                original_text=text,
                confidence=STATUS_CONFIDENCE,
                needs_confirmation=False,
            )

        return ParsedCommand(
            intent=Intent.QUERY,
            original_text=text,
            confidence=QUERY_CONFIDENCE,
            needs_confirmation=False,
        )

    @staticmethod
    def _trade(intent: Intent, text: str, confidence: float) -> ParsedCommand:
        return ParsedCommand(
            intent=intent,
            entities=Entities(symbol=extract_symbol(text), amount=extract_amount(text)),
            original_text=text,
            confidence=confidence,
            needs_confirmation=True,
        )
