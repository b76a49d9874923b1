# Semantic intent resolution through the OpenAI chat completions API
import json
import re
from typing import Any, Dict, Optional

from openai import AsyncOpenAI
from pydantic import ValidationError

from core.config.settings import IntentSettings
from core.schemas.commands import ParsedCommand
from core.utils.exceptions import ParseError


JSON_OBJECT_PATTERN = re.compile(r"\{[\s\S]*\}")

PARSER_PROMPT = """You are a trading command parser. Parse this natural language trading command and return a JSON object with the following structure:

{
  "intent": "BUY" | "SELL" | "QUERY" | "ALERT" | "ANALYZE" | "CONFIG" | "STOP" | "STATUS",
  "entities": {
    "symbol": "string (optional)",
    "amount": "number in USD (optional)",
    "price": "number (optional)",
    "quantity": "number of shares (optional)",
    "timeframe": "string like '1d', '1w', '1m' (optional)",
    "condition": "string describing conditions (optional)"
  },
  "confidence": "number between 0 and 1",
  "needsConfirmation": "boolean - true for high-impact trades"
}

Examples:
- "Buy $5000 of AAPL" -> {"intent": "BUY", "entities": {"symbol": "AAPL", "amount": 5000}, "confidence": 0.95, "needsConfirmation": true}
- "purchase TSLA" -> {"intent": "BUY", "entities": {"symbol": "TSLA"}, "confidence": 0.9, "needsConfirmation": true}
- "sell NVDA" -> {"intent": "SELL", "entities": {"symbol": "NVDA"}, "confidence": 0.9, "needsConfirmation": true}
- "What's my portfolio status?" -> {"intent": "STATUS", "entities": {}, "confidence": 0.9, "needsConfirmation": false}
- "Set alert for TSLA at $200" -> {"intent": "ALERT", "entities": {"symbol": "TSLA", "price": 200}, "confidence": 0.9, "needsConfirmation": false}
- "Why did my portfolio drop today?" -> {"intent": "ANALYZE", "entities": {"timeframe": "1d"}, "confidence": 0.85, "needsConfirmation": false}

Command: "{command}"{context}

Return only valid JSON:"""


def build_prompt(text: str, context: Optional[Dict[str, Any]] = None) -> str:
    context_str = f"\nContext: {json.dumps(context, default=str)}" if context else ""
    return PARSER_PROMPT.replace("{command}", text).replace("{context}", context_str)


def parse_model_output(raw_text: Optional[str], original_text: str) -> ParsedCommand:
    """Validate the model's reply into a ParsedCommand or raise ParseError."""
    if not raw_text:
        raise ParseError("Empty response from intent model")

    match = JSON_OBJECT_PATTERN.search(raw_text)
    if not match:
        raise ParseError("No JSON found in intent model response", raw_output=raw_text)

    try:
        payload = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise ParseError(f"Intent model returned invalid JSON: {e}", raw_output=raw_text) from e

    if not isinstance(payload, dict):
        raise ParseError("Intent model returned a non-object payload", raw_output=raw_text)

    payload["originalText"] = original_text
    payload.pop("original_text", None)
    try:
        return ParsedCommand.model_validate(payload)
    except ValidationError as e:
        raise ParseError(f"Intent payload failed validation: {e.error_count()} error(s)",
                         raw_output=raw_text, details={"errors": e.errors(include_url=False)}) from e


class OpenAIIntentResolver:
    """resolve(text, context) -> ParsedCommand, raising ParseError on any failure."""

    def __init__(self, settings: IntentSettings, client: Optional[AsyncOpenAI] = None):
        self.settings = settings
        self._client = client
        if self._client is None and settings.openai_api_key:
            self._client = AsyncOpenAI(
                api_key=settings.openai_api_key,
                base_url=settings.base_url,
                timeout=settings.timeout_seconds,
                max_retries=settings.max_retries,
            )

    @property
    def enabled(self) -> bool:
        return self._client is not None

    async def resolve(self, text: str, context: Optional[Dict[str, Any]] = None) -> ParsedCommand:
        if self._client is None:
            raise ParseError("Semantic resolver disabled: OPENAI api key not configured")

        try:
            completion = await self._client.chat.completions.create(
                model=self.settings.model,
                max_tokens=self.settings.max_tokens,
                messages=[{"role": "user", "content": build_prompt(text, context)}],
            )
        except Exception as e:
            raise ParseError(f"Intent model call failed: {e}") from e

        if not completion.choices:
            raise ParseError("Intent model returned no choices")

        return parse_model_output(completion.choices[0].message.content, text)
