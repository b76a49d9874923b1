"""
Unit tests for intent resolution: the rule-based fallback, model output
parsing and the semantic-then-fallback service.
"""

import pytest
from types import SimpleNamespace
from unittest.mock import AsyncMock

from core.config.settings import IntentSettings
from core.schemas.commands import Intent
from core.utils.exceptions import ParseError
from services.intent_parser import EntityFallbackResolver, IntentResolutionService
from services.intent_parser.fallback import extract_amount, extract_symbol
from services.intent_parser.semantic import OpenAIIntentResolver, build_prompt, parse_model_output


def _completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def _openai_client(content=None, error=None):
    create = AsyncMock(side_effect=error) if error else AsyncMock(return_value=_completion(content))
    return SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))


class TestEntityFallbackResolver:
    """Keyword and regex resolution with fixed confidences"""

    def setup_method(self):
        self.resolver = EntityFallbackResolver()

    @pytest.mark.parametrize("text", [
        "buy AAPL",
        "Please BUY some TSLA",
        "purchase $200 of MSFT",
        "I'd like to purchase",
        "buy",
    ])
    def test_buy_keywords_always_need_confirmation(self, text):
        parsed = self.resolver.resolve(text)
        assert parsed.intent is Intent.BUY
        assert parsed.needs_confirmation is True
        assert parsed.confidence == 0.7

    def test_buy_with_amount(self):
        parsed = self.resolver.resolve("Buy $5000 of AAPL")
        assert parsed.entities.symbol == "AAPL"
        assert parsed.entities.amount == 5000

    def test_sell_scenario(self):
        parsed = self.resolver.resolve("sell NVDA")
        assert parsed.intent is Intent.SELL
        assert parsed.entities.symbol == "NVDA"
        assert parsed.entities.amount is None
        assert parsed.confidence == 0.6
        assert parsed.needs_confirmation is True

    def test_status(self):
        parsed = self.resolver.resolve("What's my portfolio status?")
        assert parsed.intent is Intent.STATUS
        assert parsed.needs_confirmation is False

    def test_anything_else_is_a_low_confidence_query(self):
        parsed = self.resolver.resolve("tell me a joke")
        assert parsed.intent is Intent.QUERY
        assert parsed.confidence == 0.3
        assert parsed.original_text == "tell me a joke"

    def test_empty_text_does_not_raise(self):
        assert self.resolver.resolve("").intent is Intent.QUERY


class TestEntityExtraction:
    def test_symbol_skips_stop_words(self):
        assert extract_symbol("buy of the AMZN") == "AMZN"

    def test_symbol_missing(self):
        assert extract_symbol("buy") is None

    def test_symbol_upper_cases(self):
        assert extract_symbol("sell msft now") == "MSFT"

    @pytest.mark.parametrize("text,expected", [
        ("buy $5000 of AAPL", 5000),
        ("buy $1,500 of AAPL", 1500),
        ("buy $12,345,678 of AAPL", 12345678),
        ("buy AAPL", None),
        ("buy 5000 of AAPL", None),
    ])
    def test_amount(self, text, expected):
        assert extract_amount(text) == expected


class TestModelOutputParsing:
    def test_valid_json_inside_prose(self):
        raw = 'Sure! {"intent": "BUY", "entities": {"symbol": "aapl", "amount": 5000}, "confidence": 0.95, "needsConfirmation": true} Done.'
        parsed = parse_model_output(raw, "Buy $5000 of AAPL")
        assert parsed.intent is Intent.BUY
        assert parsed.entities.symbol == "AAPL"
        assert parsed.entities.amount == 5000
        assert parsed.needs_confirmation is True
        assert parsed.original_text == "Buy $5000 of AAPL"

    def test_confidence_is_clamped(self):
        parsed = parse_model_output('{"intent": "STATUS", "entities": {}, "confidence": 1.7}', "status")
        assert parsed.confidence == 1.0

    @pytest.mark.parametrize("raw", [
        None,
        "",
        "no json here",
        "{not json}",
        '{"intent": "DANCE", "entities": {}, "confidence": 0.9}',
    ])
    def test_bad_output_raises_parse_error(self, raw):
        with pytest.raises(ParseError):
            parse_model_output(raw, "whatever")

    def test_prompt_embeds_command_and_context(self):
        prompt = build_prompt("sell NVDA", {"history": [{"command": "buy AAPL"}]})
        assert 'Command: "sell NVDA"' in prompt
        assert "buy AAPL" in prompt


class TestOpenAIIntentResolver:
    @pytest.mark.asyncio
    async def test_resolves_through_chat_completions(self):
        client = _openai_client(
            '{"intent": "BUY", "entities": {"symbol": "AAPL", "amount": 5000}, '
            '"confidence": 0.95, "needsConfirmation": true}'
        )
        resolver = OpenAIIntentResolver(IntentSettings(model="test-model"), client=client)

        parsed = await resolver.resolve("Buy $5000 of AAPL")

        assert parsed.intent is Intent.BUY
        assert parsed.entities.symbol == "AAPL"
        assert parsed.entities.amount == 5000
        assert parsed.needs_confirmation is True
        kwargs = client.chat.completions.create.await_args.kwargs
        assert kwargs["model"] == "test-model"

    @pytest.mark.asyncio
    async def test_transport_failure_becomes_parse_error(self):
        resolver = OpenAIIntentResolver(IntentSettings(), client=_openai_client(error=RuntimeError("boom")))
        with pytest.raises(ParseError):
            await resolver.resolve("sell NVDA")

    @pytest.mark.asyncio
    async def test_disabled_without_api_key(self):
        resolver = OpenAIIntentResolver(IntentSettings(openai_api_key=""))
        assert resolver.enabled is False
        with pytest.raises(ParseError):
            await resolver.resolve("sell NVDA")


class TestIntentResolutionService:
    @pytest.mark.asyncio
    async def test_semantic_result_is_used(self):
        semantic = OpenAIIntentResolver(IntentSettings(), client=_openai_client(
            '{"intent": "ANALYZE", "entities": {"symbol": "TSLA"}, "confidence": 0.9}'
        ))
        parsed = await IntentResolutionService(semantic=semantic).resolve("how is tesla doing")
        assert parsed.intent is Intent.ANALYZE

    @pytest.mark.asyncio
    async def test_semantic_failure_falls_back(self):
        semantic = AsyncMock()
        semantic.resolve.side_effect = RuntimeError("model down")

        parsed = await IntentResolutionService(semantic=semantic).resolve("sell NVDA")

        assert parsed.intent is Intent.SELL
        assert parsed.entities.symbol == "NVDA"
        assert parsed.confidence == 0.6
        assert parsed.needs_confirmation is True

    @pytest.mark.asyncio
    async def test_parse_error_falls_back(self):
        semantic = AsyncMock()
        semantic.resolve.side_effect = ParseError("garbage")
        parsed = await IntentResolutionService(semantic=semantic).resolve("buy AAPL")
        assert parsed.intent is Intent.BUY

    @pytest.mark.asyncio
    async def test_no_semantic_resolver(self):
        parsed = await IntentResolutionService().resolve("show status")
        assert parsed.intent is Intent.STATUS
