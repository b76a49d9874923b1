# Intent resolution: semantic first, deterministic fallback always
from typing import Any, Dict, Optional, Protocol

from core.logging.service_logger import get_service_logger
from core.schemas.commands import ParsedCommand
from core.utils.exceptions import ParseError
from .fallback import EntityFallbackResolver


class SemanticResolver(Protocol):
    async def resolve(self, text: str, context: Optional[Dict[str, Any]] = None) -> ParsedCommand:
        ...


class IntentResolutionService:
    """Resolves raw text into a ParsedCommand; never raises"""

    def __init__(self, semantic: Optional[SemanticResolver] = None,
                 fallback: Optional[EntityFallbackResolver] = None):
        self.semantic = semantic
        self.fallback = fallback or EntityFallbackResolver()
        self.loggers = get_service_logger("intent_parser", "resolution")
        self.logger = self.loggers.main

    async def resolve(self, text: str, context: Optional[Dict[str, Any]] = None) -> ParsedCommand:
        if self.semantic is not None:
            try:
                parsed = await self.semantic.resolve(text, context)
                self.logger.info(
                    "Command parsed",
                    resolver="semantic",
                    intent=parsed.intent.value,
                    confidence=parsed.confidence,
                )
                return parsed
            except ParseError as e:
                self.logger.warning("Semantic parse failed, using fallback",
                                    error=e.message, command=text[:100])
            except Exception as e:
                self.loggers.error.error("Semantic resolver crashed, using fallback",
                                         error=str(e), error_type=type(e).__name__,
                                         command=text[:100])

        parsed = self.fallback.resolve(text)
        self.logger.info(
            "Command parsed",
            resolver="fallback",
            intent=parsed.intent.value,
            confidence=parsed.confidence,
        )
        return parsed
