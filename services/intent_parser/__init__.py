"""Intent resolution: OpenAI-backed semantic parsing with a deterministic fallback."""

from .fallback import EntityFallbackResolver
from .service import IntentResolutionService

__all__ = [
    "EntityFallbackResolver",
    "IntentResolutionService",
]
