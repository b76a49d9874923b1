"""Evidence gathering from the market-data, sentiment and risk services."""

from .aggregator import EvidenceAggregator
from .client import MCPServiceClient

__all__ = [
    "EvidenceAggregator",
    "MCPServiceClient",
]
