"""Pre-trade risk gate and order publication."""

from .pipeline import ExecutionPipeline
from .risk import RiskEngineClient

__all__ = [
    "ExecutionPipeline",
    "RiskEngineClient",
]
