"""Confirmation gate for high-impact commands."""

from .gate import ConfirmationGate, GateState, PendingActionStore

__all__ = [
    "ConfirmationGate",
    "GateState",
    "PendingActionStore",
]
