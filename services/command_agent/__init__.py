"""Command agent: routes resolved commands and keeps per-session history."""

from .history import SessionHistoryStore
from .router import CommandRouter
from .service import CommandAgentService

__all__ = [
    "CommandAgentService",
    "CommandRouter",
    "SessionHistoryStore",
]
