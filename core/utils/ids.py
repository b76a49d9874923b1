"""
Centralized ID generation for events, orders and confirmation tokens.

Event ids are a millisecond timestamp hex prefix plus a uuid4 suffix, which
keeps them roughly ordered within short windows and globally unique.
"""

from __future__ import annotations

import secrets
import time
from uuid import uuid4


def generate_event_id() -> str:
    """Generate a monotonic-ish, globally unique event ID."""
    ts_ms = int(time.time() * 1000)
    return f"{ts_ms:013x}-{str(uuid4())[13:]}"


def generate_token() -> str:
    """Unguessable token for pending confirmations."""
    return secrets.token_urlsafe(24)
