# Confirmation gating for high-impact commands
import time
from collections import OrderedDict
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional

from core.config.settings import ConfirmationMode, ConfirmationSettings
from core.logging.service_logger import get_service_logger
from core.schemas.commands import CommandRequest, CommandResponse, Intent, ParsedCommand
from core.utils.ids import generate_token

CONFIRMATION_FOLLOW_UP = 'Reply with "yes" to confirm or "no" to cancel.'

# Request context keys that carry confirmation state; never forwarded to resolvers
GATE_CONTROL_KEYS = frozenset({"confirmed", "confirmationToken", "executionConfirmed"})


class GateState(str, Enum):
    AWAITING_CONFIRMATION = "AWAITING_CONFIRMATION"
    READY_TO_EXECUTE = "READY_TO_EXECUTE"


@dataclass(frozen=True)
class PendingAction:
    session_id: str
    intent: Intent
    symbol: Optional[str]
    expires_at: float


class PendingActionStore:
    """Short-lived, single-use confirmation tokens bound to a session action"""

    def __init__(self, ttl_seconds: int, max_tokens: int = 10_000,
                 clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self.max_tokens = max_tokens
        self._clock = clock
        self._pending: "OrderedDict[str, PendingAction]" = OrderedDict()

    def issue(self, session_id: str, command: ParsedCommand) -> str:
        self._purge_expired()
        token = generate_token()
        self._pending[token] = PendingAction(
            session_id=session_id,
            intent=command.intent,
            symbol=command.entities.symbol,
            expires_at=self._clock() + self.ttl_seconds,
        )
        while len(self._pending) > self.max_tokens:
            self._pending.popitem(last=False)
        return token

    def redeem(self, token: Optional[str], session_id: str, command: ParsedCommand) -> bool:
        """True iff the token is live and matches; a redeemed token is gone."""
        if not token:
            return False
        action = self._pending.pop(token, None)
        if action is None or action.expires_at <= self._clock():
            return False
        return (
            action.session_id == session_id
            and action.intent is command.intent
            and action.symbol == command.entities.symbol
        )

    def _purge_expired(self) -> None:
        now = self._clock()
        for token in [t for t, a in self._pending.items() if a.expires_at <= now]:
            del self._pending[token]

    def __len__(self) -> int:
        return len(self._pending)


def format_amount(amount: float) -> str:
    return str(int(amount)) if float(amount).is_integer() else f"{amount:.2f}"


def confirmation_message(command: ParsedCommand) -> str:
    entities = command.entities
    symbol = entities.symbol or "an unspecified symbol"
    if command.intent is Intent.BUY:
        amount = f"${format_amount(entities.amount)}" if entities.amount else f"{entities.quantity or 1} shares"
        return f"Confirm: Buy {amount} of {symbol}?"
    if command.intent is Intent.SELL:
        amount = f"${format_amount(entities.amount)} worth" if entities.amount else f"{entities.quantity or 'all'} shares"
        return f"Confirm: Sell {amount} of {symbol}?"
    return f"Confirm: Execute {command.intent.value.lower()} command?"


class ConfirmationGate:
    """Decides whether a command must be confirmed before it runs.

    The gate holds no per-command state in `context` mode: the caller is the
    source of truth and the command is resolved again on the confirming turn.
    In `token` mode the gate issues a single-use token that the confirming
    request must echo back before it expires.
    """

    def __init__(self, settings: ConfirmationSettings, store: Optional[PendingActionStore] = None):
        self.settings = settings
        self.store = store
        if settings.mode is ConfirmationMode.TOKEN and self.store is None:
            self.store = PendingActionStore(settings.token_ttl_seconds, settings.max_pending_tokens)
        self.audit = get_service_logger("confirmation", "gate").audit

    def _is_confirmed(self, command: ParsedCommand, request: CommandRequest) -> bool:
        if self.settings.mode is ConfirmationMode.TOKEN:
            return self.store.redeem(request.confirmation_token, request.session_id, command)
        return request.confirmed

    def evaluate(self, command: ParsedCommand, request: CommandRequest) -> GateState:
        if command.needs_confirmation and not self._is_confirmed(command, request):
            return GateState.AWAITING_CONFIRMATION
        if command.needs_confirmation:
            self.audit.info(
                "Command confirmed",
                session_id=request.session_id,
                intent=command.intent.value,
                symbol=command.entities.symbol,
            )
        return GateState.READY_TO_EXECUTE

    def carry_forward(self, command: ParsedCommand, request: CommandRequest) -> Dict[str, Any]:
        """Token fields for a follow-up turn that must pass this gate again."""
        if self.settings.mode is not ConfirmationMode.TOKEN or not command.needs_confirmation:
            return {}
        return {
            "confirmationToken": self.store.issue(request.session_id, command),
            "expiresInSeconds": self.settings.token_ttl_seconds,
        }

    def prompt(self, command: ParsedCommand, request: CommandRequest) -> CommandResponse:
        """Short-circuit response asking the user to confirm"""
        data = {
            "requiresConfirmation": True,
            "parsedCommand": command.summary(),
            **self.carry_forward(command, request),
        }

        self.audit.info(
            "Confirmation requested",
            session_id=request.session_id,
            intent=command.intent.value,
            symbol=command.entities.symbol,
        )
        return CommandResponse(
            success=True,
            message=confirmation_message(command),
            data=data,
            follow_up=CONFIRMATION_FOLLOW_UP,
        )
