# Command agent: history, resolution, confirmation gate, routing
from typing import Any, Dict, List, Optional

from core.logging.correlation import CorrelationIdManager, create_correlation_context
from core.logging.service_logger import get_service_logger
from core.schemas.commands import CommandRequest, CommandResponse, ParsedCommand
from core.schemas.topics import ToolNames
from core.utils.exceptions import UnknownToolError
from services.confirmation import ConfirmationGate, GateState
from services.confirmation.gate import GATE_CONTROL_KEYS
from services.intent_parser import IntentResolutionService
from .history import SessionHistoryStore
from .router import MISSING_SYMBOL_MESSAGE, CommandRouter

PROCESSING_FAILURE_MESSAGE = (
    "I encountered an error processing your request. Please try again or rephrase your command."
)

COMMAND_TOOL = {
    "name": ToolNames.COMMAND_PROCESS,
    "description": "Process a natural language trading command",
    "inputSchema": {
        "type": "object",
        "properties": {
            "command": {"type": "string", "description": "Natural language command"},
            "userId": {"type": "string", "description": "User identifier"},
            "sessionId": {"type": "string", "description": "Session identifier"},
            "context": {"type": "object", "description": "Additional context"},
        },
        "required": ["command"],
    },
}


class CommandAgentService:
    """Entry point for one inbound command.

    Records the command in the session history, resolves it with the recent
    history as context, holds it at the confirmation gate if needed and
    otherwise routes it. Never raises: unexpected failures come back as a
    generic `success=False` response carrying the error text.
    """

    def __init__(
        self,
        resolver: IntentResolutionService,
        gate: ConfirmationGate,
        router: CommandRouter,
        history: SessionHistoryStore,
        context_entries: int = 3,
    ):
        self.resolver = resolver
        self.gate = gate
        self.router = router
        self.history = history
        self.context_entries = context_entries
        self.loggers = get_service_logger("command_agent", "service")
        self.logger = self.loggers.main

    async def process_command(self, request: CommandRequest) -> CommandResponse:
        create_correlation_context(
            "command_agent",
            "process_command",
            user_id=request.user_id,
            session_id=request.session_id,
        )
        self.logger.info(
            "Processing command",
            command=request.command[:100],
            user_id=request.user_id,
            session_id=request.session_id,
        )

        try:
            self.history.add(request.session_id, {"command": request.command})

            context: Dict[str, Any] = {
                **{k: v for k, v in request.context.items() if k not in GATE_CONTROL_KEYS},
                "history": self.history.recent(request.session_id, self.context_entries),
            }
            parsed = await self.resolver.resolve(request.command, context)

            response = await self._dispatch(parsed, request)
            if response is None:
                return self.gate.prompt(parsed, request)

            self.history.add(request.session_id, {
                "command": request.command,
                "response": response.message,
                "success": response.success,
            })
            return response

        except Exception as e:
            self.loggers.error.error(
                "Command processing failed",
                error=str(e),
                error_type=type(e).__name__,
                command=request.command[:100],
                correlation_id=CorrelationIdManager.get_correlation_id(),
            )
            return CommandResponse(
                success=False,
                message=PROCESSING_FAILURE_MESSAGE,
                data={"error": str(e) or type(e).__name__},
            )

    async def _dispatch(self, parsed: ParsedCommand, request: CommandRequest) -> Optional[CommandResponse]:
        """Route a resolved command; None means it is held at the gate."""
        if parsed.intent.is_trade and not parsed.entities.symbol:
            # Ask for the symbol before asking to confirm anything
            return CommandResponse(success=False, message=MISSING_SYMBOL_MESSAGE)

        if self.gate.evaluate(parsed, request) is GateState.AWAITING_CONFIRMATION:
            return None

        response = await self.router.route(parsed, request)
        if response.data and response.data.get("stage") == "execution":
            # Final confirmation turn must pass the gate again
            response.data.update(self.gate.carry_forward(parsed, request))
        return response

    def get_tools(self) -> List[Dict[str, Any]]:
        return [COMMAND_TOOL]

    async def handle_tool_call(self, tool_name: str, payload: Optional[Dict[str, Any]]) -> CommandResponse:
        if tool_name == ToolNames.COMMAND_PROCESS:
            return await self.process_command(CommandRequest.model_validate(payload or {}))
        raise UnknownToolError(f"Unknown tool: {tool_name}", tool=tool_name)
