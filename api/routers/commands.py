from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from typing import Any, Dict, List

from api.dependencies import get_command_agent
from api.schemas.responses import ErrorResponse, ToolCallRequest
from core.logging import get_api_logger
from core.schemas.commands import CommandRequest, CommandResponse
from core.utils.exceptions import UnknownToolError
from services.command_agent import CommandAgentService

logger = get_api_logger("api.routers.commands")

router = APIRouter(tags=["Commands"])


@router.post("/command", response_model=CommandResponse, response_model_exclude_none=True)
async def process_command(
    request: CommandRequest,
    agent: CommandAgentService = Depends(get_command_agent)
):
    """Run one natural-language command through the decision pipeline"""
    return await agent.process_command(request)


@router.post(
    "/call",
    response_model=CommandResponse,
    response_model_exclude_none=True,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def call_tool(
    call: ToolCallRequest,
    agent: CommandAgentService = Depends(get_command_agent)
):
    """MCP tool call envelope: {tool, input}"""
    try:
        return await agent.handle_tool_call(call.tool, call.input)
    except UnknownToolError as e:
        logger.warning("Unknown tool requested", tool=e.tool)
        return JSONResponse(
            status_code=404,
            content=ErrorResponse(error="tool_not_found", message=e.message).model_dump(mode="json"),
        )
    except ValidationError as e:
        return JSONResponse(
            status_code=400,
            content=ErrorResponse(
                error="invalid_input",
                message="Tool input does not match the tool schema",
                details={"errors": e.errors(include_url=False, include_context=False)},
            ).model_dump(mode="json"),
        )


@router.get("/tools")
async def list_tools(
    agent: CommandAgentService = Depends(get_command_agent)
) -> List[Dict[str, Any]]:
    """Tools this agent exposes to the MCP host"""
    return agent.get_tools()
