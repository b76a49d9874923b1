from fastapi import APIRouter, Body, Depends
from typing import Optional

from api.dependencies import get_command_router
from api.schemas.responses import ResumeRequest
from core.schemas.commands import CommandResponse
from services.command_agent import CommandRouter

router = APIRouter(prefix="/trading", tags=["Trading"])


@router.post("/resume", response_model=CommandResponse, response_model_exclude_none=True)
async def resume_trading(
    body: Optional[ResumeRequest] = Body(None),
    command_router: CommandRouter = Depends(get_command_router)
):
    """Lift a halt set by a STOP command"""
    return await command_router.resume(reason=body.reason if body else None)


@router.get("/status")
async def trading_status(
    command_router: CommandRouter = Depends(get_command_router)
):
    return {"trading_halted": command_router.halted, "reason": command_router.halt_reason}
