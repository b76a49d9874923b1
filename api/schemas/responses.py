from pydantic import BaseModel, Field
from typing import Optional, Any, Dict
from datetime import datetime, timezone


class ToolCallRequest(BaseModel):
    """MCP tool call envelope"""
    tool: str = Field(description="Tool name, e.g. command-agent.process")
    input: Dict[str, Any] = Field(default_factory=dict, description="Tool input")


class ResumeRequest(BaseModel):
    reason: Optional[str] = Field(None, description="Why trading is being resumed")


class ErrorResponse(BaseModel):
    """Error response model"""
    error: str
    message: str
    details: Optional[Dict[str, Any]] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class HealthResponse(BaseModel):
    status: str
    service: str
    version: str
    environment: str
    trading_halted: bool
    semantic_parsing: bool
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
