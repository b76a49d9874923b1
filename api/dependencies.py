from fastapi import Depends
from dependency_injector.wiring import inject, Provide

from app.containers import AppContainer
from services.command_agent import CommandAgentService, CommandRouter


@inject
def get_command_agent(
    agent: CommandAgentService = Depends(Provide[AppContainer.command_agent])
) -> CommandAgentService:
    """Get the command agent that runs the decision pipeline"""
    return agent


@inject
def get_command_router(
    router: CommandRouter = Depends(Provide[AppContainer.command_router])
) -> CommandRouter:
    """Get the command router (owns the trading halt switch)"""
    return router
