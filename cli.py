# Simple CLI for Swarm Command
import asyncio
import json

import click

from app.containers import AppContainer
from core.config.validator import validate_startup_configuration
from core.logging import configure_logging
from core.schemas.commands import CommandRequest


@click.group()
def cli():
    """Swarm Command CLI"""
    pass


@cli.command()
@click.option("--host", default=None, help="Bind address (defaults to API__HOST)")
@click.option("--port", default=None, type=int, help="Port (defaults to API__PORT)")
def api(host, port):
    """Run the API server"""
    click.echo("Starting Swarm Command API server...")
    from api.main import run as run_api
    run_api(host=host, port=port)


@cli.command()
@click.argument("text")
@click.option("--session", "session_id", default="cli", help="Session identifier")
@click.option("--user", "user_id", default="anonymous", help="User identifier")
@click.option("--confirm", is_flag=True, help="Mark the command as confirmed")
@click.option("--execute", is_flag=True, help="Also give the final execution go-ahead")
@click.option("--token", default=None, help="Confirmation token from a previous prompt")
def command(text, session_id, user_id, confirm, execute, token):
    """Run one command through the decision pipeline and print the response"""
    container = AppContainer()
    configure_logging(container.settings())

    context = {"confirmed": confirm, "executionConfirmed": execute}
    if token:
        context["confirmationToken"] = token
    request = CommandRequest(command=text, user_id=user_id, session_id=session_id, context=context)

    async def _run():
        agent = container.command_agent()
        try:
            return await agent.process_command(request)
        finally:
            await container.order_bus().stop()
            await container.mcp_client().close()

    response = asyncio.run(_run())
    click.echo(json.dumps(response.to_wire(), indent=2))


@cli.command()
def validate():
    """Validate configuration without starting anything"""
    container = AppContainer()
    settings = container.settings()
    configure_logging(settings)
    if validate_startup_configuration(settings):
        click.echo("Configuration OK")
    else:
        raise click.ClickException("Configuration validation failed")


if __name__ == "__main__":
    cli()
