import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from core.logging import get_api_logger, configure_logging
from core.config.settings import Environment
from core.config.validator import validate_startup_configuration
from app.containers import AppContainer
from api.middleware.request_ids import RequestIdMiddleware
from api.middleware.error_handling import ErrorHandlingMiddleware
from api.routers import commands, trading
from api.schemas.responses import HealthResponse

logger = get_api_logger("api.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    container = app.state.container
    settings = container.settings()
    logger.info("Starting Swarm Command API server", environment=settings.environment.value)

    yield

    # Shutdown
    logger.info("Shutting down Swarm Command API server")
    try:
        await container.order_bus().stop()
        await container.mcp_client().close()
        logger.info("API services stopped successfully")
    except Exception as e:
        logger.error("Error during API shutdown", error=str(e))


def _build_uvicorn_log_config() -> dict:
    """Return a minimal log config that cooperates with our structlog handlers.

    Only levels and propagation are set; handlers stay as wired by the
    enhanced logging manager.
    """
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "loggers": {
            "uvicorn": {"level": "INFO", "propagate": False},
            "uvicorn.error": {"level": "INFO", "propagate": False},
            "uvicorn.access": {"level": "INFO", "propagate": False},
            "fastapi": {"level": "INFO", "propagate": False},
        },
    }


def create_app(container: Optional[AppContainer] = None) -> FastAPI:
    """Creates and configures the FastAPI application"""
    container = container or AppContainer()
    settings = container.settings()

    configure_logging(settings)
    if not validate_startup_configuration(settings):
        raise RuntimeError("Configuration validation failed; see the log for details")

    app = FastAPI(
        title="Swarm Command API",
        version=settings.version,
        description="""
        # Swarm Command API

        Turns free-text trading instructions into gated, evidence-backed
        trading decisions.

        - `POST /api/v1/command`: run one command through the decision pipeline
        - `POST /api/v1/call`: MCP tool call envelope (`command-agent.process`)
        - `POST /api/v1/trading/resume`: lift a halt set by a STOP command
        """,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
    )
    app.state.container = container

    # Wire dependency injection
    container.wire(modules=["api.dependencies"])

    # Add middleware (order matters - last added is outermost)
    app.add_middleware(ErrorHandlingMiddleware)
    app.add_middleware(RequestIdMiddleware)

    cors_origins = settings.api.cors_origins
    if settings.environment == Environment.PRODUCTION and "*" in cors_origins:
        raise ValueError(
            "CORS wildcard (*) not allowed in production. "
            "Specify exact origins in API__CORS_ORIGINS environment variable."
        )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_methods=settings.api.cors_methods,
        allow_headers=settings.api.cors_headers,
    )

    app.include_router(commands.router, prefix="/api/v1")
    app.include_router(trading.router, prefix="/api/v1")

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    def health_check():
        return HealthResponse(
            status="healthy",
            service="command-agent",
            version=settings.version,
            environment=settings.environment.value,
            trading_halted=container.command_router().halted,
            semantic_parsing=container.semantic_resolver() is not None,
            timestamp=datetime.now(timezone.utc),
        )

    return app


def run(host: Optional[str] = None, port: Optional[int] = None):
    """Main function to run the API server"""
    app = create_app()
    settings = app.state.container.settings()

    uvicorn.run(
        app,
        host=host or settings.api.host,
        port=port or settings.api.port,
        log_level=settings.logging.level.lower(),
        access_log=True,
        log_config=_build_uvicorn_log_config(),
    )


if __name__ == "__main__":
    run()
