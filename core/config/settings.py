# Complete settings with ALL required sections
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import BaseModel, Field, field_validator
from enum import Enum
from typing import List
from pathlib import Path

from core.schemas.topics import TopicNames


class Environment(str, Enum):
    DEVELOPMENT = "development"
    PRODUCTION = "production"
    TESTING = "testing"


class ConfirmationMode(str, Enum):
    CONTEXT = "context"  # caller-carried `confirmed` flag
    TOKEN = "token"      # server-issued pending-action token


class RedpandaSettings(BaseModel):
    bootstrap_servers: str = "localhost:9092"
    client_id: str = "swarm-command-client"


class LoggingSettings(BaseModel):
    level: str = "INFO"
    json_format: bool = True

    # Console logging
    console_enabled: bool = True
    console_json_format: bool = False  # Plain text for console by default

    # File logging
    file_enabled: bool = False
    logs_dir: str = "logs"
    file_max_size: str = "100MB"
    file_backup_count: int = 5

    # Redaction
    redact_keys: list[str] = [
        "authorization", "access_token", "refresh_token", "api_key",
        "api_secret", "password", "secret", "token",
    ]


class IntentSettings(BaseModel):
    """Semantic intent resolution (OpenAI)"""
    openai_api_key: str = ""
    model: str = "gpt-4o-mini"
    base_url: str | None = None
    timeout_seconds: float = 30.0
    max_tokens: int = 500
    max_retries: int = 2


class EvidenceSettings(BaseModel):
    """Evidence sources reached through the MCP host"""
    mcp_host_url: str = "http://localhost:4000"
    agent_role: str = "neural_command"
    call_timeout_seconds: float = 10.0
    lookback_days: int = 7


class TradingSettings(BaseModel):
    """Decision thresholds and pre-trade limits"""
    consensus_threshold: float = Field(default=0.6, ge=0.0, le=1.0)
    max_gross_exposure: float = Field(default=100_000.0, gt=0)
    max_single_order: float = Field(default=10_000.0, gt=0)


class ConfirmationSettings(BaseModel):
    mode: ConfirmationMode = ConfirmationMode.CONTEXT
    token_ttl_seconds: int = Field(default=120, gt=0)
    max_pending_tokens: int = 10_000


class ExecutionSettings(BaseModel):
    require_final_confirmation: bool = True
    order_topic: str = TopicNames.ORDERS_REQUESTED
    control_topic: str = TopicNames.ORDERS_CONTROL
    source_tag: str = "command-agent"


class HistorySettings(BaseModel):
    capacity: int = Field(default=10, gt=0)
    max_sessions: int = Field(default=1000, gt=0)
    context_entries: int = 3


class APISettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = 4010
    # CORS settings
    cors_origins: List[str] = Field(
        default_factory=lambda: ["*"],
        description="Allowed CORS origins"
    )
    cors_methods: List[str] = Field(
        default=["GET", "POST", "OPTIONS"],
        description="Allowed CORS methods"
    )
    cors_headers: List[str] = Field(
        default=[
            "Content-Type", "Authorization", "x-agent-role",
            "x-agent-id", "x-correlation-id",
        ],
        description="Allowed CORS headers"
    )

    @field_validator('cors_origins')
    def validate_cors_origins(cls, v):
        """Validate CORS origins configuration"""
        if "*" in v and len(v) > 1:
            raise ValueError("Cannot mix '*' with specific origins")
        return v


class Settings(BaseSettings):
    """Main application settings, loaded from environment variables"""
    model_config = SettingsConfigDict(
        env_file=".env",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore"
    )

    app_name: str = "Swarm Command"
    version: str = "1.0.0"
    environment: Environment = Environment.DEVELOPMENT

    logging: LoggingSettings = LoggingSettings()
    redpanda: RedpandaSettings = RedpandaSettings()
    intent: IntentSettings = IntentSettings()
    evidence: EvidenceSettings = EvidenceSettings()
    trading: TradingSettings = TradingSettings()
    confirmation: ConfirmationSettings = ConfirmationSettings()
    execution: ExecutionSettings = ExecutionSettings()
    history: HistorySettings = HistorySettings()
    api: APISettings = APISettings()

    @property
    def logs_dir(self) -> str:
        """Get absolute path to logs directory"""
        return self.logging.logs_dir

    @property
    def base_dir(self) -> str:
        """Get base application directory dynamically"""
        # Go up 2 levels from core/config/settings.py to reach project root
        return str(Path(__file__).resolve().parents[2])


# No global settings instance - use dependency injection instead
