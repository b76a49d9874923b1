"""
Logging channel definitions for Swarm Command.
Provides multi-channel logging with dedicated files for different components.
"""

from enum import Enum
from typing import Dict
from pathlib import Path
from dataclasses import dataclass


class LogChannel(str, Enum):
    """Logging channels for different components."""

    APPLICATION = "application"  # General application logs
    TRADING = "trading"          # Intent, evidence, consensus, execution
    API = "api"                  # API requests/responses
    AUDIT = "audit"              # Confirmations and published orders
    ERROR = "error"              # Error logs


@dataclass
class ChannelConfig:
    """Configuration for a logging channel."""

    name: str
    filename: str
    level: str = "INFO"

    def get_file_path(self, logs_dir: str) -> Path:
        """Get the full file path for this channel."""
        return Path(logs_dir) / self.filename


CHANNEL_CONFIGS: Dict[LogChannel, ChannelConfig] = {
    LogChannel.APPLICATION: ChannelConfig(name="application", filename="application.log"),
    LogChannel.TRADING: ChannelConfig(name="trading", filename="trading.log"),
    LogChannel.API: ChannelConfig(name="api", filename="api.log"),
    LogChannel.AUDIT: ChannelConfig(name="audit", filename="audit.log"),
    LogChannel.ERROR: ChannelConfig(name="error", filename="error.log", level="ERROR"),
}


def get_channel_for_component(component: str) -> LogChannel:
    """Get the appropriate logging channel for a component."""
    component_mapping = {
        "intent_parser": LogChannel.TRADING,
        "confirmation": LogChannel.AUDIT,
        "evidence": LogChannel.TRADING,
        "consensus": LogChannel.TRADING,
        "execution": LogChannel.TRADING,
        "command_agent": LogChannel.TRADING,
        "streaming": LogChannel.APPLICATION,
        "api": LogChannel.API,
        "audit": LogChannel.AUDIT,
    }

    return component_mapping.get(component, LogChannel.APPLICATION)


def get_channel_config(channel: LogChannel) -> ChannelConfig:
    """Get configuration for a specific channel."""
    return CHANNEL_CONFIGS[channel]
