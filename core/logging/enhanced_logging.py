# Enhanced structured logging with multi-channel support
import sys
import logging
import logging.handlers
from pathlib import Path
from typing import Dict, Optional
import structlog

from core.config.settings import Settings
from .channels import (
    LogChannel,
    get_channel_for_component,
    get_channel_config,
)
from .correlation import CorrelationIdManager

# Global logger manager instance
_logger_manager: Optional['EnhancedLoggerManager'] = None

# Channel loggers requested before configuration; wired to their files once it runs
_early_channels: Dict[str, LogChannel] = {}


def _shared_pre_chain():
    return [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
    ]


class EnhancedLoggerManager:
    """Logging manager with console, file and per-channel handlers."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.channel_handlers: Dict[LogChannel, logging.Handler] = {}
        self.configured_loggers: Dict[str, structlog.BoundLogger] = {}

        self._setup_logging()

    @property
    def _level(self) -> int:
        return getattr(logging, self.settings.logging.level.upper(), logging.INFO)

    def _setup_logging(self) -> None:
        if self.settings.logging.console_enabled:
            self._setup_console_logging()

        if self.settings.logging.file_enabled:
            Path(self.settings.logs_dir).mkdir(parents=True, exist_ok=True)
            self._setup_channel_handlers()

        self._configure_structlog()

    def _setup_console_logging(self) -> None:
        """Setup console logging with configurable format."""
        root_logger = logging.getLogger()
        console_processor = (
            structlog.processors.JSONRenderer()
            if self.settings.logging.console_json_format
            else structlog.dev.ConsoleRenderer()
        )
        formatter = structlog.stdlib.ProcessorFormatter(
            processor=console_processor,
            foreign_pre_chain=_shared_pre_chain(),
        )

        # If a console handler already exists (e.g., set by uvicorn), reconfigure it
        for handler in root_logger.handlers:
            if isinstance(handler, logging.StreamHandler) and getattr(handler, "stream", None) == sys.stdout:
                handler.setLevel(self._level)
                handler.setFormatter(formatter)
                root_logger.setLevel(self._level)
                return

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(self._level)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)
        root_logger.setLevel(self._level)

    def _setup_channel_handlers(self) -> None:
        """One rotating file per channel, attached lazily to channel loggers."""
        max_bytes = self._parse_size(self.settings.logging.file_max_size)
        file_processor = (
            structlog.processors.JSONRenderer()
            if self.settings.logging.json_format
            else structlog.processors.KeyValueRenderer(key_order=["event", "level", "timestamp"])
        )
        for channel in LogChannel:
            config = get_channel_config(channel)
            handler = logging.handlers.RotatingFileHandler(
                filename=config.get_file_path(self.settings.logs_dir),
                maxBytes=max_bytes,
                backupCount=self.settings.logging.file_backup_count,
                encoding="utf-8",
            )
            handler.setLevel(getattr(logging, config.level))
            handler.setFormatter(
                structlog.stdlib.ProcessorFormatter(
                    processor=file_processor,
                    foreign_pre_chain=_shared_pre_chain(),
                )
            )
            self.channel_handlers[channel] = handler

    @staticmethod
    def _parse_size(size_str: str) -> int:
        """Parse size strings like '100MB' into bytes."""
        size_str = size_str.strip().upper()
        for suffix, factor in (("GB", 1024 ** 3), ("MB", 1024 ** 2), ("KB", 1024)):
            if size_str.endswith(suffix):
                return int(float(size_str[:-len(suffix)]) * factor)
        return int(size_str)

    def _configure_structlog(self) -> None:
        """Configure structlog with appropriate processors."""
        settings = self.settings
        keys_to_redact = {k.lower() for k in settings.logging.redact_keys}

        def add_correlation_id(logger, name, event_dict):
            correlation_id = CorrelationIdManager.get_correlation_id()
            if correlation_id:
                event_dict.setdefault('correlation_id', correlation_id)
                correlation_context = CorrelationIdManager.get_correlation_context()
                if correlation_context:
                    event_dict.setdefault('correlation_context', correlation_context)
            return event_dict

        def add_standard_context(logger, name, event_dict):
            event_dict.setdefault('env', settings.environment.value)
            event_dict.setdefault('app', settings.app_name)
            event_dict.setdefault('version', settings.version)
            return event_dict

        def redact_sensitive(logger, name, event_dict):
            """Redact sensitive fields from event dict recursively."""
            def _redact(obj):
                if isinstance(obj, dict):
                    return {
                        k: '[REDACTED]' if isinstance(k, str) and k.lower() in keys_to_redact else _redact(v)
                        for k, v in obj.items()
                    }
                if isinstance(obj, list):
                    return [_redact(v) for v in obj]
                return obj

            return _redact(event_dict)

        def normalize_error(logger, name, event_dict):
            if "error" in event_dict and not event_dict.get("error_message"):
                event_dict["error_message"] = str(event_dict["error"])
            return event_dict

        structlog.configure(
            processors=[
                add_correlation_id,
                add_standard_context,
                structlog.stdlib.add_log_level,
                structlog.stdlib.add_logger_name,
                structlog.stdlib.PositionalArgumentsFormatter(),
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                normalize_error,
                structlog.processors.UnicodeDecoder(),
                redact_sensitive,
                # Defer final rendering to handlers via ProcessorFormatter
                structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
            ],
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )

    def _attach_channel(self, name: str, channel: LogChannel) -> None:
        handler = self.channel_handlers.get(channel)
        if handler is None:
            return
        stdlib_logger = logging.getLogger(name)
        if handler not in stdlib_logger.handlers:
            stdlib_logger.addHandler(handler)

    def get_logger(self, name: str, component: Optional[str] = None) -> structlog.BoundLogger:
        """Get a structured logger for a component."""
        cache_key = f"{name}:{component}"
        if cache_key in self.configured_loggers:
            return self.configured_loggers[cache_key]

        logger = structlog.get_logger(name)
        if component:
            logger = logger.bind(component=component)
            self._attach_channel(name, get_channel_for_component(component))

        self.configured_loggers[cache_key] = logger
        return logger

    def get_channel_logger(self, name: str, channel: LogChannel) -> structlog.BoundLogger:
        """Get a logger for a specific channel."""
        self._attach_channel(name, channel)
        return structlog.get_logger(name).bind(channel=channel.value)


def configure_enhanced_logging(settings: Settings) -> None:
    """Configure enhanced logging system."""
    global _logger_manager

    if _logger_manager is not None:
        return

    _logger_manager = EnhancedLoggerManager(settings)
    for name, channel in _early_channels.items():
        _logger_manager._attach_channel(name, channel)
    _early_channels.clear()


def get_enhanced_logger(name: str, component: Optional[str] = None) -> structlog.BoundLogger:
    """Get a structured logger instance."""
    if _logger_manager is None:
        # Not configured yet: stay lazy so the logger picks up the configuration once it exists
        if component:
            _early_channels[name] = get_channel_for_component(component)
            return structlog.get_logger(name, component=component)
        return structlog.get_logger(name)

    return _logger_manager.get_logger(name, component)


def get_channel_logger(name: str, channel: LogChannel) -> structlog.BoundLogger:
    """Get a logger for a specific channel."""
    if _logger_manager is None:
        _early_channels[name] = channel
        return structlog.get_logger(name, channel=channel.value)

    return _logger_manager.get_channel_logger(name, channel)


def get_api_logger(name: str) -> structlog.BoundLogger:
    return get_channel_logger(name, LogChannel.API)


def get_audit_logger(name: str) -> structlog.BoundLogger:
    return get_channel_logger(name, LogChannel.AUDIT)


def get_error_logger(name: str) -> structlog.BoundLogger:
    return get_channel_logger(name, LogChannel.ERROR)
