"""
Configuration validation at application startup.

Validates that the settings the command pipeline depends on are coherent
before the API starts accepting commands, with clear messages for anything
missing or inconsistent.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List
from urllib.parse import urlparse

from core.logging import get_logger
from .settings import ConfirmationMode, Environment, Settings

logger = get_logger("core.config.validator", component="application")


@dataclass
class ValidationResult:
    """Result of a configuration validation check"""
    is_valid: bool
    component: str
    message: str
    severity: str = "error"  # "error", "warning", "info"


class ConfigurationValidator:
    """Startup configuration checks. No network calls are made here."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.validation_results: List[ValidationResult] = []

    def _add(self, component: str, message: str, severity: str = "error") -> None:
        self.validation_results.append(ValidationResult(
            is_valid=severity == "info",
            component=component,
            message=message,
            severity=severity,
        ))

    def validate_all(self) -> bool:
        """
        Run all validation checks.

        Returns:
            bool: True if no check reported an error
        """
        logger.info("Starting configuration validation")

        self._validate_evidence_settings()
        self._validate_intent_settings()
        self._validate_trading_settings()
        self._validate_confirmation_settings()
        self._validate_broker_settings()
        self._validate_logging_settings()

        errors = [r for r in self.validation_results if r.severity == "error"]
        warnings = [r for r in self.validation_results if r.severity == "warning"]

        for result in errors:
            logger.error("Configuration error", component=result.component, detail=result.message)
        for result in warnings:
            logger.warning("Configuration warning", component=result.component, detail=result.message)

        if errors:
            logger.error("Configuration validation failed", errors=len(errors), warnings=len(warnings))
        else:
            logger.info("Configuration validation passed", warnings=len(warnings))

        return len(errors) == 0

    def _validate_evidence_settings(self):
        url = urlparse(self.settings.evidence.mcp_host_url)
        if url.scheme not in ("http", "https") or not url.netloc:
            self._add("Evidence", f"Invalid MCP host url: {self.settings.evidence.mcp_host_url!r}")
        if self.settings.evidence.call_timeout_seconds <= 0:
            self._add("Evidence", "Per-call timeout must be positive")

    def _validate_intent_settings(self):
        if not self.settings.intent.openai_api_key:
            self._add(
                "Intent",
                "OpenAI api key not configured; commands will be resolved by the rule-based fallback only",
                severity="warning",
            )

    def _validate_trading_settings(self):
        trading = self.settings.trading
        if trading.max_single_order > trading.max_gross_exposure:
            self._add(
                "Trading",
                f"max_single_order ({trading.max_single_order}) exceeds "
                f"max_gross_exposure ({trading.max_gross_exposure})",
            )
        if trading.consensus_threshold < 0.5:
            self._add(
                "Trading",
                f"Consensus threshold {trading.consensus_threshold} lets a minority of sources approve trades",
                severity="warning",
            )

    def _validate_confirmation_settings(self):
        if (self.settings.environment == Environment.PRODUCTION
                and self.settings.confirmation.mode is ConfirmationMode.CONTEXT):
            self._add(
                "Confirmation",
                "Context-mode confirmation trusts the caller's `confirmed` flag; use token mode in production",
                severity="warning",
            )
        if (self.settings.environment == Environment.PRODUCTION
                and not self.settings.execution.require_final_confirmation):
            self._add("Execution", "Final execution confirmation is disabled", severity="warning")

    def _validate_broker_settings(self):
        if not self.settings.redpanda.bootstrap_servers:
            self._add("Broker", "Redpanda bootstrap_servers not configured")
        if self.settings.execution.order_topic == self.settings.execution.control_topic:
            self._add("Broker", "Order and control topics must differ")

    def _validate_logging_settings(self):
        valid_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if self.settings.logging.level.upper() not in valid_log_levels:
            self._add("Logging", f"Invalid log level: {self.settings.logging.level}")

        if self.settings.logging.file_enabled:
            logs_dir = Path(self.settings.logs_dir)
            if not logs_dir.is_absolute():
                logs_dir = Path(self.settings.base_dir) / logs_dir
            if not logs_dir.parent.exists():
                self._add("File System", f"Parent directory for logs does not exist: {logs_dir.parent}")

    def get_validation_summary(self) -> Dict[str, Any]:
        """Get a summary of validation results"""
        errors = [r for r in self.validation_results if r.severity == "error"]
        warnings = [r for r in self.validation_results if r.severity == "warning"]

        return {
            "total_checks": len(self.validation_results),
            "errors": len(errors),
            "warnings": len(warnings),
            "is_valid": len(errors) == 0,
            "error_details": [{"component": r.component, "message": r.message} for r in errors],
            "warning_details": [{"component": r.component, "message": r.message} for r in warnings]
        }


def validate_startup_configuration(settings: Settings) -> bool:
    """
    Convenience function to run startup configuration validation.

    Args:
        settings: Application settings to validate

    Returns:
        bool: True if validation passes (no critical errors)
    """
    return ConfigurationValidator(settings).validate_all()
