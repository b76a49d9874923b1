"""
Standardized service logger initialization for Swarm Command services.
Provides consistent logging patterns across all pipeline components.
"""

from typing import Optional

from .enhanced_logging import (
    get_enhanced_logger,
    get_audit_logger,
    get_error_logger,
)


class ServiceLogger:
    """Standardized logger collection for services"""

    def __init__(self, service_name: str, component: Optional[str] = None):
        """
        Initialize service logger collection.

        Args:
            service_name: Name of the service (e.g., 'evidence', 'execution')
            component: Optional component within service (e.g., 'aggregator')
        """
        self.service_name = service_name
        self.component = component

        base_name = f"{service_name}_{component}" if component else service_name

        service_context = {"service": service_name}
        if component:
            service_context["component"] = component

        # Routed to the service's channel (see channels.get_channel_for_component)
        self.main = get_enhanced_logger(base_name, service_name).bind(**service_context)
        self.error = get_error_logger(f"{base_name}_errors").bind(**service_context)
        self.audit = get_audit_logger(f"{base_name}_audit").bind(**service_context)


def get_service_logger(service_name: str, component: Optional[str] = None) -> ServiceLogger:
    """Factory for a service's logger collection."""
    return ServiceLogger(service_name, component)
