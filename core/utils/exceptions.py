# Structured exception hierarchy for the Swarm Command decision pipeline

from typing import Dict, Any, Optional
from datetime import datetime, timezone


class SwarmCommandException(Exception):
    """Base exception for all Swarm Command specific errors"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None,
                 correlation_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.correlation_id = correlation_id
        self.timestamp = datetime.now(timezone.utc)


class TransientError(SwarmCommandException):
    """Errors caused by a collaborator that may succeed on a later request"""
    pass


class PermanentError(SwarmCommandException):
    """Errors that will not go away by asking again"""
    pass


# Intent resolution errors
class ParseError(PermanentError):
    """Semantic resolver produced no usable ParsedCommand"""

    def __init__(self, message: str, raw_output: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.raw_output = raw_output


# Collaborator service errors
class ServiceError(TransientError):
    """Non-2xx (or unreachable) response from an MCP-hosted service"""

    def __init__(self, message: str, service: str, status: Optional[int] = None,
                 body: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.service = service
        self.status = status
        self.body = body


class EvidenceSourceError(TransientError):
    """An evidence source answered but the payload was empty or unusable"""

    def __init__(self, message: str, source: str, **kwargs):
        super().__init__(message, **kwargs)
        self.source = source


class RiskCheckError(TransientError):
    """Pre-trade risk check could not be completed"""
    pass


class PublicationError(TransientError):
    """Order could not be delivered to the order bus"""

    def __init__(self, message: str, topic: str, **kwargs):
        super().__init__(message, **kwargs)
        self.topic = topic


class UnknownToolError(PermanentError):
    """Tool call named a tool this agent does not expose"""

    def __init__(self, message: str, tool: str, **kwargs):
        super().__init__(message, **kwargs)
        self.tool = tool


# Configuration Errors
def create_error_context(error: Exception, operation: str,
                         additional_context: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Create structured error context for logging

    Args:
        error: The exception that occurred
        operation: The operation that failed
        additional_context: Additional context information

    Returns:
        Structured error context dictionary
    """
    context = {
        "error_type": type(error).__name__,
        "error_message": str(error),
        "operation": operation,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "transient": isinstance(error, TransientError),
    }

    if isinstance(error, SwarmCommandException):
        if error.correlation_id:
            context["correlation_id"] = error.correlation_id
        if error.details:
            context["error_details"] = error.details

        if isinstance(error, ServiceError):
            context["service"] = error.service
            context["status"] = error.status

        if isinstance(error, PublicationError):
            context["topic"] = error.topic

    if additional_context:
        context.update(additional_context)

    return context
