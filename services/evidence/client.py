# HTTP client for tools hosted behind the MCP gateway
from typing import Any, Dict, Optional

import httpx

from core.config.settings import EvidenceSettings
from core.logging import get_logger
from core.logging.correlation import CorrelationIdManager
from core.utils.exceptions import ServiceError


class MCPServiceClient:
    """call(service, operation, payload) -> JSON

    Raises ServiceError for non-2xx responses, transport failures and
    non-JSON bodies.
    """

    def __init__(self, settings: EvidenceSettings, http_client: Optional[httpx.AsyncClient] = None):
        self.settings = settings
        self.base_url = settings.mcp_host_url.rstrip("/")
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(settings.call_timeout_seconds, connect=5.0)
        )
        self.logger = get_logger("services.evidence.client", component="evidence")

    async def call(self, service: str, operation: str, payload: Dict[str, Any]) -> Any:
        url = f"{self.base_url}/call/{service}"
        headers = {
            "Content-Type": "application/json",
            "x-agent-role": self.settings.agent_role,
        }
        correlation_id = CorrelationIdManager.get_correlation_id()
        if correlation_id:
            headers["x-correlation-id"] = correlation_id

        try:
            response = await self._client.post(url, json={"tool": operation, "input": payload}, headers=headers)
        except httpx.HTTPError as e:
            raise ServiceError(
                f"MCP service {service} unreachable: {e}", service=service
            ) from e

        if response.is_error:
            raise ServiceError(
                f"MCP service {service} error: {response.status_code} {response.text}",
                service=service,
                status=response.status_code,
                body=response.text,
            )

        try:
            return response.json()
        except ValueError as e:
            raise ServiceError(
                f"MCP service {service} returned non-JSON body",
                service=service,
                status=response.status_code,
                body=response.text,
            ) from e

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()
