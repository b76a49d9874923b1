from typing import Dict, Any, Optional

import orjson
from aiokafka import AIOKafkaProducer

from core.logging import get_logger
from core.config.settings import RedpandaSettings
from core.logging.correlation import CorrelationIdManager
from core.schemas.events import EventEnvelope, EventType


class MessageProducer:
    """Idempotent Redpanda producer that wraps payloads in EventEnvelope."""

    def __init__(self, config: RedpandaSettings, service_name: str):
        self.config = config
        self.service_name = service_name
        self._producer: Optional[AIOKafkaProducer] = None
        self._running = False
        self._logger = get_logger("core.streaming.message_producer", component="streaming")

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the producer."""
        if self._running:
            return

        self._producer = AIOKafkaProducer(
            bootstrap_servers=self.config.bootstrap_servers,
            client_id=f"{self.config.client_id}-producer-{self.service_name}",
            enable_idempotence=True,
            acks='all',
            request_timeout_ms=30000,
            linger_ms=5,
            compression_type="gzip",
            retry_backoff_ms=100,
            value_serializer=self._serialize_value,
        )

        await self._producer.start()
        self._running = True
        self._logger.info("Producer started", service=self.service_name,
                          bootstrap_servers=self.config.bootstrap_servers)

    async def stop(self) -> None:
        """Stop the producer with flush."""
        if not self._running or not self._producer:
            return

        try:
            # Ensure all messages are sent before closing
            await self._producer.flush()
            await self._producer.stop()
        except Exception as e:
            # Log but don't raise to prevent shutdown issues
            self._logger.warning("Error during producer shutdown", error=str(e))
        finally:
            self._producer = None
            self._running = False

    async def send(self, topic: str, key: str, data: Dict[str, Any],
                   event_type: EventType,
                   correlation_id: Optional[str] = None) -> str:
        """Send message with envelope wrapping; returns the event id (the ack)."""
        if not self._running:
            await self.start()

        envelope = EventEnvelope(
            type=event_type,
            source=self.service_name,
            key=key,
            correlation_id=correlation_id or CorrelationIdManager.ensure_correlation_id(),
            data=data,
        )

        try:
            await self._producer.send_and_wait(
                topic=topic,
                key=str(key).encode('utf-8'),
                value=envelope.model_dump(mode='json'),  # value_serializer handles JSON encoding
                headers=[("correlation_id", envelope.correlation_id.encode("utf-8"))],
            )
        except Exception as send_error:
            error_context = {
                "topic": topic,
                "key": key,
                "service": self.service_name,
            }
            raise RuntimeError(f"MessageProducer.send failed: {send_error}. Context: {error_context}") from send_error

        return envelope.id

    def _serialize_value(self, x: Any) -> bytes:
        return orjson.dumps(x)
