# Order bus: publish(topic, payload) -> ack
from typing import Any, Dict, Optional, Protocol

from core.schemas.events import EventType
from core.streaming.infrastructure.message_producer import MessageProducer
from core.utils.exceptions import PublicationError


class OrderBus(Protocol):
    async def publish(self, topic: str, payload: Dict[str, Any], key: str,
                      event_type: EventType) -> str:
        ...


class RedpandaOrderBus:
    """Order bus backed by the idempotent Redpanda producer.

    Any producer failure is raised as PublicationError: an order that was not
    acknowledged cannot be assumed delivered.
    """

    def __init__(self, producer: MessageProducer):
        self.producer = producer

    async def publish(self, topic: str, payload: Dict[str, Any], key: str,
                      event_type: EventType, correlation_id: Optional[str] = None) -> str:
        try:
            return await self.producer.send(
                topic=topic,
                key=key,
                data=payload,
                event_type=event_type,
                correlation_id=correlation_id,
            )
        except Exception as e:
            raise PublicationError(f"Order bus publish failed: {e}", topic=topic) from e

    async def start(self) -> None:
        await self.producer.start()

    async def stop(self) -> None:
        await self.producer.stop()
