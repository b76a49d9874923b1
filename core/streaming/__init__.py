"""Streaming module namespace.

Submodules are not imported eagerly so that importing `core.streaming`
does not require aiokafka. Import components directly, e.g.:
  - from core.streaming.infrastructure.message_producer import MessageProducer
"""

__all__ = []
