"""Infrastructure components for streaming services.

Only the producer side is needed: the command agent publishes orders and
trading control events, the execution layer consumes them.
"""

from .message_producer import MessageProducer

__all__ = ['MessageProducer']
