from .factory import build_transport_bus
from .fanout import EventPublisher, FanoutBus
from .in_memory import InMemoryBus
from .kafka import KafkaBus
from .routing import EVENT_TOPIC_MAP, topic_for

__all__ = [
    "EVENT_TOPIC_MAP",
    "EventPublisher",
    "FanoutBus",
    "InMemoryBus",
    "KafkaBus",
    "build_transport_bus",
    "topic_for",
]
