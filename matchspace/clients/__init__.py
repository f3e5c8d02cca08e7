"""Event store clients."""

from .event_store import EventStore, EventStoreClient
from .static import StaticEventStore

__all__ = ["EventStore", "EventStoreClient", "StaticEventStore"]
