"""Storage seam: abstract stores, in-memory implementations and JSON snapshots."""

from .base import EventStore, InteractionStore
from .files import read_json_records, write_events_json, write_json
from .memory import InMemoryEventStore, InMemoryInteractionStore

__all__ = [
    "EventStore",
    "InteractionStore",
    "InMemoryEventStore",
    "InMemoryInteractionStore",
    "read_json_records",
    "write_events_json",
    "write_json",
]
