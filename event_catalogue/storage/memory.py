"""In-memory store implementations."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional

from event_catalogue.schemas.event import Event
from event_catalogue.schemas.taxonomy import Category
from event_catalogue.schemas.user import InteractionType, UserInteraction
from event_catalogue.storage.base import EventStore, InteractionStore


class InMemoryEventStore(EventStore):
    """Dict-backed EventStore."""

    def __init__(self, events: Optional[Iterable[Event]] = None):
        self._events: dict[str, Event] = {}
        for event in events or []:
            self.save(event)

    def get(self, event_id: str) -> Optional[Event]:
        event = self._events.get(event_id)
        return event.model_copy(deep=True) if event is not None else None

    def get_many(self, event_ids: Iterable[str]) -> list[Event]:
        found = []
        for event_id in event_ids:
            event = self.get(event_id)
            if event is not None:
                found.append(event)
        return found

    def list(
        self,
        *,
        include_archived: bool = False,
        category: Optional[Category] = None,
    ) -> list[Event]:
        events = [
            e
            for e in self._events.values()
            if (include_archived or not e.is_archived)
            and (category is None or e.category == category)
        ]
        events.sort(key=lambda e: (e.start_date, e.id))
        return [e.model_copy(deep=True) for e in events]

    def upcoming(
        self,
        now: datetime,
        *,
        category: Optional[Category] = None,
        limit: Optional[int] = None,
    ) -> list[Event]:
        events = [
            e
            for e in self.list(category=category)
            if e.end_or_start >= now
        ]
        if limit is not None:
            events = events[:limit]
        return events

    def save(self, event: Event) -> None:
        self._events[event.id] = event.model_copy(deep=True)

    def delete(self, event_id: str) -> bool:
        return self._events.pop(event_id, None) is not None

    def find_by_source_id(self, source: str, external_id: str) -> Optional[Event]:
        for event in self._events.values():
            if event.source_ids.get(source) == external_id:
                return event.model_copy(deep=True)
        return None

    def __len__(self) -> int:
        return len(self._events)


class InMemoryInteractionStore(InteractionStore):
    """List-backed InteractionStore."""

    def __init__(self, interactions: Optional[Iterable[UserInteraction]] = None):
        self._by_user: dict[str, list[UserInteraction]] = {}
        for interaction in interactions or []:
            self.add(interaction)

    def add(self, interaction: UserInteraction) -> None:
        self._by_user.setdefault(interaction.user_id, []).append(interaction)

    def recent_for_user(
        self,
        user_id: str,
        *,
        since: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> list[UserInteraction]:
        interactions = [
            i
            for i in self._by_user.get(user_id, [])
            if since is None or i.timestamp >= since
        ]
        interactions.sort(key=lambda i: i.timestamp, reverse=True)
        if limit is not None:
            interactions = interactions[:limit]
        return interactions

    def _favourite_times(self, user_id: str) -> dict[str, datetime]:
        """Replay the log oldest-first and keep events still favourited."""
        favourites: dict[str, datetime] = {}
        log = sorted(self._by_user.get(user_id, []), key=lambda i: i.timestamp)
        for interaction in log:
            if interaction.interaction_type == InteractionType.FAVOURITE:
                favourites[interaction.event_id] = interaction.timestamp
            elif interaction.interaction_type == InteractionType.UNFAVOURITE:
                favourites.pop(interaction.event_id, None)
        return favourites

    def favourited_event_ids(self, user_id: str) -> set[str]:
        return set(self._favourite_times(user_id))

    def recent_favourites(self, user_id: str, limit: int) -> list[str]:
        favourites = self._favourite_times(user_id)
        ordered = sorted(favourites, key=lambda eid: favourites[eid], reverse=True)
        return ordered[:limit]
