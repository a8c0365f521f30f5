"""
Storage interfaces.

The catalogue core never talks to a database directly. Persistence engines
plug in by implementing these two abstract stores; the in-memory versions in
``storage.memory`` back the tests and the CLI.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Iterable, Optional

from event_catalogue.schemas.event import Event
from event_catalogue.schemas.taxonomy import Category
from event_catalogue.schemas.user import UserInteraction


class EventStore(ABC):
    """
    Queryable collection of canonical events.

    Subclasses must implement every abstract method. Returned events are
    detached copies: mutating them has no effect until passed to save().
    """

    @abstractmethod
    def get(self, event_id: str) -> Optional[Event]:
        """Return the event with this id, or None."""
        pass

    @abstractmethod
    def get_many(self, event_ids: Iterable[str]) -> list[Event]:
        """Return the events that exist among ``event_ids`` (missing ids skipped)."""
        pass

    @abstractmethod
    def list(
        self,
        *,
        include_archived: bool = False,
        category: Optional[Category] = None,
    ) -> list[Event]:
        """Return stored events ordered by start date, then id."""
        pass

    @abstractmethod
    def upcoming(
        self,
        now: datetime,
        *,
        category: Optional[Category] = None,
        limit: Optional[int] = None,
    ) -> list[Event]:
        """
        Return active events that have not finished yet.

        An event is upcoming while its end date (or start date when it has
        none) is at or after ``now``. Ordered by start date ascending.
        """
        pass

    @abstractmethod
    def save(self, event: Event) -> None:
        """Insert or replace an event by id."""
        pass

    @abstractmethod
    def delete(self, event_id: str) -> bool:
        """Remove an event. Returns False when it did not exist."""
        pass

    @abstractmethod
    def find_by_source_id(self, source: str, external_id: str) -> Optional[Event]:
        """Find the event a source listed under ``external_id``."""
        pass

    def __len__(self) -> int:
        return len(self.list(include_archived=True))


class InteractionStore(ABC):
    """
    Append-only interaction log.
    """

    @abstractmethod
    def add(self, interaction: UserInteraction) -> None:
        pass

    @abstractmethod
    def recent_for_user(
        self,
        user_id: str,
        *,
        since: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> list[UserInteraction]:
        """Return a user's interactions, newest first."""
        pass

    @abstractmethod
    def favourited_event_ids(self, user_id: str) -> set[str]:
        """Events the user currently has favourited (unfavourites applied)."""
        pass

    @abstractmethod
    def recent_favourites(self, user_id: str, limit: int) -> list[str]:
        """Ids of the user's currently favourited events, most recent first."""
        pass
