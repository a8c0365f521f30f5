"""Exception hierarchy for the event catalogue."""


class CatalogueError(Exception):
    """Base class for all catalogue errors."""


class VectorDimensionError(CatalogueError, ValueError):
    """
    Raised when two feature vectors of different length are compared.

    This signals a vectoriser / profile-builder layout mismatch (a bug),
    never bad input data.
    """

    def __init__(self, left: int, right: int):
        super().__init__(f"Vector length mismatch: {left} vs {right}")
        self.left = left
        self.right = right


class EventNotFoundError(CatalogueError, KeyError):
    """Raised when an event id is not present in the store."""

    def __init__(self, event_id: str):
        super().__init__(event_id)
        self.event_id = event_id

    def __str__(self) -> str:
        return f"Event '{self.event_id}' not found"


class ReferenceDataError(CatalogueError):
    """Raised when the reference data file is missing or invalid."""
