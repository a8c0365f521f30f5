"""
Text normalisation for duplicate detection.

Titles and venue names arrive from every source with different casing,
punctuation, filler words and location suffixes. The normaliser reduces them
to comparable keys:

- normalise():        lowercase, punctuation -> space, collapse whitespace
- normalise_title():  + drop stop words and single-character tokens
- normalise_venue():  + strip trailing geographic / venue-type suffixes

Title and venue results are memoised in a NormalisationCache owned by the
caller. The cache never changes results, it only skips repeated work.
"""

import logging
import re
from typing import Optional

from event_catalogue.configs import Config, NormaliserSettings, ReferenceData, get_settings

logger = logging.getLogger(__name__)

_NON_WORD = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")


class NormalisationCache:
    """
    Memo tables for normalised titles and venues.

    Each table is cleared as a whole once it grows beyond ``max_entries``.
    """

    def __init__(self, max_entries: int = 10_000):
        self.max_entries = max_entries
        self._tables: dict[str, dict[str, str]] = {"title": {}, "venue": {}}

    def get(self, kind: str, key: str) -> Optional[str]:
        return self._tables[kind].get(key)

    def put(self, kind: str, key: str, value: str) -> None:
        table = self._tables[kind]
        if len(table) >= self.max_entries:
            logger.debug(f"Clearing {kind} normalisation cache ({len(table)} entries)")
            table.clear()
        table[key] = value

    def clear(self) -> None:
        for table in self._tables.values():
            table.clear()

    def __len__(self) -> int:
        return sum(len(t) for t in self._tables.values())


_OWN_CACHE = object()


class TextNormaliser:
    """
    Normalises titles and venue names into comparison keys.

    Args:
        reference_data: Stop words and venue suffixes (defaults to the
            packaged reference_data.yaml).
        settings: Normaliser tuning (defaults to the application settings).
        cache: Cache instance to use. By default the normaliser creates its
            own; pass ``None`` to disable caching.
    """

    def __init__(
        self,
        reference_data: Optional[ReferenceData] = None,
        settings: Optional[NormaliserSettings] = None,
        cache=_OWN_CACHE,
    ):
        self.settings = settings or get_settings().NORMALISER
        reference_data = reference_data or Config.load_reference_data()
        self.stop_words = frozenset(w.lower() for w in reference_data.stop_words)
        self.venue_suffixes = frozenset(s.lower() for s in reference_data.venue_suffixes)

        if cache is _OWN_CACHE:
            cache = NormalisationCache(self.settings.cache_max_entries)
        self.cache: Optional[NormalisationCache] = cache

    @staticmethod
    def normalise(text: Optional[str]) -> str:
        """
        Lowercase, replace non-word characters with spaces, collapse whitespace.

        Example:
            >>> TextNormaliser.normalise("  Hamilton: The Musical!! ")
            'hamilton the musical'
        """
        if not text:
            return ""
        lowered = _NON_WORD.sub(" ", text.lower())
        return _WHITESPACE.sub(" ", lowered).strip()

    def normalise_title(self, title: Optional[str]) -> str:
        """Normalise a title and remove stop words and single-character tokens."""
        title = title or ""
        if self.cache is not None:
            cached = self.cache.get("title", title)
            if cached is not None:
                return cached

        tokens = [
            token
            for token in self.normalise(title).split(" ")
            if len(token) > 1 and token not in self.stop_words
        ]
        result = " ".join(tokens)

        if self.cache is not None:
            self.cache.put("title", title, result)
        return result

    def normalise_venue(self, venue: Optional[str]) -> str:
        """
        Normalise a venue name and strip trailing suffixes.

        Suffixes are removed as whole words, repeatedly, so
        "Princess Theatre Melbourne VIC" becomes "princess". If stripping
        leaves fewer than ``min_venue_length`` characters the plain
        normalised form is returned instead.
        """
        venue = venue or ""
        if self.cache is not None:
            cached = self.cache.get("venue", venue)
            if cached is not None:
                return cached

        plain = self.normalise(venue)
        tokens = plain.split(" ") if plain else []
        while tokens and tokens[-1] in self.venue_suffixes:
            tokens.pop()
        result = " ".join(tokens)

        if len(result) < self.settings.min_venue_length:
            result = plain

        if self.cache is not None:
            self.cache.put("venue", venue, result)
        return result

    def tokens(self, title: Optional[str]) -> list[str]:
        """Significant title tokens, in order."""
        normalised = self.normalise_title(title)
        return normalised.split(" ") if normalised else []
