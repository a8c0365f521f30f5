"""Text normalisation used by duplicate detection."""

from .text import NormalisationCache, TextNormaliser

__all__ = ["NormalisationCache", "TextNormaliser"]
