"""
Event Catalogue.

Aggregates event listings scraped from independent sources into one canonical
catalogue and recommends events to users.

Key Components:
- ingestion: text normalisation, similarity primitives, duplicate detection,
  merge resolution and the orchestrator that applies merges to a store
- recommendations: event vectorisation, user profiles, popularity and ranking
- schemas: canonical Event / User / UserInteraction records and the taxonomy
"""

__version__ = "0.1.0"
