"""
Unit tests for the dedup orchestrator.

Tests full dedup passes over a store and batch ingestion.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

from event_catalogue.ingestion.merge import MergeResolver
from event_catalogue.ingestion.orchestrator import DedupOrchestrator
from event_catalogue.schemas.event import EventStats

NOW = datetime(2025, 12, 2, 8, 0, tzinfo=timezone.utc)


# =============================================================================
# FULL PASS
# =============================================================================


class TestRunPass:
    """Dedup passes over the whole store."""

    def test_chain_collapses_into_one_record(self, event_store, hamilton_listings):
        """Three listings of one show end up as a single marriner record."""
        for event in hamilton_listings:
            event_store.save(event)
        marriner = hamilton_listings[0]

        result = DedupOrchestrator(event_store).run_pass(now=NOW)

        assert len(event_store) == 1
        assert result.merged_count == 2
        assert result.skipped_already_merged == 1
        assert result.failed_merges == 0

        survivor = event_store.get(marriner.id)
        assert survivor is not None
        assert sorted(survivor.sources) == ["marriner", "ticketmaster", "whatson"]
        assert survivor.primary_source == "marriner"
        assert len(survivor.merged_from) == 2

    def test_dry_run_leaves_store_untouched(self, event_store, hamilton_listings):
        """apply=False computes merges without writing."""
        for event in hamilton_listings:
            event_store.save(event)

        result = DedupOrchestrator(event_store).run_pass(now=NOW, apply=False)

        assert len(event_store) == 3
        assert result.merged_count == 2
        assert result.to_dict()["applied"] is False

    def test_unrelated_events_untouched(self, event_store, create_event):
        """Events without duplicates are left alone."""
        event_store.save(create_event(title="Hamilton"))
        event_store.save(create_event(title="Swan Lake", source="ticketmaster"))

        result = DedupOrchestrator(event_store).run_pass(now=NOW)

        assert len(event_store) == 2
        assert result.merged_count == 0

    def test_second_pass_finds_nothing(self, event_store, hamilton_listings):
        """A merged catalogue has no remaining duplicates."""
        for event in hamilton_listings:
            event_store.save(event)
        orchestrator = DedupOrchestrator(event_store)
        orchestrator.run_pass(now=NOW)

        result = orchestrator.run_pass(now=NOW)

        assert result.merged_count == 0
        assert len(event_store) == 1

    def test_merge_failures_are_isolated(self, event_store, hamilton_listings):
        """A failing merge is counted and does not abort the pass."""
        for event in hamilton_listings:
            event_store.save(event)
        resolver = MergeResolver()
        resolver.merge_events = MagicMock(side_effect=RuntimeError("boom"))

        result = DedupOrchestrator(event_store, resolver=resolver).run_pass(now=NOW)

        assert result.failed_merges == 3
        assert len(result.errors) == 3
        assert len(event_store) == 3

    def test_result_serialisation(self, event_store, hamilton_listings):
        """to_dict exposes the detection counters and applied merges."""
        for event in hamilton_listings:
            event_store.save(event)

        data = DedupOrchestrator(event_store).run_pass(now=NOW).to_dict()

        assert data["detection"]["matches"] == 3
        assert data["merged"] == 2
        assert len(data["merges"]) == 2


# =============================================================================
# INGESTION
# =============================================================================


class TestIngest:
    """Batch ingestion from one source."""

    def test_insert_new_events(self, event_store, create_event):
        """Unknown events are inserted."""
        orchestrator = DedupOrchestrator(event_store)

        result = orchestrator.ingest(
            [create_event(title="Hamilton"), create_event(title="Swan Lake")],
            source="marriner",
            now=NOW,
        )

        assert result.inserted == 2
        assert len(event_store) == 2

    def test_rescrape_updates_in_place(self, event_store, create_event):
        """A listing re-scraped from its own source updates the stored record."""
        orchestrator = DedupOrchestrator(event_store)
        original = create_event(external_id="hamilton", stats=EventStats(favourite_count=4))
        orchestrator.ingest([original], source="marriner", now=NOW)

        rescrape = create_event(
            external_id="hamilton",
            price_min=89.9,
            start_date=original.start_date + timedelta(days=7),
        )
        result = orchestrator.ingest([rescrape], source="marriner", now=NOW)

        assert result.updated == 1
        assert len(event_store) == 1
        stored = event_store.get(original.id)
        assert stored.price_min == 89.9
        assert stored.start_date == original.start_date
        assert stored.end_date == rescrape.start_date
        assert stored.stats.favourite_count == 4

    def test_cross_source_duplicate_merged(self, event_store, hamilton_listings):
        """A fuzzy duplicate from another source merges into the stored record."""
        marriner, ticketmaster, _ = hamilton_listings
        orchestrator = DedupOrchestrator(event_store)
        orchestrator.ingest([marriner], source="marriner", now=NOW)

        result = orchestrator.ingest([ticketmaster], source="ticketmaster", now=NOW)

        assert result.merged == 1
        assert len(event_store) == 1
        stored = event_store.get(marriner.id)
        assert stored.sources == ["marriner", "ticketmaster"]
        assert stored.price_min == 65.0

    def test_higher_priority_newcomer_absorbs_stored_record(self, event_store, hamilton_listings):
        """When the incoming listing is more trusted, it becomes the survivor."""
        marriner, ticketmaster, _ = hamilton_listings
        orchestrator = DedupOrchestrator(event_store)
        orchestrator.ingest([ticketmaster], source="ticketmaster", now=NOW)

        result = orchestrator.ingest([marriner], source="marriner", now=NOW)

        assert result.merged == 1
        assert len(event_store) == 1
        assert event_store.get(marriner.id) is not None
        assert event_store.get(ticketmaster.id) is None

    def test_duplicates_within_one_batch(self, event_store, hamilton_listings):
        """Duplicates inside a single batch are merged as they arrive."""
        result = DedupOrchestrator(event_store).ingest(hamilton_listings, source="aggregator", now=NOW)

        assert result.inserted == 1
        assert result.merged == 2
        assert len(event_store) == 1

    def test_source_attributed(self, event_store, create_event):
        """Events without provenance are attributed to the ingesting source."""
        event = create_event(primary_source="", sources=[])

        DedupOrchestrator(event_store).ingest([event], source="feverup", now=NOW)

        stored = event_store.get(event.id)
        assert stored.primary_source == "feverup"
        assert stored.sources == ["feverup"]

    def test_result_counters(self, event_store, create_event):
        """total() sums all outcomes."""
        result = DedupOrchestrator(event_store).ingest([create_event()], source="marriner", now=NOW)
        assert result.total == 1
        assert result.to_dict()["inserted"] == 1
