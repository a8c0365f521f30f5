"""
Ingestion: boundary validation, duplicate detection, merge and archival.
"""

from .archive import ArchiveStats, archive_past_events, unarchive_event
from .boundary import BoundaryResult, RejectedRecord, parse_events
from .deduplication import DedupReport, DuplicateDetector
from .merge import MergeResolver, merge_events, select_primary_event
from .orchestrator import DedupOrchestrator, DedupRunResult, IngestResult, MergeRecord
from .similarity import SimilarityScorer, character_jaccard, dice_coefficient

__all__ = [
    "ArchiveStats",
    "archive_past_events",
    "unarchive_event",
    "BoundaryResult",
    "RejectedRecord",
    "parse_events",
    "DedupReport",
    "DuplicateDetector",
    "MergeResolver",
    "merge_events",
    "select_primary_event",
    "DedupOrchestrator",
    "DedupRunResult",
    "IngestResult",
    "MergeRecord",
    "SimilarityScorer",
    "character_jaccard",
    "dice_coefficient",
]
