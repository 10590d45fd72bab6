"""Review-session runtime: timeline, visibility, loading, caching, selection."""

from __future__ import annotations

from .cache import DiffContentCache, EvictionPolicy, MAX_LOADED_DIFFS
from .config import ReviewTuning, load_review_tuning
from .loader import ContentLoader
from .sections import ExpandedSections
from .selection import LineSelection, LineSelectionEngine
from .session import ReviewSession, ViewLayout
from .timeline import Timeline, TimerHandle
from .visibility import FileBox, VisibilityTracker, intersecting_files, with_neighbors

__all__ = [
    "ContentLoader",
    "DiffContentCache",
    "EvictionPolicy",
    "ExpandedSections",
    "FileBox",
    "LineSelection",
    "LineSelectionEngine",
    "MAX_LOADED_DIFFS",
    "ReviewSession",
    "ReviewTuning",
    "Timeline",
    "TimerHandle",
    "ViewLayout",
    "VisibilityTracker",
    "intersecting_files",
    "load_review_tuning",
    "with_neighbors",
]
