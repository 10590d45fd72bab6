"""Bounded diff-content cache and its periodic eviction policy.

The cache is the only shared mutable structure in a review session. Writers
(content loader, eviction policy, layout reset) all run on the session
timeline, so no lock guards it.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from collections.abc import Callable, Iterator, Mapping, Sequence

from ..diff_model.types import DiffContent
from .timeline import Timeline, TimerHandle
from .visibility import with_neighbors

logger = logging.getLogger(__name__)

MAX_LOADED_DIFFS = 20
EVICTION_INTERVAL_SECONDS = 2.0

CacheListener = Callable[[tuple[str, ...]], None]


class DiffContentCache:
    """Insertion-ordered ``file_ref -> DiffContent`` store.

    Entries are replaced wholesale; a replaced entry moves to the end so
    iteration order is oldest-load first.
    """

    def __init__(self) -> None:
        self._entries: OrderedDict[str, DiffContent] = OrderedDict()
        self._listeners: list[CacheListener] = []
        self.version = 0

    def subscribe(self, listener: CacheListener) -> None:
        """Register a callback receiving the file refs touched by each update."""
        self._listeners.append(listener)

    def _changed(self, file_refs: tuple[str, ...]) -> None:
        if not file_refs:
            return
        self.version += 1
        for listener in list(self._listeners):
            listener(file_refs)

    def get(self, file_ref: str) -> DiffContent | None:
        return self._entries.get(file_ref)

    def __contains__(self, file_ref: object) -> bool:
        return file_ref in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def keys(self) -> tuple[str, ...]:
        return tuple(self._entries)

    def put(self, file_ref: str, content: DiffContent) -> None:
        self.put_many({file_ref: content})

    def put_many(self, contents: Mapping[str, DiffContent]) -> None:
        """Insert several results as one update (one version bump)."""
        for file_ref, content in contents.items():
            self._entries.pop(file_ref, None)
            self._entries[file_ref] = content
        self._changed(tuple(contents))

    def remove_many(self, file_refs: Sequence[str]) -> tuple[str, ...]:
        removed = tuple(file_ref for file_ref in file_refs if self._entries.pop(file_ref, None) is not None)
        self._changed(removed)
        return removed

    def clear(self) -> None:
        removed = tuple(self._entries)
        self._entries.clear()
        self._changed(removed)


class EvictionPolicy:
    """Trim the cache to ``max_loaded`` entries outside the keep-set.

    The keep-set is the published visibility set, each visible file's
    immediate document-order neighbours, and the selected file. Kept entries
    are never removed, even if that leaves the cache above the cap.
    """

    def __init__(
        self,
        cache: DiffContentCache,
        *,
        visible_files: Callable[[], frozenset[str]],
        document_order: Callable[[], Sequence[str]],
        selected_file: Callable[[], str | None],
        max_loaded: int = MAX_LOADED_DIFFS,
        on_evict: Callable[[tuple[str, ...]], None] | None = None,
    ) -> None:
        self._cache = cache
        self._visible_files = visible_files
        self._document_order = document_order
        self._selected_file = selected_file
        self.max_loaded = max_loaded
        self._on_evict = on_evict
        self._timer: TimerHandle | None = None
        self._timeline: Timeline | None = None
        self._interval_seconds = EVICTION_INTERVAL_SECONDS

    def keep_set(self) -> set[str]:
        keep = with_neighbors(self._visible_files(), self._document_order())
        selected = self._selected_file()
        if selected is not None:
            keep.add(selected)
        return keep

    def run(self) -> tuple[str, ...]:
        """Run one eviction pass and return the evicted file refs."""
        overflow = len(self._cache) - self.max_loaded
        if overflow <= 0:
            return ()
        keep = self.keep_set()
        victims: list[str] = []
        for file_ref in self._cache:
            if len(victims) >= overflow:
                break
            if file_ref not in keep:
                victims.append(file_ref)
        evicted = self._cache.remove_many(victims)
        if evicted:
            logger.debug("evicted %d diff(s), %d remain: %s", len(evicted), len(self._cache), ", ".join(evicted))
            if self._on_evict is not None:
                self._on_evict(evicted)
        return evicted

    def start(self, timeline: Timeline, interval_seconds: float = EVICTION_INTERVAL_SECONDS) -> None:
        """Run ``run`` every ``interval_seconds`` on ``timeline`` until stopped."""
        self.stop()
        self._timeline = timeline
        self._interval_seconds = interval_seconds
        self._timer = timeline.call_later(interval_seconds, self._on_timer)

    def _on_timer(self) -> None:
        self.run()
        if self._timeline is not None:
            self._timer = self._timeline.call_later(self._interval_seconds, self._on_timer)

    def stop(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
        self._timer = None
        self._timeline = None

    @property
    def running(self) -> bool:
        return self._timer is not None


__all__ = [
    "DiffContentCache",
    "EVICTION_INTERVAL_SECONDS",
    "EvictionPolicy",
    "MAX_LOADED_DIFFS",
]
