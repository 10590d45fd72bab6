"""Batched background loading of per-file diff content.

The loader turns the published visibility set into a load queue (visible files
plus their document-order neighbours, minus cached and in-flight files) and
fetches at most ``batch_size`` files at a time on a worker thread. A batch's
outcomes are posted back to the timeline and merged into the cache in one
update.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor

from ..diff_model.types import DiffContent
from ..errors import BinaryFileError, LoadError
from .cache import DiffContentCache
from .timeline import Timeline
from .visibility import with_neighbors

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 3

LoadOutcome = DiffContent | LoadError


def _spawn_daemon(work: Callable[[], None]) -> None:
    worker = threading.Thread(target=work, name="lazyreview-diff-loader", daemon=True)
    worker.start()


def binary_placeholder(error: BinaryFileError) -> DiffContent:
    """Cacheable stand-in telling the renderer to show a binary-file notice."""
    return DiffContent(file_ref=error.file_ref, is_binary=True, unsupported_reason=error.message)


class ContentLoader:
    """Fetch diff content for files near the viewport, one batch at a time."""

    def __init__(
        self,
        timeline: Timeline,
        cache: DiffContentCache,
        *,
        load_diff: Callable[[str], DiffContent],
        visible_files: Callable[[], frozenset[str]],
        document_order: Callable[[], Sequence[str]],
        selected_file: Callable[[], str | None],
        batch_size: int = DEFAULT_BATCH_SIZE,
        on_selected_error: Callable[[str, LoadError], None] | None = None,
        spawn: Callable[[Callable[[], None]], None] = _spawn_daemon,
    ) -> None:
        self._timeline = timeline
        self._cache = cache
        self._load_diff = load_diff
        self._visible_files = visible_files
        self._document_order = document_order
        self._selected_file = selected_file
        self.batch_size = max(1, batch_size)
        self._on_selected_error = on_selected_error
        self._spawn = spawn
        self._in_flight: set[str] = set()
        self._failed: set[str] = set()
        self._errors: dict[str, str] = {}
        self._batch_active = False
        self._pump_scheduled = False
        self._next_batch_id = 1

    @property
    def in_flight(self) -> frozenset[str]:
        return frozenset(self._in_flight)

    @property
    def busy(self) -> bool:
        return self._batch_active

    @property
    def idle(self) -> bool:
        """No batch running or scheduled and nothing left to fetch."""
        return not self._batch_active and not self._pump_scheduled and not self.compute_load_queue()

    def is_loading(self, file_ref: str) -> bool:
        return file_ref in self._in_flight

    def file_error(self, file_ref: str) -> str | None:
        return self._errors.get(file_ref)

    def clear_errors(self) -> None:
        self._errors.clear()

    def retry(self, file_ref: str) -> None:
        """Make a failed file eligible again and drop its stale error."""
        self._failed.discard(file_ref)
        self._errors.pop(file_ref, None)

    def compute_load_queue(self, visible: frozenset[str] | None = None) -> list[str]:
        """Return files to fetch next, in document order.

        A selected file that is neither cached nor loading goes first.
        Files that failed since the last visibility change are skipped.
        """
        order = list(self._document_order())
        current = self._visible_files() if visible is None else visible
        wanted = with_neighbors(current, order)

        def pending(file_ref: str) -> bool:
            return file_ref not in self._cache and file_ref not in self._in_flight and file_ref not in self._failed

        queue = [file_ref for file_ref in order if file_ref in wanted and pending(file_ref)]
        selected = self._selected_file()
        if selected is not None and selected in order and pending(selected):
            if selected in queue:
                queue.remove(selected)
            queue.insert(0, selected)
        return queue

    def on_visibility_changed(self, _visible: frozenset[str]) -> None:
        """New visibility cycle: failed files become eligible again."""
        self._failed.clear()
        self.request_load()

    def request_load(self) -> None:
        """Schedule a pump on the idle queue (at most one pending)."""
        if self._pump_scheduled:
            return
        self._pump_scheduled = True
        self._timeline.call_when_idle(self._pump)

    def _pump(self) -> None:
        self._pump_scheduled = False
        if self._batch_active:
            return
        queue = self.compute_load_queue()
        if not queue:
            return
        batch = tuple(queue[: self.batch_size])
        self._in_flight.update(batch)
        self._batch_active = True
        batch_id = self._next_batch_id
        self._next_batch_id += 1
        logger.debug("loading batch %d: %s", batch_id, ", ".join(batch))
        self._spawn(lambda: self._run_batch(batch))

    def _fetch(self, file_ref: str) -> LoadOutcome:
        try:
            return self._load_diff(file_ref)
        except BinaryFileError as exc:
            return binary_placeholder(exc)
        except LoadError as exc:
            return exc
        except Exception as exc:
            return LoadError(file_ref, str(exc) or exc.__class__.__name__)

    def _run_batch(self, batch: tuple[str, ...]) -> None:
        """Worker-thread body: fetch all members, then post one merge."""
        with ThreadPoolExecutor(max_workers=len(batch), thread_name_prefix="lazyreview-diff") as executor:
            futures = [executor.submit(self._fetch, file_ref) for file_ref in batch]
            outcomes = {file_ref: future.result() for file_ref, future in zip(batch, futures)}
        self._timeline.post(lambda: self._merge(batch, outcomes))

    def _merge(self, batch: tuple[str, ...], outcomes: dict[str, LoadOutcome]) -> None:
        self._in_flight.difference_update(batch)
        self._batch_active = False
        present = set(self._document_order())
        dropped = [file_ref for file_ref in outcomes if file_ref not in present]
        if dropped:
            # Removed from the file list while the batch ran.
            logger.debug("discarding late results for removed files: %s", ", ".join(dropped))
            outcomes = {file_ref: outcome for file_ref, outcome in outcomes.items() if file_ref in present}
        loaded = {file_ref: outcome for file_ref, outcome in outcomes.items() if isinstance(outcome, DiffContent)}
        for file_ref in loaded:
            self._errors.pop(file_ref, None)
        if loaded:
            self._cache.put_many(loaded)
        for file_ref, outcome in outcomes.items():
            if isinstance(outcome, LoadError):
                self._report_failure(file_ref, outcome)
        self.request_load()

    def _report_failure(self, file_ref: str, error: LoadError) -> None:
        self._failed.add(file_ref)
        if file_ref == self._selected_file():
            logger.warning("Failed to load diff for selected file %s: %s", file_ref, error.message)
            self._errors[file_ref] = error.message
            if self._on_selected_error is not None:
                self._on_selected_error(file_ref, error)
            return
        logger.warning("Failed to load diff for %s: %s", file_ref, error.message)

    def load_now(self, file_ref: str) -> DiffContent | None:
        """Blocking load on the timeline, used when immediate feedback matters."""
        self._failed.discard(file_ref)
        outcome = self._fetch(file_ref)
        if isinstance(outcome, LoadError):
            self._report_failure(file_ref, outcome)
            return None
        self._errors.pop(file_ref, None)
        self._cache.put(file_ref, outcome)
        return outcome


__all__ = ["ContentLoader", "DEFAULT_BATCH_SIZE", "binary_placeholder"]
