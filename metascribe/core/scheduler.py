"""
Batch Scheduler
===============

Runs a per-image fetch function over a list of paths with a cap on how many
calls are in flight at once.

Scheduling strategies:
- ``groups`` (default): paths are split into contiguous groups of
  ``concurrency``. Every member of a group runs concurrently and the next
  group starts only after the whole group has settled.
- ``pool``: a sliding window. A new path is admitted as soon as any running
  call finishes. Same cap, better throughput when call durations vary.

Failure isolation:
    A failing item never affects its siblings. ``run_batch`` drops it and
    does not report progress for it; ``run_outcomes`` records the error in
    that item's ``ItemOutcome``.

Progress:
    ``on_item_done(path)`` is called exactly once per success, from the
    worker thread that produced it. It must be safe to call concurrently.
"""

import logging
import threading
from concurrent.futures import FIRST_COMPLETED, as_completed, wait
from typing import Callable, Dict, List, Optional, Sequence

from . import config
from .exceptions import BatchCancelled
from .models import ImageMetadata, ItemOutcome
from metascribe.utils.concurrency import DaemonThreadPoolExecutor

logger = logging.getLogger(__name__)

FetchFn = Callable[[str], ImageMetadata]
ProgressFn = Callable[[str], None]


def chunk(items: Sequence[str], size: int) -> List[List[str]]:
    """Split ``items`` into contiguous lists of ``size`` (the last may be shorter)."""
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


class BatchScheduler:
    """
    Bounded-concurrency runner for per-image remote calls.

    Args:
        fetch: Callable producing ``ImageMetadata`` for one path, raising on
            failure.
        concurrency: Maximum number of calls in flight (>= 1).
        strategy: ``"groups"`` or ``"pool"``.
        cancel_event: Optional event; once set, no further items start.

    Example:
        >>> scheduler = BatchScheduler(client.fetch_metadata, concurrency=3)
        >>> results = scheduler.run_batch(paths, on_item_done=print)
    """

    def __init__(
        self,
        fetch: FetchFn,
        concurrency: int = config.DEFAULT_CONCURRENCY,
        strategy: str = config.SCHEDULE_GROUPS,
        cancel_event: Optional[threading.Event] = None,
    ):
        if not isinstance(concurrency, int) or concurrency < 1:
            raise ValueError(f"concurrency must be an integer >= 1, got {concurrency!r}")
        if strategy not in config.SCHEDULE_STRATEGIES:
            raise ValueError(f"Unknown scheduling strategy: {strategy!r}")

        self.fetch = fetch
        self.concurrency = concurrency
        self.strategy = strategy
        self.cancel_event = cancel_event

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def run_batch(
        self,
        paths: Sequence[str],
        on_item_done: Optional[ProgressFn] = None,
    ) -> List[ImageMetadata]:
        """
        Process ``paths`` and return the successful records.

        Results are ordered group by group; inside a group they follow
        completion order. Failed and cancelled items are omitted.
        """
        results: List[ImageMetadata] = []

        def collect(index: int, outcome: ItemOutcome):
            if outcome.ok:
                results.append(outcome.metadata)

        self._run(paths, on_item_done, collect)
        return results

    def run_outcomes(
        self,
        paths: Sequence[str],
        on_item_done: Optional[ProgressFn] = None,
    ) -> List[ItemOutcome]:
        """
        Process ``paths`` and return one ``ItemOutcome`` per input.

        The returned list has the same length and order as ``paths``.
        """
        outcomes: List[Optional[ItemOutcome]] = [None] * len(paths)

        def collect(index: int, outcome: ItemOutcome):
            outcomes[index] = outcome

        self._run(paths, on_item_done, collect)
        return outcomes

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()

    def _run(self, paths, on_item_done, collect):
        paths = list(paths)
        if not paths:
            return

        logger.info(
            f"Scheduling {len(paths)} images "
            f"(concurrency={self.concurrency}, strategy={self.strategy})"
        )

        with DaemonThreadPoolExecutor(max_workers=self.concurrency) as executor:
            if self.strategy == config.SCHEDULE_POOL:
                self._run_pool(executor, paths, on_item_done, collect)
            else:
                self._run_groups(executor, paths, on_item_done, collect)

    def _run_groups(self, executor, paths, on_item_done, collect):
        groups = chunk(list(enumerate(paths)), self.concurrency)

        for group_no, group in enumerate(groups, start=1):
            if self._cancelled():
                self._collect_cancelled([i for grp in groups[group_no - 1:] for i, _ in grp], paths, collect)
                logger.warning(f"Batch cancelled before group {group_no}/{len(groups)}")
                return

            logger.debug(f"Starting group {group_no}/{len(groups)} ({len(group)} images)")
            futures = {executor.submit(self._call, path, on_item_done): (i, path) for i, path in group}

            # Barrier: as_completed only returns once every future has settled
            for future in as_completed(futures):
                index, path = futures[future]
                collect(index, future.result())

    def _run_pool(self, executor, paths, on_item_done, collect):
        pending = list(enumerate(paths))
        pending.reverse()
        running: Dict = {}

        while pending or running:
            while pending and len(running) < self.concurrency and not self._cancelled():
                index, path = pending.pop()
                running[executor.submit(self._call, path, on_item_done)] = index

            if not running:
                break

            done, _ = wait(running, return_when=FIRST_COMPLETED)
            for future in done:
                collect(running.pop(future), future.result())

        if pending:
            logger.warning(f"Batch cancelled with {len(pending)} images not started")
            self._collect_cancelled([i for i, _ in pending], paths, collect)

    def _collect_cancelled(self, indexes, paths, collect):
        for index in indexes:
            collect(index, ItemOutcome(
                path=paths[index],
                error=BatchCancelled("Batch was cancelled before this image started"),
            ))

    def _call(self, path: str, on_item_done: Optional[ProgressFn]) -> ItemOutcome:
        """Run one fetch; never raises so a failure stays inside its own outcome."""
        try:
            metadata = self.fetch(path)
        except Exception as e:
            logger.warning(f"Failed to process {path}: {e}")
            return ItemOutcome(path=path, error=e)

        if on_item_done is not None:
            try:
                on_item_done(path)
            except Exception:
                logger.exception(f"Progress callback failed for {path}")
        return ItemOutcome(path=path, metadata=metadata)
