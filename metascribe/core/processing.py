"""
Processing Pipeline Module
===========================

Composes validation, scheduling and the remote client into the single
"process these images" operation the UI calls.

Key Components:
- ImageProcessor: synchronous orchestrator (validate -> schedule -> results)
- ProcessingJob: runs an ImageProcessor on a background thread and reports
  progress, completion and errors through callbacks

Threading Model:
- Main thread: UI event loop
- Job thread: one per ProcessingJob.start()
- Worker threads: at most ``concurrency`` per batch, owned by the scheduler

Workflow:
1. Validate candidate paths; fail fast with NoValidImagesError if none remain
2. Schedule remote calls in bounded groups
3. Return successes (or per-input outcomes) to the caller
"""

import logging
import threading
from typing import Callable, List, Optional, Sequence

from . import config
from .exceptions import MetascribeError, NoValidImagesError, PipelineError
from .image_validator import ImageValidator
from .models import ImageMetadata, ItemOutcome
from .scheduler import BatchScheduler, FetchFn, ProgressFn

SchedulerFactory = Callable[[FetchFn, int, Optional[threading.Event]], BatchScheduler]


def default_scheduler_factory(
    fetch: FetchFn,
    concurrency: int,
    cancel_event: Optional[threading.Event] = None,
) -> BatchScheduler:
    return BatchScheduler(fetch, concurrency=concurrency, cancel_event=cancel_event)


class ImageProcessor:
    """
    Pipeline orchestrator.

    Built once per process by the entry point and handed to the UI; it holds
    no per-batch state, so the same instance can serve any number of runs.

    Args:
        fetch: Per-image metadata function, typically
            ``GoogleAIClient.fetch_metadata``.
        validator: Path filter applied before any network activity.
        scheduler_factory: Builds a scheduler for each run.
        concurrency: Calls in flight per batch.
    """

    def __init__(
        self,
        fetch: FetchFn,
        validator: Optional[ImageValidator] = None,
        scheduler_factory: SchedulerFactory = default_scheduler_factory,
        concurrency: int = config.DEFAULT_CONCURRENCY,
    ):
        self.fetch = fetch
        self.validator = validator or ImageValidator()
        self.scheduler_factory = scheduler_factory
        self.concurrency = concurrency
        self.logger = logging.getLogger(__name__)

    def validate(self, paths: Sequence[str]) -> List[str]:
        return self.validator.validate(paths)

    def process_images(
        self,
        paths: Sequence[str],
        on_item_done: Optional[ProgressFn] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> List[ImageMetadata]:
        """
        Validate and process ``paths``; failed images are dropped.

        Raises:
            NoValidImagesError: Nothing survived validation. No remote call
                has been made.
            PipelineError: The scheduler failed as a whole.
        """
        valid = self._validated(paths)
        scheduler = self.scheduler_factory(self.fetch, self.concurrency, cancel_event)
        try:
            results = scheduler.run_batch(valid, on_item_done)
        except Exception as e:
            self.logger.error(f"Image processing failed: {e}", exc_info=True)
            raise PipelineError(f"Image processing failed: {e}") from e

        self.logger.info(f"Processed {len(results)} of {len(valid)} images successfully")
        return results

    def process_images_detailed(
        self,
        paths: Sequence[str],
        on_item_done: Optional[ProgressFn] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> List[ItemOutcome]:
        """
        Like ``process_images`` but returns one outcome per validated path,
        in validated order, including failures.
        """
        valid = self._validated(paths)
        scheduler = self.scheduler_factory(self.fetch, self.concurrency, cancel_event)
        try:
            outcomes = scheduler.run_outcomes(valid, on_item_done)
        except Exception as e:
            self.logger.error(f"Image processing failed: {e}", exc_info=True)
            raise PipelineError(f"Image processing failed: {e}") from e

        failed = sum(1 for o in outcomes if not o.ok)
        self.logger.info(f"Processed {len(outcomes)} images ({failed} failed)")
        return outcomes

    @staticmethod
    def build_error_record(error: BaseException, path: str) -> ImageMetadata:
        """Placeholder record for an image that could not be processed."""
        return ImageMetadata.error(path, str(error))

    def _validated(self, paths: Sequence[str]) -> List[str]:
        valid = self.validate(paths)
        if not valid:
            raise NoValidImagesError("No valid images found")
        return valid


# ============================================================================
# BACKGROUND JOB
# ============================================================================

class ProcessingJob:
    """
    Runs one batch on a daemon thread so the UI stays responsive.

    All callbacks are invoked from background threads; UI code must marshal
    them onto its own thread (e.g. with ``widget.after``).

    Attributes:
        processor: The orchestrator to run.
        paths: Candidate image paths.
        include_errors: When True, failed images are returned as error
            records (``is_error=True``) instead of being dropped.
        stop_event: Set by ``abort()``; no new images start afterwards.

    Example:
        >>> job = ProcessingJob(processor, paths, on_progress, on_complete, on_error)
        >>> job.start()
        >>> job.abort()  # remaining groups are skipped
    """

    def __init__(
        self,
        processor: ImageProcessor,
        paths: Sequence[str],
        on_progress: Callable[[int, int], None],
        on_complete: Callable[[List[ImageMetadata]], None],
        on_error: Callable[[BaseException], None],
        include_errors: bool = True,
    ):
        self.processor = processor
        self.paths = list(paths)
        self.on_progress = on_progress
        self.on_complete = on_complete
        self.on_error = on_error
        self.include_errors = include_errors
        self.stop_event = threading.Event()
        self.thread: Optional[threading.Thread] = None
        self.total = 0
        self._done = 0
        self._lock = threading.Lock()
        self.logger = logging.getLogger(__name__)

    def start(self):
        self.logger.info(f"Starting processing job for {len(self.paths)} images")
        self.stop_event.clear()
        self.thread = threading.Thread(target=self._run_job, name="ProcessingJob", daemon=True)
        self.thread.start()

    def abort(self):
        """Stop admitting new images. Calls already in flight finish normally."""
        self.logger.info("Abort requested for processing job")
        self.stop_event.set()

    def is_running(self) -> bool:
        return self.thread is not None and self.thread.is_alive()

    def join(self, timeout: Optional[float] = None):
        if self.thread is not None:
            self.thread.join(timeout)

    def _item_done(self, path: str):
        with self._lock:
            self._done += 1
            done = self._done
        self.logger.debug(f"Completed {path} ({done}/{self.total})")
        self.on_progress(done, self.total)

    def _run_job(self):
        try:
            # Validation runs again inside the processor; this count only sizes the progress bar
            self.total = len(self.processor.validate(self.paths))
            outcomes = self.processor.process_images_detailed(
                self.paths, self._item_done, cancel_event=self.stop_event
            )
        except MetascribeError as e:
            self.logger.error(f"Processing job failed: {e}")
            self.on_error(e)
            return
        except Exception as e:
            self.logger.critical(f"Unexpected error in processing job: {e}", exc_info=True)
            self.on_error(PipelineError(f"Image processing failed: {e}"))
            return

        results: List[ImageMetadata] = []
        for outcome in outcomes:
            if outcome.ok:
                results.append(outcome.metadata)
            elif self.include_errors:
                results.append(self.processor.build_error_record(outcome.error, outcome.path))

        self.logger.info(f"Processing job finished with {len(results)} rows")
        self.on_complete(results)
