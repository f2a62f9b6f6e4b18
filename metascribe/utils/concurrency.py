"""
Daemon Worker Pool
==================

A ``concurrent.futures.Executor`` whose worker threads are daemons, so a
hung remote call can never keep the process alive after the window closes.
Returned futures are standard ``concurrent.futures.Future`` objects and
work with ``wait`` and ``as_completed``.
"""

import logging
import queue
import threading
from concurrent.futures import Executor, Future

logger = logging.getLogger(__name__)

_SENTINEL = None


class _WorkItem:
    __slots__ = ("future", "fn", "args", "kwargs")

    def __init__(self, future, fn, args, kwargs):
        self.future = future
        self.fn = fn
        self.args = args
        self.kwargs = kwargs

    def run(self):
        if not self.future.set_running_or_notify_cancel():
            return
        try:
            result = self.fn(*self.args, **self.kwargs)
        except BaseException as e:
            self.future.set_exception(e)
        else:
            self.future.set_result(result)


class DaemonThreadPoolExecutor(Executor):
    """
    Thread pool with daemon workers.

    Threads are started lazily, one per submission, until ``max_workers``
    are running. At most ``max_workers`` callables run at the same time.
    """

    def __init__(self, max_workers=None, thread_name_prefix='MetascribeWorker'):
        if max_workers is None:
            max_workers = 5
        if max_workers < 1:
            raise ValueError("max_workers must be greater than 0")

        self._max_workers = max_workers
        self._thread_name_prefix = thread_name_prefix
        self._work_queue = queue.Queue()
        self._threads = []
        self._shutdown = False
        self._lock = threading.Lock()

    def submit(self, fn, *args, **kwargs):
        with self._lock:
            if self._shutdown:
                raise RuntimeError('cannot schedule new futures after shutdown')

            f = Future()
            self._work_queue.put(_WorkItem(f, fn, args, kwargs))
            self._adjust_thread_count()
            return f

    def _adjust_thread_count(self):
        # Caller holds self._lock
        if len(self._threads) < self._max_workers:
            t = threading.Thread(
                target=self._worker_loop,
                daemon=True,
                name=f"{self._thread_name_prefix}-{len(self._threads)}"
            )
            t.start()
            self._threads.append(t)

    def _worker_loop(self):
        while True:
            item = self._work_queue.get()
            try:
                if item is _SENTINEL:
                    return
                item.run()
            finally:
                self._work_queue.task_done()

    def shutdown(self, wait=True, *, cancel_futures=False):
        with self._lock:
            self._shutdown = True
            threads = list(self._threads)

        if cancel_futures:
            while True:
                try:
                    item = self._work_queue.get_nowait()
                except queue.Empty:
                    break
                if item is not _SENTINEL:
                    item.future.cancel()
                self._work_queue.task_done()

        for _ in threads:
            self._work_queue.put(_SENTINEL)

        if wait:
            for t in threads:
                t.join()
        logger.debug(f"{self._thread_name_prefix} pool shut down ({len(threads)} threads)")

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.shutdown(wait=True)
        return False
