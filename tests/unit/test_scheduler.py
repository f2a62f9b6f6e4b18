"""
Unit tests for the bounded-concurrency batch scheduler.
"""

import math
import threading
import time
import unittest

from metascribe.core.exceptions import BatchCancelled
from metascribe.core.models import ImageMetadata
from metascribe.core.scheduler import BatchScheduler, chunk


class RecordingFetch:
    """Fake fetch function that records start/finish events and concurrency."""

    def __init__(self, fail=(), delays=None):
        self.fail = set(fail)
        self.delays = delays or {}
        self.events = []
        self.calls = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.lock = threading.Lock()

    def __call__(self, path):
        with self.lock:
            self.calls.append(path)
            self.events.append(("start", path))
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            time.sleep(self.delays.get(path, 0.01))
            if path in self.fail:
                raise RuntimeError(f"remote call failed for {path}")
            return ImageMetadata(source_path=path, title=f"title {path}", tags=("x",))
        finally:
            with self.lock:
                self.in_flight -= 1
                self.events.append(("end", path))


class ProgressCounter:
    def __init__(self):
        self.paths = []
        self.lock = threading.Lock()

    def __call__(self, path):
        with self.lock:
            self.paths.append(path)


class TestChunk(unittest.TestCase):
    def test_chunk_sizes(self):
        self.assertEqual(chunk(["a", "b", "c", "d", "e"], 2), [["a", "b"], ["c", "d"], ["e"]])
        self.assertEqual(chunk([], 3), [])


class TestBatchSchedulerGroups(unittest.TestCase):
    def test_one_failure_is_isolated(self):
        fetch = RecordingFetch(fail={"img2.jpg"})
        progress = ProgressCounter()
        scheduler = BatchScheduler(fetch, concurrency=2)

        results = scheduler.run_batch(["img1.jpg", "img2.jpg", "img3.jpg"], progress)

        self.assertEqual(len(results), 2)
        self.assertEqual({r.source_path for r in results}, {"img1.jpg", "img3.jpg"})
        self.assertEqual(sorted(progress.paths), ["img1.jpg", "img3.jpg"])

    def test_group_barrier(self):
        paths = [f"img{i}.jpg" for i in range(7)]
        # Uneven delays so later members of a group would overtake a barrier-less scheduler
        delays = {p: 0.05 if i % 3 == 0 else 0.005 for i, p in enumerate(paths)}
        fetch = RecordingFetch(delays=delays)
        concurrency = 3

        BatchScheduler(fetch, concurrency=concurrency).run_batch(paths)

        groups = chunk(paths, concurrency)
        self.assertEqual(len(groups), math.ceil(len(paths) / concurrency))
        for earlier, later in zip(groups, groups[1:]):
            last_end = max(fetch.events.index(("end", p)) for p in earlier)
            first_start = min(fetch.events.index(("start", p)) for p in later)
            self.assertLess(last_end, first_start)
        self.assertLessEqual(fetch.max_in_flight, concurrency)

    def test_results_concatenated_in_group_order(self):
        paths = [f"img{i}.jpg" for i in range(6)]
        fetch = RecordingFetch(delays={"img0.jpg": 0.05, "img3.jpg": 0.05})
        results = BatchScheduler(fetch, concurrency=3).run_batch(paths)

        result_paths = [r.source_path for r in results]
        self.assertEqual(set(result_paths[:3]), set(paths[:3]))
        self.assertEqual(set(result_paths[3:]), set(paths[3:]))
        # img0 is slowest in its group, so completion order puts it last
        self.assertEqual(result_paths[2], "img0.jpg")

    def test_failures_in_every_group_do_not_stop_later_groups(self):
        paths = [f"img{i}.jpg" for i in range(6)]
        fetch = RecordingFetch(fail={"img0.jpg", "img4.jpg"})
        progress = ProgressCounter()

        results = BatchScheduler(fetch, concurrency=2).run_batch(paths, progress)

        self.assertEqual(len(results), 4)
        self.assertEqual(len(progress.paths), 4)
        self.assertEqual(sorted(fetch.calls), sorted(paths))

    def test_default_concurrency_is_three(self):
        self.assertEqual(BatchScheduler(RecordingFetch()).concurrency, 3)

    def test_invalid_concurrency(self):
        for value in (0, -1, 1.5):
            with self.assertRaises(ValueError):
                BatchScheduler(RecordingFetch(), concurrency=value)

    def test_empty_batch(self):
        fetch = RecordingFetch()
        self.assertEqual(BatchScheduler(fetch).run_batch([]), [])
        self.assertEqual(fetch.calls, [])

    def test_run_outcomes_keeps_input_order(self):
        paths = ["a.jpg", "b.jpg", "c.jpg", "d.jpg"]
        fetch = RecordingFetch(fail={"b.jpg"}, delays={"a.jpg": 0.05})

        outcomes = BatchScheduler(fetch, concurrency=2).run_outcomes(paths)

        self.assertEqual([o.path for o in outcomes], paths)
        self.assertEqual([o.ok for o in outcomes], [True, False, True, True])
        self.assertIsInstance(outcomes[1].error, RuntimeError)
        self.assertEqual(outcomes[0].metadata.source_path, "a.jpg")

    def test_progress_callback_errors_do_not_drop_results(self):
        def broken_progress(path):
            raise ValueError("ui went away")

        results = BatchScheduler(RecordingFetch(), concurrency=2).run_batch(["a.jpg", "b.jpg"], broken_progress)
        self.assertEqual(len(results), 2)

    def test_cancel_event_skips_remaining_groups(self):
        cancel = threading.Event()
        paths = [f"img{i}.jpg" for i in range(6)]
        fetch = RecordingFetch()

        def progress(path):
            cancel.set()

        scheduler = BatchScheduler(fetch, concurrency=2, cancel_event=cancel)
        outcomes = scheduler.run_outcomes(paths, progress)

        self.assertEqual(sorted(fetch.calls), paths[:2])
        self.assertTrue(all(o.ok for o in outcomes[:2]))
        self.assertTrue(all(isinstance(o.error, BatchCancelled) for o in outcomes[2:]))


class TestBatchSchedulerPool(unittest.TestCase):
    def test_pool_caps_in_flight_and_isolates_failures(self):
        paths = [f"img{i}.jpg" for i in range(8)]
        fetch = RecordingFetch(fail={"img3.jpg"}, delays={"img0.jpg": 0.08})
        progress = ProgressCounter()

        results = BatchScheduler(fetch, concurrency=3, strategy="pool").run_batch(paths, progress)

        self.assertEqual(len(results), 7)
        self.assertEqual(len(progress.paths), 7)
        self.assertLessEqual(fetch.max_in_flight, 3)

    def test_pool_admits_without_group_barrier(self):
        paths = ["slow.jpg", "b.jpg", "c.jpg", "d.jpg"]
        fetch = RecordingFetch(delays={"slow.jpg": 0.2})

        BatchScheduler(fetch, concurrency=2, strategy="pool").run_batch(paths)

        # d.jpg starts while slow.jpg is still running
        self.assertLess(fetch.events.index(("start", "d.jpg")), fetch.events.index(("end", "slow.jpg")))

    def test_cancel_event_stops_admission(self):
        cancel = threading.Event()
        paths = [f"img{i}.jpg" for i in range(6)]
        fetch = RecordingFetch()

        def progress(path):
            cancel.set()

        scheduler = BatchScheduler(fetch, concurrency=2, strategy="pool", cancel_event=cancel)
        outcomes = scheduler.run_outcomes(paths, progress)

        # The two admitted calls finish; nothing else is started
        self.assertEqual(sorted(fetch.calls), paths[:2])
        self.assertEqual([o.path for o in outcomes], paths)
        self.assertTrue(all(o.ok for o in outcomes[:2]))
        self.assertTrue(all(isinstance(o.error, BatchCancelled) for o in outcomes[2:]))

    def test_unknown_strategy(self):
        with self.assertRaises(ValueError):
            BatchScheduler(RecordingFetch(), strategy="fifo")


if __name__ == "__main__":
    unittest.main()
