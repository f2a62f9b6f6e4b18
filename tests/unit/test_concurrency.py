import threading
import time
import unittest
from concurrent.futures import as_completed

from metascribe.utils.concurrency import DaemonThreadPoolExecutor


class TestDaemonThreadPoolExecutor(unittest.TestCase):
    def test_daemon_submit(self):
        """Submitted tasks run in daemon threads."""
        with DaemonThreadPoolExecutor(max_workers=1) as executor:
            future = executor.submit(lambda: threading.current_thread().daemon)
            self.assertTrue(future.result(), "Worker thread should be a daemon thread")

    def test_daemon_map(self):
        with DaemonThreadPoolExecutor(max_workers=2) as executor:
            results = list(executor.map(lambda x: threading.current_thread().daemon, [1, 2, 3]))
        self.assertEqual(results, [True, True, True])

    def test_exceptions_are_set_on_future(self):
        def fail():
            raise ValueError("nope")

        with DaemonThreadPoolExecutor(max_workers=1) as executor:
            future = executor.submit(fail)
            with self.assertRaises(ValueError):
                future.result()

    def test_max_workers_caps_parallelism(self):
        lock = threading.Lock()
        state = {"running": 0, "peak": 0}

        def work():
            with lock:
                state["running"] += 1
                state["peak"] = max(state["peak"], state["running"])
            time.sleep(0.02)
            with lock:
                state["running"] -= 1

        with DaemonThreadPoolExecutor(max_workers=2) as executor:
            futures = [executor.submit(work) for _ in range(6)]
            for f in as_completed(futures):
                f.result()
        self.assertLessEqual(state["peak"], 2)

    def test_submit_after_shutdown(self):
        executor = DaemonThreadPoolExecutor(max_workers=1)
        executor.shutdown()
        with self.assertRaises(RuntimeError):
            executor.submit(lambda: None)

    def test_invalid_max_workers(self):
        with self.assertRaises(ValueError):
            DaemonThreadPoolExecutor(max_workers=0)


if __name__ == '__main__':
    unittest.main()
