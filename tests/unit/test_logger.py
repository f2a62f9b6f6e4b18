import logging
import tempfile
import unittest

from metascribe.utils.logger import (
    SensitiveDataFilter,
    log_api_call,
    mask_sensitive_data,
    setup_logging,
    shutdown_logging,
)

GOOGLE_KEY = "AIza" + "A" * 35


class TestMasking(unittest.TestCase):
    def test_dict_keys_are_masked(self):
        masked = mask_sensitive_data({"api_key": "secret-value-1234", "password": "hunter2", "model": "gemini"})
        self.assertEqual(masked["api_key"], "***1234")
        self.assertEqual(masked["password"], "***")
        self.assertEqual(masked["model"], "gemini")

    def test_nested_structures(self):
        masked = mask_sensitive_data({"engine": {"x-goog-api-key": "abcdefgh"}, "items": [GOOGLE_KEY]})
        self.assertEqual(masked["engine"]["x-goog-api-key"], "***efgh")
        self.assertNotIn(GOOGLE_KEY, masked["items"][0])

    def test_strings_are_scanned(self):
        text = mask_sensitive_data(f"POST https://host/models/x?key={GOOGLE_KEY}&alt=json")
        self.assertNotIn(GOOGLE_KEY, text)
        self.assertIn("alt=json", text)

    def test_filter_masks_message_and_args(self):
        record = logging.LogRecord("t", logging.INFO, __file__, 1, f"key {GOOGLE_KEY} %s", (GOOGLE_KEY,), None)
        self.assertTrue(SensitiveDataFilter().filter(record))
        self.assertNotIn(GOOGLE_KEY, record.getMessage())


class TestSetupLogging(unittest.TestCase):
    def test_setup_writes_log_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            log_file = setup_logging(log_dir=tmp)
            try:
                logging.getLogger("metascribe.test").info(f"hello {GOOGLE_KEY}")
            finally:
                shutdown_logging()
            content = log_file.read_text(encoding="utf-8")
        self.assertIn("hello", content)
        self.assertNotIn(GOOGLE_KEY, content)


class TestLogApiCall(unittest.TestCase):
    def test_decorator_reraises(self):
        @log_api_call(api_name="Test")
        def boom():
            raise RuntimeError("bad")

        with self.assertRaises(RuntimeError):
            boom()

    def test_decorator_returns_value(self):
        @log_api_call
        def ok(x):
            return x * 2

        self.assertEqual(ok(21), 42)


if __name__ == "__main__":
    unittest.main()
