from __future__ import annotations

import io
import json
import logging
import unittest

from ict.monitoring.logging import JsonFormatter, configure_logging


class LoggingTests(unittest.TestCase):
    def tearDown(self) -> None:
        logging.getLogger().handlers.clear()

    def test_json_formatter_merges_context(self) -> None:
        record = logging.LogRecord("ict.pipeline", logging.INFO, __file__, 1, "split train=%d", (8,), None)
        record.context = {"layout": "full"}

        payload = json.loads(JsonFormatter().format(record))

        self.assertEqual(payload["message"], "split train=8")
        self.assertEqual(payload["logger"], "ict.pipeline")
        self.assertEqual(payload["layout"], "full")

    def test_configure_logging_writes_to_given_stream(self) -> None:
        stream = io.StringIO()
        configure_logging(level="INFO", json_logs=True, stream=stream)

        logging.getLogger("ict.test").info("hello key=%s", "value")

        payload = json.loads(stream.getvalue().strip())
        self.assertEqual(payload["message"], "hello key=value")
        self.assertEqual(payload["level"], "INFO")


if __name__ == "__main__":
    unittest.main()
