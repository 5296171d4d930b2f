from __future__ import annotations

import logging
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from clustermenu.logs import LOG_FORMAT, PACKAGE_LOGGER, setup_logging


class SetupLoggingTests(unittest.TestCase):
    def setUp(self) -> None:
        self.logger = logging.getLogger(PACKAGE_LOGGER)
        self._saved = (list(self.logger.handlers), self.logger.level, self.logger.propagate)
        self.logger.handlers = []

    def tearDown(self) -> None:
        for handler in self.logger.handlers:
            handler.close()
        self.logger.handlers, level, self.logger.propagate = self._saved[0], self._saved[1], self._saved[2]
        self.logger.setLevel(level)

    def test_records_go_to_the_log_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "nested" / "clustermenu.log"

            setup_logging(logging.INFO, path)
            logging.getLogger("clustermenu.policy").info("gate closed")
            for handler in self.logger.handlers:
                handler.flush()

            text = path.read_text(encoding="utf-8")
            for handler in self.logger.handlers:
                handler.close()

        self.assertIn("INFO clustermenu.policy gate closed", text)
        self.assertFalse(self.logger.propagate)

    def test_second_call_keeps_single_handler(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "clustermenu.log"
            setup_logging(logging.INFO, path)
            setup_logging(logging.DEBUG, path)

            self.assertEqual(len(self.logger.handlers), 1)
            self.assertEqual(self.logger.handlers[0].formatter._fmt, LOG_FORMAT)
            for handler in self.logger.handlers:
                handler.close()

    def test_unwritable_location_falls_back_to_null_handler(self) -> None:
        with mock.patch("clustermenu.logs.logging.FileHandler", side_effect=PermissionError("denied")):
            with tempfile.TemporaryDirectory() as tmp:
                setup_logging(logging.INFO, Path(tmp) / "clustermenu.log")

        self.assertIsInstance(self.logger.handlers[0], logging.NullHandler)


if __name__ == "__main__":
    unittest.main()
