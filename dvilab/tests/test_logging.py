"""Unit tests for logging setup."""

from __future__ import annotations

import logging
import unittest

from dvilab.core.utils.logging import LOG_FORMAT, configure_logging


class TestConfigureLogging(unittest.TestCase):
    """Validate level parsing and handler replacement."""

    def tearDown(self) -> None:
        configure_logging("INFO")

    def test_level_names_are_case_insensitive(self) -> None:
        configure_logging("warning")
        self.assertEqual(logging.getLogger().level, logging.WARNING)
        configure_logging(logging.DEBUG)
        self.assertEqual(logging.getLogger().level, logging.DEBUG)

    def test_reconfiguring_keeps_one_handler(self) -> None:
        configure_logging("INFO")
        configure_logging("ERROR")
        handlers = logging.getLogger().handlers
        self.assertEqual(len(handlers), 1)
        formatter = handlers[0].formatter
        assert formatter is not None
        self.assertEqual(formatter._fmt, LOG_FORMAT)

    def test_noisy_loggers_are_quieted(self) -> None:
        configure_logging("DEBUG")
        self.assertEqual(logging.getLogger("urllib3").level, logging.WARNING)

    def test_unknown_level_raises(self) -> None:
        with self.assertRaises(ValueError):
            configure_logging("chatty")


if __name__ == "__main__":
    unittest.main()
