import logging
import os
import unittest
from logging.handlers import RotatingFileHandler
from unittest.mock import patch

from retell_bridge.config.constants import LOGGER_NAME
from retell_bridge.config.logging_config import LOG_FORMAT, configure_logging


class TestLoggingConfig(unittest.TestCase):
    def tearDown(self):
        logger = logging.getLogger(LOGGER_NAME)
        for handler in logger.handlers[:]:
            logger.removeHandler(handler)
            handler.close()
        logger.propagate = True

    def test_configure_logging(self):
        # Test that the function returns a logger
        logger = configure_logging()
        self.assertIsInstance(logger, logging.Logger)

        # Test that the logger has the correct name
        self.assertEqual(logger.name, LOGGER_NAME)

        # Test that the logger has the correct handlers and format
        self.assertGreaterEqual(len(logger.handlers), 1)  # At least one handler (console)
        handler = logger.handlers[0]
        self.assertIsInstance(handler, logging.StreamHandler)
        self.assertEqual(handler.formatter._fmt, LOG_FORMAT)
        self.assertFalse(logger.propagate)

    def test_level_override(self):
        logger = configure_logging("debug")
        self.assertEqual(logger.level, logging.DEBUG)

        logger = configure_logging("WARNING")
        self.assertEqual(logger.level, logging.WARNING)

    def test_unknown_level_falls_back_to_info(self):
        logger = configure_logging("chatty")
        self.assertEqual(logger.level, logging.INFO)

    def test_reconfiguring_does_not_duplicate_handlers(self):
        configure_logging()
        logger = configure_logging()
        console = [h for h in logger.handlers if not isinstance(h, RotatingFileHandler)]
        self.assertEqual(len(console), 1)

    def test_level_read_from_environment_at_call_time(self):
        with patch.dict(os.environ, {"LOG_LEVEL": "DEBUG"}):
            logger = configure_logging()
        self.assertEqual(logger.level, logging.DEBUG)

    def test_explicit_level_beats_environment(self):
        with patch.dict(os.environ, {"LOG_LEVEL": "DEBUG"}):
            logger = configure_logging("ERROR")
        self.assertEqual(logger.level, logging.ERROR)


if __name__ == "__main__":
    unittest.main()
