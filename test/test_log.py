"""Tests for logger configuration."""

from __future__ import annotations

import logging
import sys
import tempfile
import unittest
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT / "src"))

from LibSearch.utils.log import configure_logging, log


class TestConfigureLogging(unittest.TestCase):
    def tearDown(self) -> None:
        for handler in log.handlers:
            handler.close()
        log.handlers.clear()

    def test_console_only_by_default(self) -> None:
        self.assertIsNone(configure_logging(level="warning"))
        self.assertEqual(len(log.handlers), 1)
        self.assertEqual(log.level, logging.WARNING)
        self.assertEqual(logging.getLogger("urllib3").level, logging.WARNING)

    def test_file_mirror_records_debug_with_thread(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = configure_logging(level="INFO", action="search", log_to_file=True, log_dir=tmp)
            assert path is not None
            log.debug("hidden from console")
            for handler in log.handlers:
                handler.flush()

            self.assertEqual(path.parent, Path(tmp) / "search")
            text = path.read_text(encoding="utf-8")
            for handler in log.handlers:
                handler.close()
            log.handlers.clear()

        self.assertIn("[DEBG] (MainThread) hidden from console", text)

    def test_reconfigure_replaces_handlers(self) -> None:
        configure_logging(level="DEBUG")
        configure_logging(level="INFO")
        self.assertEqual(len(log.handlers), 1)
        self.assertEqual(logging.getLogger("requests").level, logging.WARNING)


if __name__ == "__main__":
    unittest.main()
