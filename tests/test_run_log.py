# tests/test_run_log.py
from __future__ import annotations

import json
import tempfile
import unittest
from pathlib import Path

from webmention_gather.run_log import RunLogger


def _events(path: Path) -> list[dict[str, object]]:
    return [json.loads(ln) for ln in path.read_text(encoding="utf-8").splitlines() if ln.strip()]


class TestRunLogger(unittest.TestCase):
    def test_debug_is_dropped_at_info(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "logs" / "run.log"
            with RunLogger.open(path, session_id="s1") as log:
                log.debug("mention_skipped", reason="duplicate")
                log.info("gather_started", items=2)
                log.warning("mentions_fetch_failed", url="https://webmention.io/api/mentions")

            records = _events(path)

        self.assertEqual([r["event"] for r in records], ["gather_started", "mentions_fetch_failed"])
        self.assertEqual(records[0]["session_id"], "s1")
        self.assertEqual(records[0]["data"], {"items": 2})
        self.assertEqual(records[1]["level"], "WARN")
        self.assertEqual(records[1]["url"], "https://webmention.io/api/mentions")

    def test_debug_level_keeps_everything(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "run.log"
            with RunLogger.open(path, min_level="debug") as log:
                self.assertTrue(log.is_enabled_for("DEBUG"))
                log.debug("mention_skipped")
                try:
                    raise ValueError("bad cache")
                except ValueError as e:
                    log.exception("gather_command_failed", exc=e)

            records = _events(path)

        self.assertEqual([r["level"] for r in records], ["DEBUG", "ERROR"])
        self.assertEqual(records[1]["data"]["error"]["type"], "ValueError")

    def test_bound_loggers_share_the_file_and_counts(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "run.log"
            with RunLogger.open(path, session_id="s2") as log:
                page_log = log.bind(page="/2024/01/hello/")
                page_log.warning("mentions_fetch_failed")
                log.info("gather_completed")
                counts = log.level_counts()

            records = _events(path)

        self.assertEqual(records[0]["context"], {"page": "/2024/01/hello/"})
        self.assertEqual(records[0]["session_id"], "s2")
        self.assertNotIn("context", records[1])
        self.assertEqual(counts, {"DEBUG": 0, "INFO": 1, "WARN": 1, "ERROR": 0})

    def test_unknown_level_is_rejected(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            with self.assertRaises(ValueError):
                RunLogger(Path(td) / "run.log", min_level="LOUD")


if __name__ == "__main__":
    unittest.main()
