# tests/test_cli_smoke.py
from __future__ import annotations

import json
import os
import subprocess
import sys
import tempfile
import unittest
from pathlib import Path

from webmention_gather.cache import WebmentionCache


def _run_cli(repo_root: Path, *args: str) -> subprocess.CompletedProcess[str]:
    env = dict(os.environ)
    existing_pp = env.get("PYTHONPATH", "")
    env["PYTHONPATH"] = (
        f"{repo_root}{os.pathsep}{existing_pp}" if existing_pp else str(repo_root)
    )
    return subprocess.run(
        [sys.executable, "-m", "webmention_gather", *args],
        cwd=repo_root,
        env=env,
        capture_output=True,
        text=True,
    )


class TestCLISmoke(unittest.TestCase):
    def test_offline_gather(self) -> None:
        repo_root = Path(__file__).resolve().parents[1]

        with tempfile.TemporaryDirectory() as td:
            cfg_path = Path(td) / "config.yaml"
            cfg_path.write_text("site:\n  url: https://example.com\n", encoding="utf-8")
            site_path = Path(td) / "site.yaml"
            site_path.write_text("posts:\n  - url: /2024/03/hello/\n", encoding="utf-8")
            cache_file = Path(td) / "incoming.yml"

            proc = _run_cli(
                repo_root,
                "gather",
                "--config",
                str(cfg_path),
                "--site",
                str(site_path),
                "--cache",
                str(cache_file),
                "--log",
                str(Path(td) / "run.log"),
                "--offline",
            )

            self.assertEqual(proc.returncode, 0, msg=proc.stderr)
            self.assertIn("status=completed", proc.stdout)
            self.assertIn("mentions_added=3", proc.stdout)

            records = WebmentionCache.load(cache_file).records_for("/2024/03/hello/")

        self.assertEqual(sorted(records), ["1", "2", "3"])
        self.assertEqual(records["1"].type, "post")
        self.assertEqual(records["1"].title, "<p>Offline mention source</p>")

    def test_missing_config_exits_2_and_logs(self) -> None:
        repo_root = Path(__file__).resolve().parents[1]

        with tempfile.TemporaryDirectory() as td:
            log_path = Path(td) / "run.log"
            proc = _run_cli(
                repo_root,
                "gather",
                "--config",
                str(Path(td) / "missing.yaml"),
                "--site",
                str(Path(td) / "site.yaml"),
                "--log",
                str(log_path),
            )

            self.assertEqual(proc.returncode, 2, msg=proc.stderr)
            events = [
                json.loads(ln).get("event")
                for ln in log_path.read_text(encoding="utf-8").splitlines()
                if ln.strip()
            ]

        self.assertIn("gather_command_started", events)
        self.assertIn("gather_command_failed", events)


if __name__ == "__main__":
    unittest.main()
