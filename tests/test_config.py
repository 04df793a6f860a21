# tests/test_config.py
from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

from webmention_gather.config import cache_path, config_sha256, load_config
from webmention_gather.config_schema import UNPAGINATED_PAGE_SIZE
from webmention_gather.errors import ConfigError


_VALID_YAML = """\
site:
  url: https://example.com/

webmentions:
  pause_lookups: false
  pages: true
  legacy_domains:
    - https://old.example.com/
    - "  "
  cache_file: cache/incoming.yml
  fallback_id: timestamp
  throttle_lookups:
    last_week: daily
    older: every 2 weeks
  api:
    base_url: https://webmention.io/api/
    timeout_seconds: 10
"""


class TestConfig(unittest.TestCase):
    def _write(self, td: str, text: str) -> Path:
        path = Path(td) / "config.yaml"
        path.write_text(text, encoding="utf-8")
        return path

    def test_load_config_ok(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            cfg = load_config(self._write(td, _VALID_YAML))

        self.assertEqual(cfg.site.url, "https://example.com")
        self.assertTrue(cfg.webmentions.pages)
        self.assertEqual(cfg.webmentions.legacy_domains, ["https://old.example.com"])
        self.assertEqual(cfg.webmentions.fallback_id, "timestamp")
        self.assertEqual(cfg.webmentions.api.base_url, "https://webmention.io/api")
        self.assertEqual(cfg.webmentions.api.endpoint, "mentions")
        self.assertEqual(cfg.webmentions.api.per_page, UNPAGINATED_PAGE_SIZE)

    def test_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            cfg = load_config(self._write(td, "site:\n  url: https://example.com\n"))

        self.assertFalse(cfg.webmentions.pause_lookups)
        self.assertFalse(cfg.webmentions.pages)
        self.assertEqual(cfg.webmentions.fallback_id, "url_hash")
        self.assertEqual(cfg.webmentions.throttle_lookups, {})

    def test_rejects_invalid_configs(self) -> None:
        bad_configs = [
            "{}",
            "site:\n  url: example.com\n",
            _VALID_YAML.replace("older: every 2 weeks", "older: hourly"),
            _VALID_YAML.replace("last_week: daily", "yesterday: daily"),
            _VALID_YAML.replace("fallback_id: timestamp", "fallback_id: random"),
            _VALID_YAML + "unexpected: true\n",
            "- not\n- a mapping\n",
            "site: [unclosed\n",
        ]
        with tempfile.TemporaryDirectory() as td:
            for text in bad_configs:
                with self.assertRaises(ConfigError, msg=text):
                    load_config(self._write(td, text))

    def test_missing_file(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            with self.assertRaises(ConfigError):
                load_config(Path(td) / "nope.yaml")

    def test_cache_path_and_hash(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            cfg = load_config(self._write(td, _VALID_YAML))
            again = load_config(self._write(td, _VALID_YAML))

        self.assertEqual(cache_path(cfg), Path("cache/incoming.yml"))
        self.assertEqual(config_sha256(cfg), config_sha256(again))


if __name__ == "__main__":
    unittest.main()
