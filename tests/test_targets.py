# tests/test_targets.py
from __future__ import annotations

import unittest

from webmention_gather.targets import webmention_target_urls


class TestTargetURLs(unittest.TestCase):
    def test_canonical_alias_and_legacy_domain(self) -> None:
        targets = webmention_target_urls(
            "https://example.com",
            "/post1",
            redirect_from="/old-post1",
            legacy_domains=["https://old.example.com"],
        )
        self.assertEqual(
            targets,
            [
                "https://example.com/post1",
                "https://example.com/old-post1",
                "https://old.example.com/post1",
            ],
        )

    def test_alias_list_keeps_order_and_duplicates(self) -> None:
        targets = webmention_target_urls(
            "https://example.com/",
            "/2024/01/hello/",
            redirect_from=["/hello/", "/hello/"],
        )
        self.assertEqual(
            targets,
            [
                "https://example.com/2024/01/hello/",
                "https://example.com/hello/",
                "https://example.com/hello/",
            ],
        )

    def test_canonical_only(self) -> None:
        self.assertEqual(
            webmention_target_urls("https://example.com", "/about/"),
            ["https://example.com/about/"],
        )

    def test_each_legacy_domain_gets_the_canonical_path(self) -> None:
        targets = webmention_target_urls(
            "https://example.com",
            "/a",
            legacy_domains=["http://example.org/", "https://blog.example.net"],
        )
        self.assertEqual(
            targets[1:],
            ["http://example.org/a", "https://blog.example.net/a"],
        )


if __name__ == "__main__":
    unittest.main()
