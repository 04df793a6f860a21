from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Sequence

_OFFLINE_HTML = (
    b"<html><head><title>Offline mention source</title></head>"
    b"<body><h1>Ignored heading</h1></body></html>"
)


def _offline_links(target: str) -> list[dict[str, Any]]:
    # Newest first, like the real API.
    return [
        {
            "id": 3,
            "source": "https://example.net/notes/3",
            "target": target,
            "verified_date": "2024-03-03T12:00:00+00:00",
            "data": {
                "url": "https://example.net/notes/3",
                "author": {"name": "Offline Author", "url": "https://example.net/"},
                "content": "Replying to this offline post.",
            },
            "activity": {"type": "reply", "sentence_html": "Offline Author replied"},
        },
        {
            "id": 2,
            "source": "https://example.net/likes/2",
            "target": target,
            "verified_date": "2024-03-02T12:00:00+00:00",
            "data": {"url": "https://example.net/likes/2"},
            "activity": {"type": "like", "sentence_html": "Someone liked this"},
        },
        {
            "id": 1,
            "source": "https://example.net/articles/1",
            "target": target,
            "verified_date": "2024-03-01T12:00:00+00:00",
            "data": {"url": "https://example.net/articles/1", "published_ts": 1709294400},
            "activity": {"type": None, "sentence_html": "An article linked here"},
        },
    ]


@dataclass
class OfflineWebmentionClient:
    """
    Network-free stand-in for WebmentionIOClient.

    Answers every lookup with the same three mentions of the first target and
    serves a fixed HTML page for title lookups.
    """

    html: bytes = _OFFLINE_HTML
    calls: list[list[tuple[str, str]]] = field(default_factory=list)

    def get_mentions(self, params: Sequence[tuple[str, str]]) -> dict[str, Any] | None:
        query = list(params)
        self.calls.append(query)
        targets = [value for key, value in query if key == "target[]"]
        if not targets:
            return None
        return {"links": _offline_links(targets[0])}

    def fetch_html(self, url: str) -> bytes | None:
        _ = url
        return self.html

    def close(self) -> None:
        return None
