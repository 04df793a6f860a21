from __future__ import annotations

import re
from typing import Any, Protocol

import markdown

_LEADING_TAG_RE = re.compile(r"^<[^>]+>", re.MULTILINE)
_TRAILING_CLOSE_TAG_RE = re.compile(r"</[^>]+>$", re.MULTILINE)


class Renderer(Protocol):
    def convert(self, text: str) -> str: ...


class MarkdownRenderer:
    """Markdown to HTML conversion used for mention titles and content."""

    def __init__(self, *, extensions: list[str] | None = None) -> None:
        self._md = markdown.Markdown(extensions=list(extensions or []), output_format="html")

    def convert(self, text: str) -> str:
        try:
            return self._md.convert(text)
        finally:
            self._md.reset()


def markdownify(renderer: Renderer, text: Any) -> str:
    """
    Render text and make sure the result is wrapped in a paragraph.

    When the renderer produced some other block (a heading, a div), its
    first opening tag and first line-ending closing tag become <p> and </p>.
    """
    html = renderer.convert("" if text is None else str(text))
    if not html.startswith("<p"):
        html = _LEADING_TAG_RE.sub("<p>", html, count=1)
        html = _TRAILING_CLOSE_TAG_RE.sub("</p>", html, count=1)
    return html.strip()
