# tests/test_render.py
from __future__ import annotations

import unittest

from webmention_gather.render import MarkdownRenderer, markdownify


class _FixedRenderer:
    def __init__(self, output: str) -> None:
        self._output = output
        self.inputs: list[str] = []

    def convert(self, text: str) -> str:
        self.inputs.append(text)
        return self._output


class TestMarkdownify(unittest.TestCase):
    def test_keeps_paragraph_output(self) -> None:
        self.assertEqual(markdownify(_FixedRenderer("<p>hi</p>\n"), "hi"), "<p>hi</p>")

    def test_rewraps_other_blocks_as_paragraph(self) -> None:
        renderer = _FixedRenderer("<h1>Title</h1>\n")
        self.assertEqual(markdownify(renderer, "# Title"), "<p>Title</p>")

    def test_none_renders_as_empty_string(self) -> None:
        renderer = _FixedRenderer("")
        self.assertEqual(markdownify(renderer, None), "")
        self.assertEqual(renderer.inputs, [""])

    def test_markdown_renderer_wraps_plain_text(self) -> None:
        renderer = MarkdownRenderer()
        self.assertEqual(markdownify(renderer, "Nice *post*"), "<p>Nice <em>post</em></p>")
        self.assertEqual(markdownify(renderer, "# Heading"), "<p>Heading</p>")


if __name__ == "__main__":
    unittest.main()
