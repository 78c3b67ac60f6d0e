"""
Render Pipeline
===============

Turns the raw bytes of a revision into an HTML page:

    bytes -> text (UTF-8) -> markdown -> HTML fragment -> page template

The markdown conversion is a pure function of the revision bytes.
The page template is fixed at construction and never changes while
the service runs.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from string import Template
from typing import Tuple, Union
import html
import sys

import markdown


MARKDOWN_EXTENSIONS: Tuple[str, ...] = ("extra", "sane_lists")

DEFAULT_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>$filename</title>
</head>
<body>
<article>
$content
</article>
</body>
</html>
"""


def render_markdown(data: bytes, extensions: Tuple[str, ...] = MARKDOWN_EXTENSIONS) -> str:
    """Convert markdown bytes to an HTML fragment."""
    text = data.decode("utf-8", errors="replace")
    return markdown.markdown(text, extensions=list(extensions), output_format="html")


@dataclass(frozen=True)
class PageTemplate:
    """
    Immutable page template.

    Placeholders:
    - $filename : the file name, HTML-escaped
    - $content  : the rendered markdown, inserted as-is
    """
    source: str = DEFAULT_TEMPLATE
    _template: Template = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        if "$content" not in self.source and "${content}" not in self.source:
            raise ValueError("page template must contain a $content placeholder")
        object.__setattr__(self, "_template", Template(self.source))

    @staticmethod
    def from_file(path: Union[str, Path]) -> PageTemplate:
        return PageTemplate(source=Path(path).read_text(encoding="utf-8"))

    @staticmethod
    def from_stdin() -> PageTemplate:
        return PageTemplate(source=sys.stdin.read())

    def fill(self, filename: str, content_html: str) -> str:
        return self._template.safe_substitute(
            filename=html.escape(filename),
            content=content_html
        )


class MarkdownRenderer:
    """Renders revision bytes into a full page."""

    def __init__(self, template: PageTemplate = None,
                 extensions: Tuple[str, ...] = MARKDOWN_EXTENSIONS):
        self._template = template or PageTemplate()
        self._extensions = extensions

    @property
    def template(self) -> PageTemplate:
        return self._template

    def render_page(self, filename: str, data: bytes) -> str:
        return self._template.fill(filename, render_markdown(data, self._extensions))
