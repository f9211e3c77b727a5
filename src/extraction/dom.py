"""Read-only-ish DOM interface the extraction logic is written against.

The live browser page marshals its rendered document into a
:class:`SoupNode` snapshot; extraction functions then run as plain Python
over :class:`DomNode`, which keeps them testable against synthetic HTML.
"""

from __future__ import annotations

from typing import Protocol
from urllib.parse import urljoin

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PreformattedString

_BLOCK_TAGS = frozenset({
    "address", "article", "aside", "blockquote", "dd", "div", "dl", "dt",
    "fieldset", "figcaption", "figure", "footer", "form", "h1", "h2", "h3",
    "h4", "h5", "h6", "header", "hr", "li", "main", "nav", "ol", "p", "pre",
    "section", "table", "tr", "ul",
})

_HIDDEN_TAGS = frozenset({"script", "style", "template", "noscript"})


def _line_break(parts: list[str]) -> None:
    if parts and not parts[-1].endswith("\n"):
        parts.append("\n")


def _collect_text(tag: Tag, parts: list[str]) -> None:
    for child in tag.children:
        if isinstance(child, PreformattedString):
            continue
        if isinstance(child, Tag):
            if child.name in _HIDDEN_TAGS:
                continue
            if child.name == "br":
                parts.append("\n")
                continue
            block = child.name in _BLOCK_TAGS
            if block:
                _line_break(parts)
            _collect_text(child, parts)
            if block:
                _line_break(parts)
        elif isinstance(child, NavigableString):
            # Source indentation between elements is not rendered.
            if not child.strip() and "\n" in child:
                continue
            parts.append(str(child))


class DomNode(Protocol):
    """The subset of element behaviour extraction needs."""

    def select(self, selector: str) -> list[DomNode]: ...

    def select_one(self, selector: str) -> DomNode | None: ...

    def text(self) -> str: ...

    def attr(self, name: str) -> str | None: ...

    def inner_html(self) -> str: ...

    def remove(self) -> None: ...


class SoupNode:
    """:class:`DomNode` backed by a BeautifulSoup tag."""

    def __init__(self, tag: Tag, base_url: str = "") -> None:
        self._tag = tag
        self._base_url = base_url

    def _wrap(self, tag: Tag) -> SoupNode:
        return SoupNode(tag, self._base_url)

    def select(self, selector: str) -> list[DomNode]:
        return [self._wrap(tag) for tag in self._tag.select(selector)]

    def select_one(self, selector: str) -> DomNode | None:
        tag = self._tag.select_one(selector)
        return self._wrap(tag) if tag is not None else None

    def text(self) -> str:
        """Visible text laid out like ``innerText``.

        ``<br>`` becomes a newline and block elements start and end on
        their own line; adjacent block boundaries share one break.
        """
        parts: list[str] = []
        _collect_text(self._tag, parts)
        return "".join(parts).strip()

    def attr(self, name: str) -> str | None:
        value = self._tag.get(name)
        if value is None:
            return None
        if isinstance(value, list):
            value = " ".join(value)
        if name in ("src", "href") and value:
            # Mirror the DOM property: URLs come back absolute.
            return urljoin(self._base_url, value)
        return value

    def inner_html(self) -> str:
        return self._tag.decode_contents()

    def remove(self) -> None:
        # Nested matches may already be gone with their ancestor.
        if not self._tag.decomposed:
            self._tag.decompose()


def parse_document(html: str, base_url: str = "") -> SoupNode:
    """Snapshot an HTML document into a :class:`DomNode` tree."""
    return SoupNode(BeautifulSoup(html, "html.parser"), base_url)
