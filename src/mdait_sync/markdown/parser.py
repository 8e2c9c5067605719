"""Split Markdown documents into units and render them back.

Parsing works line by line so every unit keeps its verbatim text; the
mistune AST is only consulted to decide whether a stretch of lines holds
real content (anything other than blank lines and HTML comments).

Unit boundaries:

- An ATX heading at or above the split level starts a unit, unless the
  current unit is still a *heading run* (headings, blank lines and
  comments only) that has no heading of that level yet; then the heading
  joins it.  ``# A`` / ``## B`` become one unit, ``## A`` / ``## B`` two.
- A marker line always starts a unit and is removed from its content.
- Headings and markers inside fenced code blocks or HTML comments are
  plain text.
- Text before the first unit becomes a heading-less unit when it holds
  real content, and the verbatim document preamble otherwise.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

import mistune

from .front_matter import FrontMatter, get_sync_level
from .marker import Marker
from .unit import Document, Unit

logger = logging.getLogger(__name__)

DEFAULT_LEVEL = 2

_HEADING_RE = re.compile(r" {0,3}(#{1,6})(?:[ \t]+(.*?))?(?:[ \t]+#+)?[ \t]*")
_FENCE_OPEN_RE = re.compile(r" {0,3}(`{3,}|~{3,})(.*)")
_COMMENT_ONLY_RE = re.compile(r"(?:\s*<!--.*?-->)*\s*", re.DOTALL)

_ast = mistune.create_markdown(renderer=None)

# Line kinds
_BLANK = "blank"
_TEXT = "text"
_HEADING = "heading"
_MARKER = "marker"


@dataclass
class _Line:
    text: str
    kind: str
    level: int = 0
    title: str = ""
    marker: Marker | None = None


@dataclass
class _PendingUnit:
    """Unit being assembled while scanning."""

    marker: Marker | None = None
    title: str = ""
    level: int = 0
    lines: list[_Line] = field(default_factory=list)
    heading_levels: list[int] = field(default_factory=list)
    is_preamble: bool = False

    def has_lines(self) -> bool:
        return any(line.kind != _BLANK for line in self.lines)

    def body_text(self, skip_headings: bool = False) -> str:
        return "\n".join(
            line.text
            for line in self.lines
            if not (skip_headings and line.kind == _HEADING)
        )

    def add_heading(self, line: _Line) -> None:
        self.lines.append(line)
        self.heading_levels.append(line.level)
        if not self.level or line.level < self.level:
            self.level = line.level
            self.title = line.title


# ----------------------------------------------------------------------
# Content detection
# ----------------------------------------------------------------------


def has_real_content(text: str) -> bool:
    """True if *text* holds anything besides blank lines and HTML comments."""
    if not text.strip():
        return False
    for token in _ast(text):
        kind = token.get("type")
        if kind == "blank_line":
            continue
        if kind == "block_html" and _COMMENT_ONLY_RE.fullmatch(token.get("raw", "")):
            continue
        return True
    return False


# ----------------------------------------------------------------------
# Line classification
# ----------------------------------------------------------------------


def _classify_lines(lines: list[str]) -> list[_Line]:
    """Tag each line, treating fenced code and HTML comments as plain text."""
    result: list[_Line] = []
    fence: str | None = None
    in_comment = False

    for text in lines:
        if fence is not None:
            stripped = text.strip()
            if stripped.startswith(fence) and not stripped.strip(fence[0]):
                fence = None
            result.append(_Line(text, _TEXT))
            continue

        if in_comment:
            if "-->" in text:
                in_comment = False
            result.append(_Line(text, _TEXT))
            continue

        if not text.strip():
            result.append(_Line(text, _BLANK))
            continue

        marker = Marker.parse_line(text)
        if marker is not None:
            result.append(_Line(text, _MARKER, marker=marker))
            continue

        fence_match = _FENCE_OPEN_RE.match(text)
        if fence_match:
            fence = fence_match.group(1)
            result.append(_Line(text, _TEXT))
            continue

        heading = _HEADING_RE.fullmatch(text)
        if heading:
            result.append(
                _Line(
                    text,
                    _HEADING,
                    level=len(heading.group(1)),
                    title=(heading.group(2) or "").strip(),
                )
            )
            continue

        opening = text.rfind("<!--")
        if opening >= 0 and "-->" not in text[opening + 4 :]:
            in_comment = True
        result.append(_Line(text, _TEXT))

    return result


# ----------------------------------------------------------------------
# Parsing
# ----------------------------------------------------------------------


def _strip_blank_edges(lines: list[_Line]) -> list[str]:
    texts = [line.text for line in lines]
    start, end = 0, len(texts)
    while start < end and not texts[start].strip():
        start += 1
    while end > start and not texts[end - 1].strip():
        end -= 1
    return texts[start:end]


def parse_body(body: str, level: int = DEFAULT_LEVEL) -> tuple[str, list[Unit]]:
    """Split a document body (front matter removed) into units.

    Returns:
        ``(preamble, units)``.
    """
    preamble = ""
    units: list[Unit] = []
    current = _PendingUnit(is_preamble=True)

    def flush() -> None:
        nonlocal preamble
        content = "\n".join(_strip_blank_edges(current.lines))
        if current.is_preamble:
            if has_real_content(content):
                units.append(Unit(content=content))
            else:
                preamble = content
            return
        units.append(
            Unit(
                content=content,
                title=current.title,
                heading_level=current.level,
                marker=current.marker,
            )
        )

    for line in _classify_lines(body.split("\n")):
        if line.kind == _MARKER:
            flush()
            current = _PendingUnit(marker=line.marker)
            continue

        if line.kind != _HEADING:
            current.lines.append(line)
            continue

        if current.is_preamble:
            if line.level <= level or not has_real_content(current.body_text()):
                flush()
                current = _PendingUnit()
                current.add_heading(line)
            else:
                current.lines.append(line)
            continue

        if not current.has_lines():
            # First heading after a marker names the unit whatever its level
            current.add_heading(line)
            continue

        if line.level > level:
            current.lines.append(line)
            continue

        if (
            current.heading_levels
            and line.level not in current.heading_levels
            and not has_real_content(current.body_text(skip_headings=True))
        ):
            current.add_heading(line)
            continue

        flush()
        current = _PendingUnit()
        current.add_heading(line)

    flush()
    return preamble, units


def parse_document(text: str, level: int = DEFAULT_LEVEL) -> Document:
    """Parse *text* into front matter, preamble and units.

    ``mdait.sync.level`` in the front matter overrides *level*.

    Raises:
        FrontMatterError: If the front matter block is invalid.
    """
    text = text.replace("\r\n", "\n")
    front_matter, body = FrontMatter.parse(text)
    split_level = get_sync_level(front_matter) or level
    preamble, units = parse_body(body, split_level)
    logger.debug(
        "Parsed document: %d unit(s) at split level %d", len(units), split_level
    )
    return Document(front_matter=front_matter, preamble=preamble, units=units)


def serialize_document(document: Document) -> str:
    """Render *document* back to Markdown.

    Units are separated by one blank line and the text ends with a single
    newline.  Unmodified front matter is emitted verbatim.
    """
    parts: list[str] = []
    if document.preamble.strip():
        parts.append(document.preamble.strip("\n"))
    for unit in document.units:
        rendered = unit.render()
        if rendered:
            parts.append(rendered)

    front = document.front_matter.stringify() if document.front_matter else ""
    if not parts:
        return front
    return front + "\n\n".join(parts) + "\n"
