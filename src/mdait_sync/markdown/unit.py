"""Units: the heading-delimited blocks a document is split into."""

from __future__ import annotations

from dataclasses import dataclass, field, replace

from .fingerprint import Fingerprinter, fingerprint
from .front_matter import FrontMatter
from .marker import NEED_TRANSLATE, Marker


@dataclass(frozen=True)
class Unit:
    """One translatable block of a document.

    Attributes:
        content: Verbatim block text (heading line plus body) without the
            marker line.
        title: Heading text, ``""`` for a unit without heading.
        heading_level: Heading level, ``0`` for a unit without heading.
        marker: Marker preceding the unit, if any.
    """

    content: str
    title: str = ""
    heading_level: int = 0
    marker: Marker | None = None

    def fingerprint(self, fingerprinter: Fingerprinter | None = None) -> str:
        """Fingerprint of the current content."""
        if fingerprinter is None:
            return fingerprint(self.content)
        return fingerprinter.calculate(self.content)

    def recorded_hash(self) -> str:
        """Hash stored in the marker, ``""`` if there is none."""
        return self.marker.hash if self.marker else ""

    def source_hash(self) -> str | None:
        """The ``from`` lineage recorded in the marker."""
        return self.marker.from_ if self.marker else None

    def needs_translation(self) -> bool:
        return self.marker is not None and self.marker.needs_translation()

    def with_marker(self, marker: Marker | None) -> Unit:
        return replace(self, marker=marker)

    def mark_translated(
        self, content: str, fingerprinter: Fingerprinter | None = None
    ) -> Unit:
        """Return the unit with translated *content* and its need cleared.

        Called by the translation step once a provider returned text.
        """
        updated = replace(self, content=content)
        marker = self.marker or Marker()
        return updated.with_marker(
            marker.with_hash(updated.fingerprint(fingerprinter)).without_need()
        )

    def render(self) -> str:
        """Render as ``marker`` line + content, trailing newlines removed."""
        content = self.content.rstrip("\n")
        if self.marker is None:
            return content
        if not content:
            return str(self.marker)
        return f"{self.marker}\n{content}"

    @classmethod
    def translation_stub(cls, source: Unit, source_hash: str) -> Unit:
        """Create the target counterpart of a new source unit.

        The content is a copy of the source awaiting translation.
        """
        return cls(
            content=source.content,
            title=source.title,
            heading_level=source.heading_level,
            marker=Marker(hash=source_hash, from_=source_hash, need=NEED_TRANSLATE),
        )


@dataclass(frozen=True)
class Document:
    """A parsed Markdown document.

    Attributes:
        front_matter: YAML front matter, ``None`` when the file has none.
        preamble: Leading blank lines and HTML comments that precede the
            first unit, kept verbatim.
        units: Units in document order.
    """

    front_matter: FrontMatter | None = None
    preamble: str = ""
    units: list[Unit] = field(default_factory=list)

    def with_units(self, units: list[Unit]) -> Document:
        return replace(self, units=list(units))

    def with_front_matter(self, front_matter: FrontMatter | None) -> Document:
        return replace(self, front_matter=front_matter)
