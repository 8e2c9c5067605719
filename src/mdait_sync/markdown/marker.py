"""The ``<!-- mdait ... -->`` marker attached to units.

Grammar::

    <!-- mdait <hash>? (from:<hash>)? (need:<token>)? -->

``hash`` is the fingerprint of the unit's own content, ``from`` the
fingerprint of the source content a target unit was last synced against,
and ``need`` the pending action.  Markers are immutable; every change
returns a new instance.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace

NEED_TRANSLATE = "translate"
NEED_REVIEW = "review"
NEED_SOLVE_CONFLICT = "solve-conflict"
NEED_VERIFY_DELETION = "verify-deletion"
REVISE_PREFIX = "revise@"

_MARKER_BODY = (
    r"mdait"
    r"(?:\s+(?P<hash>[a-zA-Z0-9]+))?"
    r"(?:\s+from:(?P<from>[a-zA-Z0-9]+))?"
    r"(?:\s+need:(?P<need>[\w@-]+))?"
)
_MARKER_RE = re.compile(r"<!--\s*" + _MARKER_BODY + r"\s*-->")
_MARKER_LINE_RE = re.compile(r" {0,3}<!--\s*" + _MARKER_BODY + r"\s*-->\s*")
_BODY_RE = re.compile(r"\s*" + _MARKER_BODY + r"\s*")
_WS = re.compile(r"\s+")


def revise_need(old_hash: str) -> str:
    """Return the ``revise@<old_hash>`` need token."""
    return f"{REVISE_PREFIX}{old_hash}"


@dataclass(frozen=True)
class Marker:
    """Sync metadata for one unit.

    Attributes:
        hash: Fingerprint of the unit's content; ``""`` when not computed yet.
        from_: Fingerprint of the source content this unit was synced from.
        need: Pending action (``translate``, ``revise@<hash>``, ...).
    """

    hash: str = ""
    from_: str | None = None
    need: str | None = None

    # ------------------------------------------------------------------
    # Parsing / rendering
    # ------------------------------------------------------------------

    @classmethod
    def parse(cls, text: str) -> Marker | None:
        """Parse the first marker comment found in *text*.

        Returns ``None`` for text without a well-formed marker.
        """
        match = _MARKER_RE.search(_WS.sub(" ", text))
        if match is None:
            return None
        return cls._from_match(match)

    @classmethod
    def parse_line(cls, line: str) -> Marker | None:
        """Parse *line* only if the whole line is a marker comment."""
        match = _MARKER_LINE_RE.fullmatch(line)
        if match is None:
            return None
        return cls._from_match(match)

    @classmethod
    def parse_body(cls, text: str) -> Marker | None:
        """Parse a marker written without the comment delimiters.

        This is the form stored in front matter, e.g.
        ``"mdait 1a2b3c4d from:5e6f7a8b need:translate"``.
        """
        match = _BODY_RE.fullmatch(text)
        if match is None:
            return None
        return cls._from_match(match)

    @classmethod
    def _from_match(cls, match: re.Match) -> Marker:
        return cls(
            hash=(match.group("hash") or "").lower(),
            from_=match.group("from").lower() if match.group("from") else None,
            need=match.group("need") or None,
        )

    def body(self) -> str:
        """Render the marker without the comment delimiters."""
        parts = ["mdait"]
        if self.hash:
            parts.append(self.hash)
        if self.from_:
            parts.append(f"from:{self.from_}")
        if self.need:
            parts.append(f"need:{self.need}")
        return " ".join(parts)

    def __str__(self) -> str:
        return f"<!-- {self.body()} -->"

    # ------------------------------------------------------------------
    # Need queries
    # ------------------------------------------------------------------

    def needs_translation(self) -> bool:
        """True when the unit must be (re)translated."""
        return self.need == NEED_TRANSLATE or self.needs_revision()

    def needs_revision(self) -> bool:
        return bool(self.need and self.need.startswith(REVISE_PREFIX))

    def old_hash_from_need(self) -> str | None:
        """Return ``<hash>`` of a ``revise@<hash>`` need, else ``None``."""
        if not self.needs_revision():
            return None
        return self.need[len(REVISE_PREFIX):] or None  # type: ignore[index]

    def has_conflict(self) -> bool:
        return self.need == NEED_SOLVE_CONFLICT

    # ------------------------------------------------------------------
    # Copy-on-write updates
    # ------------------------------------------------------------------

    def with_hash(self, value: str) -> Marker:
        return replace(self, hash=value)

    def with_from(self, value: str | None) -> Marker:
        return replace(self, from_=value)

    def with_need(self, value: str | None) -> Marker:
        return replace(self, need=value)

    def without_need(self) -> Marker:
        return replace(self, need=None)
