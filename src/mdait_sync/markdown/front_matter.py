"""YAML front matter with dot-path access.

The raw block is kept and re-emitted byte-for-byte until something is
changed; only then is the data dumped again with PyYAML.  Reserved keys:

- ``mdait.front``: marker tracking the translatable front matter values,
  stored without the comment delimiters.
- ``mdait.sync.level``: per-document override of the unit split level.
"""

from __future__ import annotations

import copy
from typing import Any, Iterable

import yaml

from mdait_sync.errors import FrontMatterError

from .fingerprint import Fingerprinter
from .marker import Marker

FRONT_MATTER_MARKER_KEY = "mdait.front"
SYNC_LEVEL_KEY = "mdait.sync.level"

_DELIMITER = "---"
_CLOSERS = ("---", "...")
_MISSING = object()


class FrontMatter:
    """Parsed front matter block.

    Args:
        data: The YAML mapping.
        raw: Original block text including both ``---`` lines and the
            trailing newline. Empty for front matter created in memory.
    """

    def __init__(self, data: dict[str, Any] | None = None, raw: str = "") -> None:
        self._data: dict[str, Any] = data if data is not None else {}
        self._raw = raw
        self._modified = not raw

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def parse(cls, text: str) -> tuple[FrontMatter | None, str]:
        """Split *text* into front matter and body.

        Returns:
            ``(front_matter, body)``; ``front_matter`` is ``None`` when the
            text does not open with a ``---`` block.

        Raises:
            FrontMatterError: If the block is not valid YAML or not a mapping.
        """
        lines = text.split("\n")
        if not lines or lines[0].rstrip() != _DELIMITER:
            return None, text

        for index in range(1, len(lines)):
            if lines[index].rstrip() in _CLOSERS:
                break
        else:
            # Unterminated block: treat everything as body
            return None, text

        raw = "\n".join(lines[: index + 1]) + "\n"
        body = "\n".join(lines[index + 1 :])
        inner = "\n".join(lines[1:index])
        try:
            data = yaml.safe_load(inner) if inner.strip() else {}
        except yaml.YAMLError as exc:
            raise FrontMatterError(f"Invalid YAML in front matter: {exc}") from exc
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise FrontMatterError(
                f"Front matter must be a mapping, got {type(data).__name__}"
            )
        return cls(data, raw), body

    @classmethod
    def empty(cls) -> FrontMatter:
        return cls({}, "")

    @classmethod
    def from_data(cls, data: dict[str, Any]) -> FrontMatter:
        return cls(copy.deepcopy(data), "")

    def copy(self) -> FrontMatter:
        clone = FrontMatter(copy.deepcopy(self._data), self._raw)
        clone._modified = self._modified
        return clone

    # ------------------------------------------------------------------
    # Dot-path access
    # ------------------------------------------------------------------

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value at *key*.

        A literal key containing dots (``"mdait.front": ...``) wins over the
        nested path (``mdait: {front: ...}``).
        """
        if key in self._data:
            return self._data[key]
        node: Any = self._data
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def has(self, key: str) -> bool:
        return self.get(key, _MISSING) is not _MISSING

    def set(self, key: str, value: Any) -> None:
        """Set *key*, creating intermediate mappings as needed."""
        if key in self._data:
            if self._data[key] == value:
                return
            self._data[key] = value
            self._modified = True
            return
        parts = key.split(".")
        node = self._data
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = {}
                node[part] = child
            node = child
        if node.get(parts[-1], _MISSING) == value:
            return
        node[parts[-1]] = value
        self._modified = True

    def delete(self, key: str) -> bool:
        """Remove *key* and any parent mappings left empty.

        Returns:
            True if something was removed.
        """
        if key in self._data:
            del self._data[key]
            self._modified = True
            return True
        parts = key.split(".")
        trail: list[dict[str, Any]] = [self._data]
        for part in parts[:-1]:
            child = trail[-1].get(part)
            if not isinstance(child, dict):
                return False
            trail.append(child)
        if parts[-1] not in trail[-1]:
            return False
        del trail[-1][parts[-1]]
        for depth in range(len(parts) - 1, 0, -1):
            if trail[depth]:
                break
            del trail[depth - 1][parts[depth - 1]]
        self._modified = True
        return True

    def keys(self) -> list[str]:
        return list(self._data.keys())

    @property
    def data(self) -> dict[str, Any]:
        """Deep copy of the mapping."""
        return copy.deepcopy(self._data)

    @property
    def raw(self) -> str:
        return self._raw

    @property
    def modified(self) -> bool:
        return self._modified

    def is_empty(self) -> bool:
        return not self._data

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def stringify(self) -> str:
        """Render the block, ending with a newline; ``""`` when empty."""
        if not self._modified:
            return self._raw
        if not self._data:
            return ""
        dumped = yaml.safe_dump(
            self._data,
            allow_unicode=True,
            sort_keys=False,
            default_flow_style=False,
        )
        return f"{_DELIMITER}\n{dumped}{_DELIMITER}\n"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FrontMatter):
            return NotImplemented
        return self._data == other._data

    def __repr__(self) -> str:
        return f"FrontMatter({self._data!r})"


# ----------------------------------------------------------------------
# Translatable values and the front matter marker
# ----------------------------------------------------------------------


def translation_keys(keys: Iterable[str]) -> list[str]:
    """Clean the configured key list: strip, drop blanks and duplicates."""
    result: list[str] = []
    for key in keys:
        key = key.strip()
        if key and key not in result:
            result.append(key)
    return result


def translation_values(front_matter: FrontMatter | None, keys: Iterable[str]) -> list[str]:
    """Values of the translatable *keys*; non-string values count as ``""``."""
    values: list[str] = []
    for key in translation_keys(keys):
        value = front_matter.get(key) if front_matter is not None else None
        values.append(value if isinstance(value, str) else "")
    return values


def front_matter_fingerprint(
    front_matter: FrontMatter | None,
    keys: Iterable[str],
    fingerprinter: Fingerprinter,
    allow_empty: bool = False,
) -> str | None:
    """Fingerprint of the translatable values joined by newlines.

    Returns ``None`` when every value is empty, unless *allow_empty*.
    """
    values = translation_values(front_matter, keys)
    if not values:
        return None
    if not allow_empty and not any(v.strip() for v in values):
        return None
    return fingerprinter.calculate("\n".join(values))


def get_front_matter_marker(front_matter: FrontMatter | None) -> Marker | None:
    if front_matter is None:
        return None
    value = front_matter.get(FRONT_MATTER_MARKER_KEY)
    if not isinstance(value, str):
        return None
    value = value.strip()
    if not value.startswith("mdait"):
        value = f"mdait {value}"
    return Marker.parse_body(value)


def set_front_matter_marker(front_matter: FrontMatter, marker: Marker | None) -> None:
    """Store *marker* in ``mdait.front``; a marker without hash removes it.

    The value is the marker body without the ``mdait`` keyword, e.g.
    ``"1a2b3c4d from:5e6f7a8b need:translate"``.
    """
    if marker is None or not marker.hash:
        front_matter.delete(FRONT_MATTER_MARKER_KEY)
        return
    front_matter.set(FRONT_MATTER_MARKER_KEY, marker.body().removeprefix("mdait").strip())


def get_sync_level(front_matter: FrontMatter | None) -> int | None:
    """Per-document split level from ``mdait.sync.level``.

    Raises:
        FrontMatterError: If the value is present but not an integer 1-6.
    """
    if front_matter is None:
        return None
    value = front_matter.get(SYNC_LEVEL_KEY)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= 6:
        raise FrontMatterError(
            f"{SYNC_LEVEL_KEY} must be an integer between 1 and 6, got {value!r}"
        )
    return value
