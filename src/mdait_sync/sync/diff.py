"""Classify synced target units against the pre-sync target units.

Reporting only: nothing here feeds back into the marker state machine.
"""

from __future__ import annotations

import difflib
from collections import defaultdict, deque
from typing import TYPE_CHECKING, Sequence

from mdait_sync.markdown.fingerprint import Fingerprinter
from mdait_sync.markdown.unit import Unit

from .models import DiffEntry, DiffResult, DiffType

if TYPE_CHECKING:
    from mdait_sync.registry.manager import UnitRegistry

_default_fingerprinter = Fingerprinter()


def _identity(unit: Unit, fingerprinter: Fingerprinter) -> str:
    return unit.recorded_hash() or unit.fingerprint(fingerprinter)


def detect_diff(
    original_units: Sequence[Unit],
    synced_units: Sequence[Unit],
    fingerprinter: Fingerprinter | None = None,
) -> DiffResult:
    """Compare two target unit lists by marker hash.

    - deleted: hash only present before the sync
    - added: hash only present after the sync
    - modified: same hash, but content or marker differ
    - unchanged: everything else

    Units without marker are keyed by their computed fingerprint.  Units
    sharing a hash are matched up in document order.
    """
    fp = fingerprinter or _default_fingerprinter
    before: dict[str, deque[Unit]] = defaultdict(deque)
    for unit in original_units:
        before[_identity(unit, fp)].append(unit)

    entries: list[DiffEntry] = []
    for unit in synced_units:
        key = _identity(unit, fp)
        if not before[key]:
            entries.append(DiffEntry(DiffType.ADDED, key, after=unit))
            continue
        old = before[key].popleft()
        if old.content != unit.content or old.marker != unit.marker:
            entries.append(DiffEntry(DiffType.MODIFIED, key, before=old, after=unit))
        else:
            entries.append(DiffEntry(DiffType.UNCHANGED, key, before=old, after=unit))

    for key, remaining in before.items():
        for old in remaining:
            entries.append(DiffEntry(DiffType.DELETED, key, before=old))

    return DiffResult(entries)


def unified_diff(old: str, new: str, label: str = "content") -> str:
    """Unified diff of two texts with three lines of context."""
    diff = difflib.unified_diff(
        old.splitlines(keepends=True),
        new.splitlines(keepends=True),
        fromfile=f"a/{label}",
        tofile=f"b/{label}",
    )
    return "".join(diff)


def build_revision_diff(unit: Unit, registry: UnitRegistry) -> str | None:
    """Show how the source changed under a ``revise@<old>`` target unit.

    The old source content comes from the registry (``<old>``), the new one
    from the registry entry of the unit's ``from`` hash.

    Returns:
        Unified diff, or ``None`` when the unit needs no revision or either
        version is missing from the registry.
    """
    if unit.marker is None:
        return None
    old_hash = unit.marker.old_hash_from_need()
    new_hash = unit.marker.from_
    if not old_hash or not new_hash:
        return None
    old_content = registry.load(old_hash)
    new_content = registry.load(new_hash)
    if old_content is None or new_content is None:
        return None
    return unified_diff(old_content, new_content, unit.title or new_hash)
