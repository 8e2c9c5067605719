"""Data contracts for the unit sync engine.

- ``ChangeKind``: what the marker state machine observed for a pair.
- ``DiffType``: classification used by the diff reporter.
- ``UnitPair``: one source/target correspondence (either side may be missing).
- ``MarkerSyncResult`` / ``PairSyncResult`` / ``FrontMatterSyncResult``:
  outputs of the marker state machine.
- ``DiffEntry`` / ``DiffResult``: output of the diff reporter.
- ``FileKind`` / ``FilePair`` / ``FileClassification``: path mapping.
- ``DiffSummary``, ``FileSyncResult``, ``SyncReport``: per-file and per-run
  reporting.

Results that travel into reports are frozen Pydantic models; the values
that carry ``Unit``/``Marker`` objects are frozen dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from pydantic import BaseModel

from mdait_sync.config_schema import TransPairConfig
from mdait_sync.markdown.front_matter import FrontMatter
from mdait_sync.markdown.marker import Marker
from mdait_sync.markdown.unit import Unit


class ChangeKind(str, Enum):
    """Outcome of syncing one marker."""

    NONE = "none"
    NEW = "new"
    SOURCE_CHANGED = "source-changed"
    TARGET_CHANGED = "target-changed"
    CONFLICT = "conflict"


class DiffType(str, Enum):
    """Classification of a synced target unit against the pre-sync target."""

    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"
    UNCHANGED = "unchanged"


# ----------------------------------------------------------------------
# Matching and marker state
# ----------------------------------------------------------------------


@dataclass(frozen=True)
class UnitPair:
    """A source unit and the target unit that descends from it.

    ``target is None`` marks a new source unit, ``source is None`` an
    orphaned target unit.
    """

    source: Unit | None
    target: Unit | None

    @property
    def is_matched(self) -> bool:
        return self.source is not None and self.target is not None

    @property
    def is_new_source(self) -> bool:
        return self.source is not None and self.target is None

    @property
    def is_orphan_target(self) -> bool:
        return self.source is None and self.target is not None


@dataclass(frozen=True)
class MarkerSyncResult:
    """New marker for one side plus what happened.

    Attributes:
        marker: The marker to store.
        kind: Observed change.
        changed: Whether *marker* differs from the previous one.
    """

    marker: Marker
    kind: ChangeKind
    changed: bool


@dataclass(frozen=True)
class PairSyncResult:
    """Markers for both sides of a matched pair."""

    source_marker: Marker
    target_marker: Marker
    kind: ChangeKind
    source_changed: bool
    target_changed: bool


@dataclass(frozen=True)
class FrontMatterSyncResult:
    """Outcome of syncing the front matter marker.

    Attributes:
        processed: False when front matter sync was skipped (no keys
            configured or nothing translatable in the source).
        source: Updated source front matter.
        target: Updated target front matter.
        kind: Observed change on the target side.
        source_changed: Whether the source front matter was modified.
        target_changed: Whether the target front matter was modified.
    """

    processed: bool
    source: FrontMatter | None = None
    target: FrontMatter | None = None
    kind: ChangeKind = ChangeKind.NONE
    source_changed: bool = False
    target_changed: bool = False


@dataclass(frozen=True)
class UnitSyncOutcome:
    """All unit-level results for one file pair.

    Attributes:
        source_units: Source units with refreshed markers, document order.
        target_units: Synced target units, document order.
        changes: One change kind per matched or new pair.
        source_changed: Whether any source marker changed.
    """

    source_units: list[Unit]
    target_units: list[Unit]
    changes: list[ChangeKind] = field(default_factory=list)
    source_changed: bool = False


# ----------------------------------------------------------------------
# Diff classification
# ----------------------------------------------------------------------


@dataclass(frozen=True)
class DiffEntry:
    """One classified unit; ``before`` is absent for added units, ``after``
    for deleted ones."""

    kind: DiffType
    key: str
    before: Unit | None = None
    after: Unit | None = None


@dataclass(frozen=True)
class DiffResult:
    entries: list[DiffEntry] = field(default_factory=list)

    def of(self, kind: DiffType) -> list[DiffEntry]:
        return [e for e in self.entries if e.kind == kind]

    @property
    def added(self) -> int:
        return len(self.of(DiffType.ADDED))

    @property
    def modified(self) -> int:
        return len(self.of(DiffType.MODIFIED))

    @property
    def deleted(self) -> int:
        return len(self.of(DiffType.DELETED))

    @property
    def unchanged(self) -> int:
        return len(self.of(DiffType.UNCHANGED))

    def summary(self) -> DiffSummary:
        return DiffSummary(
            added=self.added,
            modified=self.modified,
            deleted=self.deleted,
            unchanged=self.unchanged,
        )


@dataclass(frozen=True)
class DocumentSyncOutcome:
    """Result of syncing one source text into one target text.

    Attributes:
        source_text: Source document with refreshed markers.
        target_text: Synced target document.
        source_changed: Whether any source marker (or front matter) changed.
        target_changed: Whether *target_text* differs from the input.
        source_units: Source units after sync.
        target_units: Target units after sync.
        diff: Synced target units classified against the original ones.
        changes: Change kinds of every unit pair, plus the front matter one.
    """

    source_text: str
    target_text: str
    source_changed: bool
    target_changed: bool
    source_units: list[Unit]
    target_units: list[Unit]
    diff: DiffResult
    changes: list[ChangeKind] = field(default_factory=list)

    @property
    def needs_translation(self) -> int:
        return sum(1 for u in self.target_units if u.needs_translation())

    @property
    def conflicts(self) -> int:
        return self.changes.count(ChangeKind.CONFLICT)


# ----------------------------------------------------------------------
# Path mapping
# ----------------------------------------------------------------------


class FileKind(str, Enum):
    """Role of a path within the configured translation pairs."""

    SOURCE = "source"
    TARGET = "target"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class FilePair:
    """A source document and the target document it is synced into.

    Attributes:
        trans_pair: The translation pair both files belong to.
        relative_path: POSIX path relative to the source directory.
        source_path: Absolute source file path.
        target_path: Absolute target file path (may not exist yet).
    """

    trans_pair: TransPairConfig
    relative_path: str
    source_path: Path
    target_path: Path


@dataclass(frozen=True)
class FileClassification:
    kind: FileKind
    trans_pair: TransPairConfig | None = None
    relative_path: str | None = None


# ----------------------------------------------------------------------
# Reporting
# ----------------------------------------------------------------------


class DiffSummary(BaseModel):
    """Counts of a ``DiffResult``."""

    added: int = 0
    modified: int = 0
    deleted: int = 0
    unchanged: int = 0

    model_config = {"frozen": True}


class FileSyncResult(BaseModel):
    """Result of syncing one source/target file pair.

    Attributes:
        source_path: Source file path.
        target_path: Target file path.
        success: Whether the file was synced without error.
        error: Error message if the sync failed.
        skipped: True when the file was not processed (cancellation).
        written: Whether the target and/or source file was rewritten.
        diff: Target unit classification counts.
        changes: Count of each ``ChangeKind`` value observed.
        needs_translation: Target units flagged translate/revise afterwards.
        conflicts: Target units in ``solve-conflict`` afterwards.
    """

    source_path: str
    target_path: str
    success: bool
    error: str | None = None
    skipped: bool = False
    written: bool = False
    diff: DiffSummary | None = None
    changes: dict[str, int] = {}
    needs_translation: int = 0
    conflicts: int = 0

    model_config = {"frozen": True}


class SyncReport(BaseModel):
    """Aggregate report for a full sync run.

    Attributes:
        results: Individual file results.
        started_at: ISO 8601 timestamp when sync started.
        completed_at: ISO 8601 timestamp when sync completed.
        cancelled: Whether the run stopped early on request.
        registry_collected: Registry entries removed by garbage collection.
    """

    results: list[FileSyncResult] = []
    started_at: str
    completed_at: str | None = None
    cancelled: bool = False
    registry_collected: int = 0

    model_config = {"frozen": True}

    @property
    def synced(self) -> list[FileSyncResult]:
        """Files processed successfully."""
        return [r for r in self.results if r.success and not r.skipped]

    @property
    def written(self) -> list[FileSyncResult]:
        return [r for r in self.results if r.written]

    @property
    def skipped(self) -> list[FileSyncResult]:
        return [r for r in self.results if r.skipped]

    @property
    def conflicted(self) -> list[FileSyncResult]:
        """Files with at least one unresolved conflict."""
        return [r for r in self.results if r.conflicts]

    @property
    def errors(self) -> list[FileSyncResult]:
        """Results where success is False."""
        return [r for r in self.results if not r.success]

    def summary(self) -> str:
        """Format a human-readable summary of the sync run.

        Returns:
            Multi-line summary string with counts per outcome.
        """
        lines = [
            "Sync report" + (" (cancelled)" if self.cancelled else ""),
            f"  Synced:     {len(self.synced)}",
            f"  Written:    {len(self.written)}",
            f"  Conflicted: {len(self.conflicted)}",
            f"  Skipped:    {len(self.skipped)}",
            f"  Errors:     {len(self.errors)}",
            f"  Total:      {len(self.results)}",
        ]
        return "\n".join(lines)
