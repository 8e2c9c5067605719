"""Unit-level source/target document sync engine.

Public API for keeping translated Markdown documents in step with their
source documents, one heading-delimited unit at a time.

Architecture
------------
Every unit carries a marker comment (``<!-- mdait <hash> from:<hash>
need:<flag> -->``).  The target marker records the fingerprint of the
target content (``hash``) and of the source content it was translated
from (``from``).  Comparing both against the current fingerprints tells
which side changed since the last sync; only units whose source moved get
flagged for (re)translation, and edits on both sides become a sticky
``solve-conflict``.

Modules:

- ``engine``       -- ``SyncEngine``: orchestrates a full sync run.
- ``mapper``       -- ``PathMapper``: source file discovery and target paths.
- ``matcher``      -- Pair source and target units by lineage anchors.
- ``marker_sync``  -- Marker state machine for units and front matter.
- ``diff``         -- Classify synced targets; revision diffs.
- ``models``       -- ``ChangeKind``, ``UnitPair``, ``FileSyncResult``,
  ``SyncReport`` and friends: core data contracts.
- ``reporter``     -- Human-readable and JSON report formatting.

Usage example
-------------
::

    from pathlib import Path
    from mdait_sync.config import load_config
    from mdait_sync.registry import UnitRegistry
    from mdait_sync.sync import SyncEngine, format_sync_report

    workspace = Path(".")
    config = load_config(workspace)
    registry = UnitRegistry.for_workspace(
        workspace, config.sync.registry_path, config.sync.gc_threshold_bytes
    )

    engine = SyncEngine(config, registry, workspace)
    report = await engine.run()
    print(format_sync_report(report))
"""

from .diff import build_revision_diff, detect_diff
from .engine import DocumentIO, FileSystemIO, SyncEngine
from .mapper import PathMapper
from .marker_sync import (
    sync_front_matter,
    sync_marker_pair,
    sync_source_marker,
    sync_target_marker,
    sync_units,
)
from .matcher import match_units
from .models import (
    ChangeKind,
    DiffType,
    FileKind,
    FilePair,
    FileSyncResult,
    SyncReport,
    UnitPair,
)
from .reporter import (
    format_file_result,
    format_revision_diff,
    format_sync_report,
    report_to_json,
)

__all__ = [
    "ChangeKind",
    "DiffType",
    "DocumentIO",
    "FileKind",
    "FilePair",
    "FileSyncResult",
    "FileSystemIO",
    "PathMapper",
    "SyncEngine",
    "SyncReport",
    "UnitPair",
    "build_revision_diff",
    "detect_diff",
    "format_file_result",
    "format_revision_diff",
    "format_sync_report",
    "match_units",
    "report_to_json",
    "sync_front_matter",
    "sync_marker_pair",
    "sync_source_marker",
    "sync_target_marker",
    "sync_units",
]
