"""Core sync engine that orchestrates unit sync across all translation pairs.

The ``SyncEngine`` ties together mapper, parser, matcher, marker state
machine and unit registry into a complete sync run.  It:

1. Discovers the file pairs of every translation pair via the path mapper.
2. Runs a bounded worker pool per translation pair; each worker syncs one
   file pair at a time in a worker thread.
3. Per file: parses both documents, mirrors the split level, syncs the
   front matter marker and the unit markers, rebuilds the target, and
   writes whatever changed.
4. Saves the content of every unit to the registry and flushes it once
   per translation pair.
5. Garbage-collects the registry after a complete, clean run.
6. Builds and returns a ``SyncReport``.

Error handling is per file: a single failure does not abort the run.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Protocol

from mdait_sync.config_schema import UnifiedConfig, validate_for_sync
from mdait_sync.core.async_utils import (
    CancellationToken,
    run_sync,
    run_worker_pool,
)
from mdait_sync.file_handler import read_file_with_encoding, write_file
from mdait_sync.markdown.fingerprint import Fingerprinter
from mdait_sync.markdown.front_matter import FrontMatter, get_sync_level
from mdait_sync.markdown.parser import parse_body, parse_document, serialize_document
from mdait_sync.markdown.unit import Document, Unit
from mdait_sync.registry.manager import UnitRegistry

from .diff import detect_diff
from .mapper import PathMapper
from .marker_sync import sync_front_matter, sync_level_setting, sync_units
from .models import (
    DiffSummary,
    DocumentSyncOutcome,
    FileKind,
    FilePair,
    FileSyncResult,
    SyncReport,
)

logger = logging.getLogger(__name__)


# ----------------------------------------------------------------------
# Document I/O
# ----------------------------------------------------------------------


class DocumentIO(Protocol):
    """Host document access used by the engine."""

    def read_text(self, path: Path) -> str | None:
        """Return the document text, or ``None`` if it does not exist."""
        ...

    def write_text(self, path: Path, text: str) -> None: ...


class FileSystemIO:
    """``DocumentIO`` on the local file system."""

    def read_text(self, path: Path) -> str | None:
        if not path.is_file():
            return None
        content, _encoding = read_file_with_encoding(path)
        return content

    def write_text(self, path: Path, text: str) -> None:
        write_file(path, text)


@dataclass
class _FileOutcome:
    result: FileSyncResult
    active_keys: set[str] = field(default_factory=set)


# ----------------------------------------------------------------------
# Engine
# ----------------------------------------------------------------------


class SyncEngine:
    """Sync every configured source document into its target documents.

    Args:
        config: Resolved configuration.
        registry: Unit registry receiving the content of synced units.
        workspace: Root that relative pair directories resolve against.
        io: Document reader/writer. Defaults to ``FileSystemIO``.
        token: Cancellation token checked between files.
    """

    def __init__(
        self,
        config: UnifiedConfig,
        registry: UnitRegistry,
        workspace: Path,
        io: DocumentIO | None = None,
        token: CancellationToken | None = None,
    ) -> None:
        self.config = config
        self.registry = registry
        self.workspace = workspace
        self.io: DocumentIO = io or FileSystemIO()
        self.token = token or CancellationToken()

        self.fingerprinter = Fingerprinter(
            config.sync.hash_algorithm, config.sync.hash_length
        )
        self.mapper = PathMapper(
            config.trans_pairs, workspace, config.sync.ignored_patterns
        )

    # ------------------------------------------------------------------
    # Main entry point
    # ------------------------------------------------------------------

    async def run(self, paths: Iterable[Path] | None = None) -> SyncReport:
        """Execute a sync run.

        Args:
            paths: Restrict the run to the file pairs whose source or
                target is listed. ``None`` syncs everything and allows
                registry garbage collection afterwards.

        Returns:
            A ``SyncReport`` summarising what was done.

        Raises:
            ConfigError: If the configuration has nothing to sync.
        """
        validate_for_sync(self.config)
        started_at = datetime.now(timezone.utc).isoformat()
        results: list[FileSyncResult] = []
        active_keys: set[str] = set()
        registry_ok = True

        selected = self._selected_sources(paths) if paths is not None else None

        for trans_pair in self.config.trans_pairs:
            file_pairs = self.mapper.build_pairs(trans_pair)
            if selected is not None:
                file_pairs = [fp for fp in file_pairs if fp.source_path in selected]
            if not file_pairs:
                continue

            logger.info(
                "Syncing %d file(s): %s -> %s",
                len(file_pairs),
                trans_pair.source_dir,
                trans_pair.target_dir,
            )
            outcomes = await run_worker_pool(
                file_pairs,
                self._worker,
                max_workers=self.config.sync.max_workers,
                token=self.token,
            )

            for file_pair, outcome in zip(file_pairs, outcomes):
                if outcome is None:
                    results.append(self._skipped_result(file_pair))
                    continue
                results.append(outcome.result)
                active_keys |= outcome.active_keys

            try:
                await run_sync(self.registry.flush)
            except OSError as exc:
                registry_ok = False
                logger.error("Failed to flush unit registry: %s", exc)

        cancelled = self.token.cancelled
        collected = 0
        complete = (
            paths is None
            and not cancelled
            and registry_ok
            and all(r.success for r in results)
        )
        if complete:
            try:
                collected = await run_sync(self.registry.garbage_collect, active_keys)
            except OSError as exc:
                logger.error("Unit registry garbage collection failed: %s", exc)

        report = SyncReport(
            results=results,
            started_at=started_at,
            completed_at=datetime.now(timezone.utc).isoformat(),
            cancelled=cancelled,
            registry_collected=collected,
        )
        logger.info(
            "Sync finished: %d synced, %d written, %d errors%s",
            len(report.synced),
            len(report.written),
            len(report.errors),
            " (cancelled)" if cancelled else "",
        )
        return report

    # ------------------------------------------------------------------
    # Per-file sync
    # ------------------------------------------------------------------

    async def _worker(self, file_pair: FilePair) -> _FileOutcome:
        return await run_sync(self._sync_file_isolated, file_pair)

    def _sync_file_isolated(self, file_pair: FilePair) -> _FileOutcome:
        try:
            return self.sync_file(file_pair)
        except Exception as exc:
            logger.error(
                "Error syncing %s -> %s: %s",
                file_pair.source_path,
                file_pair.target_path,
                exc,
            )
            return _FileOutcome(
                FileSyncResult(
                    source_path=str(file_pair.source_path),
                    target_path=str(file_pair.target_path),
                    success=False,
                    error=str(exc),
                )
            )

    def sync_file(self, file_pair: FilePair) -> _FileOutcome:
        """Sync one file pair, write the results and fill the registry.

        Raises:
            FileNotFoundError: If the source document does not exist.
            FrontMatterError: If either front matter block is invalid.
        """
        source_text = self.io.read_text(file_pair.source_path)
        if source_text is None:
            raise FileNotFoundError(f"Source document not found: {file_pair.source_path}")
        target_text = self.io.read_text(file_pair.target_path)

        outcome = self.sync_documents(source_text, target_text)

        written = False
        if outcome.target_changed:
            self.io.write_text(file_pair.target_path, outcome.target_text)
            written = True
        if outcome.source_changed:
            self.io.write_text(file_pair.source_path, outcome.source_text)
            written = True

        active_keys = self._save_to_registry(outcome.source_units + outcome.target_units)

        logger.debug(
            "Synced %s: +%d ~%d -%d%s",
            file_pair.relative_path,
            outcome.diff.added,
            outcome.diff.modified,
            outcome.diff.deleted,
            " (written)" if written else "",
        )
        return _FileOutcome(
            FileSyncResult(
                source_path=str(file_pair.source_path),
                target_path=str(file_pair.target_path),
                success=True,
                written=written,
                diff=outcome.diff.summary(),
                changes=dict(Counter(kind.value for kind in outcome.changes)),
                needs_translation=outcome.needs_translation,
                conflicts=outcome.conflicts,
            ),
            active_keys,
        )

    def sync_documents(
        self, source_text: str, target_text: str | None
    ) -> DocumentSyncOutcome:
        """Sync *source_text* into *target_text* without any I/O.

        A missing target (``None``) is created from translation stubs of
        every source unit.
        """
        fp = self.fingerprinter
        source_doc = parse_document(source_text, self.config.sync.level)
        split_level = get_sync_level(source_doc.front_matter) or self.config.sync.level
        target_doc = _parse_target(target_text or "", split_level)

        target_fm, _ = sync_level_setting(source_doc.front_matter, target_doc.front_matter)
        fm_result = sync_front_matter(
            source_doc.front_matter, target_fm, self.config.front_matter.keys, fp
        )
        source_fm = source_doc.front_matter
        changes = []
        if fm_result.processed:
            source_fm = fm_result.source
            target_fm = fm_result.target
            changes.append(fm_result.kind)

        units = sync_units(
            source_doc.units,
            target_doc.units,
            fp,
            auto_delete=self.config.sync.auto_delete,
        )
        changes.extend(units.changes)
        diff = detect_diff(target_doc.units, units.target_units, fp)

        preamble = target_doc.preamble if target_text is not None else source_doc.preamble
        new_target_text = serialize_document(
            Document(front_matter=target_fm, preamble=preamble, units=units.target_units)
        )

        source_changed = units.source_changed or fm_result.source_changed
        new_source_text = source_text
        if source_changed:
            new_source_text = serialize_document(
                source_doc.with_units(units.source_units).with_front_matter(source_fm)
            )

        return DocumentSyncOutcome(
            source_text=new_source_text,
            target_text=new_target_text,
            source_changed=source_changed,
            target_changed=target_text is None or new_target_text != target_text,
            source_units=units.source_units,
            target_units=units.target_units,
            diff=diff,
            changes=changes,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _save_to_registry(self, units: list[Unit]) -> set[str]:
        """Store unit contents; return every fingerprint the units reference."""
        active: set[str] = set()
        for unit in units:
            key = unit.fingerprint(self.fingerprinter)
            self.registry.save(key, unit.content)
            active.add(key)
            marker = unit.marker
            if marker is None:
                continue
            for ref in (marker.hash, marker.from_, marker.old_hash_from_need()):
                if ref:
                    active.add(ref.lower())
        return active

    def _selected_sources(self, paths: Iterable[Path]) -> set[Path]:
        selected: set[Path] = set()
        for path in paths:
            info = self.mapper.classify(path)
            if info.kind == FileKind.UNKNOWN or info.trans_pair is None:
                logger.warning("Not part of any translation pair: %s", path)
                continue
            source_root = self.mapper.source_root(info.trans_pair)
            selected.add(source_root / Path(info.relative_path or ""))
        return selected

    @staticmethod
    def _skipped_result(file_pair: FilePair) -> FileSyncResult:
        return FileSyncResult(
            source_path=str(file_pair.source_path),
            target_path=str(file_pair.target_path),
            success=True,
            skipped=True,
            diff=DiffSummary(),
        )


def _parse_target(text: str, level: int) -> Document:
    """Parse a target document at the source's split level.

    The target's own ``mdait.sync.level`` is ignored: it is a mirror of the
    source setting and may be stale until this sync rewrites it.
    """
    front_matter, body = FrontMatter.parse(text.replace("\r\n", "\n"))
    preamble, units = parse_body(body, level)
    return Document(front_matter=front_matter, preamble=preamble, units=units)
