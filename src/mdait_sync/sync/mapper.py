"""Config-driven path mapper for source/target document pairs.

Translates between source documents and their translated counterparts
using the ``trans_pairs`` section of the configuration.

Mapping resolution:

1. **Discovery** -- every ``*.md`` file below a pair's source directory.
2. **Ignore check** -- paths matching any ``ignored_patterns`` glob, or
   lying inside a target directory nested in the source directory, are
   skipped.
3. **Mirroring** -- the target path keeps the relative path of the source
   file below the target directory.
"""

from __future__ import annotations

import fnmatch
from pathlib import Path
from typing import Iterable, Sequence

from mdait_sync.config_schema import TransPairConfig

from .models import FileClassification, FileKind, FilePair


class PathMapper:
    """Map source files to target files and classify arbitrary paths.

    Args:
        trans_pairs: Configured translation pairs.
        workspace: Root that relative pair directories resolve against.
        ignored_patterns: Globs matched against workspace-relative POSIX
            paths.
    """

    def __init__(
        self,
        trans_pairs: Sequence[TransPairConfig],
        workspace: Path,
        ignored_patterns: Iterable[str] = (),
    ) -> None:
        self._pairs = list(trans_pairs)
        self._workspace = workspace.resolve()
        self._ignored = list(ignored_patterns)

    @property
    def trans_pairs(self) -> list[TransPairConfig]:
        return list(self._pairs)

    # ------------------------------------------------------------------
    # Directory resolution
    # ------------------------------------------------------------------

    def source_root(self, pair: TransPairConfig) -> Path:
        return self._resolve_dir(pair.source_dir)

    def target_root(self, pair: TransPairConfig) -> Path:
        return self._resolve_dir(pair.target_dir)

    def _resolve_dir(self, directory: str) -> Path:
        path = Path(directory).expanduser()
        if not path.is_absolute():
            path = self._workspace / path
        return path.resolve()

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    def is_ignored(self, path: Path) -> bool:
        """Whether *path* matches one of the ignore globs.

        A leading ``**/`` also matches zero directories, so
        ``**/node_modules/**`` covers ``node_modules/`` at the workspace root.
        """
        rel = self._workspace_relative(path)
        for pattern in self._ignored:
            if fnmatch.fnmatch(rel, pattern):
                return True
            if pattern.startswith("**/") and fnmatch.fnmatch(rel, pattern[3:]):
                return True
        return False

    def source_files(self, pair: TransPairConfig) -> list[str]:
        """Scan the source directory of *pair* for Markdown files.

        Args:
            pair: The translation pair to scan.

        Returns:
            Sorted list of paths relative to the source directory
            (POSIX-style forward slashes).
        """
        source_root = self.source_root(pair)
        if not source_root.is_dir():
            return []

        target_roots = [self.target_root(p) for p in self._pairs]
        result: list[str] = []
        for path in source_root.rglob("*.md"):
            if not path.is_file():
                continue
            if any(_is_within(path, root) for root in target_roots if root != source_root):
                continue
            if self.is_ignored(path):
                continue
            result.append(path.relative_to(source_root).as_posix())
        return sorted(result)

    def target_path(self, pair: TransPairConfig, relative_path: str) -> Path:
        """Target file for the source file at *relative_path*."""
        return self.target_root(pair) / Path(relative_path)

    def build_pairs(self, pair: TransPairConfig) -> list[FilePair]:
        """All ``FilePair`` entries of one translation pair."""
        source_root = self.source_root(pair)
        return [
            FilePair(
                trans_pair=pair,
                relative_path=rel,
                source_path=source_root / Path(rel),
                target_path=self.target_path(pair, rel),
            )
            for rel in self.source_files(pair)
        ]

    # ------------------------------------------------------------------
    # Classification
    # ------------------------------------------------------------------

    def classify(self, path: Path) -> FileClassification:
        """Tell whether *path* is a source file, a target file or neither.

        When directories are nested the most specific root wins, so a
        target directory inside its source directory classifies as target.
        """
        resolved = self._resolve_path(path)
        best: tuple[int, FileClassification] | None = None
        for pair in self._pairs:
            for kind, root in (
                (FileKind.SOURCE, self.source_root(pair)),
                (FileKind.TARGET, self.target_root(pair)),
            ):
                if not _is_within(resolved, root):
                    continue
                depth = len(root.parts)
                if best is None or depth > best[0]:
                    rel = resolved.relative_to(root).as_posix()
                    best = (depth, FileClassification(kind, pair, rel))
        if best is None:
            return FileClassification(FileKind.UNKNOWN)
        return best[1]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _resolve_path(self, path: Path) -> Path:
        path = path.expanduser()
        if not path.is_absolute():
            path = self._workspace / path
        return path.resolve()

    def _workspace_relative(self, path: Path) -> str:
        resolved = self._resolve_path(path)
        if _is_within(resolved, self._workspace):
            return resolved.relative_to(self._workspace).as_posix()
        return resolved.as_posix()


def _is_within(path: Path, root: Path) -> bool:
    return path == root or root in path.parents
