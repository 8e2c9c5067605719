"""Unit registry service: content of every synced unit, keyed by fingerprint.

The registry lives in ``.mdait/unit-registry``.  It is an explicitly
constructed object handed to the sync engine, never a module-level
singleton, so tests and concurrent runs get isolated instances.

Key design choices:

* **Buffered writes** -- ``save()`` only touches memory; ``flush()`` reads
  the file, merges the buffer and rewrites it once, atomically.
* **Corruption tolerance** -- a file that fails to parse is logged and
  treated as empty instead of being merged with new data.
* **Size-triggered GC** -- ``garbage_collect()`` does nothing until the
  file grows past a threshold (5 MiB by default).
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Iterable

from mdait_sync.config_schema import DEFAULT_GC_THRESHOLD, DEFAULT_REGISTRY_PATH
from mdait_sync.errors import RegistryParseError
from mdait_sync.file_handler import write_file

from .codec import decode_content, encode_content
from .store import UnitRegistryStore, placeholder_keys

logger = logging.getLogger(__name__)

GITIGNORE_CONTENT = "logs/\n"


def ensure_mdait_dir(directory: Path) -> Path:
    """Create the ``.mdait`` directory and its ``.gitignore`` if missing."""
    directory.mkdir(parents=True, exist_ok=True)
    gitignore = directory / ".gitignore"
    if not gitignore.exists():
        try:
            gitignore.write_text(GITIGNORE_CONTENT, encoding="utf-8")
        except OSError as exc:
            logger.warning("Failed to create %s: %s", gitignore, exc)
    return directory


class UnitRegistry:
    """Load, buffer and persist unit contents.

    Args:
        path: Registry file path.
        gc_threshold: File size in bytes below which garbage collection
            is skipped.
    """

    def __init__(self, path: Path, gc_threshold: int = DEFAULT_GC_THRESHOLD) -> None:
        self.path = path
        self.gc_threshold = gc_threshold
        self._cache: dict[str, str] = {}
        self._buffer: dict[str, str] = {}
        self._store: UnitRegistryStore | None = None
        self._lock = threading.Lock()

    @classmethod
    def for_workspace(
        cls,
        workspace: Path,
        relative_path: str = DEFAULT_REGISTRY_PATH,
        gc_threshold: int = DEFAULT_GC_THRESHOLD,
    ) -> UnitRegistry:
        return cls(workspace / relative_path, gc_threshold)

    # ------------------------------------------------------------------
    # Buffered writes
    # ------------------------------------------------------------------

    def save(self, key: str, content: str) -> None:
        """Buffer *content* under *key* until the next ``flush()``."""
        key = key.lower()
        encoded = encode_content(content)
        with self._lock:
            self._cache[key] = content
            self._buffer[key] = encoded

    def save_many(self, entries: Iterable[tuple[str, str]]) -> None:
        for key, content in entries:
            self.save(key, content)

    @property
    def pending(self) -> int:
        """Number of buffered, not yet flushed entries."""
        with self._lock:
            return len(self._buffer)

    def flush(self) -> int:
        """Merge buffered entries into the file in one rewrite.

        Returns:
            Number of entries written.
        """
        with self._lock:
            return self._flush_locked()

    def _flush_locked(self) -> int:
        if not self._buffer:
            return 0
        store = self._read_store()
        store.upsert_many(self._buffer.items())
        self._write_store(store)
        written = len(self._buffer)
        self._buffer.clear()
        logger.debug("Flushed %d registry entries to %s", written, self.path)
        return written

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def load(self, key: str) -> str | None:
        """Return the content stored under *key*, or ``None``."""
        key = key.lower()
        with self._lock:
            if key in self._cache:
                return self._cache[key]
            if self._store is None:
                self._store = self._read_store()
            encoded = self._store.get(key)
        if encoded is None:
            return None
        try:
            content = decode_content(encoded)
        except (ValueError, OSError, EOFError) as exc:
            logger.warning("Registry entry %s cannot be decoded: %s", key, exc)
            return None
        with self._lock:
            self._cache[key] = content
        return content

    def keys(self) -> list[str]:
        """Keys on disk plus buffered keys."""
        with self._lock:
            if self._store is None:
                self._store = self._read_store()
            return sorted(set(self._store.keys()) | set(self._buffer))

    # ------------------------------------------------------------------
    # Garbage collection
    # ------------------------------------------------------------------

    def file_size(self) -> int:
        try:
            return self.path.stat().st_size
        except FileNotFoundError:
            return 0

    def garbage_collect(self, active: Iterable[str]) -> int:
        """Drop entries whose key is not in *active*.

        Skipped while the file is smaller than ``gc_threshold``.  Bucket
        placeholder keys are always kept.

        Returns:
            Number of removed entries.
        """
        size = self.file_size()
        if size == 0 or size < self.gc_threshold:
            return 0

        active_keys = {key.lower() for key in active}
        with self._lock:
            self._flush_locked()
            store = self._read_store()
            before = store.size()
            removed = store.retain_only(active_keys | placeholder_keys())
            if removed:
                self._write_store(store)
            for key in [k for k in self._cache if k not in active_keys]:
                del self._cache[key]

        logger.info(
            "Registry GC (%d KiB): %d -> %d entries",
            size // 1024,
            before,
            before - removed,
        )
        return removed

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _read_store(self) -> UnitRegistryStore:
        store = UnitRegistryStore()
        if not self.path.exists():
            return store
        try:
            store.parse(self.path.read_text(encoding="utf-8"))
        except RegistryParseError as exc:
            logger.warning(
                "Unit registry %s is corrupt, starting from an empty registry: %s",
                self.path,
                exc,
            )
            store.clear()
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Failed to read unit registry %s: %s", self.path, exc)
            store.clear()
        return store

    def _write_store(self, store: UnitRegistryStore) -> None:
        ensure_mdait_dir(self.path.parent)
        write_file(self.path, store.serialize())
        self._store = store
