"""Tests for registry/manager.py -- buffered, atomic, garbage-collected registry."""

import logging
import threading

from mdait_sync.registry.codec import encode_content
from mdait_sync.registry.manager import UnitRegistry, ensure_mdait_dir
from mdait_sync.registry.store import BUCKET_COUNT, UnitRegistryStore


def _registry(tmp_path, **kwargs) -> UnitRegistry:
    return UnitRegistry(tmp_path / ".mdait" / "unit-registry", **kwargs)


class TestSaveAndFlush:
    def test_save_is_buffered(self, tmp_path):
        registry = _registry(tmp_path)
        registry.save("12345678", "content")
        assert registry.pending == 1
        assert not registry.path.exists()

    def test_flush_writes_file(self, tmp_path):
        registry = _registry(tmp_path)
        registry.save("12345678", "content")
        assert registry.flush() == 1
        assert registry.pending == 0
        lines = registry.path.read_text(encoding="utf-8").split("\n")
        assert f"12345678 {encode_content('content')}" in lines
        assert len(lines) == BUCKET_COUNT + 1

    def test_flush_without_buffer_is_noop(self, tmp_path):
        registry = _registry(tmp_path)
        assert registry.flush() == 0
        assert not registry.path.exists()

    def test_flush_creates_gitignore(self, tmp_path):
        registry = _registry(tmp_path)
        registry.save("12345678", "x")
        registry.flush()
        assert (tmp_path / ".mdait" / ".gitignore").read_text() == "logs/\n"

    def test_flush_merges_with_file(self, tmp_path):
        first = _registry(tmp_path)
        first.save("12345678", "one")
        first.flush()

        second = _registry(tmp_path)
        second.save("abcdef01", "two")
        second.flush()

        fresh = _registry(tmp_path)
        assert fresh.load("12345678") == "one"
        assert fresh.load("abcdef01") == "two"

    def test_same_content_same_bytes(self, tmp_path):
        a = UnitRegistry(tmp_path / "a" / "unit-registry")
        b = UnitRegistry(tmp_path / "b" / "unit-registry")
        entries = [("12345678", "x"), ("fedcba98", "y"), ("12311111", "z")]
        a.save_many(entries)
        b.save_many(reversed(entries))
        a.flush()
        b.flush()
        assert a.path.read_bytes() == b.path.read_bytes()

    def test_no_temp_files_left(self, tmp_path):
        registry = _registry(tmp_path)
        registry.save("12345678", "x")
        registry.flush()
        leftovers = [p.name for p in registry.path.parent.iterdir() if p.name.endswith(".tmp")]
        assert leftovers == []

    def test_concurrent_saves(self, tmp_path):
        registry = _registry(tmp_path)

        def _save(offset: int) -> None:
            for i in range(50):
                registry.save(f"{offset:02x}{i:06x}", f"content {offset} {i}")

        threads = [threading.Thread(target=_save, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert registry.flush() == 400
        assert len(_registry(tmp_path).keys()) == 400


class TestLoad:
    def test_load_from_buffer(self, tmp_path):
        registry = _registry(tmp_path)
        registry.save("12345678", "buffered")
        assert registry.load("12345678") == "buffered"

    def test_load_case_insensitive(self, tmp_path):
        registry = _registry(tmp_path)
        registry.save("ABCDEF01", "x")
        registry.flush()
        assert _registry(tmp_path).load("abcdef01") == "x"

    def test_load_missing(self, tmp_path):
        assert _registry(tmp_path).load("12345678") is None

    def test_corrupt_file_logs_warning_and_starts_empty(self, tmp_path, caplog):
        registry = _registry(tmp_path)
        registry.path.parent.mkdir(parents=True)
        registry.path.write_text("12345678 a\n12345678 b\n", encoding="utf-8")
        with caplog.at_level(logging.WARNING, logger="mdait_sync.registry.manager"):
            assert registry.load("12345678") is None
        assert "corrupt" in caplog.text

    def test_undecodable_entry_returns_none(self, tmp_path, caplog):
        registry = _registry(tmp_path)
        registry.path.parent.mkdir(parents=True)
        registry.path.write_text("12345678 ####\n", encoding="utf-8")
        with caplog.at_level(logging.WARNING):
            assert registry.load("12345678") is None


class TestGarbageCollect:
    def _filled(self, tmp_path, threshold: int) -> UnitRegistry:
        registry = _registry(tmp_path, gc_threshold=threshold)
        registry.save_many((f"{i:03x}00001", f"content {i}") for i in range(100))
        registry.flush()
        return registry

    def test_below_threshold_is_noop(self, tmp_path):
        registry = self._filled(tmp_path, threshold=10 * 1024 * 1024)
        assert registry.garbage_collect({"00000001"}) == 0
        assert len(_registry(tmp_path).keys()) == 100

    def test_keeps_only_active(self, tmp_path):
        registry = self._filled(tmp_path, threshold=0)
        active = {f"{i:03x}00001" for i in range(10)} | {"ffffffff"}
        assert registry.garbage_collect(active) == 90

        store = UnitRegistryStore()
        store.parse(registry.path.read_text(encoding="utf-8"))
        assert store.size() == 10
        assert set(store.keys()) == active - {"ffffffff"}

    def test_flushes_pending_before_collecting(self, tmp_path):
        registry = self._filled(tmp_path, threshold=0)
        registry.save("abcdef01", "pending")
        registry.garbage_collect({"abcdef01"})
        assert _registry(tmp_path).load("abcdef01") == "pending"

    def test_prunes_cache(self, tmp_path):
        registry = self._filled(tmp_path, threshold=0)
        registry.garbage_collect(set())
        assert registry.load("00000001") is None

    def test_missing_file(self, tmp_path):
        assert _registry(tmp_path, gc_threshold=0).garbage_collect(set()) == 0

    def test_file_size(self, tmp_path):
        registry = self._filled(tmp_path, threshold=0)
        assert registry.file_size() == registry.path.stat().st_size
        assert _registry(tmp_path / "other").file_size() == 0


def test_ensure_mdait_dir_keeps_existing_gitignore(tmp_path):
    directory = tmp_path / ".mdait"
    directory.mkdir()
    (directory / ".gitignore").write_text("custom\n")
    ensure_mdait_dir(directory)
    assert (directory / ".gitignore").read_text() == "custom\n"


def test_for_workspace(tmp_path):
    registry = UnitRegistry.for_workspace(tmp_path)
    assert registry.path == tmp_path / ".mdait" / "unit-registry"
