"""In-memory bucketed store behind the unit registry file.

File format, one line per entry::

    <hash> <payload>

Keys are lowercase hex fingerprints, partitioned into 4096 buckets by
their first three characters.  Serialization always walks every bucket
in ascending order and writes the entries of a bucket sorted by key, so
equal stores produce identical text and one new entry only touches a few
neighbouring lines.  Each bucket starts with a zero-payload placeholder
line ``<bucket>00000 `` so that even empty buckets are represented.

Older files may also contain bare bucket lines ``<bucket> ``; they are
accepted on read and used to check that following entries belong there.
"""

from __future__ import annotations

import re
from typing import Iterable

from mdait_sync.errors import RegistryParseError

BUCKET_COUNT = 4096
BUCKET_WIDTH = 3

_BUCKET_LINE_RE = re.compile(r"([0-9a-fA-F]{3}) ")
_ENTRY_LINE_RE = re.compile(r"([0-9a-fA-F]{8,64}) (.*)")


def bucket_id(key: str) -> str:
    """Bucket of *key*: its first three hex characters, lowercased."""
    return key[:BUCKET_WIDTH].lower()


def placeholder_key(bucket: str) -> str:
    return f"{bucket}00000"


def all_buckets() -> list[str]:
    return [f"{i:03x}" for i in range(BUCKET_COUNT)]


def placeholder_keys() -> set[str]:
    """Keys of every bucket placeholder line."""
    return {placeholder_key(b) for b in all_buckets()}


class UnitRegistryStore:
    """Bucketed mapping of fingerprint to encoded content.

    Pure in-memory structure: reading and writing the file is the job of
    ``UnitRegistry``.
    """

    def __init__(self) -> None:
        self._buckets: dict[str, dict[str, str]] = {}

    # ------------------------------------------------------------------
    # Parsing / serialization
    # ------------------------------------------------------------------

    def parse(self, text: str) -> None:
        """Replace the store contents with the entries in *text*.

        Raises:
            RegistryParseError: On an unrecognised line, an entry filed
                under the wrong bucket line, or a duplicate key.
        """
        self._buckets.clear()
        if not text.strip():
            return

        current_bucket: str | None = None
        for number, line in enumerate(text.split("\n"), start=1):
            if not line.strip():
                continue

            if _BUCKET_LINE_RE.fullmatch(line):
                current_bucket = line[:BUCKET_WIDTH].lower()
                self._buckets.setdefault(current_bucket, {})
                continue

            match = _ENTRY_LINE_RE.fullmatch(line)
            if match is None:
                raise RegistryParseError(
                    f"Invalid line format: {line[:50]}", number
                )

            key = match.group(1).lower()
            payload = match.group(2)
            bucket = bucket_id(key)

            if current_bucket is not None and bucket != current_bucket:
                raise RegistryParseError(
                    f"Hash {key} belongs in bucket {bucket}, found under {current_bucket}",
                    number,
                )
            # A bucket line only governs the entries directly following it
            current_bucket = None

            if key == placeholder_key(bucket) and not payload.strip():
                continue

            entries = self._buckets.setdefault(bucket, {})
            if key in entries:
                raise RegistryParseError(f"Duplicate hash {key}", number)
            entries[key] = payload

    def serialize(self) -> str:
        """Canonical text: every bucket, ascending; entries sorted."""
        lines: list[str] = []
        for bucket in all_buckets():
            entries = self._buckets.get(bucket, {})
            if placeholder_key(bucket) not in entries:
                lines.append(f"{placeholder_key(bucket)} ")
            for key in sorted(entries):
                lines.append(f"{key} {entries[key]}")
        return "\n".join(lines)

    # ------------------------------------------------------------------
    # Entries
    # ------------------------------------------------------------------

    def upsert(self, key: str, encoded: str) -> None:
        key = key.lower()
        self._buckets.setdefault(bucket_id(key), {})[key] = encoded

    def upsert_many(self, entries: Iterable[tuple[str, str]]) -> None:
        for key, encoded in entries:
            self.upsert(key, encoded)

    def get(self, key: str) -> str | None:
        key = key.lower()
        return self._buckets.get(bucket_id(key), {}).get(key)

    def retain_only(self, active: Iterable[str]) -> int:
        """Drop every entry whose key is not in *active*.

        Returns:
            Number of removed entries.
        """
        keep = {key.lower() for key in active}
        removed = 0
        for bucket in list(self._buckets):
            entries = self._buckets[bucket]
            for key in [k for k in entries if k not in keep]:
                del entries[key]
                removed += 1
            if not entries:
                del self._buckets[bucket]
        return removed

    def keys(self) -> list[str]:
        return sorted(key for entries in self._buckets.values() for key in entries)

    def size(self) -> int:
        return sum(len(entries) for entries in self._buckets.values())

    def clear(self) -> None:
        self._buckets.clear()

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.get(key) is not None

    def __len__(self) -> int:
        return self.size()
