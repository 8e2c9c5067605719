"""Content fingerprints for units.

A fingerprint is a short hex digest of *normalized* text, so formatting
churn (trailing spaces, indentation, extra blank lines, CRLF) never looks
like a content change.  The default CRC-32 keeps markers compact; any
``hashlib`` algorithm can be configured instead.  Fingerprints identify
content, they are not meant to resist deliberate collisions.
"""

from __future__ import annotations

import hashlib
import re
import zlib

from mdait_sync.errors import ConfigError

DEFAULT_ALGORITHM = "crc32"
DEFAULT_LENGTH = 8
EMPTY_FINGERPRINT = "0" * DEFAULT_LENGTH

_INLINE_WS = re.compile(r"[ \t]+")
_EXCESS_BLANK_LINES = re.compile(r"\n{3,}")


def normalize_text(text: str) -> str:
    """Normalize *text* before hashing.

    Steps (applied in order):

    1. Replace ``\\r\\n`` with ``\\n``.
    2. Collapse runs of spaces and tabs to a single space.
    3. Strip whitespace at both ends of every line.
    4. Strip the whole text.
    5. Collapse three or more consecutive newlines to two.
    """
    text = text.replace("\r\n", "\n")
    text = _INLINE_WS.sub(" ", text)
    text = "\n".join(line.strip() for line in text.split("\n"))
    text = text.strip()
    return _EXCESS_BLANK_LINES.sub("\n\n", text)


class Fingerprinter:
    """Compute fingerprints with a fixed algorithm and length.

    Args:
        algorithm: ``"crc32"`` or a ``hashlib`` algorithm name.
        length: Number of hex characters to keep. CRC-32 yields at most 8.

    Raises:
        ConfigError: If *algorithm* is unknown or *length* is not positive.
    """

    def __init__(
        self, algorithm: str = DEFAULT_ALGORITHM, length: int = DEFAULT_LENGTH
    ) -> None:
        algorithm = algorithm.lower()
        if length < 1:
            raise ConfigError(f"Fingerprint length must be positive, got {length}")
        if algorithm == "crc32":
            max_length = 8
        else:
            try:
                digest = hashlib.new(algorithm)
            except ValueError:
                raise ConfigError(
                    f"Unknown hash algorithm '{algorithm}'"
                ) from None
            # shake_* digests have no fixed size
            max_length = digest.digest_size * 2 or length
        self.algorithm = algorithm
        self.length = min(length, max_length)
        self.empty = "0" * self.length

    def calculate(self, text: str, normalize: bool = True) -> str:
        """Return the fingerprint of *text*.

        Empty (normalized) text maps to the all-zero sentinel instead of
        the digest of the empty string.
        """
        if normalize:
            text = normalize_text(text)
        if not text:
            return self.empty
        data = text.encode("utf-8")
        if self.algorithm == "crc32":
            return f"{zlib.crc32(data) & 0xFFFFFFFF:08x}"[: self.length]
        digest = hashlib.new(self.algorithm, data)
        if self.algorithm.startswith("shake_"):
            return digest.hexdigest((self.length + 1) // 2)[: self.length]  # type: ignore[call-arg]
        return digest.hexdigest()[: self.length]

    __call__ = calculate

    def __repr__(self) -> str:
        return f"Fingerprinter(algorithm={self.algorithm!r}, length={self.length})"


_default = Fingerprinter()


def fingerprint(text: str) -> str:
    """Fingerprint *text* with the default CRC-32 / 8-character settings."""
    return _default.calculate(text)
