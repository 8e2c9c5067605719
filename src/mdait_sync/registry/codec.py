"""Payload codec for registry entries: gzip, then base64.

The gzip header timestamp is pinned to zero so that the same content
always encodes to the same text.
"""

import base64
import gzip


def encode_content(content: str) -> str:
    compressed = gzip.compress(content.encode("utf-8"), mtime=0)
    return base64.b64encode(compressed).decode("ascii")


def decode_content(encoded: str) -> str:
    compressed = base64.b64decode(encoded.encode("ascii"), validate=True)
    return gzip.decompress(compressed).decode("utf-8")
