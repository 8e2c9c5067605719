"""Content-addressable unit registry.

Stores the text of every synced unit under its fingerprint in a bucketed,
diff-stable file so that old versions can be recalled later (for example
to show what changed under a ``revise@`` target).
"""

from .codec import decode_content, encode_content
from .manager import UnitRegistry, ensure_mdait_dir
from .store import BUCKET_COUNT, UnitRegistryStore, bucket_id, placeholder_keys

__all__ = [
    "BUCKET_COUNT",
    "UnitRegistry",
    "UnitRegistryStore",
    "bucket_id",
    "decode_content",
    "encode_content",
    "ensure_mdait_dir",
    "placeholder_keys",
]
