"""Markdown document model: fingerprints, markers, units and front matter."""

from .fingerprint import (
    EMPTY_FINGERPRINT,
    Fingerprinter,
    fingerprint,
    normalize_text,
)
from .front_matter import (
    FRONT_MATTER_MARKER_KEY,
    SYNC_LEVEL_KEY,
    FrontMatter,
    front_matter_fingerprint,
    get_front_matter_marker,
    get_sync_level,
    set_front_matter_marker,
    translation_values,
)
from .marker import (
    NEED_REVIEW,
    NEED_SOLVE_CONFLICT,
    NEED_TRANSLATE,
    NEED_VERIFY_DELETION,
    Marker,
    revise_need,
)
from .parser import has_real_content, parse_document, serialize_document
from .unit import Document, Unit

__all__ = [
    "EMPTY_FINGERPRINT",
    "FRONT_MATTER_MARKER_KEY",
    "NEED_REVIEW",
    "NEED_SOLVE_CONFLICT",
    "NEED_TRANSLATE",
    "NEED_VERIFY_DELETION",
    "SYNC_LEVEL_KEY",
    "Document",
    "Fingerprinter",
    "FrontMatter",
    "Marker",
    "Unit",
    "fingerprint",
    "front_matter_fingerprint",
    "get_front_matter_marker",
    "get_sync_level",
    "has_real_content",
    "normalize_text",
    "parse_document",
    "revise_need",
    "serialize_document",
    "set_front_matter_marker",
    "translation_values",
]
