"""Unified configuration schema for mdait_sync.

Defines Pydantic models for the config structure with dedicated sections
for translation pairs, unit sync behaviour, front matter tracking and
logging.

Usage:
    from mdait_sync.config_schema import build_config, validate_for_sync

    raw = load_hierarchical_config()
    config = build_config(raw)
    validate_for_sync(config)
"""

from __future__ import annotations

import hashlib
import logging

from pydantic import BaseModel, Field, field_validator

from .errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_REGISTRY_PATH = ".mdait/unit-registry"
DEFAULT_GC_THRESHOLD = 5 * 1024 * 1024


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class TransPairConfig(BaseModel):
    """One source/target directory mapping.

    Attributes:
        source_dir: Directory holding the source-language documents.
        target_dir: Directory receiving the translated documents.
        source_lang: Source language code (informational).
        target_lang: Target language code (informational).
    """

    source_dir: str = Field(description="Source document directory")
    target_dir: str = Field(description="Target document directory")
    source_lang: str = Field(default="", description="Source language")
    target_lang: str = Field(default="", description="Target language")

    model_config = {"frozen": True}


class SyncConfig(BaseModel):
    """Unit sync settings."""

    level: int = Field(
        default=2,
        ge=1,
        le=6,
        description="Deepest heading level that starts a new unit (1-6)",
    )
    auto_delete: bool = Field(
        default=True,
        description="Drop orphaned target units instead of flagging them",
    )
    ignored_patterns: list[str] = Field(
        default_factory=lambda: ["**/node_modules/**"],
        description="Glob patterns of source files to skip",
    )
    hash_algorithm: str = Field(
        default="crc32",
        description="'crc32' or any hashlib algorithm name",
    )
    hash_length: int = Field(
        default=8,
        ge=8,
        le=64,
        description="Number of hex characters kept from the digest (8-64)",
    )
    max_workers: int | None = Field(
        default=None,
        ge=1,
        le=64,
        description="Worker pool size; defaults to min(cpu_count, 8)",
    )
    registry_path: str = Field(
        default=DEFAULT_REGISTRY_PATH,
        description="Unit registry file, relative to the workspace root",
    )
    gc_threshold_bytes: int = Field(
        default=DEFAULT_GC_THRESHOLD,
        ge=0,
        description="Registry file size that triggers garbage collection",
    )

    model_config = {"frozen": True}

    @field_validator("hash_algorithm")
    @classmethod
    def _check_algorithm(cls, value: str) -> str:
        value = value.lower()
        if value != "crc32" and value not in hashlib.algorithms_available:
            raise ValueError(f"Unknown hash algorithm '{value}'")
        return value


class FrontMatterConfig(BaseModel):
    """Front matter tracking.

    Attributes:
        keys: Front matter keys whose values are translated. An empty list
            disables front matter sync.
    """

    keys: list[str] = Field(
        default_factory=list,
        description="Translatable front matter keys (dot paths allowed)",
    )

    model_config = {"frozen": True}


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional log file path.
    """

    level: str = Field(default="INFO", description="Log level")
    file: str | None = Field(default=None, description="Log file path")

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Top-level unified config
# ---------------------------------------------------------------------------


class UnifiedConfig(BaseModel):
    """Top-level unified configuration.

    Every section has defaults, so ``UnifiedConfig()`` is valid; it simply
    has no translation pairs to sync.
    """

    trans_pairs: list[TransPairConfig] = Field(default_factory=list)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    front_matter: FrontMatterConfig = Field(
        default_factory=FrontMatterConfig
    )
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Factory and validation
# ---------------------------------------------------------------------------


def build_config(raw_data: dict) -> UnifiedConfig:
    """Construct a ``UnifiedConfig`` from the raw dict returned by
    ``load_hierarchical_config()``.

    Handles missing sections gracefully; anything absent gets defaults.

    Args:
        raw_data: Merged configuration dictionary.

    Returns:
        Validated ``UnifiedConfig`` instance.
    """
    if not raw_data:
        return UnifiedConfig()

    return UnifiedConfig(**raw_data)


def validate_for_sync(config: UnifiedConfig) -> None:
    """Check that *config* describes something to sync.

    Raises:
        ConfigError: If no translation pair is configured, a pair has an
            empty directory, or source and target directories coincide.
    """
    if not config.trans_pairs:
        raise ConfigError(
            "No translation pairs configured. Add a 'trans_pairs' list "
            "to .mdait/config.yml."
        )
    for index, pair in enumerate(config.trans_pairs):
        if not pair.source_dir.strip() or not pair.target_dir.strip():
            raise ConfigError(
                f"Translation pair #{index + 1} needs both source_dir and target_dir"
            )
        if pair.source_dir.rstrip("/") == pair.target_dir.rstrip("/"):
            raise ConfigError(
                f"Translation pair #{index + 1} uses '{pair.source_dir}' as "
                "both source and target"
            )
