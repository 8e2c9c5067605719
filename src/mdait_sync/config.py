"""Configuration entry point for a sync run.

Resolves the ``UnifiedConfig`` from YAML config files, environment
variables, an optional ``.env`` file and explicit overrides.

Precedence (highest to lowest):
    Explicit overrides > Environment variables > .env file > YAML config > Built-in defaults

Environment variables:
    MDAIT_SYNC_LEVEL: Deepest heading level that starts a unit (1-6)
    MDAIT_AUTO_DELETE: Drop orphaned target units (true/false)
    MDAIT_MAX_WORKERS: Worker pool size (1-64)
    MDAIT_LOG_LEVEL: Log level name
"""

import copy
import logging
import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import ValidationError

from .config_loader import load_hierarchical_config
from .config_schema import UnifiedConfig, build_config
from .errors import ConfigError

logger = logging.getLogger(__name__)


def get_bool_env(key: str) -> bool | None:
    """Return True/False from env var, or None if unset."""
    val = os.getenv(key)
    if val is None:
        return None
    return val.lower() in ("true", "1", "yes", "on")


def _get_int_env(key: str, low: int, high: int) -> int | None:
    raw = os.getenv(key)
    if raw is None:
        return None
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(
            f"Invalid {key} '{raw}': must be a number between {low} and {high}"
        ) from None
    if not (low <= value <= high):
        raise ConfigError(
            f"Invalid {key} '{raw}': must be a number between {low} and {high}"
        )
    return value


def _apply_env_overrides(raw: dict[str, Any]) -> None:
    """Fold MDAIT_* environment variables into the raw config dict."""
    sync = dict(raw.get("sync") or {})

    level = _get_int_env("MDAIT_SYNC_LEVEL", 1, 6)
    if level is not None:
        sync["level"] = level

    auto_delete = get_bool_env("MDAIT_AUTO_DELETE")
    if auto_delete is not None:
        sync["auto_delete"] = auto_delete

    max_workers = _get_int_env("MDAIT_MAX_WORKERS", 1, 64)
    if max_workers is not None:
        sync["max_workers"] = max_workers

    if sync:
        raw["sync"] = sync

    log_level = os.getenv("MDAIT_LOG_LEVEL")
    if log_level:
        raw["logging"] = {**(raw.get("logging") or {}), "level": log_level}


def _merge_overrides(raw: dict[str, Any], overrides: dict[str, Any]) -> None:
    """Merge *overrides* into *raw*, one level deep for mapping sections."""
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(raw.get(key), dict):
            raw[key] = {**raw[key], **value}
        else:
            raw[key] = value


def load_config(
    workspace: Path | None = None,
    overrides: dict[str, Any] | None = None,
    use_dotenv: bool = True,
) -> UnifiedConfig:
    """Load configuration with unified precedence.

    Args:
        workspace: Project root used for config discovery and ``.env``.
            Defaults to the current directory.
        overrides: Raw config fragments that win over every other source,
            e.g. ``{"sync": {"auto_delete": False}}``.
        use_dotenv: Load ``<workspace>/.env`` into the environment first.
            Variables already set in the environment are not overwritten.

    Returns:
        Validated ``UnifiedConfig`` instance.

    Raises:
        ConfigError: If an environment value or the merged config is invalid.
    """
    root = workspace or Path.cwd()
    if use_dotenv:
        load_dotenv(root / ".env", override=False)

    raw = copy.deepcopy(load_hierarchical_config(root))
    _apply_env_overrides(raw)
    if overrides:
        _merge_overrides(raw, overrides)

    try:
        config = build_config(raw)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc

    logger.debug(
        "Loaded config: %d translation pair(s), level=%d, auto_delete=%s",
        len(config.trans_pairs),
        config.sync.level,
        config.sync.auto_delete,
    )
    return config
