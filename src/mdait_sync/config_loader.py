"""
YAML config discovery and merging for mdait_sync.

A workspace is configured by ``.mdait/config.yml``. A user-wide file under
``~/.config/mdait/`` supplies shared defaults and ``MDAIT_CONFIG`` points at
an explicit file that beats both. Files may pull in fragments with
``!include`` and reference environment variables as ``${VAR}``.

Usage:
    from mdait_sync.config_loader import load_hierarchical_config

    raw = load_hierarchical_config(workspace)
"""

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "MDAIT_CONFIG"
PROJECT_DIR_NAME = ".mdait"
PROJECT_CONFIG_NAMES = ("config.yml", "config.yaml")
GLOBAL_CONFIG_PATH = Path(".config") / "mdait" / "config.yml"

# ---------------------------------------------------------------------------
# Environment references
# ---------------------------------------------------------------------------

# ${NAME} or ${NAME:-fallback}
_ENV_REF = re.compile(r"\$\{([^}:]+?)(?::-(.*?))?\}")


def interpolate_env_vars(value: str) -> str:
    """Expand ``${NAME}`` and ``${NAME:-fallback}`` references in *value*.

    An unset or empty variable expands to its fallback, or to ``""`` when
    there is none. An unterminated ``${`` is kept literally.
    """

    def _expand(match: re.Match) -> str:
        return os.environ.get(match.group(1)) or match.group(2) or ""

    return _ENV_REF.sub(_expand, value)


def _interpolate_recursive(obj: Any) -> Any:
    """Expand environment references in every string of a YAML tree."""
    if isinstance(obj, str):
        return interpolate_env_vars(obj)
    if isinstance(obj, list):
        return [_interpolate_recursive(item) for item in obj]
    if isinstance(obj, dict):
        return {key: _interpolate_recursive(val) for key, val in obj.items()}
    return obj


# ---------------------------------------------------------------------------
# !include
# ---------------------------------------------------------------------------


class ConfigLoader(yaml.SafeLoader):
    """SafeLoader that understands ``!include <path>``.

    Registered on this subclass only, so plain ``yaml.safe_load`` keeps
    rejecting the tag. Every loader carries the chain of files currently
    being loaded in ``_include_stack``.
    """


def _resolve_include(loader: ConfigLoader, node: yaml.ScalarNode) -> Path:
    target = Path(loader.construct_scalar(node)).expanduser()
    including_file = Path(loader.name).resolve()
    if not target.is_absolute():
        target = including_file.parent / target
    target = target.resolve()

    chain: list[Path] = getattr(loader, "_include_stack", [])
    if target in chain:
        cycle = " -> ".join(str(p) for p in (*chain, target))
        raise ValueError(f"Circular include detected: {cycle}")
    if not target.is_file():
        raise FileNotFoundError(
            f"Include file not found: {target} (included from {including_file})"
        )
    return target


def _include_constructor(loader: ConfigLoader, node: yaml.ScalarNode) -> Any:
    target = _resolve_include(loader, node)
    chain: list[Path] = getattr(loader, "_include_stack", [])
    return _load_yaml_with_includes(target, _include_stack=[*chain, target])


ConfigLoader.add_constructor("!include", _include_constructor)


def _load_yaml_with_includes(
    path: Path,
    *,
    _include_stack: list[Path] | None = None,
) -> Any:
    """Parse one YAML file, following ``!include`` tags."""
    path = path.resolve()
    with open(path, "r", encoding="utf-8") as fh:
        loader = ConfigLoader(fh)
        loader._include_stack = _include_stack or [path]  # type: ignore[attr-defined]
        try:
            return loader.get_single_data()
        finally:
            loader.dispose()


# ---------------------------------------------------------------------------
# Discovery
# ---------------------------------------------------------------------------


def _candidate_paths(workspace: Path) -> list[Path]:
    candidates: list[Path] = []
    explicit = os.environ.get(CONFIG_ENV_VAR)
    if explicit:
        candidates.append(Path(explicit).expanduser().resolve())
    candidates.extend(workspace / PROJECT_DIR_NAME / name for name in PROJECT_CONFIG_NAMES)
    candidates.append(Path.home() / GLOBAL_CONFIG_PATH)
    return candidates


def discover_config_files(workspace: Path | None = None) -> list[Path]:
    """List the config files that exist, highest precedence first.

    Precedence:
        1. the file named by ``MDAIT_CONFIG``
        2. ``<workspace>/.mdait/config.yml``
        3. ``<workspace>/.mdait/config.yaml``
        4. ``~/.config/mdait/config.yml``

    Args:
        workspace: Project root. Defaults to the current directory.
    """
    return [p for p in _candidate_paths(workspace or Path.cwd()) if p.exists()]


# ---------------------------------------------------------------------------
# Starter file
# ---------------------------------------------------------------------------

_STARTER_CONFIG = """\
# mdait-sync configuration
#
# Environment variables override these settings:
#   MDAIT_SYNC_LEVEL, MDAIT_AUTO_DELETE, MDAIT_MAX_WORKERS, MDAIT_LOG_LEVEL
#
# trans_pairs:
#   - source_dir: docs/ja
#     target_dir: docs/en
#     source_lang: ja
#     target_lang: en
#
# sync:
#   level: 2
#   auto_delete: true
#   ignored_patterns:
#     - "**/node_modules/**"
#   hash_algorithm: crc32
#   hash_length: 8
#
# front_matter:
#   keys:
#     - title
#     - description
#
# logging:
#   level: INFO
#   file: null
"""


def ensure_config(workspace: Path | None = None) -> Path:
    """Return the active config file, writing a commented starter if none exists.

    Args:
        workspace: Project root. Defaults to the current directory.

    Returns:
        Path of the highest-precedence existing file, or of the new
        ``.mdait/config.yml``.
    """
    existing = discover_config_files(workspace)
    if existing:
        logger.debug("Using existing config file %s", existing[0])
        return existing[0]

    path = (workspace or Path.cwd()) / PROJECT_DIR_NAME / PROJECT_CONFIG_NAMES[0]
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(_STARTER_CONFIG, encoding="utf-8")
    logger.info("Wrote starter config %s", path)
    return path


# ---------------------------------------------------------------------------
# Merge
# ---------------------------------------------------------------------------


def load_hierarchical_config(workspace: Path | None = None) -> dict[str, Any]:
    """Load every discovered config file and merge them into one raw dict.

    Files are applied from lowest to highest precedence and each one
    replaces whole top-level sections of the files before it; sections are
    not deep-merged. Environment references are expanded afterwards.

    Returns:
        The merged dict, empty when no config file exists.

    Raises:
        yaml.YAMLError, FileNotFoundError, ValueError: If a file or one of
            its includes cannot be loaded.
    """
    paths = discover_config_files(workspace)
    if not paths:
        logger.debug("No config file found, using defaults")
        return {}

    merged: dict[str, Any] = {}
    for path in reversed(paths):
        logger.debug("Loading config file %s", path)
        try:
            data = _load_yaml_with_includes(path)
        except Exception:
            logger.exception("Could not load config file %s", path)
            raise

        if data is None:
            continue
        if not isinstance(data, dict):
            logger.warning(
                "Ignoring config file %s: non-dict root (%s)",
                path,
                type(data).__name__,
            )
            continue
        merged.update(data)

    return _interpolate_recursive(merged)
