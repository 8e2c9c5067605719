"""Shared pytest fixtures for mdait-sync tests."""

from pathlib import Path

import pytest
from dotenv import load_dotenv

from mdait_sync.config_schema import UnifiedConfig, build_config
from mdait_sync.registry.manager import UnitRegistry

load_dotenv()

_ENV_VARS = (
    "MDAIT_CONFIG",
    "MDAIT_SYNC_LEVEL",
    "MDAIT_AUTO_DELETE",
    "MDAIT_MAX_WORKERS",
    "MDAIT_LOG_LEVEL",
    "MDAIT_LOG_FILE",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Keep tests independent of the developer's environment and home config."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    home = tmp_path / "home"
    monkeypatch.setenv("HOME", str(home))


@pytest.fixture
def workspace(tmp_path) -> Path:
    """Workspace with an empty ``docs/en`` source and ``docs/ja`` target."""
    root = tmp_path / "ws"
    (root / "docs" / "en").mkdir(parents=True)
    (root / "docs" / "ja").mkdir(parents=True)
    return root


@pytest.fixture
def make_config():
    """Factory fixture building a ``UnifiedConfig`` with one en -> ja pair."""

    def _make(**sections) -> UnifiedConfig:
        raw = {
            "trans_pairs": [
                {
                    "source_dir": "docs/en",
                    "target_dir": "docs/ja",
                    "source_lang": "en",
                    "target_lang": "ja",
                }
            ]
        }
        raw.update(sections)
        return build_config(raw)

    return _make


@pytest.fixture
def registry(workspace) -> UnitRegistry:
    return UnitRegistry.for_workspace(workspace)
