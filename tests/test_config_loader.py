"""Tests for mdait_sync.config_loader -- hierarchical config loading."""

import pytest
import yaml

from mdait_sync.config_loader import (
    _interpolate_recursive,
    _load_yaml_with_includes,
    discover_config_files,
    ensure_config,
    interpolate_env_vars,
    load_hierarchical_config,
)

# -------------------------------------------------------------------------
# Helpers
# -------------------------------------------------------------------------


def _write_project_config(workspace, text: str, name: str = "config.yml"):
    path = workspace / ".mdait" / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def _write_global_config(tmp_path, text: str):
    path = tmp_path / "home" / ".config" / "mdait" / "config.yml"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


# -------------------------------------------------------------------------
# Env var interpolation
# -------------------------------------------------------------------------


class TestInterpolateEnvVars:
    """Tests for ${VAR} and ${VAR:-default} substitution."""

    def test_replaces_set_var(self, monkeypatch):
        monkeypatch.setenv("DOCS_ROOT", "site/docs")
        assert interpolate_env_vars("${DOCS_ROOT}/en") == "site/docs/en"

    def test_unset_var_replaced_with_empty(self, monkeypatch):
        monkeypatch.delenv("MDAIT_UNSET_XYZ", raising=False)
        assert interpolate_env_vars("${MDAIT_UNSET_XYZ}") == ""

    def test_default_used_when_unset(self, monkeypatch):
        monkeypatch.delenv("TARGET_LANG", raising=False)
        assert interpolate_env_vars("docs/${TARGET_LANG:-ja}") == "docs/ja"

    def test_empty_var_uses_default(self, monkeypatch):
        monkeypatch.setenv("TARGET_LANG", "")
        assert interpolate_env_vars("${TARGET_LANG:-ja}") == "ja"

    def test_default_ignored_when_set(self, monkeypatch):
        monkeypatch.setenv("TARGET_LANG", "de")
        assert interpolate_env_vars("${TARGET_LANG:-ja}") == "de"

    def test_literal_dollar_brace_no_closing(self):
        assert interpolate_env_vars("${NO_CLOSE") == "${NO_CLOSE"

    def test_recursive_walk(self, monkeypatch):
        monkeypatch.setenv("SRC", "docs/en")
        data = {
            "trans_pairs": [{"source_dir": "${SRC}", "target_dir": "docs/ja"}],
            "sync": {"level": 3, "auto_delete": False},
        }
        assert _interpolate_recursive(data) == {
            "trans_pairs": [{"source_dir": "docs/en", "target_dir": "docs/ja"}],
            "sync": {"level": 3, "auto_delete": False},
        }


# -------------------------------------------------------------------------
# YAML !include support
# -------------------------------------------------------------------------


class TestIncludeDirective:
    """Tests for !include YAML loading via the ConfigLoader subclass."""

    def test_include_relative_file(self, tmp_path):
        (tmp_path / "pairs.yml").write_text("- source_dir: docs/en\n  target_dir: docs/ja\n")
        main = tmp_path / "config.yml"
        main.write_text("trans_pairs: !include pairs.yml\n")

        assert _load_yaml_with_includes(main) == {
            "trans_pairs": [{"source_dir": "docs/en", "target_dir": "docs/ja"}]
        }

    def test_include_absolute_path(self, tmp_path):
        sync = tmp_path / "sync.yml"
        sync.write_text("level: 3\n")
        main = tmp_path / "config.yml"
        main.write_text(f"sync: !include {sync}\n")

        assert _load_yaml_with_includes(main) == {"sync": {"level": 3}}

    def test_nested_includes(self, tmp_path):
        (tmp_path / "c.yml").write_text("keys: [title]\n")
        (tmp_path / "b.yml").write_text("front_matter: !include c.yml\n")
        a = tmp_path / "a.yml"
        a.write_text("nested: !include b.yml\n")

        assert _load_yaml_with_includes(a) == {
            "nested": {"front_matter": {"keys": ["title"]}}
        }

    def test_include_nonexistent_raises(self, tmp_path):
        main = tmp_path / "config.yml"
        main.write_text("sync: !include missing.yml\n")

        with pytest.raises(FileNotFoundError, match="missing.yml"):
            _load_yaml_with_includes(main)

    def test_circular_include_raises(self, tmp_path):
        a = tmp_path / "a.yml"
        (tmp_path / "b.yml").write_text("y: !include a.yml\n")
        a.write_text("x: !include b.yml\n")

        with pytest.raises(ValueError, match="Circular include"):
            _load_yaml_with_includes(a)

    def test_self_include_raises(self, tmp_path):
        a = tmp_path / "a.yml"
        a.write_text("x: !include a.yml\n")

        with pytest.raises(ValueError, match="Circular include"):
            _load_yaml_with_includes(a)

    def test_global_safe_loader_not_polluted(self, tmp_path):
        """The !include tag must stay unknown to yaml.safe_load."""
        cfg = tmp_path / "config.yml"
        cfg.write_text("x: !include other.yml\n")

        with pytest.raises(yaml.constructor.ConstructorError):
            with open(cfg) as fh:
                yaml.safe_load(fh)


# -------------------------------------------------------------------------
# Convention-based file discovery
# -------------------------------------------------------------------------


class TestDiscoverConfigFiles:
    def test_empty_when_nothing_exists(self, workspace):
        assert discover_config_files(workspace) == []

    def test_precedence_order(self, tmp_path, workspace, monkeypatch):
        explicit = tmp_path / "explicit.yml"
        explicit.write_text("{}\n")
        monkeypatch.setenv("MDAIT_CONFIG", str(explicit))
        project_yml = _write_project_config(workspace, "{}\n")
        project_yaml = _write_project_config(workspace, "{}\n", name="config.yaml")
        global_yml = _write_global_config(tmp_path, "{}\n")

        assert discover_config_files(workspace) == [
            explicit.resolve(),
            project_yml,
            project_yaml,
            global_yml,
        ]

    def test_missing_env_path_excluded(self, tmp_path, workspace, monkeypatch):
        monkeypatch.setenv("MDAIT_CONFIG", str(tmp_path / "missing.yml"))
        assert discover_config_files(workspace) == []


# -------------------------------------------------------------------------
# Hierarchical merge
# -------------------------------------------------------------------------


class TestLoadHierarchicalConfig:
    def test_zero_config_returns_empty_dict(self, workspace):
        assert load_hierarchical_config(workspace) == {}

    def test_project_overrides_global_at_section_level(self, tmp_path, workspace):
        _write_global_config(
            tmp_path,
            "sync:\n  level: 4\n  auto_delete: false\nlogging:\n  level: DEBUG\n",
        )
        _write_project_config(workspace, "sync:\n  level: 2\n")

        merged = load_hierarchical_config(workspace)
        # Sections are replaced wholesale, not deep-merged.
        assert merged["sync"] == {"level": 2}
        assert merged["logging"] == {"level": "DEBUG"}

    def test_interpolation_after_merge(self, workspace, monkeypatch):
        monkeypatch.setenv("MDAIT_TEST_TARGET", "docs/de")
        _write_project_config(
            workspace,
            "trans_pairs:\n  - source_dir: docs/en\n    target_dir: ${MDAIT_TEST_TARGET}\n",
        )
        merged = load_hierarchical_config(workspace)
        assert merged["trans_pairs"][0]["target_dir"] == "docs/de"

    def test_include_within_project_config(self, workspace):
        (workspace / ".mdait").mkdir()
        (workspace / ".mdait" / "front.yml").write_text("keys:\n  - title\n")
        _write_project_config(workspace, "front_matter: !include front.yml\n")

        assert load_hierarchical_config(workspace) == {
            "front_matter": {"keys": ["title"]}
        }

    def test_non_dict_root_skipped(self, workspace, caplog):
        _write_project_config(workspace, "- just\n- a list\n")
        assert load_hierarchical_config(workspace) == {}
        assert "non-dict root" in caplog.text

    def test_invalid_yaml_raises(self, workspace):
        _write_project_config(workspace, "sync: [unclosed\n")
        with pytest.raises(yaml.YAMLError):
            load_hierarchical_config(workspace)


# -------------------------------------------------------------------------
# Config bootstrapping
# -------------------------------------------------------------------------


class TestEnsureConfig:
    def test_creates_starter_file(self, workspace):
        path = ensure_config(workspace)
        assert path == workspace / ".mdait" / "config.yml"
        text = path.read_text(encoding="utf-8")
        assert "trans_pairs" in text
        # Every line of the starter config is commented out.
        assert yaml.safe_load(text) is None

    def test_noop_when_exists(self, workspace):
        existing = _write_project_config(workspace, "sync:\n  level: 3\n")
        assert ensure_config(workspace) == existing
        assert existing.read_text(encoding="utf-8") == "sync:\n  level: 3\n"

    def test_starter_config_loads_as_defaults(self, workspace):
        ensure_config(workspace)
        assert load_hierarchical_config(workspace) == {}
