"""Tests for installer settings and prodready.yaml handling."""

from pathlib import Path

import yaml

from prodready.config import PAYLOAD_DIR, Settings, get_config_path, get_settings


def _write_yaml(config_root: Path, data) -> None:
    config_root.mkdir(parents=True, exist_ok=True)
    get_config_path(config_root).write_text(yaml.safe_dump(data))


class TestDefaults:
    """Tests for Settings defaults."""

    def test_plugin_identity_defaults(self, config_root):
        """Test fallback plugin identity values."""
        settings = Settings(config_root=config_root)
        assert settings.plugin_name == "prod-ready"
        assert settings.plugin_version == "1.0.0"
        assert settings.source_label == "local-plugins"
        assert settings.scope == "project"

    def test_source_dir_defaults_to_bundled_payload(self, config_root):
        """Test the bundled payload is the default source and is complete."""
        settings = Settings(config_root=config_root)
        assert settings.source_dir == PAYLOAD_DIR
        assert (PAYLOAD_DIR / ".claude-plugin" / "plugin.json").is_file()
        assert list((PAYLOAD_DIR / "commands").glob("*.md"))

    def test_config_root_from_claude_config_dir(self, tmp_path, monkeypatch):
        """Test CLAUDE_CONFIG_DIR selects the config root."""
        monkeypatch.setenv("CLAUDE_CONFIG_DIR", str(tmp_path / "alt"))
        assert Settings().config_root == tmp_path / "alt"

    def test_config_root_defaults_to_home(self, tmp_path, monkeypatch):
        """Test the config root defaults to ~/.claude."""
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))
        assert Settings().config_root == tmp_path / ".claude"


class TestLayout:
    """Tests for derived on-disk paths."""

    def test_paths(self, config_root):
        """Test every path derives from the config root."""
        layout = Settings(config_root=config_root).layout
        assert layout.registry_path == config_root / "plugins" / "installed_plugins.json"
        assert layout.settings_path == config_root / "settings.json"
        assert layout.reference_dir("p") == config_root / "plugins" / "repos" / "p"
        assert layout.cache_base("src") == config_root / "plugins" / "cache" / "src"
        assert layout.cache_dir("p", "src", "2.0.0") == (
            config_root / "plugins" / "cache" / "src" / "p" / "2.0.0"
        )


class TestYamlConfig:
    """Tests for prodready.yaml handling."""

    def test_yaml_overrides_defaults(self, config_root):
        """Test YAML values replace defaults."""
        _write_yaml(config_root, {"source_label": "my-market", "scope": "user"})

        settings = Settings(config_root=config_root)

        assert settings.source_label == "my-market"
        assert settings.scope == "user"

    def test_explicit_args_beat_yaml(self, config_root):
        """Test explicit arguments win over YAML."""
        _write_yaml(config_root, {"source_label": "my-market"})

        settings = Settings(config_root=config_root, source_label="explicit")

        assert settings.source_label == "explicit"

    def test_env_beats_yaml(self, config_root, monkeypatch):
        """Test env vars win over YAML."""
        _write_yaml(config_root, {"scope": "user"})
        monkeypatch.setenv("PRODREADY_SCOPE", "local")

        assert Settings(config_root=config_root).scope == "local"

    def test_unknown_keys_ignored(self, config_root):
        """Test keys outside the allowed set are dropped."""
        _write_yaml(config_root, {"config_root": "/elsewhere", "bogus": 1})

        settings = Settings(config_root=config_root)

        assert settings.config_root == config_root

    def test_non_dict_yaml_ignored(self, config_root):
        """Test a YAML list is ignored."""
        config_root.mkdir(parents=True)
        get_config_path(config_root).write_text("- a\n- b\n")

        assert Settings(config_root=config_root).source_label == "local-plugins"


class TestGetSettings:
    """Tests for get_settings."""

    def test_none_overrides_dropped(self, config_root):
        """Test None overrides fall through to defaults."""
        settings = get_settings(config_root=config_root, source_dir=None, color=None)
        assert settings.source_dir == PAYLOAD_DIR
        assert settings.color is True
