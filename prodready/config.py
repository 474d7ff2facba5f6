"""
Configuration management for the prod-ready installer.

Precedence: explicit args > env vars > prodready.yaml > defaults

Config root: ~/.claude (or CLAUDE_CONFIG_DIR / PRODREADY_CONFIG_ROOT)
Config file: <config root>/prodready.yaml (optional)
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

PAYLOAD_DIR = Path(__file__).parent / "payload"

# Keys accepted from prodready.yaml
CONFIG_KEYS = {
    "plugin_name", "plugin_version", "source_label", "scope",
    "project_path", "source_dir", "log_level", "color",
}


def _resolve_config_root() -> Path:
    """Resolve the host application's config root before Settings init."""
    raw = os.environ.get("PRODREADY_CONFIG_ROOT") or os.environ.get("CLAUDE_CONFIG_DIR", "")
    if raw:
        return Path(raw).expanduser()
    return Path.home() / ".claude"


def _load_yaml_config(config_root: Path) -> dict[str, Any]:
    """Load prodready.yaml from the config root."""
    config_file = get_config_path(config_root)
    if not config_file.exists():
        return {}
    try:
        with open(config_file) as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            logger.warning(f"prodready.yaml is not a dict, ignoring: {config_file}")
            return {}
        return {k: v for k, v in data.items() if k in CONFIG_KEYS}
    except Exception as e:
        logger.warning(f"Error loading prodready.yaml: {e}")
        return {}


def get_config_path(config_root: Path) -> Path:
    """Get the prodready.yaml path for a config root."""
    return config_root / "prodready.yaml"


class Settings(BaseSettings):
    """Installer configuration. Precedence: args > env vars > prodready.yaml > defaults."""

    config_root: Path = Field(
        default_factory=_resolve_config_root,
        description="Host application's user configuration root",
    )

    # Plugin identity (manifest values win when present)
    plugin_name: str = Field(default="prod-ready", description="Fallback plugin name")
    plugin_version: str = Field(default="1.0.0", description="Fallback plugin version")
    source_label: str = Field(
        default="local-plugins",
        description="Marketplace label used in the plugin identifier",
    )

    # Install record
    scope: str = Field(default="project", description="Install scope written to the registry")
    project_path: Path = Field(
        default_factory=Path.home,
        description="projectPath written to the registry",
    )

    source_dir: Path = Field(
        default=PAYLOAD_DIR,
        description="Directory holding .claude-plugin/plugin.json and commands/",
    )

    # Logging
    log_level: str = Field(default="WARNING", description="Log level")
    log_format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format string",
    )
    color: bool = Field(default=True, description="Colorize status lines on a TTY")

    model_config = {
        "env_prefix": "PRODREADY_",
        "extra": "ignore",
    }

    @model_validator(mode="before")
    @classmethod
    def _inject_yaml_config(cls, data: Any) -> Any:
        """Inject prodready.yaml values as fallbacks below env vars and explicit args."""
        if not isinstance(data, dict):
            data = {}

        root = data.get("config_root")
        config_root = Path(root).expanduser() if root else _resolve_config_root()

        for key, value in _load_yaml_config(config_root).items():
            if key not in data or data[key] is None:
                env_val = os.environ.get(f"PRODREADY_{key.upper()}")
                if env_val is None:
                    data[key] = value

        return data

    @property
    def layout(self) -> "Layout":
        return Layout(self.config_root.expanduser())


@dataclass(frozen=True)
class Layout:
    """On-disk locations under the config root."""

    root: Path

    @property
    def plugins_dir(self) -> Path:
        return self.root / "plugins"

    @property
    def registry_path(self) -> Path:
        return self.plugins_dir / "installed_plugins.json"

    @property
    def settings_path(self) -> Path:
        return self.root / "settings.json"

    @property
    def repos_dir(self) -> Path:
        return self.plugins_dir / "repos"

    def reference_dir(self, name: str) -> Path:
        """Reference copy, kept for inspection."""
        return self.repos_dir / name

    def cache_base(self, source_label: str) -> Path:
        """Cache directory shared by every plugin from one source."""
        return self.plugins_dir / "cache" / source_label

    def cache_root(self, name: str, source_label: str) -> Path:
        """Per-plugin cache directory holding every version."""
        return self.cache_base(source_label) / name

    def cache_dir(self, name: str, source_label: str, version: str) -> Path:
        """Versioned copy the host application loads."""
        return self.cache_root(name, source_label) / version


def get_settings(**overrides: Any) -> Settings:
    """Build settings, dropping overrides that were not provided."""
    return Settings(**{k: v for k, v in overrides.items() if v is not None})
