"""
Plugin models.

Plugins follow the Claude Code plugin format:
  {name}/.claude-plugin/plugin.json  # manifest
  {name}/commands/                   # slash command documents

Registry entries in installed_plugins.json are keyed by "<name>@<source>"
and hold a one-element list of InstallRecord.
"""

from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.000Z"


def utc_timestamp(now: Optional[datetime] = None) -> str:
    """Format a UTC timestamp the way the host application writes them."""
    return (now or datetime.now(timezone.utc)).strftime(TIMESTAMP_FORMAT)


def make_identifier(name: str, source_label: str) -> str:
    return f"{name}@{source_label}"


class PluginManifest(BaseModel):
    """Contents of .claude-plugin/plugin.json."""

    name: str = ""
    version: str = ""
    description: str = ""
    author: Optional[str] = None

    model_config = {"extra": "ignore"}

    @field_validator("author", mode="before")
    @classmethod
    def _author_name(cls, v: Any) -> Optional[str]:
        if isinstance(v, dict):
            return v.get("name")
        return v


class PluginPackage(BaseModel):
    """A plugin source tree ready to be staged."""

    name: str
    version: str
    source_label: str = "local-plugins"
    source_dir: Path
    manifest_path: Path
    command_paths: list[Path]
    extra_paths: list[Path] = Field(default_factory=list)
    description: str = ""

    model_config = {"frozen": True}

    @property
    def identifier(self) -> str:
        return make_identifier(self.name, self.source_label)

    @property
    def command_names(self) -> list[str]:
        return [p.stem for p in self.command_paths]


class InstallRecord(BaseModel):
    """One entry of installed_plugins.json."""

    scope: str = "project"
    install_path: str = Field(alias="installPath")
    version: str
    installed_at: Optional[str] = Field(default=None, alias="installedAt")
    last_updated: Optional[str] = Field(default=None, alias="lastUpdated")
    project_path: Optional[str] = Field(default=None, alias="projectPath")

    model_config = {"populate_by_name": True, "extra": "allow"}

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class PluginState(str, Enum):
    """Lifecycle state derived from the registry and settings stores."""

    NOT_INSTALLED = "NotInstalled"
    INSTALLED = "Installed"


class InstallReport(BaseModel):
    """Outcome of an install or uninstall run."""

    action: str
    identifier: str
    state: PluginState = PluginState.NOT_INSTALLED
    paths: list[str] = Field(default_factory=list)
    commands: list[str] = Field(default_factory=list)
    manual_actions: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors
