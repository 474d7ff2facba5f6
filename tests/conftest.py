"""
Pytest configuration and fixtures.
"""

import io
import json
import os
from pathlib import Path

import pytest

# Keep the developer's real ~/.claude and environment out of the tests
for _key in list(os.environ):
    if _key.startswith("PRODREADY_") or _key == "CLAUDE_CONFIG_DIR":
        del os.environ[_key]
os.environ["PRODREADY_LOG_LEVEL"] = "WARNING"

from prodready.config import Settings  # noqa: E402
from prodready.core.lifecycle import LifecycleController  # noqa: E402
from prodready.lib.status import StatusReporter  # noqa: E402

@pytest.fixture
def config_root(tmp_path: Path) -> Path:
    """An empty Claude configuration root (not created yet)."""
    return tmp_path / "home" / ".claude"


@pytest.fixture
def plugin_source(tmp_path: Path) -> Path:
    """A plugin checkout with a manifest and one command document."""
    src = tmp_path / "prod-ready-plugin"
    (src / ".claude-plugin").mkdir(parents=True)
    (src / "commands").mkdir()
    (src / ".claude-plugin" / "plugin.json").write_text(
        json.dumps({"name": "prod-ready", "version": "1.0.0", "description": "Audit"})
    )
    (src / "commands" / "prod-ready.md").write_text("# Production Readiness Audit\n")
    return src


@pytest.fixture
def settings(config_root: Path, plugin_source: Path, tmp_path: Path) -> Settings:
    """Settings aimed at the temp config root and plugin source."""
    return Settings(
        config_root=config_root,
        source_dir=plugin_source,
        project_path=tmp_path / "home",
        color=False,
    )


@pytest.fixture
def output() -> io.StringIO:
    """Buffer capturing status lines."""
    return io.StringIO()


@pytest.fixture
def controller(settings: Settings, output: io.StringIO) -> LifecycleController:
    """A LifecycleController writing status lines to output."""
    return LifecycleController(settings, StatusReporter(stream=output, color=False))


def _snapshot_tree(root: Path) -> dict[str, bytes]:
    if not root.exists():
        return {}
    return {
        str(p.relative_to(root)): p.read_bytes()
        for p in sorted(root.rglob("*"))
        if p.is_file()
    }


@pytest.fixture
def snapshot_tree():
    """Map every file under a directory to its bytes."""
    return _snapshot_tree
