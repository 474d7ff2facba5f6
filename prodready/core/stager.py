"""
Plugin file staging.

Source layout:
    <source>/
    ├── .claude-plugin/plugin.json   # manifest (required)
    ├── commands/*.md                # command documents (at least one)
    └── README.md                    # optional, copied when present

Staged copies (relative to the config root):
    plugins/repos/<name>/                          # reference copy
    plugins/cache/<source>/<name>/<version>/       # copy the host application loads
"""

import json
import logging
import re
import shutil
from pathlib import Path

from prodready.config import Layout, Settings
from prodready.lib.typed_errors import InvalidPackage, MalformedState, MissingSourceFile
from prodready.models.plugin import PluginManifest, PluginPackage

logger = logging.getLogger(__name__)

MANIFEST_DIR = ".claude-plugin"
MANIFEST_FILE = "plugin.json"
COMMANDS_DIR = "commands"
EXTRA_FILES = ("README.md", "LICENSE")

# Name, version and source label each become one directory name
_PATH_PART = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9._-]*$")


def is_safe_path_part(value: str) -> bool:
    return bool(_PATH_PART.match(value))


def _is_strictly_below(target: Path, parent: Path) -> bool:
    target = target.resolve()
    parent = parent.resolve()
    try:
        target.relative_to(parent)
    except ValueError:
        return False
    return target != parent


def read_manifest(path: Path) -> PluginManifest:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise MalformedState(path, str(e)) from e
    if not isinstance(data, dict):
        raise MalformedState(path, "manifest is not an object")
    return PluginManifest.model_validate(data)


def discover_package(source_dir: Path, settings: Settings) -> PluginPackage:
    """Verify the source tree and describe it as a PluginPackage.

    Raises:
        MissingSourceFile: If the manifest or every command document is absent
        InvalidPackage: If name, version or source label is not a plain directory name
    """
    source_dir = source_dir.expanduser().resolve()
    manifest_path = source_dir / MANIFEST_DIR / MANIFEST_FILE
    if not manifest_path.is_file():
        raise MissingSourceFile(manifest_path)

    commands_dir = source_dir / COMMANDS_DIR
    command_paths = sorted(commands_dir.glob("*.md")) if commands_dir.is_dir() else []
    if not command_paths:
        raise MissingSourceFile(commands_dir / "*.md")

    manifest = read_manifest(manifest_path)
    name = manifest.name or settings.plugin_name
    version = manifest.version or settings.plugin_version
    for field, value in (
        ("name", name), ("version", version), ("source label", settings.source_label)
    ):
        if not is_safe_path_part(value):
            raise InvalidPackage(
                manifest_path, f"{field} '{value}' is not a valid directory name"
            )

    extras = [source_dir / f for f in EXTRA_FILES if (source_dir / f).is_file()]

    package = PluginPackage(
        name=name,
        version=version,
        source_label=settings.source_label,
        source_dir=source_dir,
        manifest_path=manifest_path,
        command_paths=command_paths,
        extra_paths=extras,
        description=manifest.description,
    )
    logger.debug(
        f"Discovered {package.identifier} v{package.version}: "
        f"{len(command_paths)} commands, {len(extras)} extras"
    )
    return package


def _copy_into(package: PluginPackage, target: Path) -> None:
    (target / MANIFEST_DIR).mkdir(parents=True, exist_ok=True)
    (target / COMMANDS_DIR).mkdir(parents=True, exist_ok=True)

    shutil.copyfile(package.manifest_path, target / MANIFEST_DIR / MANIFEST_FILE)
    for src in package.command_paths:
        shutil.copyfile(src, target / COMMANDS_DIR / src.name)
    for src in package.extra_paths:
        shutil.copyfile(src, target / src.name)


def stage(package: PluginPackage, layout: Layout) -> tuple[Path, Path]:
    """Copy the package into the reference and versioned cache directories.

    Existing files not belonging to the package are left alone.
    Returns (reference_dir, cache_dir).
    """
    reference = layout.reference_dir(package.name)
    cache_root = layout.cache_root(package.name, package.source_label)
    cache = layout.cache_dir(package.name, package.source_label, package.version)

    for target, parent in (
        (reference, layout.repos_dir),
        (cache_root, layout.cache_base(package.source_label)),
        (cache, cache_root),
    ):
        if not _is_strictly_below(target, parent):
            raise InvalidPackage(target, f"resolves outside {parent}")

    for target in (reference, cache):
        _copy_into(package, target)
        logger.info(f"Staged {package.name} into {target}")

    return reference, cache


def unstage(name: str, source_label: str, layout: Layout) -> list[Path]:
    """Remove the reference directory and every cached version.

    Only directories strictly below plugins/repos and plugins/cache/<source>
    are touched. Returns the directories that were actually removed.
    """
    if not (is_safe_path_part(name) and is_safe_path_part(source_label)):
        logger.error(f"Refusing to remove files for unsafe plugin name {name!r}@{source_label!r}")
        return []

    removed: list[Path] = []
    for target, parent in (
        (layout.reference_dir(name), layout.repos_dir),
        (layout.cache_root(name, source_label), layout.cache_base(source_label)),
    ):
        if not target.is_dir():
            continue
        if not _is_strictly_below(target, parent):
            logger.error(f"Refusing to delete plugin outside expected directory: {target}")
            continue
        shutil.rmtree(target)
        removed.append(target)
        logger.info(f"Removed {target}")

    return removed
