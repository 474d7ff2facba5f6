"""
Install / uninstall transitions.

    install:   stage files -> registry upsert -> settings enable
    uninstall: settings disable -> registry remove -> remove staged files

State (NotInstalled / Installed) is never stored; it is derived from the
registry and settings documents. Completed steps are not rolled back when a
later one fails. Every step is an idempotent overwrite or delete, so running
the same transition again converges on the intended end state.
"""

import json
import logging
from pathlib import Path
from typing import Optional

from prodready.config import Settings
from prodready.core import stager
from prodready.core.registry import PluginRegistry
from prodready.core.settings_store import HostSettings
from prodready.lib.status import StatusReporter
from prodready.lib.typed_errors import InstallerError, MalformedState, ToolingMissing
from prodready.models.plugin import (
    InstallRecord,
    InstallReport,
    PluginState,
    make_identifier,
)

logger = logging.getLogger(__name__)


class LifecycleController:
    """Runs the install and uninstall transitions against one config root."""

    def __init__(self, settings: Settings, reporter: Optional[StatusReporter] = None):
        self.settings = settings
        self.layout = settings.layout
        self.registry = PluginRegistry(self.layout.registry_path)
        self.host_settings = HostSettings(self.layout.settings_path)
        self.reporter = reporter or StatusReporter(color=settings.color)

    def plugin_name(self) -> str:
        """Plugin name from the source manifest, falling back to settings."""
        manifest = self.settings.source_dir / stager.MANIFEST_DIR / stager.MANIFEST_FILE
        if manifest.is_file():
            try:
                name = stager.read_manifest(manifest).name
            except MalformedState as e:
                logger.warning(f"Ignoring unreadable manifest: {e}")
            else:
                if name:
                    return name
        return self.settings.plugin_name

    @property
    def identifier(self) -> str:
        return make_identifier(self.plugin_name(), self.settings.source_label)

    def state(self, identifier: Optional[str] = None) -> PluginState:
        identifier = identifier or self.identifier
        if self.registry.get(identifier) and self.host_settings.is_enabled(identifier):
            return PluginState.INSTALLED
        return PluginState.NOT_INSTALLED

    def _soft_fail(self, report: InstallReport, error: ToolingMissing, manual: str) -> None:
        self.reporter.warn(str(error))
        report.warnings.append(str(error))
        report.manual_actions.append(manual)

    def install(self) -> InstallReport:
        """Stage, register and enable the plugin.

        Raises:
            MissingSourceFile: Before anything is written
            InvalidPackage: If the plugin identity would place files outside plugins/
            MalformedState: If a store cannot be parsed; earlier steps stay in place
        """
        r = self.reporter

        r.step("Verifying source files...")
        package = stager.discover_package(self.settings.source_dir, self.settings)
        r.ok(f"Source files verified ({package.name} v{package.version})")

        report = InstallReport(
            action="install",
            identifier=package.identifier,
            commands=package.command_names,
        )

        r.step("Copying plugin files...")
        reference, cache = stager.stage(package, self.layout)
        r.ok(f"Plugin files copied to {reference}")
        r.ok(f"Cache populated at {cache}")
        report.paths.extend([str(reference), str(cache)])

        r.step("Registering plugin...")
        record = InstallRecord(
            scope=self.settings.scope,
            install_path=str(cache),
            version=package.version,
            project_path=str(self.settings.project_path),
        )
        try:
            self.registry.upsert(package.identifier, record)
        except ToolingMissing as e:
            entry = json.dumps({package.identifier: [record.to_json()]})
            self._soft_fail(
                report, e, f"Add {entry} to \"plugins\" in {self.registry.path}"
            )
        else:
            r.ok(f"Plugin registered in {self.registry.path}")
            report.paths.append(str(self.registry.path))

        r.step("Enabling plugin...")
        try:
            self.host_settings.enable(package.identifier)
        except ToolingMissing as e:
            self._soft_fail(
                report,
                e,
                f"Add '\"{package.identifier}\": true' to \"enabledPlugins\" in {self.host_settings.path}",
            )
        else:
            r.ok(f"Plugin enabled in {self.host_settings.path}")
            report.paths.append(str(self.host_settings.path))

        report.state = self.state(package.identifier)
        return report

    def uninstall(self) -> InstallReport:
        """Disable, unregister and delete the plugin. Missing pieces are skipped."""
        r = self.reporter
        name = self.plugin_name()
        identifier = make_identifier(name, self.settings.source_label)
        report = InstallReport(action="uninstall", identifier=identifier)

        r.step(f"Disabling {identifier}...")
        try:
            if self.host_settings.disable(identifier):
                r.ok(f"Removed {identifier} from {self.host_settings.path}")
                report.paths.append(str(self.host_settings.path))
            else:
                r.ok("Not enabled in settings")
        except ToolingMissing as e:
            self._soft_fail(
                report,
                e,
                f"Remove \"{identifier}\" from \"enabledPlugins\" in {self.host_settings.path}",
            )
        except InstallerError as e:
            r.error(str(e))
            report.errors.append(str(e))

        r.step(f"Unregistering {identifier}...")
        try:
            if self.registry.remove(identifier):
                r.ok(f"Removed {identifier} from {self.registry.path}")
                report.paths.append(str(self.registry.path))
            else:
                r.ok("Not registered")
        except ToolingMissing as e:
            self._soft_fail(
                report, e, f"Remove \"{identifier}\" from \"plugins\" in {self.registry.path}"
            )
        except InstallerError as e:
            r.error(str(e))
            report.errors.append(str(e))

        r.step("Removing plugin files...")
        removed = stager.unstage(name, self.settings.source_label, self.layout)
        for path in removed:
            r.ok(f"Removed {path}")
        if not removed:
            r.ok("No plugin files to remove")
        report.paths.extend(str(p) for p in removed)

        report.state = PluginState.NOT_INSTALLED
        return report


def describe_paths(paths: list[str]) -> list[str]:
    """List staged files beneath each directory in paths, for the summary."""
    lines: list[str] = []
    for raw in paths:
        path = Path(raw)
        if path.is_dir():
            for f in sorted(p for p in path.rglob("*") if p.is_file()):
                lines.append(str(f))
        else:
            lines.append(raw)
    return lines
