"""
prod-ready plugin installer CLI.

Usage:
    prodready-install                       # Install the plugin
    prodready-install --uninstall           # Remove the plugin
    prodready-install --status              # Show install state
    prodready-install --source DIR          # Install from a plugin checkout
    prodready-install --config-root DIR     # Target another config root
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from prodready.config import Settings, get_settings
from prodready.core.lifecycle import LifecycleController, describe_paths
from prodready.lib.logger import setup_logging
from prodready.lib.status import StatusReporter
from prodready.lib.typed_errors import InstallerError, to_typed_error
from prodready.models.plugin import InstallReport, PluginState

logger = logging.getLogger(__name__)


def _print_summary(reporter: StatusReporter, report: InstallReport) -> None:
    echo = reporter.echo
    echo()
    echo("=== Installation Complete ===")
    echo()
    echo("Plugin files:")
    for line in describe_paths(report.paths):
        echo(f"  {line}")

    if report.manual_actions:
        echo()
        echo("Manual actions required:")
        for action in report.manual_actions:
            echo(f"  - {action}")

    echo()
    echo("Next steps:")
    echo("  1. Restart Claude Code to load the plugin")
    for i, name in enumerate(report.commands, start=2):
        echo(f"  {i}. Use: /{name}")
    echo()


def cmd_install(controller: LifecycleController) -> int:
    """Install transition. Returns the process exit code."""
    reporter = controller.reporter
    reporter.echo()
    reporter.echo(f"=== Installing {controller.plugin_name()} Plugin ===")
    reporter.echo()

    try:
        report = controller.install()
    except InstallerError as e:
        typed = to_typed_error(e)
        reporter.error(typed.message)
        if typed.hint:
            reporter.echo(f"  {typed.hint}")
        return 1

    _print_summary(reporter, report)
    return 0


def cmd_uninstall(controller: LifecycleController) -> int:
    """Uninstall transition. Always exits 0; problems are reported as status lines."""
    reporter = controller.reporter
    reporter.echo(f"Uninstalling {controller.identifier}...")

    try:
        report = controller.uninstall()
    except Exception as e:
        logger.debug("Uninstall failed", exc_info=True)
        reporter.error(f"Uninstall incomplete: {e}")
        return 0

    for action in report.manual_actions:
        reporter.warn(f"Manual action: {action}")
    reporter.ok(f"{report.identifier} uninstalled. Restart Claude Code.")
    return 0


def cmd_status(controller: LifecycleController) -> int:
    """Print the derived state and the registry record, if any."""
    reporter = controller.reporter
    identifier = controller.identifier

    try:
        state = controller.state(identifier)
        record = controller.registry.get(identifier)
        enabled = controller.host_settings.is_enabled(identifier)
    except InstallerError as e:
        reporter.error(str(e))
        return 1

    reporter.echo(f"{identifier}: {state.value}")
    if record:
        reporter.echo(f"  version:     {record.version}")
        reporter.echo(f"  installPath: {record.install_path}")
        reporter.echo(f"  lastUpdated: {record.last_updated}")
    reporter.echo(f"  enabled:     {enabled}")
    if state is PluginState.NOT_INSTALLED and (record or enabled):
        reporter.warn("Partially installed; re-run the installer to converge")
    return 0


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="prodready-install",
        description="Install the prod-ready plugin for Claude Code and enable it in settings",
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--uninstall", action="store_true", help="Remove the plugin")
    mode.add_argument("--status", action="store_true", help="Show whether the plugin is installed")
    parser.add_argument(
        "--source", type=Path, default=None,
        help="Plugin source directory (default: bundled payload)",
    )
    parser.add_argument(
        "--config-root", type=Path, default=None,
        help="Claude configuration root (default: ~/.claude)",
    )
    parser.add_argument("--no-color", action="store_true", help="Disable colored output")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = create_parser()
    args = parser.parse_args(argv)

    settings: Settings = get_settings(
        config_root=args.config_root,
        source_dir=args.source,
        color=False if args.no_color else None,
    )
    setup_logging(settings, level="DEBUG" if args.verbose else None)

    controller = LifecycleController(settings, StatusReporter(color=settings.color))

    if args.uninstall:
        return cmd_uninstall(controller)
    if args.status:
        return cmd_status(controller)
    return cmd_install(controller)


if __name__ == "__main__":
    sys.exit(main())
