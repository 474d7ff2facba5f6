"""
prod-ready plugin installer.

Stages the prod-ready Claude Code plugin under ~/.claude, registers it in
plugins/installed_plugins.json and enables it in settings.json.
"""

__version__ = "1.0.0"
