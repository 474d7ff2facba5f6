"""
Pydantic models for plugins and install records.
"""

from prodready.models.plugin import (
    InstallRecord,
    InstallReport,
    PluginManifest,
    PluginPackage,
    PluginState,
)

__all__ = [
    "InstallRecord",
    "InstallReport",
    "PluginManifest",
    "PluginPackage",
    "PluginState",
]
