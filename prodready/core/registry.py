"""
installed_plugins.json mutations.

Format (other top-level keys such as "version" are preserved):

    {
      "plugins": {
        "prod-ready@local-plugins": [
          {"scope": "project", "installPath": "...", "version": "1.0.0",
           "installedAt": "...", "lastUpdated": "...", "projectPath": "..."}
        ]
      }
    }
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from prodready.core.json_store import JsonStore
from prodready.lib.typed_errors import MalformedState
from prodready.models.plugin import InstallRecord, utc_timestamp

logger = logging.getLogger(__name__)


def _empty_registry() -> dict[str, Any]:
    return {"plugins": {}}


class PluginRegistry:
    """Upserts and removes install records keyed by plugin identifier."""

    def __init__(self, path: Path):
        self.store = JsonStore(path, default_factory=_empty_registry)

    @property
    def path(self) -> Path:
        return self.store.path

    def _plugins(self, document: dict[str, Any]) -> dict[str, Any]:
        plugins = document.setdefault("plugins", {})
        if not isinstance(plugins, dict):
            raise MalformedState(self.path, "'plugins' is not an object")
        return plugins

    def upsert(
        self,
        identifier: str,
        record: InstallRecord,
        now: Optional[datetime] = None,
    ) -> InstallRecord:
        """Replace the entry for identifier with a single fresh record.

        installedAt and lastUpdated are both reset to the current time.
        """
        timestamp = utc_timestamp(now)
        stamped = record.model_copy(update={"installed_at": timestamp, "last_updated": timestamp})

        def mutate(document: dict[str, Any]) -> None:
            self._plugins(document)[identifier] = [stamped.to_json()]

        self.store.update(mutate)
        logger.info(f"Registered {identifier} at {stamped.install_path}")
        return stamped

    def remove(self, identifier: str) -> bool:
        """Drop identifier from the registry. Returns False if it was not there."""

        def mutate(document: dict[str, Any]) -> bool:
            plugins = document.get("plugins")
            if plugins is None:
                return False
            if not isinstance(plugins, dict):
                raise MalformedState(self.path, "'plugins' is not an object")
            return plugins.pop(identifier, None) is not None

        removed = self.store.update(mutate, create=False)
        if removed:
            logger.info(f"Unregistered {identifier}")
        return removed

    def get(self, identifier: str) -> Optional[InstallRecord]:
        """Return the first install record for identifier, if any."""
        entries = self.store.read_key("plugins", identifier)
        if not isinstance(entries, list) or not entries:
            return None
        try:
            return InstallRecord.model_validate(entries[0])
        except ValueError as e:
            raise MalformedState(self.path, f"bad record for {identifier}: {e}") from e
