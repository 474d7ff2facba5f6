"""
settings.json mutations.

Only enabledPlugins[<identifier>] is owned here. Every other key, nested or
top-level, is written back exactly as it was read.
"""

import logging
from pathlib import Path
from typing import Any

from prodready.core.json_store import JsonStore
from prodready.lib.typed_errors import MalformedState

logger = logging.getLogger(__name__)

ENABLED_KEY = "enabledPlugins"


class HostSettings:
    """Sets or clears one plugin's enable flag."""

    def __init__(self, path: Path):
        self.store = JsonStore(path)

    @property
    def path(self) -> Path:
        return self.store.path

    def _enabled(self, document: dict[str, Any], create: bool) -> dict[str, Any] | None:
        enabled = document.setdefault(ENABLED_KEY, {}) if create else document.get(ENABLED_KEY)
        if enabled is not None and not isinstance(enabled, dict):
            raise MalformedState(self.path, f"'{ENABLED_KEY}' is not an object")
        return enabled

    def enable(self, identifier: str) -> None:
        def mutate(document: dict[str, Any]) -> None:
            self._enabled(document, create=True)[identifier] = True

        self.store.update(mutate)
        logger.info(f"Enabled {identifier} in {self.path}")

    def disable(self, identifier: str) -> bool:
        """Remove the flag. Returns False (and writes nothing) if it was absent."""

        def mutate(document: dict[str, Any]) -> bool:
            enabled = self._enabled(document, create=False)
            if not enabled or identifier not in enabled:
                return False
            del enabled[identifier]
            return True

        removed = self.store.update(mutate, create=False)
        if removed:
            logger.info(f"Disabled {identifier} in {self.path}")
        return removed

    def is_enabled(self, identifier: str) -> bool:
        return self.store.read_key(ENABLED_KEY, identifier) is True
