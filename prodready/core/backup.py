"""
Single-generation backups of JSON stores.

A backup is taken right before a store is rewritten and lives next to it as
``<store>.backup``. Each run overwrites the previous generation. Nothing in
the installer reads backups back; restoring one is a manual step.
"""

import logging
import shutil
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

BACKUP_SUFFIX = ".backup"


def backup_path(path: Path) -> Path:
    return path.with_name(path.name + BACKUP_SUFFIX)


def snapshot(path: Path) -> Optional[Path]:
    """Copy path to path.backup byte-for-byte. Returns None if path is absent."""
    if not path.is_file():
        return None
    target = backup_path(path)
    shutil.copyfile(path, target)
    logger.debug(f"Backed up {path} -> {target}")
    return target
