"""
JSON configuration stores.

A JsonStore wraps one JSON document on disk (installed_plugins.json,
settings.json). Documents are plain ordered dicts so keys the installer does
not own round-trip untouched. Every read-modify-write cycle:

1. takes an exclusive flock on the store's directory,
2. loads the document (or a default when the file is absent),
3. applies the mutation to a copy in memory,
4. if anything changed, snapshots the old file and atomically replaces it.
"""

import copy
import errno
import json
import logging
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Iterator, Optional, TypeVar

from prodready.core.backup import snapshot
from prodready.lib.typed_errors import MalformedState, ToolingMissing

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _permission_denied(exc: BaseException) -> bool:
    if isinstance(exc, PermissionError):
        return True
    if isinstance(exc, OSError):
        return exc.errno in (errno.EACCES, errno.EPERM, errno.EROFS)
    return False


@contextmanager
def _locked_dir(directory: Path) -> Iterator[None]:
    """Hold an exclusive lock on a directory for the duration of the block."""
    if os.name == "nt":
        yield
        return
    import fcntl

    fd = os.open(directory, os.O_RDONLY)
    try:
        fcntl.flock(fd, fcntl.LOCK_EX)
        try:
            yield
        finally:
            fcntl.flock(fd, fcntl.LOCK_UN)
    finally:
        os.close(fd)


def _atomic_write_json(path: Path, data: dict[str, Any]) -> None:
    """Atomically write a JSON file."""
    content = json.dumps(data, indent=2, ensure_ascii=False) + "\n"
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=".tmp", prefix=f".{path.stem}-")
    closed = False
    try:
        os.write(fd, content.encode("utf-8"))
        os.fsync(fd)
        os.close(fd)
        closed = True
        os.rename(tmp_path, path)
    except Exception:
        if not closed:
            os.close(fd)
        if Path(tmp_path).exists():
            os.unlink(tmp_path)
        raise


class JsonStore:
    """One JSON document with load-or-default, in-memory mutation and atomic write."""

    def __init__(
        self,
        path: Path,
        default_factory: Callable[[], dict[str, Any]] = dict,
    ):
        self.path = path
        self.default_factory = default_factory

    def load(self) -> dict[str, Any]:
        """Read the document, or return the default when the file is absent."""
        if not self.path.exists():
            return self.default_factory()
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise MalformedState(self.path, str(e)) from e
        except OSError as e:
            if _permission_denied(e):
                raise ToolingMissing(self.path, e.strerror or str(e)) from e
            raise
        if not isinstance(data, dict):
            raise MalformedState(self.path, f"top level is {type(data).__name__}, expected object")
        return data

    def write(self, data: dict[str, Any]) -> None:
        """Snapshot the current file (if any) and replace it atomically."""
        try:
            snapshot(self.path)
            _atomic_write_json(self.path, data)
        except OSError as e:
            if _permission_denied(e):
                raise ToolingMissing(self.path, e.strerror or str(e)) from e
            raise
        logger.debug(f"Wrote {self.path}")

    def update(self, mutate: Callable[[dict[str, Any]], T], create: bool = True) -> T:
        """Apply mutate to the document under lock and persist it if it changed.

        With create=False an absent store is left absent and mutate runs
        against the default document without writing anything.
        """
        if not self.path.exists() and not create:
            return mutate(self.default_factory())

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            if _permission_denied(e):
                raise ToolingMissing(self.path, e.strerror or str(e)) from e
            raise

        with _locked_dir(self.path.parent):
            original = self.load()
            document = copy.deepcopy(original)
            result = mutate(document)
            if json.dumps(document) != json.dumps(original) or not self.path.exists():
                self.write(document)
            else:
                logger.debug(f"{self.path} unchanged, not rewritten")
            return result

    def read_key(self, *keys: str) -> Optional[Any]:
        """Walk nested keys, returning None when any level is missing."""
        node: Any = self.load()
        for key in keys:
            if not isinstance(node, dict) or key not in node:
                return None
            node = node[key]
        return node
