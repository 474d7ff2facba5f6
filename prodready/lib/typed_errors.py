"""
Typed errors for the installer.

Each failure maps to an ErrorCode plus a user-friendly title and recovery
hint, so the CLI can print an actionable summary instead of a traceback.
"""

from enum import Enum
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field


class ErrorCode(str, Enum):
    """Error codes for programmatic handling."""

    MISSING_SOURCE = "missing_source"
    TOOLING_MISSING = "tooling_missing"
    MALFORMED_STATE = "malformed_state"
    INVALID_PACKAGE = "invalid_package"
    UNKNOWN_ERROR = "unknown_error"


class InstallerError(Exception):
    """Base class for installer failures."""

    code: ErrorCode = ErrorCode.UNKNOWN_ERROR

    def __init__(self, message: str, path: Optional[Path] = None):
        super().__init__(message)
        self.path = path


class MissingSourceFile(InstallerError):
    """A required plugin source file is absent. Aborts before any store mutation."""

    code = ErrorCode.MISSING_SOURCE

    def __init__(self, path: Path):
        super().__init__(f"Missing required file: {path}", path)


class ToolingMissing(InstallerError):
    """A store cannot be edited in this environment. Degrades to a warning."""

    code = ErrorCode.TOOLING_MISSING

    def __init__(self, path: Path, reason: str):
        super().__init__(f"Cannot edit {path}: {reason}", path)
        self.reason = reason


class MalformedState(InstallerError):
    """An existing store does not parse or has an unexpected shape."""

    code = ErrorCode.MALFORMED_STATE

    def __init__(self, path: Path, detail: str):
        super().__init__(f"Malformed JSON store {path}: {detail}", path)
        self.detail = detail


class InvalidPackage(InstallerError):
    """Plugin identity cannot be used as a directory name, or a target escapes plugins/."""

    code = ErrorCode.INVALID_PACKAGE

    def __init__(self, path: Path, detail: str):
        super().__init__(f"Invalid plugin package {path}: {detail}", path)
        self.detail = detail


class TypedError(BaseModel):
    """A structured error with user-friendly info and a recovery hint."""

    code: ErrorCode = Field(description="Error code for programmatic handling")
    title: str = Field(description="User-friendly title")
    message: str = Field(description="Detailed message explaining what went wrong")
    hint: Optional[str] = Field(default=None, description="What the operator should do next")
    fatal: bool = Field(default=True, description="Whether the transition was aborted")
    path: Optional[str] = Field(default=None, description="File the error refers to")


ERROR_DEFINITIONS: dict[ErrorCode, dict[str, Any]] = {
    ErrorCode.MISSING_SOURCE: {
        "title": "Missing Source File",
        "hint": "Run from the plugin directory or pass --source.",
        "fatal": True,
    },
    ErrorCode.TOOLING_MISSING: {
        "title": "Cannot Edit Store",
        "hint": "Edit the file by hand as described in the summary.",
        "fatal": False,
    },
    ErrorCode.MALFORMED_STATE: {
        "title": "Malformed Store",
        "hint": "Fix the JSON by hand (a .backup copy may exist), then re-run.",
        "fatal": True,
    },
    ErrorCode.INVALID_PACKAGE: {
        "title": "Invalid Plugin Package",
        "hint": "Use only letters, digits, '.', '-' and '_' in the manifest name and version.",
        "fatal": True,
    },
    ErrorCode.UNKNOWN_ERROR: {
        "title": "Unexpected Error",
        "hint": "Re-run with --verbose for details.",
        "fatal": True,
    },
}


def to_typed_error(error: Exception) -> TypedError:
    """Convert an exception into a TypedError."""
    code = error.code if isinstance(error, InstallerError) else ErrorCode.UNKNOWN_ERROR
    definition = ERROR_DEFINITIONS[code]
    path = getattr(error, "path", None)
    return TypedError(
        code=code,
        title=definition["title"],
        message=str(error),
        hint=definition["hint"],
        fatal=definition["fatal"],
        path=str(path) if path else None,
    )
