"""
Tagged status lines for operator-facing output.

    [STEP] Registering plugin...
    [OK] Plugin registered
    [WARN] Cannot edit settings.json: ...
    [ERROR] Missing required file: ...
"""

import sys
from dataclasses import dataclass, field
from typing import Optional, TextIO

COLORS = {
    "OK": "\033[0;32m",
    "WARN": "\033[1;33m",
    "ERROR": "\033[0;31m",
    "STEP": "\033[0;36m",
}
RESET = "\033[0m"


@dataclass
class StatusReporter:
    """Prints tagged lines and remembers them for the closing summary."""

    stream: Optional[TextIO] = None
    color: bool = True
    lines: list[tuple[str, str]] = field(default_factory=list)

    def _emit(self, tag: str, message: str) -> None:
        self.lines.append((tag, message))
        out = self.stream or sys.stdout
        use_color = self.color and hasattr(out, "isatty") and out.isatty()
        label = f"{COLORS[tag]}[{tag}]{RESET}" if use_color else f"[{tag}]"
        print(f"{label} {message}", file=out)

    def ok(self, message: str) -> None:
        self._emit("OK", message)

    def warn(self, message: str) -> None:
        self._emit("WARN", message)

    def error(self, message: str) -> None:
        self._emit("ERROR", message)

    def step(self, message: str) -> None:
        self._emit("STEP", message)

    def echo(self, message: str = "") -> None:
        """Print an untagged line (headings, summary)."""
        print(message, file=self.stream or sys.stdout)

    def tagged(self, tag: str) -> list[str]:
        return [m for t, m in self.lines if t == tag]
