"""Status-change notifications."""

import shutil
import subprocess
import sys
from typing import Protocol

from grove.logging import get_logger

logger = get_logger("notifications")


class Notifier(Protocol):
    def notify(self, title: str, message: str) -> None: ...


class LogNotifier:
    """Records notifications in the log."""

    def notify(self, title: str, message: str) -> None:
        logger.info(f"{title}: {message}")


class DesktopNotifier:
    """Desktop notification via osascript (macOS) or notify-send (Linux). Best-effort."""

    def __init__(self) -> None:
        self._fallback = LogNotifier()

    def _command(self, title: str, message: str) -> list[str] | None:
        if sys.platform == "darwin" and shutil.which("osascript"):
            script = f"display notification {_quote(message)} with title {_quote(title)}"
            return ["osascript", "-e", script]
        if shutil.which("notify-send"):
            return ["notify-send", title, message]
        return None

    def notify(self, title: str, message: str) -> None:
        self._fallback.notify(title, message)
        cmd = self._command(title, message)
        if cmd is None:
            return
        try:
            subprocess.run(cmd, capture_output=True, check=False, timeout=10)
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.debug(f"Desktop notification failed: {e}")


def _quote(text: str) -> str:
    """Quote a string for AppleScript."""
    return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'
