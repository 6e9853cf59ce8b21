"""Bounded shell command execution for worktree post-create setup.

Setup commands come from project configuration and are run through
``/bin/sh -c`` so users can write ordinary shell lines (``npm ci && make``).
All execution funnels through :class:`CommandRunner`; a sandboxing runner can
be substituted without touching the worktree manager or orchestrator.
"""

import os
import subprocess
import sys
import time
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from grove.constants import SETUP_COMMAND_TIMEOUT_SECONDS
from grove.logging import get_logger

logger = get_logger("command_runner")

_OUTPUT_LIMIT = 2000


@dataclass
class CommandResult:
    """Result of command execution."""

    command: str
    exit_code: int
    stdout: str
    stderr: str
    duration_ms: int
    timed_out: bool = False
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def success(self) -> bool:
        return self.exit_code == 0 and not self.timed_out

    @property
    def error(self) -> str | None:
        """Short failure description, or None on success."""
        if self.success:
            return None
        if self.timed_out:
            return f"timed out after {self.duration_ms // 1000}s"
        detail = (self.stderr or self.stdout).strip()
        return f"exit code {self.exit_code}: {detail}" if detail else f"exit code {self.exit_code}"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "command": self.command,
            "exit_code": self.exit_code,
            "stdout": self.stdout[:_OUTPUT_LIMIT],
            "stderr": self.stderr[:_OUTPUT_LIMIT],
            "duration_ms": self.duration_ms,
            "success": self.success,
            "timed_out": self.timed_out,
            "timestamp": self.timestamp.isoformat(),
        }


class CommandRunner:
    """Run shell commands with a timeout and captured output streams."""

    def __init__(self, timeout: int = SETUP_COMMAND_TIMEOUT_SECONDS, env: dict[str, str] | None = None) -> None:
        """Initialize command runner.

        Args:
            timeout: Default timeout in seconds
            env: Extra environment variables for every command
        """
        self.timeout = timeout
        self.env = env or {}

    def _shell_argv(self, command: str) -> list[str]:
        if sys.platform == "win32":
            return ["cmd.exe", "/c", command]
        return ["/bin/sh", "-c", command]

    def run(self, command: str, cwd: str | Path, timeout: int | None = None) -> CommandResult:
        """Run *command* in *cwd*.

        Never raises for command failure; inspect ``CommandResult.success``.

        Args:
            command: Shell command line
            cwd: Working directory
            timeout: Timeout in seconds (overrides default)

        Returns:
            CommandResult with exit status and captured streams
        """
        limit = timeout or self.timeout
        exec_env = os.environ.copy()
        exec_env.update(self.env)

        logger.debug(f"Running setup command in {cwd}: {command}")
        start_time = time.monotonic()

        try:
            result = subprocess.run(
                self._shell_argv(command),
                cwd=str(cwd),
                env=exec_env,
                capture_output=True,
                text=True,
                timeout=limit,
            )
            cmd_result = CommandResult(
                command=command,
                exit_code=result.returncode,
                stdout=result.stdout,
                stderr=result.stderr,
                duration_ms=int((time.monotonic() - start_time) * 1000),
            )

        except subprocess.TimeoutExpired as e:
            raw_stdout = e.stdout
            if isinstance(raw_stdout, bytes):
                raw_stdout = raw_stdout.decode("utf-8", errors="replace")
            cmd_result = CommandResult(
                command=command,
                exit_code=-1,
                stdout=raw_stdout or "",
                stderr=f"Command timed out after {limit}s",
                duration_ms=limit * 1000,
                timed_out=True,
            )

        except OSError as e:
            cmd_result = CommandResult(
                command=command,
                exit_code=-1,
                stdout="",
                stderr=str(e),
                duration_ms=int((time.monotonic() - start_time) * 1000),
            )

        if cmd_result.success:
            logger.debug(f"Setup command succeeded in {cmd_result.duration_ms}ms: {command}")
        else:
            logger.warning(f"Setup command failed ({cmd_result.error}): {command}")
        return cmd_result
