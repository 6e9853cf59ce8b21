"""Grove exception hierarchy."""

from enum import Enum
from typing import Any


class ErrorKind(Enum):
    """Coarse error categories shared by exceptions and Result values."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    EXTERNAL_PROCESS = "external_process"
    PROVIDER = "provider"
    CONNECTIVITY = "connectivity"
    FILESYSTEM = "filesystem"
    CONFIGURATION = "configuration"
    INTERNAL = "internal"


class GroveError(Exception):
    """Base exception for all Grove errors."""

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        suggestion: str | None = None,
        exit_code: int = 1,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.suggestion = suggestion
        self.exit_code = exit_code

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class ConfigurationError(GroveError):
    """Error in Grove configuration."""

    kind = ErrorKind.CONFIGURATION


class ValidationError(GroveError):
    """Rejected input: duplicate id, missing field, bad value."""

    kind = ErrorKind.VALIDATION

    def __init__(
        self,
        message: str,
        field: str | None = None,
        details: dict[str, Any] | None = None,
        suggestion: str | None = None,
    ) -> None:
        super().__init__(message, details, suggestion)
        self.field = field


class NotFoundError(GroveError):
    """A task, project or remote resource does not exist."""

    kind = ErrorKind.NOT_FOUND


class TaskNotFoundError(NotFoundError):
    """No task with the given id."""

    def __init__(self, task_id: str) -> None:
        super().__init__(
            f'Task "{task_id}" not found.',
            suggestion="Run `grove list` to see available tasks.",
        )
        self.task_id = task_id


class ProjectNotFoundError(NotFoundError):
    """No registered project (or task binding) with the given name."""

    def __init__(self, name: str, task_id: str | None = None) -> None:
        if task_id:
            message = f'Project "{name}" is not in task "{task_id}".'
            suggestion = f"Run `grove status {task_id}` to see its projects."
        else:
            message = f'Project "{name}" not found.'
            suggestion = "Run `grove project list` to see registered projects."
        super().__init__(message, suggestion=suggestion)
        self.name = name
        self.task_id = task_id


class NotInTaskError(NotFoundError):
    """The current directory is not inside a task workspace."""

    def __init__(self) -> None:
        super().__init__(
            "Not in a task workspace.",
            suggestion="Use --task <id> or cd into a task workspace.",
        )


class ExternalProcessError(GroveError):
    """A subprocess (git, setup command) exited non-zero."""

    kind = ErrorKind.EXTERNAL_PROCESS

    def __init__(
        self,
        message: str,
        command: str | None = None,
        exit_code: int | None = None,
        stderr: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.command = command
        self.returncode = exit_code
        self.stderr = stderr


class WorktreeError(ExternalProcessError):
    """Error in worktree operations."""

    def __init__(
        self,
        message: str,
        worktree_path: str | None = None,
        command: str | None = None,
        exit_code: int | None = None,
        stderr: str = "",
    ) -> None:
        super().__init__(message, command=command, exit_code=exit_code, stderr=stderr)
        self.worktree_path = worktree_path


class ProviderError(GroveError):
    """The review/CI provider answered with a non-success status."""

    kind = ErrorKind.PROVIDER

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
        suggestion: str | None = None,
    ) -> None:
        super().__init__(message, details, suggestion)
        self.status_code = status_code


class ProviderAuthError(ProviderError):
    """HTTP 401 from the provider, or no token available."""

    def __init__(
        self,
        message: str = "GitHub authentication not available.",
        suggestion: str = "Set GITHUB_TOKEN or run `grove init` and provide a GitHub token.",
    ) -> None:
        super().__init__(message, status_code=401, suggestion=suggestion)


class ProviderNotFoundError(ProviderError):
    """HTTP 404 from the provider."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=404)


class ProviderNotConfiguredError(ProviderError):
    """No provider section in the configuration."""

    kind = ErrorKind.CONFIGURATION

    def __init__(
        self,
        message: str = "GitHub is not configured.",
        suggestion: str = "Run `grove init` to set up GitHub integration.",
    ) -> None:
        super().__init__(message, suggestion=suggestion)


class ConnectivityError(GroveError):
    """Transport-level failure talking to the provider."""

    kind = ErrorKind.CONNECTIVITY


class FileSystemError(GroveError):
    """Directory or file operation failed."""

    kind = ErrorKind.FILESYSTEM

    def __init__(
        self, message: str, path: str | None = None, details: dict[str, Any] | None = None
    ) -> None:
        super().__init__(message, details)
        self.path = path
