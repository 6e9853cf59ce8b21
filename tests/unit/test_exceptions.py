"""Tests for the exception taxonomy and Result values."""

import pytest

from grove.exceptions import (
    ConnectivityError,
    ErrorKind,
    FileSystemError,
    GroveError,
    NotInTaskError,
    ProjectNotFoundError,
    ProviderAuthError,
    ProviderNotConfiguredError,
    ProviderNotFoundError,
    TaskNotFoundError,
    ValidationError,
    WorktreeError,
)
from grove.result import Err, Ok, is_ok


class TestExceptionKinds:
    @pytest.mark.parametrize(
        "error,kind",
        [
            (ValidationError("bad"), ErrorKind.VALIDATION),
            (TaskNotFoundError("T-1"), ErrorKind.NOT_FOUND),
            (NotInTaskError(), ErrorKind.NOT_FOUND),
            (WorktreeError("git failed"), ErrorKind.EXTERNAL_PROCESS),
            (ProviderAuthError(), ErrorKind.PROVIDER),
            (ProviderNotFoundError("gone"), ErrorKind.PROVIDER),
            (ProviderNotConfiguredError(), ErrorKind.CONFIGURATION),
            (ConnectivityError("offline"), ErrorKind.CONNECTIVITY),
            (FileSystemError("disk"), ErrorKind.FILESYSTEM),
            (GroveError("boom"), ErrorKind.INTERNAL),
        ],
    )
    def test_kind(self, error: GroveError, kind: ErrorKind) -> None:
        assert error.kind == kind
        assert isinstance(error, GroveError)

    def test_details_in_str(self) -> None:
        error = GroveError("Failed", details={"path": "/x"})
        assert str(error) == "Failed: {'path': '/x'}"
        assert error.exit_code == 1

    def test_not_found_messages_carry_hints(self) -> None:
        assert TaskNotFoundError("T-1").message == 'Task "T-1" not found.'
        assert "grove list" in TaskNotFoundError("T-1").suggestion
        assert ProjectNotFoundError("api", "T-1").message == 'Project "api" is not in task "T-1".'
        assert ProjectNotFoundError("api").message == 'Project "api" not found.'

    def test_provider_status_codes(self) -> None:
        assert ProviderAuthError().status_code == 401
        assert ProviderNotFoundError("x").status_code == 404

    def test_worktree_error_fields(self) -> None:
        error = WorktreeError("failed", worktree_path="/w", command="git worktree add", exit_code=128, stderr="fatal")
        assert error.returncode == 128
        assert error.stderr == "fatal"
        assert error.worktree_path == "/w"


class TestResult:
    def test_ok(self) -> None:
        result = Ok(3)
        assert result.ok and is_ok(result)
        assert result.unwrap() == 3
        assert result.map(lambda v: v * 2) == Ok(6)
        assert result.unwrap_or(0) == 3

    def test_err_unwrap_raises_carried_error(self) -> None:
        error = ValidationError("duplicate")
        result = Err.from_error(error)

        assert not result.ok and not is_ok(result)
        assert result.kind == ErrorKind.VALIDATION
        assert result.unwrap_or(5) == 5
        assert result.map(lambda v: v) is result
        with pytest.raises(ValidationError):
            result.unwrap()

    def test_err_without_exception(self) -> None:
        with pytest.raises(GroveError, match="no repo"):
            Err(ErrorKind.FILESYSTEM, "no repo").unwrap()
