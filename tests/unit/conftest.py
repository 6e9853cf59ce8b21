"""Shared fixtures for unit tests."""

from unittest.mock import MagicMock

import pytest

from grove.constants import CIStatus, PRState, ReviewStatus
from grove.models import PRStatus
from grove.result import Ok


@pytest.fixture
def pr_status() -> PRStatus:
    """An open PR awaiting review with CI running."""
    return PRStatus(
        number=42,
        url="https://github.com/acme/api/pull/42",
        status=PRState.OPEN,
        review_status=ReviewStatus.PENDING,
        ci_status=CIStatus.PENDING,
        title="Fix login",
    )


@pytest.fixture
def mock_worktrees() -> MagicMock:
    """Worktree manager whose git calls all succeed."""
    worktrees = MagicMock()
    worktrees.create_worktree.side_effect = lambda repo, path, branch, base: Ok(path)
    worktrees.remove_worktree.return_value = Ok(None)
    worktrees.has_uncommitted_changes.return_value = Ok(False)
    worktrees.get_remote_url.return_value = Ok("git@github.com:acme/api.git")
    worktrees.prune.return_value = Ok("")
    worktrees.push_branch.return_value = Ok(None)
    return worktrees
