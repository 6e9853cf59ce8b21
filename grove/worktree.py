"""Git worktree management for Grove task workspaces."""

import os
import shutil
import subprocess
from dataclasses import dataclass, field
from pathlib import Path

from grove.command_runner import CommandResult, CommandRunner
from grove.config import expand_path
from grove.constants import CopyMode
from grove.exceptions import ErrorKind, ValidationError, WorktreeError
from grove.logging import get_logger
from grove.models import CopyRule, WorktreeSetup
from grove.result import Err, Ok, Result

logger = get_logger("worktree")


@dataclass
class WorktreeInfo:
    """One record of ``git worktree list --porcelain``."""

    path: Path
    branch: str
    head: str
    is_bare: bool = False
    is_detached: bool = False

    @property
    def name(self) -> str:
        """Get the worktree name from path."""
        return self.path.name


@dataclass
class SetupResult:
    """Outcome of post-create setup. Failures are warnings, never fatal."""

    copied_files: list[str] = field(default_factory=list)
    symlinked_files: list[str] = field(default_factory=list)
    command_results: list[CommandResult] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.warnings


def parse_worktree_list(output: str) -> list[WorktreeInfo]:
    """Parse porcelain worktree output into records delimited by blank lines.

    Args:
        output: Raw stdout of ``git worktree list --porcelain``

    Returns:
        List of WorktreeInfo objects
    """
    worktrees: list[WorktreeInfo] = []
    current: dict[str, str] = {}

    for line in [*output.splitlines(), ""]:
        if not line:
            if "path" in current:
                worktrees.append(_parse_worktree_info(current))
            current = {}
            continue

        if line.startswith("worktree "):
            current["path"] = line[9:]
        elif line.startswith("HEAD "):
            current["head"] = line[5:]
        elif line.startswith("branch "):
            current["branch"] = line[7:]
        elif line == "bare":
            current["bare"] = "true"
        elif line == "detached":
            current["detached"] = "true"

    return worktrees


def _parse_worktree_info(data: dict[str, str]) -> WorktreeInfo:
    branch = data.get("branch", "")
    if branch.startswith("refs/heads/"):
        branch = branch[11:]

    return WorktreeInfo(
        path=Path(data["path"]),
        branch=branch,
        head=data.get("head", ""),
        is_bare=data.get("bare") == "true",
        is_detached=data.get("detached") == "true",
    )


class WorktreeManager:
    """Create, remove and inspect worktrees across registered repositories.

    Every git call returns a Result; the caller decides whether a failure is
    fatal or best-effort. Git subprocesses run without a timeout.
    """

    def __init__(self, runner: CommandRunner | None = None, git_binary: str = "git") -> None:
        """Initialize worktree manager.

        Args:
            runner: Command runner used for post-create setup commands
            git_binary: Git executable
        """
        self.runner = runner or CommandRunner()
        self.git_binary = git_binary

    def _run_git(self, repo_path: str | Path, *args: str) -> Result[str]:
        """Run a git command against *repo_path*.

        Returns:
            Ok(stripped stdout) on exit 0, Err(EXTERNAL_PROCESS) otherwise
        """
        cmd = [self.git_binary, "-C", str(expand_path(repo_path)), *args]
        command = " ".join(cmd)
        logger.debug(f"Running: {command}")

        try:
            result = subprocess.run(cmd, capture_output=True, text=True, check=False)
        except OSError as e:
            error = WorktreeError(f"Failed to run git: {e}", command=command)
            return Err.from_error(error)

        if result.returncode != 0:
            stderr = result.stderr.strip() or result.stdout.strip()
            error = WorktreeError(
                f"Git command failed: {stderr}",
                command=command,
                exit_code=result.returncode,
                stderr=stderr,
            )
            return Err.from_error(error)

        return Ok(result.stdout.strip())

    def list_worktrees(self, repo_path: str | Path) -> Result[list[WorktreeInfo]]:
        """List all worktrees of a repository."""
        result = self._run_git(repo_path, "worktree", "list", "--porcelain")
        if isinstance(result, Err):
            return result
        return Ok(parse_worktree_list(result.value))

    def branch_exists(self, repo_path: str | Path, branch: str) -> bool:
        """Check whether a local branch exists."""
        result = self._run_git(repo_path, "rev-parse", "--verify", "--quiet", f"refs/heads/{branch}")
        return isinstance(result, Ok)

    def worktree_path_in_use(self, repo_path: str | Path, worktree_path: str | Path) -> bool:
        """Check whether *worktree_path* is registered as a worktree of the repository."""
        result = self.list_worktrees(repo_path)
        if isinstance(result, Err):
            return False
        target = expand_path(worktree_path).resolve()
        return any(wt.path.resolve() == target for wt in result.value)

    def create_worktree(
        self,
        repo_path: str | Path,
        worktree_path: str | Path,
        branch: str,
        base_branch: str,
    ) -> Result[Path]:
        """Create a worktree at *worktree_path*.

        Attaches to *branch* if it already exists, otherwise creates it from
        *base_branch*. An existing *worktree_path* is a hard failure; the
        call never overwrites.

        Returns:
            Ok(worktree path) or Err describing why nothing was created
        """
        path = expand_path(worktree_path)
        if path.exists():
            error = ValidationError(f"Worktree path already exists: {path}", field="worktree_path")
            return Err.from_error(error)

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            return Err(ErrorKind.FILESYSTEM, f"Cannot create {path.parent}: {e}")

        if self.branch_exists(repo_path, branch):
            result = self._run_git(repo_path, "worktree", "add", str(path), branch)
        else:
            result = self._run_git(repo_path, "worktree", "add", "-b", branch, str(path), base_branch)

        if isinstance(result, Err):
            return Err(result.kind, f"Failed to create worktree: {result.message}", result.error)

        logger.info(f"Created worktree at {path} on branch {branch}")
        return Ok(path)

    def remove_worktree(self, repo_path: str | Path, worktree_path: str | Path) -> Result[None]:
        """Force-remove a worktree (uncommitted changes are discarded)."""
        path = expand_path(worktree_path)
        result = self._run_git(repo_path, "worktree", "remove", "--force", str(path))
        if isinstance(result, Err):
            return Err(result.kind, f"Failed to remove worktree: {result.message}", result.error)

        logger.info(f"Removed worktree at {path}")
        return Ok(None)

    def has_uncommitted_changes(self, worktree_path: str | Path) -> Result[bool]:
        result = self._run_git(worktree_path, "status", "--porcelain")
        return result.map(bool)

    def get_remote_url(self, repo_path: str | Path, remote: str = "origin") -> Result[str]:
        return self._run_git(repo_path, "remote", "get-url", remote)

    def prune(self, repo_path: str | Path) -> Result[str]:
        """Prune stale worktree references."""
        return self._run_git(repo_path, "worktree", "prune")

    def push_branch(self, worktree_path: str | Path, branch: str, remote: str = "origin") -> Result[None]:
        """Push *branch* and set its upstream."""
        result = self._run_git(worktree_path, "push", "-u", remote, branch)
        if isinstance(result, Err):
            return Err(result.kind, f"Failed to push {branch}: {result.message}", result.error)
        logger.info(f"Pushed {branch} to {remote}")
        return Ok(None)

    def run_worktree_setup(
        self,
        repo_path: str | Path,
        worktree_path: str | Path,
        setup: WorktreeSetup,
    ) -> SetupResult:
        """Apply copy/symlink rules in order, then post-create commands in order.

        Each failing entry is recorded as a warning and the rest still run.
        """
        outcome = SetupResult()
        repo = expand_path(repo_path)
        worktree = expand_path(worktree_path)

        for rule in setup.copy_files:
            error = self._apply_copy_rule(rule, repo, worktree)
            destination = rule.destination or rule.source
            if error:
                outcome.warnings.append(error)
            elif rule.mode == CopyMode.SYMLINK:
                outcome.symlinked_files.append(destination)
            else:
                outcome.copied_files.append(destination)

        for command in setup.post_create_commands:
            cmd_result = self.runner.run(command, cwd=worktree)
            outcome.command_results.append(cmd_result)
            if not cmd_result.success:
                outcome.warnings.append(f"Command failed: {command} ({cmd_result.error})")

        for warning in outcome.warnings:
            logger.warning(f"Worktree setup for {worktree.name}: {warning}")
        return outcome

    def _apply_copy_rule(self, rule: CopyRule, repo: Path, worktree: Path) -> str | None:
        """Copy or symlink one entry; return a warning message on failure."""
        source = expand_path(rule.source)
        if not source.is_absolute():
            source = repo / rule.source

        # Absolute destinations keep only their name; relative ones may not climb out
        destination = rule.destination or rule.source
        if destination.startswith(("/", "~")):
            target = worktree / Path(destination).name
        else:
            target = worktree / destination
        resolved = Path(os.path.normpath(target.parent.resolve() / target.name))
        if not resolved.is_relative_to(worktree.resolve()):
            return f"Destination escapes worktree: {destination}"

        if not source.exists():
            return f"Source not found: {rule.source}"

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            if rule.mode == CopyMode.SYMLINK:
                if target.is_symlink() or target.is_file():
                    target.unlink()
                elif target.is_dir():
                    shutil.rmtree(target)
                target.symlink_to(source, target_is_directory=source.is_dir())
            elif source.is_dir():
                shutil.copytree(source, target, dirs_exist_ok=True)
            else:
                shutil.copy2(source, target)
        except OSError as e:
            return f"Failed to {rule.mode.value} {rule.source}: {e}"
        return None
