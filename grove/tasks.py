"""Task lifecycle: create tasks, bind and unbind projects, archive and delete.

The orchestrator is the only writer of task records besides the status
reconciler. Worktree calls return Results; whether a failure aborts the
operation (``unwrap()``) or is recorded as a warning is decided here, per
call.
"""

import contextlib
import os
import shutil
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from grove.config import GroveConfig
from grove.constants import GROVE_TASK_ENV, PRState, TaskStatus
from grove.context import ContextGenerator, context_file_path
from grove.exceptions import (
    FileSystemError,
    GroveError,
    NotFoundError,
    NotInTaskError,
    ProjectNotFoundError,
    TaskNotFoundError,
    ValidationError,
)
from grove.links import create_link
from grove.logging import get_logger, get_task_logger
from grove.models import Link, PRStatus, Project, Task, TaskProject, task_workspace_path, task_worktree_path
from grove.projects import ProjectRegistry, resolve_owner_repo
from grove.result import Err, Result
from grove.store import TaskStore
from grove.workspace import remove_workspace_file, write_workspace_file
from grove.worktree import SetupResult, WorktreeManager

logger = get_logger("tasks")

DEFAULT_PR_BODY = "## Description\n"


class PullRequestCreator(Protocol):
    def create_pr(
        self, owner: str, repo: str, title: str, head: str, base: str, body: str = "", draft: bool = False
    ) -> Result[PRStatus]: ...


@dataclass
class CreateTaskOutcome:
    """Result of creating a task; setup results are keyed by project name."""

    task: Task
    setups: dict[str, SetupResult] = field(default_factory=dict)

    @property
    def warnings(self) -> list[str]:
        return [f"{name}: {warning}" for name, setup in self.setups.items() for warning in setup.warnings]


@dataclass
class AddProjectOutcome:
    """Result of binding a project to a task."""

    task: Task
    project: TaskProject
    setup: SetupResult | None = None


@dataclass
class ArchiveOutcome:
    task: Task
    warnings: list[str] = field(default_factory=list)


def validate_task_id(task_id: str) -> str:
    """Strip and check a task id; it becomes a directory name."""
    task_id = task_id.strip()
    if not task_id:
        raise ValidationError("Task ID is required", field="id")
    if "/" in task_id or "\\" in task_id or task_id in (".", ".."):
        raise ValidationError(f'Invalid task ID "{task_id}": must not contain path separators', field="id")
    return task_id


class TaskOrchestrator:
    """Coordinates the store, worktree manager, project registry and context snapshots."""

    def __init__(
        self,
        store: TaskStore,
        worktrees: WorktreeManager,
        registry: ProjectRegistry,
        context: ContextGenerator,
        config: GroveConfig,
    ) -> None:
        self.store = store
        self.worktrees = worktrees
        self.registry = registry
        self.context = context
        self.config = config

    @staticmethod
    def worktree_path(workspace_dir: str | Path, task_id: str, project_name: str) -> Path:
        return task_worktree_path(workspace_dir, task_id, project_name)

    @property
    def workspace_dir(self) -> Path:
        return self.config.workspace_path()

    # Queries

    def find_task(self, task_id: str) -> Task | None:
        return self.store.get(task_id)

    def list_tasks(self, status: TaskStatus | None = None) -> list[Task]:
        if status is None:
            return self.store.load()
        return self.store.by_status(status)

    def detect_current_task(self, cwd: str | Path | None = None) -> Task | None:
        """Find the task the user is working in.

        ``GROVE_TASK`` wins; otherwise the first path segment of *cwd* below
        the workspace root is taken as the task id.
        """
        env_task = os.environ.get(GROVE_TASK_ENV, "").strip()
        if env_task:
            return self.store.get(env_task)

        current = Path(cwd) if cwd is not None else Path.cwd()
        try:
            relative = current.resolve().relative_to(self.workspace_dir.resolve())
        except ValueError:
            return None
        if not relative.parts:
            return None
        return self.store.get(relative.parts[0])

    def resolve_task(self, task_id: str | None = None, cwd: str | Path | None = None) -> Task:
        """Explicit id if given, else the task detected from the environment.

        Raises:
            TaskNotFoundError: If *task_id* does not exist
            NotInTaskError: If no id was given and none can be detected
        """
        if task_id:
            return self.store.require(task_id)
        task = self.detect_current_task(cwd)
        if task is None:
            raise NotInTaskError()
        return task

    # Task lifecycle

    def create_task(
        self,
        task_id: str,
        title: str,
        tickets: Iterable[str] | None = None,
        project_names: Iterable[str] = (),
        links: Iterable[str] = (),
    ) -> CreateTaskOutcome:
        """Create a task and, optionally, worktrees for its initial projects.

        Creation is all-or-nothing: if any worktree cannot be created, the
        ones already created are removed again and no record is written.
        Post-create setup runs afterwards and only ever produces warnings.

        Raises:
            ValidationError: Empty or duplicate id, empty title, repeated project
            ProjectNotFoundError: An initial project is not registered
            ExternalProcessError: A worktree could not be created
        """
        task_id = validate_task_id(task_id)
        title = title.strip()
        if not title:
            raise ValidationError("Task title is required", field="title")
        if self.store.get(task_id) is not None:
            raise ValidationError(f'Task "{task_id}" already exists', field="id")

        names = list(project_names)
        if len(set(names)) != len(names):
            raise ValidationError("A project can only be added to a task once", field="projects")
        projects = [self.registry.require(name) for name in names]

        task = Task(
            id=task_id,
            title=title,
            tickets=list(tickets) if tickets is not None else [task_id],
            links=[create_link(url) for url in links],
        )
        log = get_task_logger(task_id)

        created: list[TaskProject] = []
        try:
            for project in projects:
                binding = self._bind(task, project)
                self.worktrees.create_worktree(
                    project.path, binding.worktree_path, binding.branch, binding.base_branch
                ).unwrap()
                created.append(binding)
            task.projects = created
            self.store.add(task)
        except GroveError:
            for binding in reversed(created):
                self._rollback_worktree(binding)
            raise

        log.info(f"Created task {task_id} with {len(created)} project(s)")
        self._regenerate_context(task)
        self._write_workspace_file(task)
        outcome = CreateTaskOutcome(task=task)
        for project, binding in zip(projects, created, strict=True):
            setup = self._run_setup(project, binding)
            if setup is not None:
                outcome.setups[project.name] = setup
        return outcome

    def add_project_to_task(
        self,
        task_id: str,
        project_name: str,
        branch: str | None = None,
        base_branch: str | None = None,
        workspace_dir: str | Path | None = None,
    ) -> AddProjectOutcome:
        """Create a worktree for *project_name* and bind it to the task.

        Raises:
            TaskNotFoundError: No such task
            ValidationError: The project is already bound (checked before any git call)
            ProjectNotFoundError: The project is not registered
            ExternalProcessError: The worktree could not be created
        """
        task = self.store.require(task_id)
        if task.has_project(project_name):
            raise ValidationError(f'Project "{project_name}" is already in task "{task_id}"', field="project")
        project = self.registry.require(project_name)

        binding = self._bind(task, project, branch, base_branch, workspace_dir)
        self.worktrees.create_worktree(
            project.path, binding.worktree_path, binding.branch, binding.base_branch
        ).unwrap()

        try:
            with self._editing(task_id) as current:
                if current.has_project(project_name):
                    raise ValidationError(
                        f'Project "{project_name}" is already in task "{task_id}"', field="project"
                    )
                current.projects.append(binding)
                task = current
        except GroveError:
            self._rollback_worktree(binding)
            raise

        get_task_logger(task_id, project_name).info(f"Added project on branch {binding.branch}")
        self._regenerate_context(task)
        self._write_workspace_file(task)
        setup = self._run_setup(project, binding)
        return AddProjectOutcome(task=task, project=binding, setup=setup)

    def remove_project_from_task(self, task_id: str, project_name: str, force: bool = True) -> Task:
        """Remove the project's worktree, then its binding.

        The record is left untouched if the worktree cannot be removed.

        Raises:
            ProjectNotFoundError: The project is not bound to the task
            ValidationError: ``force`` is False and the worktree has uncommitted changes
            ExternalProcessError: git could not remove the worktree
        """
        task = self.store.require(task_id)
        binding = task.get_project(project_name)
        if binding is None:
            raise ProjectNotFoundError(project_name, task_id)

        if not force and self.worktrees.has_uncommitted_changes(binding.worktree_path).unwrap():
            raise ValidationError(
                f'Worktree for "{project_name}" has uncommitted changes',
                suggestion="Commit or stash them, or pass --force.",
            )

        self.worktrees.remove_worktree(binding.repo_path, binding.worktree_path).unwrap()

        with self._editing(task_id) as current:
            current.projects = [p for p in current.projects if p.name != project_name]
            task = current

        get_task_logger(task_id, project_name).info("Removed project")
        self._regenerate_context(task)
        self._write_workspace_file(task)
        return task

    def archive_task(self, task_id: str, cleanup: bool = False) -> ArchiveOutcome:
        """Mark the task archived, optionally removing its worktrees first.

        Worktree removal is best-effort: failures become warnings and the
        task is archived regardless.
        """
        task = self.store.require(task_id)
        warnings = self._cleanup_workspace(task) if cleanup else []

        with self._editing(task_id) as current:
            current.status = TaskStatus.ARCHIVED
            task = current

        get_task_logger(task_id).info(f"Archived task (cleanup={cleanup})")
        if not cleanup:
            self._regenerate_context(task)
        return ArchiveOutcome(task=task, warnings=warnings)

    def delete_task(self, task_id: str) -> list[str]:
        """Remove every worktree, the workspace directory and the record.

        Returns:
            Warnings for the cleanup steps that failed
        """
        task = self.store.require(task_id)
        warnings = self._cleanup_workspace(task)
        self.store.remove(task_id)
        get_task_logger(task_id).info("Deleted task")
        return warnings

    # Links, notes, context

    def add_link(self, task_id: str, url: str, label: str = "") -> Link:
        url = url.strip()
        if not url:
            raise ValidationError("Link URL is required", field="url")
        link = create_link(url, label)
        with self._editing(task_id) as task:
            if any(existing.url == url for existing in task.links):
                raise ValidationError(f"Link already exists: {url}", field="url")
            task.links.append(link)
        self._regenerate_context(task)
        return link

    def remove_link(self, task_id: str, url: str) -> Task:
        with self._editing(task_id) as task:
            remaining = [link for link in task.links if link.url != url]
            if len(remaining) == len(task.links):
                raise NotFoundError(f"Link not found: {url}")
            task.links = remaining
        self._regenerate_context(task)
        return task

    def set_notes(self, task_id: str, notes: str) -> Task:
        with self._editing(task_id) as task:
            task.notes = notes
        self._regenerate_context(task)
        return task

    def refresh_context(self, task_id: str) -> Path:
        """Rewrite the task's context and workspace files; return the context path."""
        task = self.store.require(task_id)
        self.context.regenerate(task, self.workspace_dir)
        write_workspace_file(task, self.workspace_dir)
        return context_file_path(self.workspace_dir, task_id)

    # Pull requests

    def set_pr(self, task_id: str, project_name: str, pr: PRStatus | None) -> Task:
        """Store a PR snapshot on one project binding."""
        with self._editing(task_id) as task:
            binding = task.get_project(project_name)
            if binding is None:
                raise ProjectNotFoundError(project_name, task_id)
            binding.pr = pr
        self._regenerate_context(task)
        return task

    def create_pull_request(
        self,
        task_id: str,
        project_name: str,
        provider: PullRequestCreator,
        title: str | None = None,
        body: str | None = None,
        draft: bool = False,
    ) -> PRStatus:
        """Push the project's branch, open a PR for it and record the PR on the task.

        Raises:
            ProjectNotFoundError: The project is not bound to the task
            ValidationError: The project already has an open PR, or owner/repo cannot be resolved
            ExternalProcessError: The push failed
            ProviderError: GitHub refused the pull request
        """
        task = self.store.require(task_id)
        binding = task.get_project(project_name)
        if binding is None:
            raise ProjectNotFoundError(project_name, task_id)
        if binding.pr is not None and binding.pr.status == PRState.OPEN:
            raise ValidationError(
                f'Project "{project_name}" already has PR #{binding.pr.number}',
                suggestion=f"Open it with `grove pr open {project_name}`.",
            )

        remote = self.worktrees.get_remote_url(binding.repo_path)
        org = self.config.git.org if self.config.git else ""
        owner_repo = resolve_owner_repo(remote.unwrap_or(None), project_name, org)
        if owner_repo is None:
            raise ValidationError(
                f'Cannot determine the GitHub repository for "{project_name}"',
                suggestion="Set an origin remote on the repository, or git.org in the Grove config.",
            )

        self.worktrees.push_branch(binding.worktree_path, binding.branch).unwrap()
        pr = provider.create_pr(
            *owner_repo,
            title=title or f"{task.id}: {task.title}",
            head=binding.branch,
            base=binding.base_branch,
            body=DEFAULT_PR_BODY if body is None else body,
            draft=draft,
        ).unwrap()

        self.set_pr(task_id, project_name, pr)
        get_task_logger(task_id, project_name).info(f"Opened PR #{pr.number}")
        return pr

    # Helpers

    @contextlib.contextmanager
    def _editing(self, task_id: str) -> Iterator[Task]:
        """Edit one task inside a store transaction; ``updated_at`` is bumped on success."""
        with self.store.transaction() as tasks:
            for task in tasks:
                if task.id == task_id:
                    yield task
                    task.touch()
                    return
            raise TaskNotFoundError(task_id)

    def _bind(
        self,
        task: Task,
        project: Project,
        branch: str | None = None,
        base_branch: str | None = None,
        workspace_dir: str | Path | None = None,
    ) -> TaskProject:
        root = workspace_dir if workspace_dir is not None else self.workspace_dir
        return TaskProject(
            name=project.name,
            repo_path=str(project.repo_path),
            worktree_path=str(self.worktree_path(root, task.id, project.name)),
            branch=branch or self.config.generate_branch_name(task.id, task.title),
            base_branch=base_branch or project.default_base_branch,
        )

    def _rollback_worktree(self, binding: TaskProject) -> None:
        result = self.worktrees.remove_worktree(binding.repo_path, binding.worktree_path)
        if isinstance(result, Err):
            logger.warning(f"Rollback of {binding.worktree_path} failed: {result.message}")

    def _run_setup(self, project: Project, binding: TaskProject) -> SetupResult | None:
        setup = self.registry.effective_setup(project)
        if setup.is_empty:
            return None
        return self.worktrees.run_worktree_setup(binding.repo_path, binding.worktree_path, setup)

    def _cleanup_workspace(self, task: Task) -> list[str]:
        """Best-effort removal of all worktrees, then the task directory."""
        warnings: list[str] = []
        log = get_task_logger(task.id)
        for binding in task.projects:
            result = self.worktrees.remove_worktree(binding.repo_path, binding.worktree_path)
            if isinstance(result, Err):
                warnings.append(f"{binding.name}: {result.message}")
                log.warning(f"Could not remove worktree for {binding.name}: {result.message}")
                # The directory goes away below, leaving git's record of it stale
                pruned = self.worktrees.prune(binding.repo_path)
                if isinstance(pruned, Err):
                    log.warning(f"Could not prune worktrees of {binding.name}: {pruned.message}")

        workspace = task_workspace_path(self.workspace_dir, task.id)
        try:
            remove_workspace_file(self.workspace_dir, task.id)
        except FileSystemError as e:
            warnings.append(e.message)
            log.warning(e.message)
        if workspace.exists():
            try:
                shutil.rmtree(workspace)
            except OSError as e:
                error = FileSystemError(f"Failed to remove {workspace}: {e}", path=str(workspace))
                warnings.append(error.message)
                log.warning(error.message)
        return warnings

    def _write_workspace_file(self, task: Task) -> None:
        try:
            write_workspace_file(task, self.workspace_dir)
        except GroveError as e:
            get_task_logger(task.id).warning(f"Workspace file not updated: {e.message}")

    def _regenerate_context(self, task: Task) -> None:
        try:
            self.context.regenerate(task, self.workspace_dir)
        except GroveError as e:
            get_task_logger(task.id).warning(f"Context file not updated: {e.message}")
