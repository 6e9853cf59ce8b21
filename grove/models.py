"""Grove domain records: tasks, their bound projects, and registry entries.

Attributes are snake_case in Python; on disk they use the camelCase keys of
the store format (``repoPath``, ``reviewStatus``...).
"""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from grove.config import expand_path
from grove.constants import (
    CIStatus,
    CopyMode,
    LinkCategory,
    PRState,
    ReviewStatus,
    TaskStatus,
)


def utc_now() -> str:
    """Current time as an ISO-8601 UTC string."""
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


class GroveModel(BaseModel):
    """Base model with camelCase serialization."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=False,
    )

    def to_json_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class PRStatus(GroveModel):
    """Snapshot of a pull request's review and CI state."""

    number: int
    url: str
    status: PRState = PRState.OPEN
    review_status: ReviewStatus = ReviewStatus.NONE
    ci_status: CIStatus = CIStatus.NONE
    title: str | None = None
    updated_at: str | None = None


class JiraTicket(GroveModel):
    """Summary of a Jira issue as shown next to a task."""

    id: str
    key: str
    summary: str
    status: str
    url: str


class TaskProject(GroveModel):
    """One repository bound to a task through its own worktree and branch."""

    name: str
    repo_path: str
    worktree_path: str
    branch: str
    base_branch: str
    pr: PRStatus | None = None


class Link(GroveModel):
    """External link (Slack thread, doc, dashboard) attached to a task."""

    url: str
    label: str = ""
    category: LinkCategory = LinkCategory.MISC


class Task(GroveModel):
    """A unit of cross-repository work keyed by its ticket reference."""

    id: str
    title: str
    status: TaskStatus = TaskStatus.ACTIVE
    created_at: str = Field(default_factory=utc_now)
    updated_at: str = Field(default_factory=utc_now)
    projects: list[TaskProject] = Field(default_factory=list)
    links: list[Link] = Field(default_factory=list)
    notes: str = ""
    tickets: list[str] = Field(default_factory=list)

    @property
    def is_active(self) -> bool:
        return self.status == TaskStatus.ACTIVE

    def get_project(self, name: str) -> TaskProject | None:
        for project in self.projects:
            if project.name == name:
                return project
        return None

    def has_project(self, name: str) -> bool:
        return self.get_project(name) is not None

    def touch(self) -> None:
        self.updated_at = utc_now()


class CopyRule(GroveModel):
    """File or directory to copy/symlink from the main checkout into a new worktree."""

    source: str
    destination: str | None = None
    mode: CopyMode = CopyMode.COPY


class WorktreeSetup(GroveModel):
    """Post-create setup applied to a freshly created worktree."""

    copy_files: list[CopyRule] = Field(default_factory=list)
    post_create_commands: list[str] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.copy_files and not self.post_create_commands


class Project(GroveModel):
    """Registry entry for a source repository."""

    name: str
    path: str
    default_base_branch: str = "main"
    remote_url: str | None = None
    setup: WorktreeSetup | None = None

    @property
    def repo_path(self) -> Path:
        return expand_path(self.path)


def task_worktree_path(workspace_dir: str | Path, task_id: str, project_name: str) -> Path:
    """Worktree location of *project_name* inside task *task_id*.

    Always ``expand(workspace_dir) / task_id / project_name``.
    """
    return task_workspace_path(workspace_dir, task_id) / project_name


def task_workspace_path(workspace_dir: str | Path, task_id: str) -> Path:
    """Directory holding every worktree of a task."""
    return expand_path(workspace_dir) / task_id
