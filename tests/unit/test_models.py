"""Tests for Grove domain records."""

from pathlib import Path

import pytest

from grove.constants import CopyMode, LinkCategory
from grove.models import Project, Task, WorktreeSetup, task_workspace_path, task_worktree_path, utc_now
from grove.tasks import TaskOrchestrator


class TestWorktreePath:
    """The worktree location is always workspace/task/project."""

    @pytest.mark.parametrize("task_id", ["T-1", "PROJ-123", "ticket_with_underscores", "a.b"])
    def test_formula(self, tmp_path: Path, task_id: str) -> None:
        assert task_workspace_path(tmp_path, task_id) == tmp_path / task_id
        assert task_worktree_path(tmp_path, task_id, "api") == tmp_path / task_id / "api"
        assert TaskOrchestrator.worktree_path(tmp_path, task_id, "api") == tmp_path / task_id / "api"

    def test_home_is_expanded(self) -> None:
        assert task_workspace_path("~/ws", "T-1") == Path.home() / "ws" / "T-1"


class TestTask:
    def test_defaults(self) -> None:
        task = Task(id="T-1", title="Title")
        assert task.is_active
        assert task.projects == []
        assert task.created_at.endswith("Z")

    def test_project_helpers(self, make_task) -> None:
        task = make_task(projects=["api", "web"])
        assert task.has_project("web")
        assert task.get_project("api").name == "api"
        assert task.get_project("db") is None

    def test_touch_updates_timestamp(self) -> None:
        task = Task(id="T-1", title="Title", updated_at="2020-01-01T00:00:00Z")
        task.touch()
        assert task.updated_at != "2020-01-01T00:00:00Z"

    def test_parses_camel_case(self) -> None:
        task = Task.model_validate(
            {"id": "T-1", "title": "x", "createdAt": "2024-01-01T00:00:00Z", "links": [{"url": "u"}]}
        )
        assert task.created_at == "2024-01-01T00:00:00Z"
        assert task.links[0].category == LinkCategory.MISC


class TestProject:
    def test_setup_parsing(self) -> None:
        project = Project.model_validate(
            {
                "name": "api",
                "path": "~/src/api",
                "defaultBaseBranch": "develop",
                "setup": {
                    "copyFiles": [{"source": ".env", "mode": "symlink"}],
                    "postCreateCommands": ["make deps"],
                },
            }
        )
        assert project.default_base_branch == "develop"
        assert project.setup.copy_files[0].mode == CopyMode.SYMLINK
        assert project.repo_path == Path.home() / "src" / "api"

    def test_empty_setup(self) -> None:
        assert WorktreeSetup().is_empty


def test_utc_now_format() -> None:
    assert utc_now().endswith("Z")
    assert "T" in utc_now()
