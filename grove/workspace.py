"""Editor workspace file listing a task's worktrees.

``<workspace>/<task-id>/<task-id>.code-workspace`` is rewritten whenever the
set of projects changes, so opening it shows every worktree of the task.
"""

from pathlib import Path
from typing import Any

from grove.constants import WORKSPACE_FILE_SUFFIX
from grove.exceptions import FileSystemError
from grove.logging import get_logger
from grove.models import Task, task_workspace_path
from grove.store import save_json

logger = get_logger("workspace")


def workspace_file_path(workspace_dir: str | Path, task_id: str) -> Path:
    return task_workspace_path(workspace_dir, task_id) / f"{task_id}{WORKSPACE_FILE_SUFFIX}"


def render_workspace(task: Task) -> dict[str, Any]:
    return {
        "folders": [{"name": f"{p.name} ({task.id})", "path": p.worktree_path} for p in task.projects],
        "settings": {"grove.taskId": task.id},
    }


def write_workspace_file(task: Task, workspace_dir: str | Path) -> Path:
    """Write the workspace file for *task* and return its path.

    Raises:
        FileSystemError: If the file cannot be written
    """
    path = workspace_file_path(workspace_dir, task.id)
    save_json(path, render_workspace(task))
    logger.debug(f"Wrote {path}")
    return path


def remove_workspace_file(workspace_dir: str | Path, task_id: str) -> bool:
    """Delete the workspace file if present. Returns True if a file was removed."""
    path = workspace_file_path(workspace_dir, task_id)
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    except OSError as e:
        raise FileSystemError(f"Failed to remove {path}: {e}", path=str(path)) from e
    return True
