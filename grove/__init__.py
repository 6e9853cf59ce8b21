"""Grove - cross-repository task workspaces backed by git worktrees."""

__version__ = "0.4.0"

from grove.config import GroveConfig
from grove.exceptions import GroveError
from grove.models import PRStatus, Project, Task, TaskProject
from grove.reconciler import StatusReconciler, diff_pr_status
from grove.store import TaskStore
from grove.tasks import TaskOrchestrator
from grove.worktree import WorktreeManager

__all__ = [
    "__version__",
    "GroveConfig",
    "GroveError",
    "PRStatus",
    "Project",
    "StatusReconciler",
    "Task",
    "TaskOrchestrator",
    "TaskProject",
    "TaskStore",
    "WorktreeManager",
    "diff_pr_status",
]
