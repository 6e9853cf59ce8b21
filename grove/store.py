"""Persistent store for Grove records: atomic JSON files and the task collection.

``load_json``/``save_json`` are the generic layer: a missing file yields the
caller's default, parent directories are created on demand, and every save
is a full rewrite through a temp file renamed into place.

``TaskStore`` owns ``tasks.json``. Mutations run inside ``transaction()``,
which holds an exclusive ``fcntl.flock`` on a sibling ``.lock`` file while it
re-reads, lets the caller mutate, and rewrites. A CLI invocation and a
background poller touching the same file therefore serialize instead of the
last writer silently discarding the other's edit.
"""

from __future__ import annotations

import contextlib
import fcntl
import json
import tempfile
import threading
from collections.abc import Iterator
from pathlib import Path
from typing import IO, Any, TypeVar

from pydantic import ValidationError as PydanticValidationError

from grove.config import grove_home
from grove.constants import TASKS_FILE, TaskStatus
from grove.exceptions import FileSystemError, TaskNotFoundError, ValidationError
from grove.logging import get_logger
from grove.models import Task

logger = get_logger("store")

T = TypeVar("T")


def load_json(path: str | Path, default: T) -> T | Any:
    """Load JSON from *path*, returning *default* when the file does not exist.

    Raises:
        FileSystemError: If the file exists but cannot be read or parsed
    """
    path = Path(path)
    if not path.exists():
        return default
    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise FileSystemError(f"Failed to parse {path.name}: {e}", path=str(path)) from e
    except OSError as e:
        raise FileSystemError(f"Failed to read {path}: {e}", path=str(path)) from e


def save_json(path: str | Path, data: Any) -> None:
    """Atomically write *data* as pretty-printed UTF-8 JSON with a trailing newline.

    Raises:
        FileSystemError: If the directory cannot be created or the write fails
    """
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        temp_fd, temp_name = tempfile.mkstemp(
            suffix=".tmp",
            prefix=f"{path.stem}_",
            dir=path.parent,
        )
    except OSError as e:
        raise FileSystemError(f"Failed to prepare {path}: {e}", path=str(path)) from e

    temp_file = Path(temp_name)
    try:
        with open(temp_fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
            f.write("\n")
        temp_file.replace(path)
    except OSError as e:
        if temp_file.exists():
            temp_file.unlink()
        raise FileSystemError(f"Failed to write {path}: {e}", path=str(path)) from e

    logger.debug(f"Saved {path}")


class TaskStore:
    """The ordered task collection persisted in ``tasks.json``."""

    def __init__(self, path: str | Path | None = None) -> None:
        """Initialize the task store.

        Args:
            path: Store file (defaults to ~/.grove/tasks.json)
        """
        self.path = Path(path) if path is not None else grove_home() / TASKS_FILE
        self._lock = threading.RLock()
        self._depth = 0
        self._tasks: list[Task] = []

    @property
    def lock_path(self) -> Path:
        return self.path.with_suffix(".lock")

    def _open_lock(self) -> IO[str]:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            return open(self.lock_path, "w")  # noqa: SIM115
        except OSError as e:
            raise FileSystemError(f"Cannot open lock file: {e}", path=str(self.lock_path)) from e

    @staticmethod
    def _release(lock_fd: IO[str]) -> None:
        try:
            fcntl.flock(lock_fd, fcntl.LOCK_UN)
        except OSError as e:
            logger.debug(f"Lock release failed: {e}")
        lock_fd.close()

    def _read(self) -> list[Task]:
        raw = load_json(self.path, [])
        if not isinstance(raw, list):
            raise FileSystemError(f"{self.path.name} must hold a JSON array", path=str(self.path))
        try:
            return [Task.model_validate(item) for item in raw]
        except PydanticValidationError as e:
            raise FileSystemError(f"Invalid task record in {self.path.name}: {e}", path=str(self.path)) from e

    def _write(self, tasks: list[Task]) -> None:
        save_json(self.path, [task.to_json_dict() for task in tasks])

    def load(self) -> list[Task]:
        """Read every task under a shared lock."""
        with self._lock:
            if self._depth > 0:
                return list(self._tasks)
            lock_fd = self._open_lock()
            try:
                fcntl.flock(lock_fd, fcntl.LOCK_SH)
                return self._read()
            finally:
                self._release(lock_fd)

    def save(self, tasks: list[Task]) -> None:
        """Rewrite the whole collection under an exclusive lock."""
        with self.transaction() as current:
            current[:] = tasks

    @contextlib.contextmanager
    def transaction(self) -> Iterator[list[Task]]:
        """Cross-process read-modify-write of the task list.

        Yields the freshly loaded list; the caller mutates it in place and the
        list is written back when the block exits without an exception.
        Nested transactions on the same store reuse the outer one.
        """
        with self._lock:
            if self._depth > 0:
                self._depth += 1
                try:
                    yield self._tasks
                finally:
                    self._depth -= 1
                return

            lock_fd = self._open_lock()
            try:
                fcntl.flock(lock_fd, fcntl.LOCK_EX)
                self._depth = 1
                self._tasks = self._read()

                yield self._tasks

                self._write(self._tasks)
            finally:
                self._depth = 0
                self._tasks = []
                self._release(lock_fd)

    def get(self, task_id: str) -> Task | None:
        for task in self.load():
            if task.id == task_id:
                return task
        return None

    def require(self, task_id: str) -> Task:
        task = self.get(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    def by_status(self, status: TaskStatus) -> list[Task]:
        return [t for t in self.load() if t.status == status]

    def active(self) -> list[Task]:
        return self.by_status(TaskStatus.ACTIVE)

    def add(self, task: Task) -> None:
        """Append a new task.

        Raises:
            ValidationError: If a task with the same id already exists
        """
        with self.transaction() as tasks:
            if any(t.id == task.id for t in tasks):
                raise ValidationError(f'Task "{task.id}" already exists', field="id")
            tasks.append(task)

    def replace(self, task: Task) -> bool:
        """Replace the stored task with the same id.

        Returns:
            False if the task no longer exists
        """
        with self.transaction() as tasks:
            for index, existing in enumerate(tasks):
                if existing.id == task.id:
                    tasks[index] = task
                    return True
        return False

    def remove(self, task_id: str) -> None:
        """Delete a task record.

        Raises:
            TaskNotFoundError: If no such task exists
        """
        with self.transaction() as tasks:
            for index, existing in enumerate(tasks):
                if existing.id == task_id:
                    del tasks[index]
                    return
            raise TaskNotFoundError(task_id)

    def find_by_project(self, project_name: str) -> list[Task]:
        return [t for t in self.load() if t.has_project(project_name)]
