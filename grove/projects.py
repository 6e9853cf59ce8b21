"""Registry of source repositories that can be bound to tasks."""

import re
from pathlib import Path

from pydantic import ValidationError as PydanticValidationError

from grove.config import expand_path, grove_home
from grove.constants import PROJECTS_FILE, REPO_SETUP_FILE
from grove.exceptions import FileSystemError, ProjectNotFoundError, ValidationError
from grove.logging import get_logger
from grove.models import Project, WorktreeSetup
from grove.store import load_json, save_json

logger = get_logger("projects")

_SSH_REMOTE = re.compile(r"^[\w.-]+@[^:]+:(?P<owner>[^/]+)/(?P<repo>[^/]+?)(?:\.git)?/?$")
_HTTPS_REMOTE = re.compile(r"^(?:https?|ssh|git)://[^/]+/(?P<owner>[^/]+)/(?P<repo>[^/]+?)(?:\.git)?/?$")


def parse_owner_repo(remote_url: str) -> tuple[str, str] | None:
    """Extract ``(owner, repo)`` from an SSH or HTTPS remote URL.

    >>> parse_owner_repo("git@github.com:acme/api.git")
    ('acme', 'api')
    """
    remote_url = remote_url.strip()
    for pattern in (_SSH_REMOTE, _HTTPS_REMOTE):
        match = pattern.match(remote_url)
        if match:
            return match.group("owner"), match.group("repo")
    return None


def resolve_owner_repo(remote_url: str | None, project_name: str, org: str = "") -> tuple[str, str] | None:
    """Owner/repo from the remote, falling back to ``(org, project_name)`` when an org is configured."""
    if remote_url:
        owner_repo = parse_owner_repo(remote_url)
        if owner_repo is not None:
            return owner_repo
    if org:
        return org, project_name
    return None


def is_git_repository(path: str | Path) -> bool:
    return (expand_path(path) / ".git").exists()


def read_repo_setup(repo_path: str | Path) -> WorktreeSetup | None:
    """Read the repository's own ``.grove/setup.json``, if any."""
    setup_path = expand_path(repo_path) / REPO_SETUP_FILE
    try:
        data = load_json(setup_path, None)
    except FileSystemError as e:
        logger.warning(f"Ignoring unreadable {setup_path}: {e.message}")
        return None
    if data is None:
        return None
    try:
        return WorktreeSetup.model_validate(data)
    except PydanticValidationError as e:
        logger.warning(f"Ignoring invalid {setup_path}: {e}")
        return None


def merge_setups(repo_setup: WorktreeSetup | None, project_setup: WorktreeSetup | None) -> WorktreeSetup:
    """Repo-level rules first, then project-level rules."""
    merged = WorktreeSetup()
    for setup in (repo_setup, project_setup):
        if setup is None:
            continue
        merged.copy_files.extend(setup.copy_files)
        merged.post_create_commands.extend(setup.post_create_commands)
    return merged


class ProjectRegistry:
    """Registered projects persisted in ``projects.json``."""

    def __init__(self, path: str | Path | None = None) -> None:
        self.path = Path(path) if path is not None else grove_home() / PROJECTS_FILE

    def list_projects(self) -> list[Project]:
        raw = load_json(self.path, [])
        try:
            return [Project.model_validate(item) for item in raw]
        except PydanticValidationError as e:
            raise FileSystemError(f"Invalid project record in {self.path.name}: {e}", path=str(self.path)) from e

    def _write(self, projects: list[Project]) -> None:
        save_json(self.path, [p.to_json_dict() for p in projects])

    def lookup(self, name: str) -> Project | None:
        for project in self.list_projects():
            if project.name == name:
                return project
        return None

    def require(self, name: str) -> Project:
        project = self.lookup(name)
        if project is None:
            raise ProjectNotFoundError(name)
        return project

    def register(self, project: Project) -> Project:
        """Add a project after checking name/path uniqueness and that it is a git repo.

        Raises:
            ValidationError: On duplicates or a path that is not a repository
        """
        projects = self.list_projects()
        if any(p.name == project.name for p in projects):
            raise ValidationError(f'Project with name "{project.name}" already exists', field="name")

        resolved = project.repo_path.resolve()
        if any(p.repo_path.resolve() == resolved for p in projects):
            raise ValidationError(f'Project at path "{project.path}" is already registered', field="path")

        if not is_git_repository(project.path):
            raise ValidationError(f'Path "{project.path}" is not a valid git repository', field="path")

        projects.append(project)
        self._write(projects)
        logger.info(f"Registered project {project.name} at {project.path}")
        return project

    def remove(self, name: str) -> None:
        projects = self.list_projects()
        remaining = [p for p in projects if p.name != name]
        if len(remaining) == len(projects):
            raise ProjectNotFoundError(name)
        self._write(remaining)

    def effective_setup(self, project: Project) -> WorktreeSetup:
        """Setup rules for *project*: the repository's file merged with the registry entry."""
        return merge_setups(read_repo_setup(project.path), project.setup)
