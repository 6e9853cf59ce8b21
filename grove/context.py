"""Per-task context snapshot (``.grove-context.md``) kept next to the worktrees.

Whatever the user wrote below the ``## Notes`` marker survives every
regeneration.
"""

from pathlib import Path
from typing import Protocol

from grove.constants import CONTEXT_FILE, PRState
from grove.exceptions import FileSystemError
from grove.links import CATEGORY_DISPLAY_NAMES, group_links_by_category
from grove.logging import get_logger
from grove.models import Task, TaskProject, task_workspace_path

logger = get_logger("context")

NOTES_MARKER = "## Notes"
NOTES_COMMENT = "<!-- Add your task notes below this line -->"


class ContextGenerator(Protocol):
    """Collaborator that rewrites a task's snapshot after record changes."""

    def regenerate(self, task: Task, workspace_dir: str | Path) -> None: ...


def context_file_path(workspace_dir: str | Path, task_id: str) -> Path:
    return task_workspace_path(workspace_dir, task_id) / CONTEXT_FILE


def extract_notes(content: str) -> str:
    """Return the free text following the notes marker (and its comment line)."""
    index = content.find(NOTES_MARKER)
    if index == -1:
        return ""
    notes = content[index + len(NOTES_MARKER) :]
    comment_index = notes.find(NOTES_COMMENT)
    if comment_index != -1:
        notes = notes[comment_index + len(NOTES_COMMENT) :]
    return notes.strip()


def _pr_cell(project: TaskProject) -> str:
    pr = project.pr
    if pr is None:
        return "-"
    if pr.status != PRState.OPEN:
        return f"#{pr.number} ({pr.status.value})"
    return f"#{pr.number} ({pr.review_status.value.replace('_', ' ')})"


def render_context(task: Task, notes: str = "") -> str:
    lines = [f"# Task: {task.id} - {task.title}", ""]

    if task.tickets:
        lines.append("## Tickets")
        lines.extend(f"- {ticket}" for ticket in task.tickets)
        lines.append("")

    if task.links:
        lines.append("## Links")
        for category, links in group_links_by_category(task.links).items():
            for link in links:
                label = link.label or link.url
                lines.append(f"- [{label}]({link.url}) ({CATEGORY_DISPLAY_NAMES[category]})")
        lines.append("")

    if task.notes:
        lines.extend(["## Summary", task.notes.strip(), ""])

    lines.append("## Repositories & Branches")
    lines.append("| Repo | Branch | Base | PR | CI |")
    lines.append("|------|--------|------|----|----|")
    for project in task.projects:
        ci = project.pr.ci_status.value if project.pr else "-"
        lines.append(f"| {project.name} | {project.branch} | {project.base_branch} | {_pr_cell(project)} | {ci} |")
    lines.append("")

    pr_lines = [f"- {p.name}: {p.pr.url}" for p in task.projects if p.pr]
    if pr_lines:
        lines.append("## Pull Requests")
        lines.extend(pr_lines)
        lines.append("")

    lines.append(NOTES_MARKER)
    lines.append(NOTES_COMMENT)
    if notes:
        lines.append("")
        lines.append(notes)
    return "\n".join(lines) + "\n"


class MarkdownContextGenerator:
    """Writes ``<workspace>/<task id>/.grove-context.md``."""

    def regenerate(self, task: Task, workspace_dir: str | Path) -> None:
        path = context_file_path(workspace_dir, task.id)
        notes = ""
        try:
            if path.exists():
                notes = extract_notes(path.read_text(encoding="utf-8"))
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(render_context(task, notes), encoding="utf-8")
        except OSError as e:
            raise FileSystemError(f"Failed to write context file: {e}", path=str(path)) from e
        logger.debug(f"Regenerated context for {task.id}")
