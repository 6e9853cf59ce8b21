"""Grove CLI commands."""

from grove.commands.archive import archive, delete
from grove.commands.config_cmd import config_group, init
from grove.commands.jira_cmd import jira_group
from grove.commands.link import context, link_group, notes
from grove.commands.list_cmd import list_cmd
from grove.commands.new import new
from grove.commands.pr import ci, pr_group
from grove.commands.project import project_group
from grove.commands.status import refresh, status
from grove.commands.task_cmd import task_group
from grove.commands.watch import watch

__all__ = [
    "archive",
    "ci",
    "config_group",
    "context",
    "delete",
    "init",
    "jira_group",
    "link_group",
    "list_cmd",
    "new",
    "notes",
    "pr_group",
    "project_group",
    "refresh",
    "status",
    "task_group",
    "watch",
]
