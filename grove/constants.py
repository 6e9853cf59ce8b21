"""Grove constants and enumerations."""

from enum import Enum


class TaskStatus(Enum):
    """Task lifecycle status."""

    ACTIVE = "active"
    ARCHIVED = "archived"


class PRState(Enum):
    """Pull request state on the provider."""

    OPEN = "open"
    CLOSED = "closed"
    MERGED = "merged"


class ReviewStatus(Enum):
    """Aggregated review state of a pull request."""

    PENDING = "pending"
    APPROVED = "approved"
    CHANGES_REQUESTED = "changes_requested"
    NONE = "none"


class CIStatus(Enum):
    """Aggregated CI check state for a pull request head."""

    PENDING = "pending"
    PASSED = "passed"
    FAILED = "failed"
    NONE = "none"


class CopyMode(Enum):
    """How a worktree setup entry is materialized."""

    COPY = "copy"
    SYMLINK = "symlink"


class LinkCategory(Enum):
    """Category of an external link attached to a task."""

    SLACK = "slack"
    BUILDKITE = "buildkite"
    GITHUB = "github"
    JIRA = "jira"
    CONFLUENCE = "confluence"
    FIGMA = "figma"
    NOTION = "notion"
    GOOGLE_DOCS = "google-docs"
    MISC = "misc"


# Grove home layout (relative to GROVE_HOME, default ~/.grove)
GROVE_HOME_DIR = "~/.grove"
CONFIG_FILE = "config.yaml"
PROJECTS_FILE = "projects.json"
TASKS_FILE = "tasks.json"
LOGS_DIR = "logs"
CONTEXT_FILE = ".grove-context.md"
WORKSPACE_FILE_SUFFIX = ".code-workspace"
REPO_SETUP_FILE = ".grove/setup.json"

# Environment variables
GROVE_HOME_ENV = "GROVE_HOME"
GROVE_TASK_ENV = "GROVE_TASK"
GROVE_WORKSPACE_DIR_ENV = "GROVE_WORKSPACE_DIR"
GROVE_DEBUG_ENV = "GROVE_DEBUG"

# Defaults
DEFAULT_WORKSPACE_DIR = "~/grove-workspaces"
DEFAULT_BRANCH_TEMPLATE = "{ticketId}-{slug}"
DEFAULT_BASE_BRANCH = "main"
DEFAULT_POLLING_INTERVAL = 300
MIN_POLLING_INTERVAL = 30
SETUP_COMMAND_TIMEOUT_SECONDS = 120
PROVIDER_TIMEOUT_SECONDS = 30.0

GITHUB_API_BASE = "https://api.github.com"
GITHUB_WEB_BASE = "https://github.com"
GITHUB_TOKEN_ENV = "GITHUB_TOKEN"
GIT_TOKEN_KEY = "grove.git.apiToken"
KEYCHAIN_SERVICE = "grove-cli"

JIRA_TOKEN_ENV = "JIRA_API_TOKEN"
JIRA_TOKEN_KEY = "grove.jira.apiToken"
JIRA_SEARCH_LIMIT = 50
