"""Grove configuration management using Pydantic."""

import os
import re
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from grove.constants import (
    CONFIG_FILE,
    DEFAULT_BASE_BRANCH,
    DEFAULT_BRANCH_TEMPLATE,
    DEFAULT_POLLING_INTERVAL,
    DEFAULT_WORKSPACE_DIR,
    GIT_TOKEN_KEY,
    GITHUB_API_BASE,
    GITHUB_TOKEN_ENV,
    GROVE_HOME_DIR,
    GROVE_HOME_ENV,
    GROVE_WORKSPACE_DIR_ENV,
    JIRA_TOKEN_ENV,
    JIRA_TOKEN_KEY,
    LOGS_DIR,
    MIN_POLLING_INTERVAL,
)
from grove.exceptions import ConfigurationError


def expand_path(path: str | Path) -> Path:
    """Expand ``~`` and environment variables in *path*."""
    return Path(os.path.expandvars(str(path))).expanduser()


def grove_home() -> Path:
    """Directory holding Grove's config, registry and task store."""
    return expand_path(os.environ.get(GROVE_HOME_ENV) or GROVE_HOME_DIR)


class GitProviderConfig(BaseModel):
    """Remote review/CI provider settings. The token itself never lives here."""

    provider: str = Field(default="github", pattern="^github$")
    base_url: str = GITHUB_API_BASE
    org: str = ""
    token_env: str = GITHUB_TOKEN_ENV
    token_key: str = GIT_TOKEN_KEY


class JiraConfig(BaseModel):
    """Jira Cloud site used to look up task tickets. Basic auth with email and API token."""

    base_url: str = ""
    email: str = ""
    token_env: str = JIRA_TOKEN_ENV
    token_key: str = JIRA_TOKEN_KEY


class NotificationsConfig(BaseModel):
    """Which status transitions raise a notification."""

    pr_approved: bool = True
    ci_failed: bool = True
    pr_merged: bool = True
    desktop: bool = True


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="warning", pattern="^(debug|info|warning|error)$")
    directory: str | None = None
    json_output: bool = True


class GroveConfig(BaseModel):
    """Complete Grove configuration."""

    workspace_dir: str = DEFAULT_WORKSPACE_DIR
    branch_prefix: str = ""
    branch_template: str = DEFAULT_BRANCH_TEMPLATE
    default_base_branch: str = DEFAULT_BASE_BRANCH
    polling_interval: int = Field(default=DEFAULT_POLLING_INTERVAL, ge=MIN_POLLING_INTERVAL)
    git: GitProviderConfig | None = None
    jira: JiraConfig | None = None
    notifications: NotificationsConfig = Field(default_factory=NotificationsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def default_path(cls) -> Path:
        return grove_home() / CONFIG_FILE

    @classmethod
    def load(cls, config_path: str | Path | None = None) -> "GroveConfig":
        """Load configuration from YAML file.

        Args:
            config_path: Path to config file. Defaults to ~/.grove/config.yaml

        Returns:
            GroveConfig instance (defaults when the file does not exist)

        Raises:
            ConfigurationError: If the file is not valid YAML or fails validation
        """
        config_path = cls.default_path() if config_path is None else Path(config_path)

        if not config_path.exists():
            return cls()

        try:
            with open(config_path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GroveConfig":
        """Create configuration from dictionary.

        Args:
            data: Configuration dictionary

        Returns:
            GroveConfig instance
        """
        try:
            return cls(**data)
        except PydanticValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    def save(self, config_path: str | Path | None = None) -> None:
        """Save configuration to YAML file.

        Args:
            config_path: Path to save config. Defaults to ~/.grove/config.yaml
        """
        config_path = self.default_path() if config_path is None else Path(config_path)

        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, "w", encoding="utf-8") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)
        config_path.chmod(0o600)

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to dictionary."""
        return self.model_dump()

    def get_value(self, key_path: str) -> Any:
        """Look up a dotted key such as ``notifications.ci_failed``.

        Returns:
            The value, or None if any segment is missing
        """
        current: Any = self.to_dict()
        for key in key_path.split("."):
            if not isinstance(current, dict) or key not in current:
                return None
            current = current[key]
        return current

    def set_value(self, key_path: str, raw: str) -> "GroveConfig":
        """Return a copy with the dotted key set, coercing booleans and numbers.

        Raises:
            ConfigurationError: If the resulting configuration is invalid
        """
        data = self.to_dict()
        keys = key_path.split(".")
        current = data
        for key in keys[:-1]:
            if not isinstance(current.get(key), dict):
                current[key] = {}
            current = current[key]

        value: Any
        if raw == "true":
            value = True
        elif raw == "false":
            value = False
        elif re.fullmatch(r"-?\d+", raw.strip()):
            value = int(raw)
        elif re.fullmatch(r"-?\d+\.\d+", raw.strip()):
            value = float(raw)
        else:
            value = raw
        current[keys[-1]] = value

        return self.from_dict(data)

    def workspace_path(self) -> Path:
        """Expanded workspace root; GROVE_WORKSPACE_DIR wins over the config file."""
        env_dir = os.environ.get(GROVE_WORKSPACE_DIR_ENV)
        return expand_path(env_dir or self.workspace_dir)

    def log_directory(self) -> Path:
        if self.logging.directory:
            return expand_path(self.logging.directory)
        return grove_home() / LOGS_DIR

    def generate_branch_name(self, ticket_id: str, title: str) -> str:
        """Render the branch template for a task.

        Supports ``{ticketId}``, ``{title}`` and ``{slug}`` placeholders.
        """
        branch = self.branch_template
        branch = branch.replace("{ticketId}", ticket_id)
        branch = branch.replace("{title}", title)
        branch = branch.replace("{slug}", slugify(title))
        return f"{self.branch_prefix}{branch}"


def slugify(text: str) -> str:
    """Lowercase, strip punctuation and join words with hyphens."""
    text = text.lower()
    text = re.sub(r"[^a-z0-9\s-]", "", text)
    return re.sub(r"[\s-]+", "-", text).strip("-")
