"""Pull request status reconciliation.

One cycle polls the provider for every project of every active task, diffs
the result against the stored snapshot, raises notifications for the
interesting transitions and persists changed tasks.
"""

import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Protocol

from grove.config import GitProviderConfig, GroveConfig
from grove.constants import DEFAULT_POLLING_INTERVAL, MIN_POLLING_INTERVAL, CIStatus, PRState, ReviewStatus
from grove.context import ContextGenerator
from grove.exceptions import ErrorKind, GroveError, ProviderAuthError
from grove.github import GitHubClient
from grove.logging import get_logger, get_task_logger
from grove.models import PRStatus, Task, TaskProject
from grove.notifications import Notifier
from grove.projects import resolve_owner_repo
from grove.result import Err, Ok, Result
from grove.secrets import get_token
from grove.store import TaskStore
from grove.worktree import WorktreeManager

logger = get_logger("reconciler")


class PRProvider(Protocol):
    def fetch_pr_status(self, owner: str, repo: str, branch: str) -> Result[PRStatus | None]: ...


ProviderFactory = Callable[[GitProviderConfig, str], PRProvider]
TokenLookup = Callable[[str, str], str | None]


def github_provider(git_config: GitProviderConfig, token: str) -> GitHubClient:
    return GitHubClient(token, base_url=git_config.base_url)


@dataclass(frozen=True)
class PRStatusDiff:
    """Which parts of a PR snapshot changed between two polls."""

    discovered: bool = False
    review_changed: bool = False
    ci_changed: bool = False
    state_changed: bool = False

    @property
    def any(self) -> bool:
        return self.discovered or self.review_changed or self.ci_changed or self.state_changed


def diff_pr_status(old: PRStatus | None, new: PRStatus | None) -> PRStatusDiff:
    """Compare two snapshots. Field changes only count when both exist."""
    if new is None:
        return PRStatusDiff()
    if old is None:
        return PRStatusDiff(discovered=True)
    return PRStatusDiff(
        review_changed=old.review_status != new.review_status,
        ci_changed=old.ci_status != new.ci_status,
        state_changed=old.status != new.status,
    )


@dataclass
class CycleReport:
    """Outcome of one reconciliation cycle."""

    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    tasks_checked: int = 0
    projects_checked: int = 0
    updated_tasks: list[str] = field(default_factory=list)
    notifications: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    skipped_reason: str | None = None

    @property
    def skipped(self) -> bool:
        return self.skipped_reason is not None

    @property
    def success(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "tasks_checked": self.tasks_checked,
            "projects_checked": self.projects_checked,
            "updated_tasks": list(self.updated_tasks),
            "notifications": list(self.notifications),
            "errors": list(self.errors),
            "skipped_reason": self.skipped_reason,
        }


class StatusReconciler:
    """Polls PR review and CI state for all active tasks.

    Cycles never overlap: a call made while another cycle is in flight
    returns None immediately.
    """

    def __init__(
        self,
        store: TaskStore,
        provider_factory: ProviderFactory,
        notifier: Notifier,
        config: GroveConfig,
        context: ContextGenerator,
        worktrees: WorktreeManager | None = None,
        token_lookup: TokenLookup = get_token,
    ) -> None:
        self.store = store
        self.provider_factory = provider_factory
        self.notifier = notifier
        self.config = config
        self.context = context
        self.worktrees = worktrees or WorktreeManager()
        self.token_lookup = token_lookup
        self._guard = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self._guard.locked()

    def run_cycle(self) -> CycleReport | None:
        """Run one reconciliation cycle.

        Returns:
            The cycle report, or None if another cycle was already running
        """
        if not self._guard.acquire(blocking=False):
            logger.debug("Reconciliation already in progress, skipping")
            return None
        try:
            return self._run_cycle()
        finally:
            self._guard.release()

    def _run_cycle(self) -> CycleReport:
        report = CycleReport()
        git_config = self.config.git
        if git_config is None:
            report.skipped_reason = "GitHub is not configured"
            logger.debug(report.skipped_reason)
            return report

        token = self.token_lookup(git_config.token_env, git_config.token_key)
        if not token:
            report.skipped_reason = "No GitHub token available"
            logger.debug(report.skipped_reason)
            return report

        provider = self.provider_factory(git_config, token)
        try:
            for task in self.store.active():
                report.tasks_checked += 1
                changed = False
                for project in task.projects:
                    report.projects_checked += 1
                    result = self._fetch(provider, project)
                    if isinstance(result, Err):
                        if isinstance(result.error, ProviderAuthError):
                            report.skipped_reason = result.message
                            logger.warning(f"Stopping reconciliation: {result.message}")
                            return report
                        report.errors.append(f"{task.id}/{project.name}: {result.message}")
                        get_task_logger(task.id, project.name).warning(f"PR status fetch failed: {result.message}")
                        continue
                    if self._apply(task, project, result.value, report):
                        changed = True
                if changed:
                    self._persist(task, report)
        finally:
            close = getattr(provider, "close", None)
            if callable(close):
                close()

        logger.info(
            f"Reconciled {report.projects_checked} project(s) in {report.tasks_checked} task(s), "
            f"{len(report.updated_tasks)} updated"
        )
        return report

    def _fetch(self, provider: PRProvider, project: TaskProject) -> Result[PRStatus | None]:
        """Resolve owner/repo from the origin remote, then ask the provider.

        A remote that cannot be read or parsed falls back to the configured
        org with the project name as the repository.
        """
        org = self.config.git.org if self.config.git else ""
        remote = self.worktrees.get_remote_url(project.repo_path)
        remote_url = remote.value if isinstance(remote, Ok) else None
        owner_repo = resolve_owner_repo(remote_url, project.name, org)
        if owner_repo is None:
            if isinstance(remote, Err):
                return Err(remote.kind, f"Cannot read origin remote: {remote.message}", remote.error)
            return Err(ErrorKind.VALIDATION, f"Cannot parse owner/repo from {remote_url}")

        try:
            return provider.fetch_pr_status(*owner_repo, project.branch)
        except Exception as e:  # noqa: BLE001
            logger.exception(f"Provider failed for {'/'.join(owner_repo)}@{project.branch}")
            return Err(ErrorKind.INTERNAL, f"Unexpected {type(e).__name__}: {e}")

    def _apply(self, task: Task, project: TaskProject, new: PRStatus | None, report: CycleReport) -> bool:
        """Store *new* on the binding and raise notifications. Returns True if it changed."""
        old = project.pr
        if old == new:
            return False
        diff = diff_pr_status(old, new)
        project.pr = new
        if new is None:
            return True

        prefs = self.config.notifications
        label = f"{task.id}/{project.name}"
        if diff.discovered:
            self._notify(report, "PR found", f"{label}: #{new.number} {new.title or ''}".rstrip())
        if diff.review_changed and prefs.pr_approved and new.review_status == ReviewStatus.APPROVED:
            self._notify(report, "PR approved", f"{label}: #{new.number} was approved")
        if diff.ci_changed and prefs.ci_failed and new.ci_status == CIStatus.FAILED:
            self._notify(report, "CI failed", f"{label}: checks failed on #{new.number}")
        if diff.state_changed and prefs.pr_merged and new.status == PRState.MERGED:
            self._notify(report, "PR merged", f"{label}: #{new.number} was merged")
        return True

    def _notify(self, report: CycleReport, title: str, message: str) -> None:
        report.notifications.append(f"{title}: {message}")
        self.notifier.notify(title, message)

    def _persist(self, task: Task, report: CycleReport) -> None:
        """Write polled PR snapshots onto the freshly re-read record."""
        polled = {p.name: p.pr for p in task.projects}
        updated: Task | None = None
        with self.store.transaction() as tasks:
            for current in tasks:
                if current.id == task.id:
                    for project in current.projects:
                        if project.name in polled:
                            project.pr = polled[project.name]
                    current.touch()
                    updated = current
                    break

        if updated is None:
            get_task_logger(task.id).warning("Task was deleted during reconciliation, update dropped")
            return

        report.updated_tasks.append(task.id)
        try:
            self.context.regenerate(updated, self.config.workspace_path())
        except GroveError as e:
            get_task_logger(task.id).warning(f"Context file not updated: {e.message}")


class StatusPoller:
    """Runs reconciliation cycles on a background thread."""

    def __init__(self, reconciler: StatusReconciler, interval: int = DEFAULT_POLLING_INTERVAL) -> None:
        self.reconciler = reconciler
        self.interval = max(interval, MIN_POLLING_INTERVAL)
        self.last_report: CycleReport | None = None
        self._stop = threading.Event()
        self._wake = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.is_running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="grove-status-poller", daemon=True)
        self._thread.start()
        logger.info(f"Status poller started (every {self.interval}s)")

    def stop(self, timeout: float | None = None) -> None:
        """Stop polling; waits for an in-flight cycle to finish."""
        self._stop.set()
        self._wake.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("Status poller stopped")

    def trigger(self) -> None:
        """Run a cycle now instead of waiting for the interval."""
        self._wake.set()

    def _loop(self) -> None:
        while not self._stop.is_set():
            try:
                report = self.reconciler.run_cycle()
                if report is not None:
                    self.last_report = report
            except Exception:  # noqa: BLE001
                logger.exception("Reconciliation cycle failed")
            self._wake.wait(self.interval)
            self._wake.clear()
