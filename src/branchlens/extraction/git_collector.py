"""Per-branch activity metrics from the local Git repository."""

import math
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple, Union

import git
import structlog
from git import Repo

from branchlens.exceptions import GitRepositoryError
from branchlens.models.branch import BranchMetrics

logger = structlog.get_logger(__name__)

SECONDS_PER_DAY = 86400

_INSERTIONS = re.compile(r"(\d+) insertion")
_DELETIONS = re.compile(r"(\d+) deletion")


class GitCollector:
    """Collects branch metrics with read-only Git queries.

    Every query is fail-soft: when Git cannot answer (unknown branch, no
    commits, no base branch) the affected fields fall back to 0 or None and
    are listed in ``BranchMetrics.unresolved``. Nothing here checks out,
    fetches or otherwise mutates the repository.
    """

    def __init__(self, repo_path: Union[str, Path]) -> None:
        """Initialize the GitCollector.

        Args:
            repo_path: Path to the Git repository

        Raises:
            GitRepositoryError: If repository path is invalid
        """
        self.repo_path = Path(repo_path)
        if not self.repo_path.exists():
            raise GitRepositoryError(f"Repository path does not exist: {self.repo_path}")

        try:
            self.repo = Repo(self.repo_path)
        except (git.exc.InvalidGitRepositoryError, git.exc.NoSuchPathError) as e:
            raise GitRepositoryError(f"Invalid Git repository: {self.repo_path}") from e

    def _query(self, command: str, *args: str) -> Optional[str]:
        """Run a read-only git command, returning None when it fails."""
        try:
            return getattr(self.repo.git, command)(*args).strip()
        except git.exc.GitCommandError as e:
            logger.debug("git_query_failed", command=command, args=args, status=e.status)
            return None

    def list_local_branches(self) -> List[str]:
        """Names of all local branches."""
        return [head.name for head in self.repo.heads]

    def current_branch(self) -> Optional[str]:
        """Name of the checked-out branch, None when HEAD is detached."""
        try:
            return self.repo.active_branch.name
        except TypeError:
            return None

    def resolve_base_branch(self, base_branch: Optional[str] = None) -> Optional[str]:
        """Pick the comparison branch: the given one, else main, else master."""
        if base_branch:
            return base_branch

        heads = {head.name for head in self.repo.heads}
        for candidate in ("main", "master"):
            if candidate in heads:
                return candidate
        return None

    def collect(
        self,
        branch: str,
        base_branch: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> BranchMetrics:
        """Collect metrics for one branch.

        Args:
            branch: Local branch name
            base_branch: Branch to compare against (default: main or master)
            now: Reference time for day counts (default: current UTC time)

        Returns:
            BranchMetrics, with unresolvable fields listed in ``unresolved``
        """
        now = _as_utc(now or datetime.now(timezone.utc))
        base = self.resolve_base_branch(base_branch)

        if not branch or branch.startswith("-"):
            logger.warning("branch_name_rejected", branch=branch)
            return BranchMetrics.unknown(branch or "")

        fields: Dict[str, object] = {"name": branch, "base_branch": base}
        unresolved: List[str] = []

        created_at = self._commit_time(branch, first=True)
        if created_at is None:
            unresolved.append("age_days")
        else:
            fields["created_at"] = created_at
            fields["age_days"] = _days_between(created_at, now)

        last_commit_at = self._commit_time(branch, first=False)
        if last_commit_at is None:
            unresolved.append("days_since_last_commit")
        else:
            fields["last_commit_at"] = last_commit_at
            fields["days_since_last_commit"] = _days_between(last_commit_at, now)

        commit_count = _parse_int(self._query("rev_list", "--count", branch, "--"))
        if commit_count is None:
            unresolved.append("commit_count")
        else:
            fields["commit_count"] = commit_count

        if base is None:
            unresolved.extend(["ahead_behind", "changed_files_count", "line_stats"])
        else:
            self._collect_comparison(branch, base, fields, unresolved)

        fields["unresolved"] = unresolved
        metrics = BranchMetrics(**fields)
        logger.debug("branch_metrics_collected", branch=branch, unresolved=unresolved)
        return metrics

    def collect_many(
        self,
        branches: Iterable[str],
        base_branch: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Dict[str, BranchMetrics]:
        """Collect metrics for several branches, one query at a time."""
        now = now or datetime.now(timezone.utc)
        base = self.resolve_base_branch(base_branch)
        return {branch: self.collect(branch, base_branch=base, now=now) for branch in branches}

    def _commit_time(self, branch: str, first: bool) -> Optional[datetime]:
        if first:
            output = self._query("log", "--reverse", "--format=%at", branch, "--")
            line = output.splitlines()[0] if output else None
        else:
            line = self._query("log", "-1", "--format=%at", branch, "--")

        timestamp = _parse_int(line)
        if timestamp is None:
            return None
        return datetime.fromtimestamp(timestamp, tz=timezone.utc)

    def _collect_comparison(
        self, branch: str, base: str, fields: Dict[str, object], unresolved: List[str]
    ) -> None:
        symmetric = f"{base}...{branch}"

        counts = self._query("rev_list", "--left-right", "--count", symmetric, "--")
        parts = counts.split() if counts else []
        if len(parts) == 2 and all(p.isdigit() for p in parts):
            fields["behind_count"], fields["ahead_count"] = int(parts[0]), int(parts[1])
        else:
            unresolved.append("ahead_behind")

        names = self._query("diff", "--name-only", symmetric, "--")
        if names is None:
            unresolved.append("changed_files_count")
        else:
            fields["changed_files_count"] = len([line for line in names.splitlines() if line.strip()])

        shortstat = self._query("diff", "--shortstat", symmetric, "--")
        if shortstat is None:
            unresolved.append("line_stats")
        else:
            fields["lines_added"], fields["lines_deleted"] = parse_shortstat(shortstat)


def parse_shortstat(text: str) -> Tuple[int, int]:
    """Parse ``git diff --shortstat`` output into (insertions, deletions)."""
    insertions = _INSERTIONS.search(text or "")
    deletions = _DELETIONS.search(text or "")
    return (
        int(insertions.group(1)) if insertions else 0,
        int(deletions.group(1)) if deletions else 0,
    )


def _parse_int(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def _days_between(earlier: datetime, later: datetime) -> int:
    seconds = (later - earlier).total_seconds()
    return max(0, math.floor(seconds / SECONDS_PER_DAY))
