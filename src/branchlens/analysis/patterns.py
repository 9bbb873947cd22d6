"""Advanced branch pattern detection.

Detectors for stale, duplicate and orphaned branches, the context of the
branch currently checked out and priority conflicts between the current work
and idle issues. Every detector receives its thresholds through the
AnalysisConfig given to the PatternDetector; nothing is read from global state.
"""

from datetime import datetime, timezone
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

import structlog

from branchlens.analysis.issue_refs import suggest_branch_name
from branchlens.models.branch import BranchMetrics, Issue, IssuePriority, RelationshipReport, parse_issues
from branchlens.models.config import AnalysisConfig
from branchlens.models.findings import (
    AnalysisResults,
    AnalysisStatistics,
    BranchStatus,
    ContextFinding,
    ContextFindingType,
    CurrentBranchContext,
    DuplicateCandidate,
    DuplicateResolution,
    OrphanAction,
    OrphanedBranchFinding,
    PriorityConflict,
    Severity,
    StaleBranchFinding,
    StaleLevel,
    WorkSummary,
)
from branchlens.safety import shell_quote

logger = structlog.get_logger(__name__)

# Branch status thresholds
STATUS_STALE_DAYS = 30
READY_AHEAD_COMMITS = 10
READY_LINES_CHANGED = 200
IN_PROGRESS_MAX_COMMITS = 3
REBASE_BEHIND_COMMITS = 20

# Pull request suggestion thresholds
PR_AHEAD_COMMITS = 15
PR_CHANGED_FILES = 10

# Orphaned and duplicate branch thresholds
ORPHAN_RECREATE_MIN_COMMITS = 3
SUBSTANTIAL_WORK_COMMITS = 5


def determine_status(metrics: BranchMetrics) -> BranchStatus:
    """Derive the working status of a branch; the first matching rule wins."""
    if metrics.inactive_days > STATUS_STALE_DAYS:
        return BranchStatus.STALE
    if metrics.ahead_count > READY_AHEAD_COMMITS and metrics.lines_changed > READY_LINES_CHANGED:
        return BranchStatus.READY_FOR_PR
    if metrics.commit_count < IN_PROGRESS_MAX_COMMITS:
        return BranchStatus.IN_PROGRESS
    if metrics.behind_count > REBASE_BEHIND_COMMITS:
        return BranchStatus.NEEDS_REBASE
    return BranchStatus.ACTIVE


def estimate_progress(metrics: BranchMetrics) -> str:
    """Rough progress estimate from commit count and line delta."""
    commits = metrics.commit_count
    lines = metrics.lines_changed

    if commits < 2:
        return "Just started (< 20%)"
    if commits < 5 and lines < 100:
        return "Early stage (20-40%)"
    if commits < 10 and lines < 300:
        return "In progress (40-70%)"
    if commits >= 10 or lines > 300:
        return "Near completion (70-100%)"
    return "Unknown"


def describe_last_activity(days: Optional[int]) -> str:
    if days is None:
        return "unknown"
    if days == 0:
        return "today"
    if days == 1:
        return "yesterday"
    return f"{days} days ago"


def summarize_work(metrics: BranchMetrics) -> WorkSummary:
    """Summarize the work done on a branch for display."""
    return WorkSummary(
        description=f"{metrics.commit_count} commits, {metrics.changed_files_count} files changed",
        lines_changed=f"+{metrics.lines_added} / -{metrics.lines_deleted} lines",
        last_activity=describe_last_activity(metrics.days_since_last_commit),
        estimated_progress=estimate_progress(metrics),
    )


class PatternDetector:
    """Runs the advanced detectors over collector and analyzer output."""

    def __init__(self, config: Optional[AnalysisConfig] = None) -> None:
        """Initialize the detector.

        Args:
            config: Thresholds and weights, defaults when omitted
        """
        self.config = config or AnalysisConfig()

    @staticmethod
    def _metrics_for(branch: str, metrics: Mapping[str, BranchMetrics]) -> BranchMetrics:
        found = metrics.get(branch)
        if found is None:
            logger.debug("branch_metrics_missing", branch=branch)
            return BranchMetrics.unknown(branch)
        return found

    def detect_stale_branches(
        self,
        branches: Sequence[str],
        metrics: Mapping[str, BranchMetrics],
        critical_issue_branches: Optional[Iterable[str]] = None,
    ) -> List[StaleBranchFinding]:
        """Find branches without commits for at least the stale threshold.

        A branch more than twice the threshold behind is critical, otherwise a
        warning. Branches without any resolvable commit count as critical.
        Branches working on an open critical issue are critical as soon as
        they reach ``critical_stale_threshold_days``.

        Args:
            branches: Branch names to check
            metrics: Branch name -> BranchMetrics
            critical_issue_branches: Branches linked to open critical issues

        Returns:
            Findings sorted by inactivity, longest first
        """
        threshold = self.config.stale_threshold_days
        critical_threshold = self.config.critical_stale_threshold_days
        urgent = set(critical_issue_branches or ())
        findings = []

        for branch in branches:
            data = self._metrics_for(branch, metrics)
            inactive = data.inactive_days
            if branch in urgent and inactive >= critical_threshold:
                level = StaleLevel.CRITICAL
            elif inactive < threshold:
                continue
            else:
                level = StaleLevel.CRITICAL if inactive > threshold * 2 else StaleLevel.WARNING

            findings.append(
                StaleBranchFinding(
                    branch=branch,
                    days_since_last_commit=data.days_since_last_commit,
                    last_commit_at=data.last_commit_at,
                    commit_count=data.commit_count,
                    level=level,
                )
            )

        findings.sort(
            key=lambda f: f.days_since_last_commit if f.days_since_last_commit is not None else float("inf"),
            reverse=True,
        )
        return findings

    def score_branch(self, data: BranchMetrics) -> float:
        """Score used to choose which duplicate branch to keep."""
        weights = self.config.duplicate_resolution
        recency = max(0.0, 100 - data.inactive_days)
        return data.commit_count * weights.weight_commit_count * 10 + recency * weights.weight_recency

    def analyze_duplicates(
        self, duplicates: Mapping[str, Sequence[str]], metrics: Mapping[str, BranchMetrics]
    ) -> List[DuplicateResolution]:
        """Pick a primary branch for each issue worked on by several branches.

        Args:
            duplicates: Issue id -> branch names, in input order
            metrics: Branch name -> BranchMetrics

        Returns:
            One DuplicateResolution per group of two or more branches
        """
        results = []

        for issue_id, branches in duplicates.items():
            if len(branches) < 2:
                continue

            candidates = []
            for branch in branches:
                data = self._metrics_for(branch, metrics)
                candidates.append(
                    DuplicateCandidate(
                        name=branch,
                        commit_count=data.commit_count,
                        days_since_last_commit=data.days_since_last_commit,
                        score=self.score_branch(data),
                    )
                )

            # Stable sort keeps the earlier branch first on equal scores
            ranked = sorted(candidates, key=lambda c: c.score, reverse=True)
            primary, rest = ranked[0], ranked[1:]
            severity = (
                Severity.HIGH
                if any(c.commit_count > SUBSTANTIAL_WORK_COMMITS for c in rest)
                else Severity.MEDIUM
            )
            results.append(
                DuplicateResolution(issue_id=issue_id, primary=primary, duplicates=rest, severity=severity)
            )

        return results

    def detect_orphaned_branches(
        self, report: RelationshipReport, metrics: Mapping[str, BranchMetrics]
    ) -> List[OrphanedBranchFinding]:
        """Decide what to do with branches that reference missing issues."""
        findings = []

        for orphan in report.orphaned:
            data = self._metrics_for(orphan.branch, metrics)
            action = (
                OrphanAction.RECREATE_ISSUE
                if data.commit_count > ORPHAN_RECREATE_MIN_COMMITS
                else OrphanAction.DELETE_BRANCH
            )
            severity = Severity.HIGH if data.commit_count > SUBSTANTIAL_WORK_COMMITS else Severity.MEDIUM
            findings.append(
                OrphanedBranchFinding(
                    branch=orphan.branch,
                    referenced_issue=orphan.referenced_issue,
                    commit_count=data.commit_count,
                    days_since_last_commit=data.days_since_last_commit,
                    changed_files_count=data.changed_files_count,
                    action=action,
                    severity=severity,
                )
            )

        return findings

    def analyze_current_branch(
        self,
        branch: str,
        report: RelationshipReport,
        metrics: Mapping[str, BranchMetrics],
    ) -> CurrentBranchContext:
        """Analyze the branch currently checked out.

        Args:
            branch: Active branch name
            report: Relationship report of this run
            metrics: Branch name -> BranchMetrics

        Returns:
            CurrentBranchContext with status, work summary and findings
        """
        data = self._metrics_for(branch, metrics)
        link = report.link_for(branch)
        findings = []

        threshold = self.config.warnings.unlinked_branch_commit_threshold
        if link is None and data.commit_count > threshold:
            findings.append(
                ContextFinding(
                    type=ContextFindingType.UNLINKED_CURRENT,
                    severity=Severity.HIGH,
                    message=f"You have {data.commit_count} commits on a branch not linked to any issue",
                )
            )

        if data.ahead_count > PR_AHEAD_COMMITS and data.changed_files_count > PR_CHANGED_FILES:
            base = data.base_branch or "main"
            findings.append(
                ContextFinding(
                    type=ContextFindingType.READY_FOR_PR,
                    severity=Severity.INFO,
                    message=(
                        f"Branch is {data.ahead_count} commits ahead of {base} "
                        f"with {data.changed_files_count} changed files"
                    ),
                    command=f"gh pr create -B {shell_quote(base)} -H {shell_quote(branch)}",
                )
            )

        if data.behind_count > REBASE_BEHIND_COMMITS:
            base = data.base_branch or "main"
            findings.append(
                ContextFinding(
                    type=ContextFindingType.NEEDS_REBASE,
                    severity=Severity.MEDIUM,
                    message=f"Branch is {data.behind_count} commits behind {base}",
                    command=f"git checkout {shell_quote(branch)} && git rebase {shell_quote(base)}",
                )
            )

        return CurrentBranchContext(
            branch=branch,
            linked_issue=link.issue if link else None,
            metrics=data,
            status=determine_status(data),
            work_summary=summarize_work(data),
            findings=findings,
        )

    def detect_priority_conflicts(
        self,
        current_branch: Optional[str],
        current_issue: Optional[Issue],
        open_issues: Iterable[Issue],
    ) -> List[PriorityConflict]:
        """Find idle issues whose priority clearly outranks the current work.

        Args:
            current_branch: Active branch, if any
            current_issue: Issue linked to the active branch, if any
            open_issues: Open issues without a branch working on them

        Returns:
            One PriorityConflict per outranking issue
        """
        margin = self.config.warnings.priority_mismatch_levels
        current_priority = current_issue.effective_priority if current_issue else None
        current_level = current_priority.level if current_priority else 0
        conflicts = []

        for issue in open_issues:
            if not issue.is_open or (current_issue and issue.id == current_issue.id):
                continue

            priority = issue.effective_priority
            difference = priority.level - current_level
            if difference < margin:
                continue

            conflicts.append(
                PriorityConflict(
                    current_branch=current_branch,
                    current_issue=current_issue.id if current_issue else None,
                    current_priority=current_priority.value if current_priority else "none",
                    issue=issue,
                    issue_priority=priority.value,
                    level_difference=difference,
                    severity=Severity.CRITICAL if priority == IssuePriority.CRITICAL else Severity.HIGH,
                    command=f"git stash && git checkout -b {shell_quote(suggest_branch_name(issue))}",
                )
            )

        return conflicts

    def run_full_analysis(
        self,
        branches: Sequence[str],
        issues: Iterable[Issue],
        report: RelationshipReport,
        metrics: Mapping[str, BranchMetrics],
        unassigned_issues: Sequence[Issue],
        current_branch: Optional[str] = None,
        generated_at: Optional[datetime] = None,
    ) -> AnalysisResults:
        """Run every detector and collect the results.

        Args:
            branches: Branch names analyzed
            issues: All known issues
            report: Relationship report for the same branches and issues
            metrics: Branch name -> BranchMetrics
            unassigned_issues: Open issues no branch is working on
            current_branch: Active branch, if any
            generated_at: Timestamp of the run (defaults to now, UTC)

        Returns:
            AnalysisResults
        """
        issues = parse_issues(issues)
        issue_map: Dict[str, Issue] = {issue.id: issue for issue in issues}

        critical_issue_branches = [
            link.branch
            for link in report.links
            if link.issue in issue_map
            and issue_map[link.issue].is_open
            and issue_map[link.issue].effective_priority == IssuePriority.CRITICAL
        ]
        stale = self.detect_stale_branches(branches, metrics, critical_issue_branches)
        duplicates = self.analyze_duplicates(report.duplicates, metrics)
        orphaned = self.detect_orphaned_branches(report, metrics)

        context = None
        conflicts: List[PriorityConflict] = []
        if current_branch:
            context = self.analyze_current_branch(current_branch, report, metrics)
            current_issue = issue_map.get(context.linked_issue) if context.linked_issue else None
            conflicts = self.detect_priority_conflicts(current_branch, current_issue, unassigned_issues)

        statistics = AnalysisStatistics(
            total_branches=len(branches),
            total_issues=len(issues),
            stale_count=len(stale),
            orphaned_count=len(orphaned),
            duplicate_groups=len(duplicates),
            critical_count=(
                sum(1 for f in stale if f.level == StaleLevel.CRITICAL)
                + sum(1 for f in orphaned if f.severity == Severity.HIGH)
                + sum(1 for c in conflicts if c.severity == Severity.CRITICAL)
            ),
        )

        logger.info(
            "analysis_completed",
            branches=statistics.total_branches,
            stale=statistics.stale_count,
            orphaned=statistics.orphaned_count,
            duplicate_groups=statistics.duplicate_groups,
            conflicts=len(conflicts),
        )

        return AnalysisResults(
            generated_at=generated_at or datetime.now(timezone.utc),
            current_branch=current_branch,
            report=report,
            stale_branches=stale,
            duplicates=duplicates,
            orphaned_branches=orphaned,
            current_context=context,
            priority_conflicts=conflicts,
            unassigned_issues=list(unassigned_issues),
            statistics=statistics,
            metrics=dict(metrics),
        )
