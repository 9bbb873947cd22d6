"""Recommendation engine.

Turns detector findings into ranked recommendations, each carrying a literal
shell command that can be copied into a terminal as-is. Branch names and
titles are shell-quoted before they are placed into a command.
"""

from typing import Dict, List, Optional

import structlog

from branchlens.analysis.issue_refs import suggest_branch_name
from branchlens.models.branch import IssuePriority
from branchlens.models.config import AnalysisConfig
from branchlens.models.findings import (
    AnalysisResults,
    ContextFindingType,
    OrphanAction,
    Severity,
    StaleLevel,
)
from branchlens.models.recommendation import (
    Recommendation,
    RecommendationSummary,
    RecommendationType,
)
from branchlens.safety import sanitize_issue_title, shell_quote

logger = structlog.get_logger(__name__)

# Lower rank means act first
PRIORITY_RANKS: Dict[RecommendationType, int] = {
    RecommendationType.UNLINKED_CURRENT: 0,
    RecommendationType.PRIORITY_MISMATCH: 0,
    RecommendationType.FORGOTTEN_CRITICAL: 1,
    RecommendationType.ORPHANED_BRANCH: 2,
    RecommendationType.DUPLICATE_RESOLUTION: 2,
    RecommendationType.NEEDS_REBASE: 2,
    RecommendationType.STALE_BRANCH_CLEANUP: 3,
    RecommendationType.UNASSIGNED_ISSUE: 3,
    RecommendationType.READY_FOR_PR: 4,
    RecommendationType.UNLINKED_BRANCH: 4,
}
CRITICAL_STALE_RANK = 1
HIGH_UNASSIGNED_RANK = 2
STALE_REACTIVATE_MIN_COMMITS = 5

# Never suggested for linking
DEFAULT_BASE_BRANCHES = ("main", "master")

_TIERS = [
    ((Severity.CRITICAL, Severity.HIGH), "🚨 CRITICAL SITUATION:", "[CRITICAL]:"),
    ((Severity.MEDIUM,), "⚠️  CLEANUP REQUIRED:", "[WARNING]:"),
    ((Severity.LOW, Severity.INFO), "📊 PROGRESS & NEXT STEPS:", "[INFO]:"),
]


class RecommendationEngine:
    """Generates, ranks and formats recommendations."""

    def __init__(self, config: Optional[AnalysisConfig] = None) -> None:
        """Initialize the engine.

        Args:
            config: Analysis configuration, the output section is used here
        """
        self.config = config or AnalysisConfig()

    def generate(self, results: AnalysisResults) -> List[Recommendation]:
        """Map every finding to a recommendation, rank and truncate.

        Args:
            results: Output of PatternDetector.run_full_analysis

        Returns:
            Recommendations sorted by ascending priority, at most
            ``output.max_recommendations`` long
        """
        recommendations: List[Recommendation] = []
        recommendations.extend(self._from_stale(results))
        recommendations.extend(self._from_orphaned(results))
        recommendations.extend(self._from_current_branch(results))
        recommendations.extend(self._from_priority_conflicts(results))
        recommendations.extend(self._from_unassigned(results))
        recommendations.extend(self._from_duplicates(results))
        recommendations.extend(self._from_unlinked(results))

        # sorted() is stable, equal ranks keep the order above
        recommendations = sorted(recommendations, key=lambda r: r.priority)
        limit = self.config.output.max_recommendations

        if len(recommendations) > limit:
            logger.debug("recommendations_truncated", total=len(recommendations), limit=limit)
        return recommendations[:limit]

    def _from_stale(self, results: AnalysisResults) -> List[Recommendation]:
        recs = []
        for stale in results.stale_branches:
            critical = stale.level == StaleLevel.CRITICAL
            alternative = None
            if stale.commit_count > STALE_REACTIVATE_MIN_COMMITS:
                base = self._base_for(results, stale.branch)
                alternative = (
                    f"Reactivate instead: git checkout {shell_quote(stale.branch)} "
                    f"&& git merge {shell_quote(base)}"
                )
            recs.append(
                Recommendation(
                    type=RecommendationType.STALE_BRANCH_CLEANUP,
                    severity=Severity.CRITICAL if critical else Severity.MEDIUM,
                    priority=CRITICAL_STALE_RANK if critical else PRIORITY_RANKS[RecommendationType.STALE_BRANCH_CLEANUP],
                    message=(
                        f"Branch {stale.branch} has been inactive for {stale.inactivity_label} days "
                        f"({stale.commit_count} commits)"
                    ),
                    command=f"git branch -D {shell_quote(stale.branch)}",
                    alternative=alternative,
                    branch=stale.branch,
                )
            )
        return recs

    def _from_orphaned(self, results: AnalysisResults) -> List[Recommendation]:
        recs = []
        for orphan in results.orphaned_branches:
            title = shell_quote(f"Restored: {orphan.branch}")
            body = shell_quote(f"Branch had {orphan.commit_count} commits")
            restore = f"gh issue create -t {title} -b {body}"
            delete = f"git branch -D {shell_quote(orphan.branch)}"
            if orphan.action == OrphanAction.RECREATE_ISSUE:
                command, alternative = restore, f"Or delete the branch: {delete}"
            else:
                command = delete
                alternative = f"Or create the issue: gh issue create -t {shell_quote(orphan.branch)}"
            recs.append(
                Recommendation(
                    type=RecommendationType.ORPHANED_BRANCH,
                    severity=orphan.severity,
                    priority=PRIORITY_RANKS[RecommendationType.ORPHANED_BRANCH],
                    message=(
                        f"Branch {orphan.branch} references missing issue {orphan.referenced_issue} "
                        f"({orphan.commit_count} commits)"
                    ),
                    command=command,
                    alternative=alternative,
                    branch=orphan.branch,
                    issue=orphan.referenced_issue,
                )
            )
        return recs

    def _from_current_branch(self, results: AnalysisResults) -> List[Recommendation]:
        context = results.current_context
        if context is None:
            return []

        recs = []
        for finding in context.findings:
            if finding.type == ContextFindingType.UNLINKED_CURRENT:
                recs.append(
                    Recommendation(
                        type=RecommendationType.UNLINKED_CURRENT,
                        severity=Severity.HIGH,
                        priority=PRIORITY_RANKS[RecommendationType.UNLINKED_CURRENT],
                        message=finding.message,
                        command=(
                            f"gh issue create -t {shell_quote(context.branch)} "
                            f"-b {shell_quote('Work on: ' + context.work_summary.description)}"
                        ),
                        alternative="Or switch to a branch linked to an issue",
                        branch=context.branch,
                    )
                )
            elif finding.type == ContextFindingType.READY_FOR_PR:
                recs.append(
                    Recommendation(
                        type=RecommendationType.READY_FOR_PR,
                        severity=Severity.INFO,
                        priority=PRIORITY_RANKS[RecommendationType.READY_FOR_PR],
                        message=finding.message,
                        command=finding.command,
                        branch=context.branch,
                        issue=context.linked_issue,
                    )
                )
            elif finding.type == ContextFindingType.NEEDS_REBASE:
                base = context.metrics.base_branch or "main"
                recs.append(
                    Recommendation(
                        type=RecommendationType.NEEDS_REBASE,
                        severity=Severity.MEDIUM,
                        priority=PRIORITY_RANKS[RecommendationType.NEEDS_REBASE],
                        message=finding.message,
                        command=finding.command,
                        alternative=f"Or merge instead: git merge {shell_quote(base)}",
                        branch=context.branch,
                    )
                )
        return recs

    def _from_priority_conflicts(self, results: AnalysisResults) -> List[Recommendation]:
        recs = []
        for conflict in results.priority_conflicts:
            recs.append(
                Recommendation(
                    type=RecommendationType.PRIORITY_MISMATCH,
                    severity=conflict.severity,
                    priority=PRIORITY_RANKS[RecommendationType.PRIORITY_MISMATCH],
                    message=(
                        f"You are working on {conflict.current_priority} priority work while "
                        f"{conflict.issue_priority} issue {conflict.issue.id} "
                        f'"{sanitize_issue_title(conflict.issue.title)}" is waiting'
                    ),
                    command=conflict.command,
                    branch=conflict.current_branch,
                    issue=conflict.issue.id,
                )
            )
        return recs

    def _from_unassigned(self, results: AnalysisResults) -> List[Recommendation]:
        """Suggest a branch for every open issue nobody is working on.

        Critical issues become FORGOTTEN_CRITICAL; the rest are ranked by
        priority (high -> medium severity, anything else -> low). Issues
        already reported as a priority conflict are skipped.
        """
        covered = {conflict.issue.id for conflict in results.priority_conflicts}
        recs = []
        for issue in results.unassigned_issues:
            if not issue.is_open or issue.id in covered:
                continue

            priority = issue.effective_priority
            title = sanitize_issue_title(issue.title)
            command = f"git checkout -b {shell_quote(suggest_branch_name(issue))}"

            if priority == IssuePriority.CRITICAL:
                rec_type, severity = RecommendationType.FORGOTTEN_CRITICAL, Severity.CRITICAL
                rank = PRIORITY_RANKS[rec_type]
                message = f'Critical issue {issue.id} "{title}" has no branch'
            else:
                rec_type = RecommendationType.UNASSIGNED_ISSUE
                high = priority == IssuePriority.HIGH
                severity = Severity.MEDIUM if high else Severity.LOW
                rank = HIGH_UNASSIGNED_RANK if high else PRIORITY_RANKS[rec_type]
                message = f'Issue {issue.id} "{title}" has no branch'

            recs.append(
                Recommendation(
                    type=rec_type,
                    severity=severity,
                    priority=rank,
                    message=message,
                    command=command,
                    issue=issue.id,
                )
            )
        return recs

    def _from_duplicates(self, results: AnalysisResults) -> List[Recommendation]:
        recs = []
        for dup in results.duplicates:
            details = [f"Primary: {dup.primary.name} ({self._activity(dup.primary)})"]
            details.extend(f"Duplicate: {d.name} ({self._activity(d)})" for d in dup.duplicates)
            recs.append(
                Recommendation(
                    type=RecommendationType.DUPLICATE_RESOLUTION,
                    severity=dup.severity,
                    priority=PRIORITY_RANKS[RecommendationType.DUPLICATE_RESOLUTION],
                    message=f"Issue {dup.issue_id} has {len(dup.duplicates) + 1} branches",
                    command=dup.merge_command,
                    branch=dup.primary.name,
                    issue=dup.issue_id,
                    details=details,
                )
            )
        return recs

    def _from_unlinked(self, results: AnalysisResults) -> List[Recommendation]:
        """Informational note for every branch without an issue link.

        The current branch and base branches are left out; the current branch
        has its own UNLINKED_CURRENT check.
        """
        skip = set(DEFAULT_BASE_BRANCHES)
        skip.update(m.base_branch for m in results.metrics.values() if m.base_branch)
        if self.config.base_branch:
            skip.add(self.config.base_branch)
        if results.current_branch:
            skip.add(results.current_branch)

        recs = []
        for branch in results.report.unlinked:
            if branch in skip:
                continue
            recs.append(
                Recommendation(
                    type=RecommendationType.UNLINKED_BRANCH,
                    severity=Severity.INFO,
                    priority=PRIORITY_RANKS[RecommendationType.UNLINKED_BRANCH],
                    message=f"Branch {branch} is not linked to any issue",
                    command=f"gh issue create -t {shell_quote(branch)}",
                    alternative="Or rename it to reference an issue, e.g. feature/issue-<number>-<topic>",
                    branch=branch,
                )
            )
        return recs

    @staticmethod
    def _activity(candidate) -> str:
        days = candidate.days_since_last_commit
        last = "unknown" if days is None else f"{days} days"
        return f"{candidate.commit_count} commits, {last}"

    @staticmethod
    def _base_for(results: AnalysisResults, branch: str) -> str:
        metrics = results.metrics.get(branch)
        return (metrics.base_branch if metrics else None) or "main"

    def format(self, recommendations: List[Recommendation]) -> str:
        """Render recommendations as plain text grouped by severity tier.

        Args:
            recommendations: Ranked recommendations

        Returns:
            Text suitable for direct terminal output
        """
        output = self.config.output
        if not recommendations:
            return "\n✅ No critical problems found!" if output.show_emojis else "\n[OK]: No critical problems found!"

        lines: List[str] = []
        if not output.group_by_priority:
            for index, rec in enumerate(recommendations, start=1):
                lines.append(self._format_single(rec, index))
            return "\n".join(lines)

        index = 1
        for severities, emoji_title, plain_title in _TIERS:
            tier = [rec for severity in severities for rec in recommendations if rec.severity == severity]
            if not tier:
                continue
            lines.append("\n" + (emoji_title if output.show_emojis else plain_title))
            for rec in tier:
                lines.append(self._format_single(rec, index))
                index += 1

        return "\n".join(lines)

    def _format_single(self, rec: Recommendation, index: int) -> str:
        show_emojis = self.config.output.show_emojis
        lines = [f"\n{index}. {rec.message}"]
        lines.append(f"{'   →' if show_emojis else '   >'} {rec.command}")
        if rec.alternative:
            lines.append(f"{'   ↪' if show_emojis else '   ALT:'} {rec.alternative}")
        lines.extend(f"   {detail}" for detail in rec.details)
        return "\n".join(lines)

    def process(self, results: AnalysisResults) -> RecommendationSummary:
        """Generate and format recommendations in one step."""
        recommendations = self.generate(results)
        return RecommendationSummary(
            recommendations=recommendations,
            formatted=self.format(recommendations),
            count=len(recommendations),
            has_critical=any(r.severity == Severity.CRITICAL for r in recommendations),
        )
