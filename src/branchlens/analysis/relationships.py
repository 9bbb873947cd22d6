"""Classification of branches against issues."""

from typing import Dict, Iterable, List, Mapping, Optional, Sequence

import structlog

from branchlens.analysis.issue_refs import extract_issue_ref
from branchlens.models.branch import (
    BranchIssueLink,
    Issue,
    LinkSource,
    MemoryEntry,
    OrphanedBranch,
    RelationshipReport,
    parse_issues,
    parse_memory,
)
from branchlens.safety import is_valid_branch_name

logger = structlog.get_logger(__name__)


class RelationshipAnalyzer:
    """Links branches to issues using the memory map and naming conventions.

    Every branch ends up in exactly one of verified, detected, orphaned or
    unlinked. A confirmed link from memory always wins over a name-based guess.
    """

    def analyze(
        self,
        branches: Sequence[str],
        issues: Iterable[Issue],
        memory: Optional[Mapping[str, MemoryEntry]] = None,
    ) -> RelationshipReport:
        """Classify every branch.

        Args:
            branches: Local branch names, in a stable order
            issues: Issues known to the tracker (raw dicts are accepted)
            memory: Branch name -> confirmed link

        Returns:
            RelationshipReport for this run
        """
        issue_ids = {issue.id for issue in parse_issues(issues)}
        memory = parse_memory(memory)
        report = RelationshipReport()
        groups: Dict[str, List[str]] = {}

        for branch in branches:
            if not branch:
                continue
            if not is_valid_branch_name(branch):
                logger.warning("branch_name_unsafe", branch=branch)

            entry = memory.get(branch)
            if entry is not None:
                report.verified.append(
                    BranchIssueLink(branch=branch, issue=entry.issue, source=LinkSource.VERIFIED)
                )
                groups.setdefault(entry.issue, []).append(branch)
                continue

            issue_ref = extract_issue_ref(branch)
            if issue_ref is None:
                report.unlinked.append(branch)
            elif issue_ref in issue_ids:
                report.detected.append(
                    BranchIssueLink(branch=branch, issue=issue_ref, source=LinkSource.DETECTED)
                )
                groups.setdefault(issue_ref, []).append(branch)
            else:
                report.orphaned.append(OrphanedBranch(branch=branch, referenced_issue=issue_ref))

        report.duplicates = {issue: names for issue, names in groups.items() if len(names) >= 2}

        logger.debug(
            "relationships_analyzed",
            verified=len(report.verified),
            detected=len(report.detected),
            unlinked=len(report.unlinked),
            orphaned=len(report.orphaned),
            duplicate_groups=len(report.duplicates),
        )
        return report

    def find_unassigned_issues(
        self, issues: Iterable[Issue], report: RelationshipReport
    ) -> List[Issue]:
        """Open issues that no verified or detected branch is working on."""
        assigned = report.linked_issue_ids()
        return [issue for issue in parse_issues(issues) if issue.is_open and issue.id not in assigned]
