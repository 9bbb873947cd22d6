"""Closed enums and detector finding records."""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from branchlens.models.branch import BranchMetrics, Issue, RelationshipReport
from branchlens.safety import shell_quote


class Severity(str, Enum):
    """Severity of a recommendation or finding."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"


class StaleLevel(str, Enum):
    """How far past the stale threshold a branch is."""

    WARNING = "warning"
    CRITICAL = "critical"


class BranchStatus(str, Enum):
    """Working status of a branch derived from its metrics."""

    STALE = "stale"
    READY_FOR_PR = "ready-for-pr"
    IN_PROGRESS = "in-progress"
    NEEDS_REBASE = "needs-rebase"
    ACTIVE = "active"


class OrphanAction(str, Enum):
    """Remedy suggested for a branch pointing at a missing issue."""

    RECREATE_ISSUE = "recreate_issue"
    DELETE_BRANCH = "delete_branch"


class ContextFindingType(str, Enum):
    """Findings raised while inspecting the current branch."""

    UNLINKED_CURRENT = "UNLINKED_CURRENT"
    READY_FOR_PR = "READY_FOR_PR"
    NEEDS_REBASE = "NEEDS_REBASE"


class StaleBranchFinding(BaseModel):
    """A branch without commits for at least the stale threshold."""

    branch: str = Field(..., description="Branch name")
    days_since_last_commit: Optional[int] = Field(
        None, description="Days since the last commit, None if no commit could be resolved"
    )
    last_commit_at: Optional[datetime] = Field(None, description="Timestamp of the last commit")
    commit_count: int = Field(0, description="Commits reachable from the branch")
    level: StaleLevel = Field(..., description="warning or critical")

    @property
    def inactivity_label(self) -> str:
        if self.days_since_last_commit is None:
            return "an unknown number of"
        return str(self.days_since_last_commit)


class DuplicateCandidate(BaseModel):
    """Scored member of a duplicate group."""

    name: str
    commit_count: int = 0
    days_since_last_commit: Optional[int] = None
    score: float = 0.0


class DuplicateResolution(BaseModel):
    """Resolution plan for several branches working on the same issue."""

    issue_id: str = Field(..., description="Issue shared by all branches in the group")
    primary: DuplicateCandidate = Field(..., description="Branch to keep")
    duplicates: List[DuplicateCandidate] = Field(
        default_factory=list, description="Branches to merge into the primary"
    )
    severity: Severity = Field(Severity.MEDIUM, description="high if a duplicate carries real work")

    @property
    def merge_command(self) -> str:
        """Single chained command folding every duplicate into the primary."""
        parts = [f"git checkout {shell_quote(self.primary.name)}"]
        for dup in self.duplicates:
            parts.append(f"git merge {shell_quote(dup.name)}")
            parts.append(f"git branch -D {shell_quote(dup.name)}")
        return " && ".join(parts)


class OrphanedBranchFinding(BaseModel):
    """A branch whose name references an issue that does not exist."""

    branch: str
    referenced_issue: str
    commit_count: int = 0
    days_since_last_commit: Optional[int] = None
    changed_files_count: int = 0
    action: OrphanAction
    severity: Severity


class WorkSummary(BaseModel):
    """Human-readable summary of the work on a branch."""

    description: str
    lines_changed: str
    last_activity: str
    estimated_progress: str


class ContextFinding(BaseModel):
    """Something worth surfacing about the branch currently checked out."""

    type: ContextFindingType
    severity: Severity
    message: str
    command: Optional[str] = None


class CurrentBranchContext(BaseModel):
    """Analysis of the active branch."""

    branch: str
    linked_issue: Optional[str] = Field(None, description="Issue linked via memory or naming")
    metrics: BranchMetrics
    status: BranchStatus
    work_summary: WorkSummary
    findings: List[ContextFinding] = Field(default_factory=list)

    @property
    def is_linked(self) -> bool:
        return self.linked_issue is not None


class PriorityConflict(BaseModel):
    """An open, branch-less issue that outranks the current work."""

    current_branch: Optional[str] = None
    current_issue: Optional[str] = None
    current_priority: str = "none"
    issue: Issue
    issue_priority: str
    level_difference: int
    severity: Severity
    command: str


class AnalysisStatistics(BaseModel):
    """Counters summarizing one analysis run."""

    total_branches: int = 0
    total_issues: int = 0
    stale_count: int = 0
    orphaned_count: int = 0
    duplicate_groups: int = 0
    critical_count: int = 0


class AnalysisResults(BaseModel):
    """Everything the detectors found in one run."""

    generated_at: datetime
    current_branch: Optional[str] = None
    report: RelationshipReport
    stale_branches: List[StaleBranchFinding] = Field(default_factory=list)
    duplicates: List[DuplicateResolution] = Field(default_factory=list)
    orphaned_branches: List[OrphanedBranchFinding] = Field(default_factory=list)
    current_context: Optional[CurrentBranchContext] = None
    priority_conflicts: List[PriorityConflict] = Field(default_factory=list)
    unassigned_issues: List[Issue] = Field(default_factory=list)
    statistics: AnalysisStatistics = Field(default_factory=AnalysisStatistics)
    metrics: Dict[str, BranchMetrics] = Field(default_factory=dict)
