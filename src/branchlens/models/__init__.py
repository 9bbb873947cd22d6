"""Data models for branch-issue reconciliation."""

from branchlens.models.branch import (
    BranchIssueLink,
    BranchMetrics,
    Issue,
    IssuePriority,
    IssueState,
    LinkSource,
    MemoryEntry,
    OrphanedBranch,
    RelationshipReport,
    parse_issues,
    parse_memory,
)
from branchlens.models.config import AnalysisConfig, Settings, load_config
from branchlens.models.findings import (
    AnalysisResults,
    BranchStatus,
    CurrentBranchContext,
    DuplicateResolution,
    OrphanedBranchFinding,
    PriorityConflict,
    Severity,
    StaleBranchFinding,
    StaleLevel,
)
from branchlens.models.recommendation import (
    Recommendation,
    RecommendationSummary,
    RecommendationType,
)

__all__ = [
    "BranchMetrics",
    "Issue",
    "IssuePriority",
    "IssueState",
    "LinkSource",
    "MemoryEntry",
    "BranchIssueLink",
    "OrphanedBranch",
    "RelationshipReport",
    "parse_issues",
    "parse_memory",
    "AnalysisConfig",
    "Settings",
    "load_config",
    "AnalysisResults",
    "BranchStatus",
    "CurrentBranchContext",
    "DuplicateResolution",
    "OrphanedBranchFinding",
    "PriorityConflict",
    "Severity",
    "StaleBranchFinding",
    "StaleLevel",
    "Recommendation",
    "RecommendationSummary",
    "RecommendationType",
]
