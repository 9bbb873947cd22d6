"""Recommendation records produced by the engine."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from branchlens.models.findings import Severity


class RecommendationType(str, Enum):
    """Kinds of recommendation the engine can emit."""

    PRIORITY_MISMATCH = "PRIORITY_MISMATCH"
    UNLINKED_CURRENT = "UNLINKED_CURRENT"
    FORGOTTEN_CRITICAL = "FORGOTTEN_CRITICAL"
    UNASSIGNED_ISSUE = "UNASSIGNED_ISSUE"
    DUPLICATE_RESOLUTION = "DUPLICATE_RESOLUTION"
    ORPHANED_BRANCH = "ORPHANED_BRANCH"
    NEEDS_REBASE = "NEEDS_REBASE"
    STALE_BRANCH_CLEANUP = "STALE_BRANCH_CLEANUP"
    READY_FOR_PR = "READY_FOR_PR"
    UNLINKED_BRANCH = "UNLINKED_BRANCH"


class Recommendation(BaseModel):
    """A single ranked, actionable recommendation."""

    type: RecommendationType = Field(..., description="Kind of recommendation")
    severity: Severity = Field(..., description="critical, high, medium, low or info")
    priority: int = Field(..., ge=0, description="Rank, 0 means act first")
    message: str = Field(..., description="Human-readable explanation")
    command: str = Field(..., description="Directly runnable shell command")
    alternative: Optional[str] = Field(None, description="Alternative remedy")
    branch: Optional[str] = Field(None, description="Branch the recommendation is about")
    issue: Optional[str] = Field(None, description="Issue the recommendation is about")
    details: List[str] = Field(default_factory=list, description="Extra lines shown under the command")

    class Config:
        """Pydantic config."""
        json_schema_extra = {
            "example": {
                "type": "ORPHANED_BRANCH",
                "severity": "medium",
                "priority": 2,
                "message": "Branch references missing issue #999 (2 commits)",
                "command": "git branch -D feature/issue-999-old",
                "alternative": "Or create the issue: gh issue create -t feature/issue-999-old",
                "branch": "feature/issue-999-old",
                "issue": "#999",
            }
        }


class RecommendationSummary(BaseModel):
    """Output of one engine run."""

    recommendations: List[Recommendation] = Field(default_factory=list)
    formatted: str = ""
    count: int = 0
    has_critical: bool = False
