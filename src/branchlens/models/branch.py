"""Data models for branches, issues and their relationships."""

import math
import re
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set

import structlog
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

logger = structlog.get_logger(__name__)

_ISSUE_ID = re.compile(r"^#?(\d+)$")
_LABEL_SEPARATORS = re.compile(r"[\s:/_-]+")


class IssueState(str, Enum):
    """Tracker state of an issue."""

    OPEN = "open"
    CLOSED = "closed"


class IssuePriority(str, Enum):
    """Priority of an issue. ``normal`` means no explicit priority."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    NORMAL = "normal"

    @property
    def level(self) -> int:
        """Ordinal used for priority comparisons (normal ranks like none)."""
        return _PRIORITY_LEVELS[self]


_PRIORITY_LEVELS = {
    IssuePriority.NORMAL: 0,
    IssuePriority.LOW: 1,
    IssuePriority.MEDIUM: 2,
    IssuePriority.HIGH: 3,
    IssuePriority.CRITICAL: 4,
}

# Matched against whole label words, checked in order, the first hit wins
_LABEL_PRIORITIES = [
    (IssuePriority.CRITICAL, ("critical", "urgent", "blocker")),
    (IssuePriority.HIGH, ("high", "important")),
    (IssuePriority.MEDIUM, ("medium",)),
    (IssuePriority.LOW, ("low", "minor")),
]


class LinkSource(str, Enum):
    """Where a branch-issue link comes from."""

    VERIFIED = "verified"
    DETECTED = "detected"


class BranchMetrics(BaseModel):
    """Activity metrics of a single branch, recomputed on every run."""

    name: str = Field(..., description="Branch name")
    age_days: int = Field(0, ge=0, description="Days since the first commit on the branch")
    created_at: Optional[datetime] = Field(None, description="Timestamp of the first commit")
    last_commit_at: Optional[datetime] = Field(None, description="Timestamp of the last commit")
    days_since_last_commit: Optional[int] = Field(
        None, ge=0, description="Days since the last commit, None when no commit is resolvable"
    )
    commit_count: int = Field(0, ge=0, description="Commits reachable from the branch tip")
    ahead_count: int = Field(0, ge=0, description="Commits on the branch but not on the base")
    behind_count: int = Field(0, ge=0, description="Commits on the base but not on the branch")
    changed_files_count: int = Field(0, ge=0, description="Files changed against the base")
    lines_added: int = Field(0, ge=0, description="Lines added against the base")
    lines_deleted: int = Field(0, ge=0, description="Lines deleted against the base")
    base_branch: Optional[str] = Field(None, description="Branch the comparison metrics refer to")
    unresolved: List[str] = Field(
        default_factory=list, description="Fields whose Git query could not be resolved"
    )

    class Config:
        """Pydantic config."""
        json_schema_extra = {
            "example": {
                "name": "feature/issue-42-login",
                "age_days": 12,
                "days_since_last_commit": 1,
                "commit_count": 8,
                "ahead_count": 8,
                "behind_count": 3,
                "changed_files_count": 5,
                "lines_added": 240,
                "lines_deleted": 31,
                "base_branch": "main",
                "unresolved": [],
            }
        }

    @classmethod
    def unknown(cls, name: str) -> "BranchMetrics":
        """Metrics for a branch nothing could be determined about."""
        return cls(
            name=name,
            unresolved=[
                "age_days",
                "days_since_last_commit",
                "commit_count",
                "ahead_behind",
                "changed_files_count",
                "line_stats",
            ],
        )

    @property
    def lines_changed(self) -> int:
        return self.lines_added + self.lines_deleted

    @property
    def inactive_days(self) -> float:
        """Days since the last commit, unbounded when there is none."""
        if self.days_since_last_commit is None:
            return math.inf
        return float(self.days_since_last_commit)

    @property
    def is_resolved(self) -> bool:
        return not self.unresolved


class Issue(BaseModel):
    """An issue as supplied by the issue tracker. Read-only here."""

    id: str = Field(..., description="Canonical issue id, e.g. #42")
    title: str = Field("", description="Issue title")
    state: IssueState = Field(IssueState.OPEN, description="open or closed")
    priority: IssuePriority = Field(IssuePriority.NORMAL, description="Declared priority")
    labels: Set[str] = Field(default_factory=set, description="Label names")
    assignee: Optional[str] = Field(None, description="Assigned user")
    created_at: Optional[datetime] = Field(None, description="Creation timestamp")

    @model_validator(mode="before")
    @classmethod
    def _accept_tracker_aliases(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if data.get("id") is None and data.get("number") is not None:
            data["id"] = data["number"]
        if "state" not in data and "status" in data:
            data["state"] = data["status"]
        if "created_at" not in data and "createdAt" in data:
            data["created_at"] = data["createdAt"]
        return data

    @field_validator("id", mode="before")
    @classmethod
    def _normalize_id(cls, value: Any) -> str:
        match = _ISSUE_ID.match(str(value).strip()) if value is not None else None
        if not match:
            raise ValueError(f"Invalid issue id: {value!r}")
        return f"#{match.group(1)}"

    @field_validator("state", mode="before")
    @classmethod
    def _normalize_state(cls, value: Any) -> Any:
        return value.lower() if isinstance(value, str) else value

    @field_validator("priority", mode="before")
    @classmethod
    def _normalize_priority(cls, value: Any) -> Any:
        if value is None:
            return IssuePriority.NORMAL
        if isinstance(value, str):
            value = value.lower()
            if value not in IssuePriority._value2member_map_:
                return IssuePriority.NORMAL
        return value

    @field_validator("labels", mode="before")
    @classmethod
    def _normalize_labels(cls, value: Any) -> Any:
        if value is None:
            return set()
        names = set()
        for label in value:
            if isinstance(label, dict):
                label = label.get("name")
            if label:
                names.add(str(label))
        return names

    @property
    def number(self) -> str:
        return self.id.lstrip("#")

    @property
    def is_open(self) -> bool:
        return self.state == IssueState.OPEN

    @property
    def effective_priority(self) -> IssuePriority:
        """Declared priority, or the one implied by labels when none is declared."""
        if self.priority != IssuePriority.NORMAL:
            return self.priority
        tokens = {
            word for label in self.labels for word in _LABEL_SEPARATORS.split(label.lower()) if word
        }
        for priority, keywords in _LABEL_PRIORITIES:
            if tokens.intersection(keywords):
                return priority
        return IssuePriority.NORMAL


class MemoryEntry(BaseModel):
    """A human-confirmed branch-issue link from the persisted memory map."""

    issue: str = Field(..., description="Linked issue id")
    linked_at: Optional[datetime] = Field(None, description="When the link was confirmed")
    auto_detected: bool = Field(False, description="Whether the link started as a detection")

    @model_validator(mode="before")
    @classmethod
    def _accept_camel_case(cls, data: Any) -> Any:
        if isinstance(data, dict):
            data = dict(data)
            if "linked_at" not in data and "linkedAt" in data:
                data["linked_at"] = data.pop("linkedAt")
            if "auto_detected" not in data and "autoDetected" in data:
                data["auto_detected"] = data.pop("autoDetected")
        return data

    @field_validator("issue", mode="before")
    @classmethod
    def _normalize_issue(cls, value: Any) -> Any:
        if isinstance(value, int):
            return f"#{value}"
        if isinstance(value, str) and value.strip().isdigit():
            return f"#{value.strip()}"
        return value


class BranchIssueLink(BaseModel):
    """Relationship between one branch and one issue."""

    branch: str
    issue: str
    source: LinkSource

    @property
    def confidence(self) -> float:
        return 1.0 if self.source == LinkSource.VERIFIED else 0.5


class OrphanedBranch(BaseModel):
    """Branch naming an issue id absent from the issue list."""

    branch: str
    referenced_issue: str


class RelationshipReport(BaseModel):
    """Classification of every branch for one analysis run."""

    verified: List[BranchIssueLink] = Field(default_factory=list)
    detected: List[BranchIssueLink] = Field(default_factory=list)
    unlinked: List[str] = Field(default_factory=list)
    orphaned: List[OrphanedBranch] = Field(default_factory=list)
    duplicates: Dict[str, List[str]] = Field(default_factory=dict)

    @property
    def links(self) -> List[BranchIssueLink]:
        return self.verified + self.detected

    def link_for(self, branch: str) -> Optional[BranchIssueLink]:
        """Verified or detected link of a branch, if any."""
        for link in self.links:
            if link.branch == branch:
                return link
        return None

    def linked_issue_ids(self) -> Set[str]:
        return {link.issue for link in self.links}


def parse_issues(records: Iterable[Any]) -> List[Issue]:
    """Build Issue models from raw tracker records, skipping malformed ones."""
    issues = []
    for record in records:
        if isinstance(record, Issue):
            issues.append(record)
            continue
        try:
            issues.append(Issue.model_validate(record))
        except ValidationError as e:
            logger.warning("issue_record_skipped", record=record, errors=e.error_count())
    return issues


def parse_memory(data: Optional[Mapping[str, Any]]) -> Dict[str, MemoryEntry]:
    """Build the branch -> MemoryEntry map, skipping malformed entries."""
    memory: Dict[str, MemoryEntry] = {}
    for branch, entry in (data or {}).items():
        if isinstance(entry, MemoryEntry):
            memory[branch] = entry
            continue
        if not isinstance(entry, dict) or not entry.get("issue"):
            logger.warning("memory_entry_skipped", branch=branch)
            continue
        try:
            memory[branch] = MemoryEntry.model_validate(entry)
        except ValidationError as e:
            logger.warning("memory_entry_skipped", branch=branch, errors=e.error_count())
    return memory
