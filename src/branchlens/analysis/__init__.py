"""Branch-issue relationship analysis and pattern detection."""

from branchlens.analysis.issue_refs import extract_issue_ref, suggest_branch_name
from branchlens.analysis.patterns import PatternDetector
from branchlens.analysis.relationships import RelationshipAnalyzer

__all__ = [
    "extract_issue_ref",
    "suggest_branch_name",
    "PatternDetector",
    "RelationshipAnalyzer",
]
