"""Unit tests for the relationship analyzer."""

import pytest

from branchlens.analysis import RelationshipAnalyzer
from branchlens.models import Issue, LinkSource, MemoryEntry


@pytest.fixture
def analyzer():
    return RelationshipAnalyzer()


@pytest.fixture
def issues():
    return [
        Issue(id="#42", title="Login broken", state="open", priority="high"),
        Issue(id="#7", title="Docs", state="open", priority="low"),
        Issue(id="#8", title="Old cleanup", state="closed"),
        Issue(id="#9", title="Payments", state="open", priority="critical"),
    ]


def _all_classified(report):
    return (
        [link.branch for link in report.verified]
        + [link.branch for link in report.detected]
        + list(report.unlinked)
        + [orphan.branch for orphan in report.orphaned]
    )


def test_duplicate_detection_example(analyzer, issues):
    """Test two branches resolving to the same issue."""
    branches = ["main", "feature/issue-42-login", "bugfix/42-login-fix"]

    report = analyzer.analyze(branches, issues, {})

    assert [link.branch for link in report.detected] == ["feature/issue-42-login", "bugfix/42-login-fix"]
    assert all(link.source == LinkSource.DETECTED for link in report.detected)
    assert report.duplicates == {"#42": ["feature/issue-42-login", "bugfix/42-login-fix"]}
    assert report.unlinked == ["main"]


def test_orphaned_branch_not_unlinked(analyzer, issues):
    """Test that a reference to a missing issue is orphaned, not unlinked."""
    report = analyzer.analyze(["feature/issue-999-old"], issues, {})

    assert len(report.orphaned) == 1
    assert report.orphaned[0].branch == "feature/issue-999-old"
    assert report.orphaned[0].referenced_issue == "#999"
    assert report.unlinked == []
    assert report.detected == []


def test_memory_wins_over_name(analyzer, issues):
    """Test that a confirmed link overrides the name-based guess."""
    memory = {"feature/issue-42-login": MemoryEntry(issue="#7")}

    report = analyzer.analyze(["feature/issue-42-login"], issues, memory)

    assert len(report.verified) == 1
    assert report.verified[0].issue == "#7"
    assert report.verified[0].confidence == 1.0
    assert report.detected == []


def test_memory_accepts_raw_mapping(analyzer, issues):
    """Test memory given as raw dicts with camelCase keys."""
    memory = {"wip": {"issue": "#9", "linkedAt": "2024-05-01T10:00:00", "autoDetected": False}}

    report = analyzer.analyze(["wip"], issues, memory)

    assert report.verified[0].branch == "wip"
    assert report.verified[0].issue == "#9"


def test_memory_link_to_unknown_issue_is_still_verified(analyzer, issues):
    """Test that a confirmed link is kept even if the issue is gone."""
    report = analyzer.analyze(["topic"], issues, {"topic": {"issue": "#500"}})

    assert report.verified[0].issue == "#500"
    assert report.orphaned == []


def test_verified_and_detected_form_duplicates(analyzer, issues):
    """Test that duplicates group verified and detected links together."""
    memory = {"login-rework": {"issue": "#42"}}
    branches = ["login-rework", "feature/issue-42-login"]

    report = analyzer.analyze(branches, issues, memory)

    assert report.duplicates == {"#42": ["login-rework", "feature/issue-42-login"]}


def test_branches_are_partitioned(analyzer, issues):
    """Test that every branch lands in exactly one category."""
    branches = [
        "main",
        "feature/issue-42-login",
        "bugfix/42-login-fix",
        "docs/issue-7",
        "feature/issue-999-old",
        "spike",
        "payments",
    ]
    memory = {"payments": {"issue": "#9"}}

    report = analyzer.analyze(branches, issues, memory)
    classified = _all_classified(report)

    assert sorted(classified) == sorted(branches)
    assert len(classified) == len(set(classified))


def test_duplicates_require_two_branches(analyzer, issues):
    """Test that single-branch issues never appear as duplicates."""
    report = analyzer.analyze(["feature/issue-42-login", "docs/issue-7"], issues, {})

    assert report.duplicates == {}
    assert all(len(names) >= 2 for names in report.duplicates.values())


def test_find_unassigned_issues(analyzer, issues):
    """Test that only open issues without a branch are returned."""
    report = analyzer.analyze(["feature/issue-42-login"], issues, {})

    unassigned = analyzer.find_unassigned_issues(issues, report)

    assert [issue.id for issue in unassigned] == ["#7", "#9"]


def test_malformed_issue_records_are_skipped(analyzer):
    """Test that records without an id do not abort the analysis."""
    raw_issues = [{"title": "no id"}, {"number": 42, "title": "Login", "state": "OPEN"}, "garbage"]

    report = analyzer.analyze(["feature/issue-42-login"], raw_issues, None)
    unassigned = analyzer.find_unassigned_issues(raw_issues, report)

    assert report.detected[0].issue == "#42"
    assert unassigned == []


def test_empty_branch_names_are_ignored(analyzer, issues):
    """Test that empty names are not classified."""
    report = analyzer.analyze(["", "main"], issues, {})

    assert report.unlinked == ["main"]
