"""Unit tests for issue references in branch names."""

import re

import pytest

from branchlens.analysis.issue_refs import extract_issue_ref, suggest_branch_name
from branchlens.models import Issue


@pytest.mark.parametrize(
    "branch_name,expected",
    [
        ("feature/issue-42-login", "#42"),
        ("Issue 12 cleanup", "#12"),
        ("bugfix/42-login-fix", "#42"),
        ("hotfix/7-crash", "#7"),
        ("fix/#17", "#17"),
        ("hotfix/#3-crash", "#3"),
        ("feature/PROJ-123-search", "#123"),
        ("wip-#7", "#7"),
    ],
)
def test_extract_issue_ref_conventions(branch_name, expected):
    """Test each supported naming convention."""
    assert extract_issue_ref(branch_name) == expected


@pytest.mark.parametrize("branch_name", ["main", "master", "develop", "release/v1.2", "feature/login", ""])
def test_extract_issue_ref_no_match(branch_name):
    """Test that names without a reference return None."""
    assert extract_issue_ref(branch_name) is None


def test_issue_prefix_beats_hash_anywhere():
    """Test that the issue-<n> rule wins over a later #<n>."""
    assert extract_issue_ref("feature/issue-5-revert-#99") == "#5"


def test_issue_prefix_beats_ticket_key():
    """Test that the issue-<n> rule wins over a ticket-style key."""
    assert extract_issue_ref("feature/ABC-12-issue-34") == "#34"


def test_ticket_key_requires_uppercase():
    """Test that lower-case prefixes are not taken as ticket keys."""
    assert extract_issue_ref("feature/abc-12") is None


def test_extract_issue_ref_result_format():
    """Test that every result is either None or #<digits>."""
    names = [
        "feature/issue-1",
        "bugfix/2-x",
        "fix/#3",
        "KEY-4",
        "x#5",
        "nothing-here",
        "feature/v2-redesign",
    ]
    for name in names:
        ref = extract_issue_ref(name)
        assert ref is None or re.fullmatch(r"#\d+", ref)


def test_suggest_branch_name_for_bug():
    """Test suggested names for bug issues."""
    issue = Issue(id="#42", title="Fix Login Crash!", labels=["bug"])

    assert suggest_branch_name(issue) == "bugfix/issue-42-fix-login-crash"


def test_suggest_branch_name_truncates_title():
    """Test that long titles are shortened."""
    issue = Issue(id="#8", title="Add support for exporting reports to a spreadsheet format")
    name = suggest_branch_name(issue)

    assert name.startswith("feature/issue-8-")
    assert len(name) <= len("feature/issue-8-") + 30
    assert not name.endswith("-")


def test_suggested_name_maps_back_to_issue():
    """Test that a suggested name is detected as the same issue."""
    issue = Issue(id="#314", title="Support #hashtags in titles", labels=["enhancement"])

    assert extract_issue_ref(suggest_branch_name(issue)) == "#314"
