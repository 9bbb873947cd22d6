"""Unit tests for shell-safety helpers."""

import shlex

import pytest

from branchlens.safety import is_valid_branch_name, sanitize_issue_title, shell_quote


@pytest.mark.parametrize("name", ["feature/new-feature", "bugfix/issue-123", "release/v1.0.0", "main"])
def test_valid_branch_names(name):
    """Test plain branch names."""
    assert is_valid_branch_name(name)


@pytest.mark.parametrize(
    "name",
    [
        "feature; rm -rf /",
        "$(whoami)",
        "feature && curl evil.com",
        "../../../etc/passwd",
        "feature`id`",
        ".hidden",
        "/absolute",
        "-option",
        "",
        "a" * 256,
    ],
)
def test_invalid_branch_names(name):
    """Test names with shell metacharacters or path tricks."""
    assert not is_valid_branch_name(name)


def test_sanitize_issue_title():
    """Test removal of metacharacters and control characters."""
    assert sanitize_issue_title("Fix `login`; $(rm -rf /)\n now") == "Fix login rm -rf / now"
    assert sanitize_issue_title("  spaced   out  ") == "spaced out"
    assert len(sanitize_issue_title("x" * 500)) == 200


def test_shell_quote_plain_and_hostile():
    """Test that plain names stay readable and hostile ones become one argument."""
    assert shell_quote("feature/issue-42-login") == "feature/issue-42-login"

    hostile = "feat/$(touch${IFS}pwned)"
    assert shlex.split(f"git branch -D {shell_quote(hostile)}") == ["git", "branch", "-D", hostile]
