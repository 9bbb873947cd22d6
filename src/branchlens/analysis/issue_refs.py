"""Issue references encoded in branch names."""

import re
from typing import Optional

from branchlens.models.branch import Issue

# Order matters: the explicit issue-<n> convention beats a bare #<n> anywhere
ISSUE_REF_PATTERNS = [
    re.compile(r"issue[-\s](\d+)", re.IGNORECASE),
    re.compile(r"^(?:feature|bugfix|fix|hotfix)/(\d+)-"),
    re.compile(r"^(?:feature|bugfix|fix|hotfix)/#(\d+)"),
    re.compile(r"[A-Z]+-(\d+)"),
    re.compile(r"#(\d+)"),
]

_SLUG_CHARS = re.compile(r"[^a-z0-9]+")


def extract_issue_ref(branch_name: str) -> Optional[str]:
    """Extract the issue id a branch name refers to.

    Supports names like ``feature/issue-123-login``, ``bugfix/123-crash``,
    ``fix/#123``, ``feature/PROJ-123-search`` and ``wip-#123``.

    Args:
        branch_name: Local branch name

    Returns:
        Issue id normalized to ``#<digits>``, or None if no pattern matches
    """
    if not branch_name:
        return None

    for pattern in ISSUE_REF_PATTERNS:
        match = pattern.search(branch_name)
        if match:
            return f"#{match.group(1)}"

    return None


def suggest_branch_name(issue: Issue) -> str:
    """Suggest a branch name that :func:`extract_issue_ref` maps back to the issue."""
    prefix = "bugfix" if any(label.lower() == "bug" for label in issue.labels) else "feature"
    slug = _SLUG_CHARS.sub("-", issue.title.lower()).strip("-")[:30].rstrip("-")
    name = f"{prefix}/issue-{issue.number}"
    return f"{name}-{slug}" if slug else name
