"""Helpers for building shell commands from untrusted names and titles.

Branch names and issue titles come from the repository and the tracker. Git
accepts branch names such as ``feat/$(id)``, so every value placed into a
recommended command goes through :func:`shell_quote`.
"""

import re
import shlex

_SAFE_BRANCH = re.compile(r"^[A-Za-z0-9_./-]+$")
_TITLE_METACHARS = re.compile(r"[`$(){}\[\]|&;<>'\"\\]")
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")
_WHITESPACE = re.compile(r"\s+")

MAX_BRANCH_NAME_LENGTH = 255
MAX_TITLE_LENGTH = 200


def is_valid_branch_name(name: str) -> bool:
    """Check that a branch name only uses plain characters.

    Letters, digits, ``-``, ``_``, ``/`` and ``.`` are allowed. Hidden names,
    ``..`` and leading slashes are rejected.
    """
    return bool(
        name
        and len(name) <= MAX_BRANCH_NAME_LENGTH
        and _SAFE_BRANCH.match(name)
        and not name.startswith((".", "/", "-"))
        and ".." not in name
    )


def sanitize_issue_title(title: str) -> str:
    """Strip shell metacharacters and control characters from a title."""
    cleaned = _TITLE_METACHARS.sub("", title or "")
    cleaned = _CONTROL_CHARS.sub("", cleaned)
    return _WHITESPACE.sub(" ", cleaned).strip()[:MAX_TITLE_LENGTH]


def shell_quote(value: str) -> str:
    """Quote a single shell argument; plain names are returned unchanged."""
    return shlex.quote(value)
