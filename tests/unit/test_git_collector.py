"""Unit tests for the Git metrics collector."""

import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

import git
import pytest

from branchlens.exceptions import GitRepositoryError
from branchlens.extraction import GitCollector
from branchlens.extraction.git_collector import parse_shortstat

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)
NOW = T0 + timedelta(days=30)


def _commit(repo, repo_path, filename, content, message, when):
    (repo_path / filename).write_text(content)
    repo.index.add([filename])
    stamp = f"{int(when.timestamp())} +0000"
    return repo.index.commit(message, author_date=stamp, commit_date=stamp)


def _init(repo_path):
    repo = git.Repo.init(repo_path)
    repo.config_writer().set_value("user", "name", "Test User").release()
    repo.config_writer().set_value("user", "email", "test@example.com").release()
    return repo


@pytest.fixture
def test_repo():
    """Create a repository with a main branch and one feature branch.

    main:    c1 (T0), c2 (T0+1d), c5 (T0+25d)
    feature: branches at c2, then c3 (T0+10d, +3 lines), c4 (T0+20d, +2 lines)
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        repo_path = Path(tmpdir)
        repo = _init(repo_path)

        _commit(repo, repo_path, "README.md", "# Test\n", "Initial commit", T0)
        repo.git.branch("-M", "main")
        _commit(repo, repo_path, "setup.txt", "setup\n", "Add setup", T0 + timedelta(days=1))

        feature = repo.create_head("feature/issue-1-login")
        feature.checkout()
        _commit(repo, repo_path, "a.py", "a = 1\nb = 2\nc = 3\n", "Add a", T0 + timedelta(days=10))
        _commit(repo, repo_path, "b.py", "x = 1\ny = 2\n", "Add b", T0 + timedelta(days=20))

        repo.heads.main.checkout()
        _commit(repo, repo_path, "README.md", "# Test project\n", "Update readme", T0 + timedelta(days=25))

        yield repo_path


def test_collector_invalid_path():
    """Test GitCollector with a nonexistent path."""
    with pytest.raises(GitRepositoryError, match="Repository path does not exist"):
        GitCollector(Path("/nonexistent/path"))


def test_collector_not_a_repository(tmp_path):
    """Test GitCollector on a plain directory."""
    with pytest.raises(ValueError, match="Invalid Git repository"):
        GitCollector(tmp_path)


def test_list_and_current_branch(test_repo):
    """Test branch listing and the active branch."""
    collector = GitCollector(test_repo)

    assert set(collector.list_local_branches()) == {"main", "feature/issue-1-login"}
    assert collector.current_branch() == "main"
    assert collector.resolve_base_branch() == "main"
    assert collector.resolve_base_branch("develop") == "develop"


def test_current_branch_detached(test_repo):
    """Test that a detached HEAD has no current branch."""
    repo = git.Repo(test_repo)
    repo.git.checkout(repo.head.commit.hexsha)

    assert GitCollector(test_repo).current_branch() is None


def test_collect_feature_branch(test_repo):
    """Test metrics of a branch diverged from main."""
    metrics = GitCollector(test_repo).collect("feature/issue-1-login", now=NOW)

    assert metrics.name == "feature/issue-1-login"
    assert metrics.base_branch == "main"
    assert metrics.age_days == 30
    assert metrics.created_at == T0
    assert metrics.days_since_last_commit == 10
    assert metrics.last_commit_at == T0 + timedelta(days=20)
    assert metrics.commit_count == 4
    assert metrics.ahead_count == 2
    assert metrics.behind_count == 1
    assert metrics.changed_files_count == 2
    assert metrics.lines_added == 5
    assert metrics.lines_deleted == 0
    assert metrics.unresolved == []


def test_collect_base_branch_itself(test_repo):
    """Test that the base compared with itself has no divergence."""
    metrics = GitCollector(test_repo).collect("main", now=NOW)

    assert metrics.commit_count == 3
    assert metrics.days_since_last_commit == 5
    assert metrics.ahead_count == 0
    assert metrics.behind_count == 0
    assert metrics.changed_files_count == 0


def test_collect_unknown_branch(test_repo):
    """Test that an unknown branch is fail-soft."""
    metrics = GitCollector(test_repo).collect("does-not-exist", now=NOW)

    assert metrics.commit_count == 0
    assert metrics.days_since_last_commit is None
    assert metrics.age_days == 0
    assert set(metrics.unresolved) >= {"days_since_last_commit", "commit_count", "ahead_behind"}


def test_collect_rejects_option_like_names(test_repo):
    """Test that names starting with a dash never reach git."""
    metrics = GitCollector(test_repo).collect("--all", now=NOW)

    assert metrics.name == "--all"
    assert metrics.days_since_last_commit is None
    assert not metrics.is_resolved


def test_collect_without_base_branch():
    """Test a repository with neither main nor master."""
    with tempfile.TemporaryDirectory() as tmpdir:
        repo_path = Path(tmpdir)
        repo = _init(repo_path)
        _commit(repo, repo_path, "README.md", "# Test\n", "Initial commit", T0)
        repo.git.branch("-M", "trunk")

        metrics = GitCollector(repo_path).collect("trunk", now=NOW)

        assert metrics.base_branch is None
        assert metrics.commit_count == 1
        assert metrics.days_since_last_commit == 30
        assert set(metrics.unresolved) == {"ahead_behind", "changed_files_count", "line_stats"}


def test_commits_in_the_future_clamp_to_zero(test_repo):
    """Test that day counts are never negative."""
    metrics = GitCollector(test_repo).collect("main", now=T0 - timedelta(days=3))

    assert metrics.age_days == 0
    assert metrics.days_since_last_commit == 0


def test_collect_many(test_repo):
    """Test collecting several branches with one base."""
    metrics = GitCollector(test_repo).collect_many(["main", "feature/issue-1-login"], now=NOW)

    assert set(metrics) == {"main", "feature/issue-1-login"}
    assert metrics["feature/issue-1-login"].ahead_count == 2


def test_collect_does_not_mutate_repository(test_repo):
    """Test that collection leaves HEAD and the working tree alone."""
    repo = git.Repo(test_repo)
    head_before = repo.head.commit.hexsha
    branch_before = repo.active_branch.name

    GitCollector(test_repo).collect_many(["main", "feature/issue-1-login"], now=NOW)

    assert repo.head.commit.hexsha == head_before
    assert repo.active_branch.name == branch_before
    assert repo.git.status("--porcelain") == ""


@pytest.mark.parametrize(
    "text,expected",
    [
        (" 2 files changed, 5 insertions(+), 1 deletion(-)", (5, 1)),
        (" 1 file changed, 1 insertion(+)", (1, 0)),
        (" 3 files changed, 7 deletions(-)", (0, 7)),
        ("", (0, 0)),
    ],
)
def test_parse_shortstat(text, expected):
    """Test parsing of git diff --shortstat output."""
    assert parse_shortstat(text) == expected
