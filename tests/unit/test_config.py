"""Unit tests for analysis configuration loading."""

import pytest

from branchlens.models import AnalysisConfig, Settings, load_config
from branchlens.models.config import strip_comment_lines


@pytest.fixture
def config_file(tmp_path):
    def _write(text):
        path = tmp_path / "branchlens.json"
        path.write_text(text, encoding="utf-8")
        return path
    return _write


def test_defaults():
    """Test default thresholds and weights."""
    config = AnalysisConfig()

    assert config.stale_threshold_days == 30
    assert config.critical_stale_threshold_days == 14
    assert config.base_branch is None
    assert config.duplicate_resolution.weight_commit_count == 0.7
    assert config.duplicate_resolution.weight_recency == 0.3
    assert config.warnings.unlinked_branch_commit_threshold == 5
    assert config.warnings.priority_mismatch_levels == 2
    assert config.output.max_recommendations == 10
    assert config.output.show_emojis is True
    assert config.output.group_by_priority is True


def test_load_with_comment_lines(config_file):
    """Test that // comment lines are ignored."""
    path = config_file(
        """
        // branch analysis settings
        {
          "staleThresholdDays": 21,
          // keep the list short
          "output": {"maxRecommendations": 5, "showEmojis": false}
        }
        """
    )

    config = load_config(path)

    assert config.stale_threshold_days == 21
    assert config.output.max_recommendations == 5
    assert config.output.show_emojis is False
    assert config.output.group_by_priority is True


def test_snake_case_keys_accepted():
    """Test that snake_case keys work as well as camelCase."""
    config = AnalysisConfig.from_mapping({"stale_threshold_days": 10, "base_branch": "develop"})

    assert config.stale_threshold_days == 10
    assert config.base_branch == "develop"


def test_missing_file_uses_defaults(tmp_path):
    """Test that a missing file does not raise."""
    assert load_config(tmp_path / "nope.json") == AnalysisConfig()


def test_no_path_uses_defaults():
    """Test that no path gives defaults."""
    assert load_config(None) == AnalysisConfig()


def test_malformed_json_uses_defaults(config_file):
    """Test that broken JSON falls back to defaults."""
    assert load_config(config_file("{not json")) == AnalysisConfig()


def test_invalid_value_drops_only_that_key(config_file):
    """Test that a bad value keeps the rest of the file."""
    path = config_file('{"staleThresholdDays": "soon", "warnings": {"priorityMismatchLevels": 3}}')

    config = load_config(path)

    assert config.stale_threshold_days == 30
    assert config.warnings.priority_mismatch_levels == 3


def test_invalid_nested_section_dropped():
    """Test that an invalid nested section falls back to its defaults."""
    config = AnalysisConfig.from_mapping(
        {"output": {"maxRecommendations": -1}, "staleThresholdDays": 45}
    )

    assert config.output.max_recommendations == 10
    assert config.stale_threshold_days == 45


def test_non_mapping_uses_defaults():
    """Test that a JSON list is rejected as a whole."""
    assert AnalysisConfig.from_mapping([1, 2, 3]) == AnalysisConfig()


def test_unknown_keys_ignored():
    """Test that unrelated keys are ignored."""
    config = AnalysisConfig.from_mapping({"theme": "dark", "staleThresholdDays": 12})

    assert config.stale_threshold_days == 12


def test_strip_comment_lines():
    """Test comment removal keeps URLs inside values."""
    text = '// header\n{"url": "https://example.com"}\n  // trailing'

    assert strip_comment_lines(text) == '{"url": "https://example.com"}'


def test_settings_from_environment(monkeypatch):
    """Test environment-based settings."""
    monkeypatch.setenv("BRANCHLENS_BASE_BRANCH", "develop")
    monkeypatch.setenv("BRANCHLENS_LOG_LEVEL", "DEBUG")

    settings = Settings()

    assert settings.base_branch == "develop"
    assert settings.log_level == "DEBUG"
