"""Configuration models."""

import json
from pathlib import Path
from typing import Any, Mapping, Optional, Union

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = structlog.get_logger(__name__)


class _Section(BaseModel):
    # On-disk config uses camelCase keys
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class DuplicateResolutionConfig(_Section):
    """Weights used to pick the primary branch of a duplicate group."""

    weight_commit_count: float = Field(0.7, ge=0, description="Weight of the commit count")
    weight_recency: float = Field(0.3, ge=0, description="Weight of recent activity")


class WarningsConfig(_Section):
    """Thresholds for warnings about the current work."""

    unlinked_branch_commit_threshold: int = Field(
        5, ge=0, description="Commits on an unlinked current branch before warning"
    )
    priority_mismatch_levels: int = Field(
        2, ge=1, description="Priority levels an idle issue must exceed current work by"
    )


class OutputConfig(_Section):
    """Rendering and truncation of the recommendation list."""

    max_recommendations: int = Field(10, ge=0, description="Maximum recommendations returned")
    show_emojis: bool = Field(True, description="Prefix sections and commands with symbols")
    group_by_priority: bool = Field(True, description="Group formatted output by severity tier")


class AnalysisConfig(_Section):
    """Thresholds and weights passed explicitly into every analysis step."""

    stale_threshold_days: int = Field(30, ge=1, description="Inactivity that makes a branch stale")
    critical_stale_threshold_days: int = Field(
        14, ge=1, description="Inactivity that makes a branch of an open critical issue critically stale"
    )
    base_branch: Optional[str] = Field(
        None, description="Base branch for ahead/behind, defaults to main or master"
    )
    duplicate_resolution: DuplicateResolutionConfig = Field(default_factory=DuplicateResolutionConfig)
    warnings: WarningsConfig = Field(default_factory=WarningsConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "AnalysisConfig":
        """Validate parsed config data, dropping invalid sections instead of failing.

        Args:
            data: Parsed configuration (camelCase or snake_case keys)

        Returns:
            AnalysisConfig with defaults for anything missing or invalid
        """
        if not isinstance(data, Mapping):
            if data is not None:
                logger.warning("config_not_a_mapping", type=type(data).__name__)
            return cls()

        remaining = dict(data)
        while True:
            try:
                return cls.model_validate(remaining)
            except ValidationError as e:
                bad_keys = {err["loc"][0] for err in e.errors() if err["loc"]}
                bad_keys &= set(remaining)
                if not bad_keys:
                    logger.warning("config_invalid_using_defaults", errors=e.error_count())
                    return cls()
                logger.warning("config_keys_ignored", keys=sorted(str(k) for k in bad_keys))
                for key in bad_keys:
                    remaining.pop(key)


def strip_comment_lines(text: str) -> str:
    """Remove lines starting with ``//`` so the rest parses as JSON."""
    return "\n".join(line for line in text.splitlines() if not line.strip().startswith("//"))


def load_config(path: Optional[Union[str, Path]] = None) -> AnalysisConfig:
    """Load the analysis configuration from a JSON file with ``//`` comment lines.

    Missing files, unreadable files and malformed JSON fall back to defaults.

    Args:
        path: Path to the config file, or None for defaults

    Returns:
        AnalysisConfig object
    """
    if path is None:
        return AnalysisConfig()

    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
        data = json.loads(strip_comment_lines(text))
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("config_load_failed", path=str(path), error=str(e))
        return AnalysisConfig()

    return AnalysisConfig.from_mapping(data)


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings are prefixed with BRANCHLENS_ (e.g., BRANCHLENS_LOG_LEVEL).
    """

    model_config = SettingsConfigDict(
        env_prefix="BRANCHLENS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    config_path: Optional[Path] = None
    base_branch: Optional[str] = None

    # Logging
    log_level: str = "WARNING"
