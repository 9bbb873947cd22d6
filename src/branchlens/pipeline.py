"""Orchestrates a full branch-issue reconciliation run."""

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

import structlog

from branchlens.analysis.patterns import PatternDetector
from branchlens.analysis.relationships import RelationshipAnalyzer
from branchlens.engine.recommendations import RecommendationEngine
from branchlens.extraction.git_collector import GitCollector
from branchlens.models.branch import BranchMetrics, RelationshipReport, parse_issues, parse_memory
from branchlens.models.config import AnalysisConfig
from branchlens.models.findings import AnalysisResults
from branchlens.models.recommendation import Recommendation, RecommendationSummary

logger = structlog.get_logger(__name__)


class ReconciliationResult:
    """Result of a reconciliation run."""

    def __init__(self, analysis: AnalysisResults, summary: RecommendationSummary):
        self.analysis = analysis
        self.summary = summary

    @property
    def report(self) -> RelationshipReport:
        """Relationship report the analysis was built on."""
        return self.analysis.report

    @property
    def recommendations(self) -> List[Recommendation]:
        """Ranked, truncated recommendations."""
        return self.summary.recommendations

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-serializable dictionary.

        Returns:
            Dictionary with ``analysis`` and ``recommendations`` keys
        """
        return {
            "analysis": self.analysis.model_dump(mode="json"),
            "recommendations": self.summary.model_dump(mode="json"),
        }


class ReconciliationPipeline:
    """Runs collector, analyzer, detectors and engine in sequence.

    Coordinates one synchronous analysis: metrics are collected branch by
    branch, the relationship report is built, the detectors enrich it and the
    engine flattens everything into ranked recommendations.
    """

    def __init__(
        self,
        collector: Optional[GitCollector] = None,
        config: Optional[AnalysisConfig] = None,
    ):
        """Initialize the pipeline.

        Args:
            collector: Git collector, optional when metrics are supplied directly
            config: Analysis configuration (defaults when omitted)
        """
        self.collector = collector
        self.config = config or AnalysisConfig()
        self.analyzer = RelationshipAnalyzer()
        self.detector = PatternDetector(self.config)
        self.engine = RecommendationEngine(self.config)

    def run(
        self,
        issues: Iterable[Any],
        memory: Optional[Mapping[str, Any]] = None,
        branches: Optional[Sequence[str]] = None,
        current_branch: Optional[str] = None,
        metrics: Optional[Mapping[str, BranchMetrics]] = None,
        now: Optional[datetime] = None,
    ) -> ReconciliationResult:
        """Run a full reconciliation.

        Args:
            issues: Issues from the tracker (models or raw dicts)
            memory: Branch -> confirmed link map
            branches: Branch names (default: local branches from the collector)
            current_branch: Active branch (default: from the collector)
            metrics: Precomputed metrics; collected through Git when omitted
            now: Reference time (default: current UTC time)

        Returns:
            ReconciliationResult with the analysis and recommendations
        """
        now = now or datetime.now(timezone.utc)
        issues = parse_issues(issues)
        memory = parse_memory(memory)

        if branches is None:
            branches = self.collector.list_local_branches() if self.collector else []
        if current_branch is None and self.collector is not None:
            current_branch = self.collector.current_branch()

        # The current branch is always classified, even when not listed
        if current_branch and current_branch not in branches:
            branches = list(branches) + [current_branch]

        if metrics is None:
            if self.collector is not None:
                metrics = self.collector.collect_many(
                    branches, base_branch=self.config.base_branch, now=now
                )
            else:
                logger.warning("no_collector_metrics_unknown", branches=len(branches))
                metrics = {}

        if current_branch and current_branch not in metrics and self.collector is not None:
            metrics = dict(metrics)
            metrics[current_branch] = self.collector.collect(
                current_branch, base_branch=self.config.base_branch, now=now
            )

        report = self.analyzer.analyze(branches, issues, memory)
        unassigned = self.analyzer.find_unassigned_issues(issues, report)
        analysis = self.detector.run_full_analysis(
            branches,
            issues,
            report,
            metrics,
            unassigned,
            current_branch=current_branch,
            generated_at=now,
        )
        summary = self.engine.process(analysis)

        logger.info(
            "reconciliation_completed",
            recommendations=summary.count,
            has_critical=summary.has_critical,
        )
        return ReconciliationResult(analysis, summary)
