"""Git metadata collection."""

from branchlens.extraction.git_collector import GitCollector

__all__ = ["GitCollector"]
