"""Recommendation generation."""

from branchlens.engine.recommendations import RecommendationEngine

__all__ = ["RecommendationEngine"]
