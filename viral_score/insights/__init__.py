"""
Score categories, observations and platform recommendations.
"""

from viral_score.insights.composer import (
    InsightReport,
    categorize_score,
    compose,
    describe_category,
    platform_recommendations,
)

__all__ = [
    'InsightReport',
    'categorize_score',
    'compose',
    'describe_category',
    'platform_recommendations',
]
