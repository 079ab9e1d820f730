"""
Data types for the Model Hub.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from viral_score.feature_analysis.types import FeatureSet
from viral_score.insights.composer import InsightReport


class LoaderState(str, Enum):
    UNLOADED = 'unloaded'
    LOADING = 'loading'
    READY = 'ready'
    FAILED = 'failed'


@dataclass(frozen=True)
class DownloadProgress:
    """
    Byte progress of an artifact download.

    total is None when the server did not send a content length; fraction
    and percent are then None as well (indeterminate progress).
    """
    loaded: int
    total: Optional[int] = None

    @property
    def fraction(self) -> Optional[float]:
        if not self.total:
            return None
        return min(1.0, self.loaded / self.total)

    @property
    def percent(self) -> Optional[int]:
        fraction = self.fraction
        return None if fraction is None else int(fraction * 100)

    @property
    def is_indeterminate(self) -> bool:
        return self.fraction is None


@dataclass
class AnalysisResult:
    """
    Everything produced for one image.

    score is the raw model output (not clamped; typically about -2..6).
    """
    score: float
    features: FeatureSet
    insights: InsightReport
    features_degraded: bool = False

    @property
    def category(self) -> str:
        return self.insights.category

    def to_dict(self) -> Dict[str, Any]:
        return {
            'score': self.score,
            'category': self.category,
            'features': self.features.to_dict(),
            'insights': self.insights.to_dict(),
            'features_degraded': self.features_degraded,
        }
