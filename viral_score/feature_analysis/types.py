"""
Data types for heuristic feature analysis.
"""

from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class DominantColor(str, Enum):
    WARM = 'Warm'
    NATURAL = 'Natural'
    COOL = 'Cool'
    BALANCED = 'Balanced'
    NEUTRAL = 'Neutral'


class ImageFormat(str, Enum):
    SQUARE = 'Square'
    LANDSCAPE = 'Landscape'
    PORTRAIT = 'Portrait'


class Orientation(str, Enum):
    SQUARE = 'Square'
    HORIZONTAL = 'Horizontal'
    VERTICAL = 'Vertical'


class ResolutionTier(str, Enum):
    HIGH = 'High'
    MEDIUM = 'Medium'
    LOW = 'Low'
    VERY_LOW = 'VeryLow'


class LightingType(str, Enum):
    BALANCED = 'Balanced'
    DARK_MOODY = 'Dark/Moody'
    BRIGHT_AIRY = 'Bright/Airy'
    DRAMATIC_CONTRASTED = 'Dramatic/Contrasted'
    EVEN_SOFT = 'Even/Soft'


class SharpnessTier(str, Enum):
    HIGH = 'High'
    MEDIUM = 'Medium'
    LOW = 'Low'
    VERY_LOW = 'VeryLow'


@dataclass(frozen=True)
class DimensionInfo:
    width: int
    height: int
    aspect_ratio: float
    megapixels: float
    orientation: Orientation


@dataclass(frozen=True)
class ColorReport:
    """
    Color statistics over every pixel.

    Ratios are fractions in [0, 1]; saturation and vibrancy are percentages.
    """
    average_brightness: int
    dominant_color: DominantColor
    bright_pixel_ratio: float
    dark_pixel_ratio: float
    saturation_pct: float
    vibrancy_pct: float
    average_rgb: Tuple[int, int, int]


@dataclass(frozen=True)
class CompositionReport:
    format: ImageFormat
    aspect_ratio: float
    social_platform: Optional[str]
    resolution_tier: ResolutionTier
    total_pixels: int


@dataclass(frozen=True)
class LightingReport:
    shadow_ratio: float
    midtone_ratio: float
    highlight_ratio: float
    lighting_type: LightingType


@dataclass(frozen=True)
class SharpnessReport:
    edge_score: float
    tier: SharpnessTier
    samples: int


@dataclass(frozen=True)
class FeatureSet:
    """
    Aggregate of all heuristic measurements for one image.

    Created once per analyzed image and read-only afterward.
    """
    dimensions: DimensionInfo
    color: ColorReport
    composition: CompositionReport
    lighting: LightingReport
    sharpness: SharpnessReport

    def to_dict(self) -> Dict[str, Any]:
        """Plain dict with enum values flattened to strings."""
        return _plain(asdict(self))


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value
