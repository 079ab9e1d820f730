"""
Heuristic feature analysis used to explain popularity scores.
"""

from viral_score.feature_analysis.types import (
    ColorReport,
    CompositionReport,
    DimensionInfo,
    DominantColor,
    FeatureSet,
    ImageFormat,
    LightingReport,
    LightingType,
    Orientation,
    ResolutionTier,
    SharpnessReport,
    SharpnessTier,
)
from viral_score.feature_analysis.analyzers import (
    analyze_color,
    analyze_composition,
    analyze_dimensions,
    analyze_features,
    analyze_lighting,
    analyze_sharpness,
    brightness_histogram,
    classify_dominant_color,
    classify_format,
    classify_lighting,
    classify_resolution,
    classify_sharpness,
    default_feature_set,
    match_social_platform,
)

__all__ = [
    'ColorReport',
    'CompositionReport',
    'DimensionInfo',
    'DominantColor',
    'FeatureSet',
    'ImageFormat',
    'LightingReport',
    'LightingType',
    'Orientation',
    'ResolutionTier',
    'SharpnessReport',
    'SharpnessTier',
    'analyze_color',
    'analyze_composition',
    'analyze_dimensions',
    'analyze_features',
    'analyze_lighting',
    'analyze_sharpness',
    'brightness_histogram',
    'classify_dominant_color',
    'classify_format',
    'classify_lighting',
    'classify_resolution',
    'classify_sharpness',
    'default_feature_set',
    'match_social_platform',
]
