"""
Heuristic image analysis: color, composition, lighting and sharpness.

All analyzers are pure functions over a PixelBuffer at its native resolution.
Integer arithmetic is used wherever the definition allows it so that the
same buffer always yields bit-identical reports.

The thresholds below are part of the product contract (the insight rules
and the UI legends are written against them) and must not be retuned
without updating both.
"""

import logging
from typing import List, Optional, Tuple

import numpy as np

from viral_score.exceptions import AnalysisError
from viral_score.image_processing.pixel_buffer import PixelBuffer
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

logger = logging.getLogger(__name__)

# Color
DOMINANT_COLOR_MARGIN = 15
BRIGHT_PIXEL_THRESHOLD = 200
DARK_PIXEL_THRESHOLD = 50
LUMINANCE_WEIGHTS = (0.299, 0.587, 0.114)

# Composition
LANDSCAPE_RATIO = 1.3
PORTRAIT_RATIO = 0.8
PLATFORM_RATIO_TOLERANCE = 0.1
# Order matters: the first entry within tolerance wins.
SOCIAL_PLATFORM_RATIOS: List[Tuple[str, float]] = [
    ('Instagram Square', 1.0),
    ('Instagram Portrait', 0.8),
    ('Instagram Story', 1.78),
    ('Facebook Cover', 2.7),
    ('Twitter Header', 3.0),
]
RESOLUTION_HIGH_PIXELS = 2_073_600    # 1920x1080
RESOLUTION_MEDIUM_PIXELS = 921_600    # 1280x720
RESOLUTION_LOW_PIXELS = 307_200       # 640x480

# Lighting
HISTOGRAM_BINS = 256
SHADOW_UPPER_BIN = 85
HIGHLIGHT_LOWER_BIN = 170
DARK_MOODY_SHADOWS = 0.5
BRIGHT_AIRY_HIGHLIGHTS = 0.4
DRAMATIC_SHADOWS = 0.35
EVEN_SOFT_MIDTONES = 0.65

# Sharpness
SHARPNESS_STRIDE = 2
SHARPNESS_HIGH = 15
SHARPNESS_MEDIUM = 8
SHARPNESS_LOW = 3


def _require_area(buffer: PixelBuffer, analysis: str) -> None:
    if buffer.is_empty:
        raise AnalysisError(
            f"{analysis} analysis needs a non-empty image, got {buffer.width}x{buffer.height}"
        )


def _round_half_up(value: float) -> int:
    return int(np.floor(value + 0.5))


def _rgb(buffer: PixelBuffer) -> np.ndarray:
    """(H, W, 3) uint8 view with alpha dropped."""
    return buffer.as_array()[:, :, :3]


# =========================================================================
# Dimensions
# =========================================================================

def analyze_dimensions(buffer: PixelBuffer) -> DimensionInfo:
    """Width, height, aspect ratio, megapixels and orientation."""
    _require_area(buffer, 'Dimension')

    aspect_ratio = buffer.width / buffer.height
    image_format = classify_format(aspect_ratio)
    orientation = {
        ImageFormat.LANDSCAPE: Orientation.HORIZONTAL,
        ImageFormat.PORTRAIT: Orientation.VERTICAL,
    }.get(image_format, Orientation.SQUARE)

    return DimensionInfo(
        width=buffer.width,
        height=buffer.height,
        aspect_ratio=aspect_ratio,
        megapixels=buffer.pixel_count / 1_000_000,
        orientation=orientation
    )


# =========================================================================
# Color
# =========================================================================

def classify_dominant_color(
    r: int,
    g: int,
    b: int,
    margin: int = DOMINANT_COLOR_MARGIN
) -> DominantColor:
    """
    Classify the average color.

    A channel dominates only when it beats both others by more than margin.
    Channels all within margin of each other are Balanced; any other mix
    (e.g. two strong channels, one weak) is Neutral.
    """
    if r - g > margin and r - b > margin:
        return DominantColor.WARM
    if g - r > margin and g - b > margin:
        return DominantColor.NATURAL
    if b - r > margin and b - g > margin:
        return DominantColor.COOL
    if max(r, g, b) - min(r, g, b) <= margin:
        return DominantColor.BALANCED
    return DominantColor.NEUTRAL


def analyze_color(buffer: PixelBuffer) -> ColorReport:
    """
    Average color, brightness distribution, saturation and vibrancy.

    Per-pixel brightness is (R+G+B)/3; saturation is (max-min)/max (0 for
    black); vibrancy is saturation weighted by luminance/255.
    """
    _require_area(buffer, 'Color')

    rgb = _rgb(buffer)
    n = buffer.pixel_count

    channel_sums = rgb.reshape(-1, 3).sum(axis=0, dtype=np.int64)
    avg_r, avg_g, avg_b = (_round_half_up(int(s) / n) for s in channel_sums)

    # Brightness compared as channel sums to stay in integers: b > 200 <=> sum > 600
    pixel_sums = rgb.sum(axis=2, dtype=np.int64)
    average_brightness = _round_half_up(int(channel_sums.sum()) / (3 * n))
    bright_pixels = int(np.count_nonzero(pixel_sums > 3 * BRIGHT_PIXEL_THRESHOLD))
    dark_pixels = int(np.count_nonzero(pixel_sums < 3 * DARK_PIXEL_THRESHOLD))

    channel_max = rgb.max(axis=2).astype(np.float64)
    channel_min = rgb.min(axis=2).astype(np.float64)
    saturation = np.divide(
        channel_max - channel_min,
        channel_max,
        out=np.zeros_like(channel_max),
        where=channel_max > 0
    )

    wr, wg, wb = LUMINANCE_WEIGHTS
    luminance = wr * rgb[:, :, 0] + wg * rgb[:, :, 1] + wb * rgb[:, :, 2]
    vibrancy = saturation * luminance / 255.0

    return ColorReport(
        average_brightness=average_brightness,
        dominant_color=classify_dominant_color(avg_r, avg_g, avg_b),
        bright_pixel_ratio=bright_pixels / n,
        dark_pixel_ratio=dark_pixels / n,
        saturation_pct=float(saturation.mean() * 100.0),
        vibrancy_pct=float(vibrancy.mean() * 100.0),
        average_rgb=(avg_r, avg_g, avg_b)
    )


# =========================================================================
# Composition
# =========================================================================

def classify_format(aspect_ratio: float) -> ImageFormat:
    if aspect_ratio > LANDSCAPE_RATIO:
        return ImageFormat.LANDSCAPE
    if aspect_ratio < PORTRAIT_RATIO:
        return ImageFormat.PORTRAIT
    return ImageFormat.SQUARE


def match_social_platform(aspect_ratio: float) -> Optional[str]:
    """First platform whose ratio is strictly within tolerance, or None."""
    for platform, ratio in SOCIAL_PLATFORM_RATIOS:
        if abs(aspect_ratio - ratio) < PLATFORM_RATIO_TOLERANCE:
            return platform
    return None


def classify_resolution(total_pixels: int) -> ResolutionTier:
    if total_pixels >= RESOLUTION_HIGH_PIXELS:
        return ResolutionTier.HIGH
    if total_pixels >= RESOLUTION_MEDIUM_PIXELS:
        return ResolutionTier.MEDIUM
    if total_pixels >= RESOLUTION_LOW_PIXELS:
        return ResolutionTier.LOW
    return ResolutionTier.VERY_LOW


def analyze_composition(buffer: PixelBuffer) -> CompositionReport:
    """Format, social platform fit and resolution tier from the geometry."""
    _require_area(buffer, 'Composition')

    aspect_ratio = buffer.width / buffer.height
    total_pixels = buffer.pixel_count

    return CompositionReport(
        format=classify_format(aspect_ratio),
        aspect_ratio=aspect_ratio,
        social_platform=match_social_platform(aspect_ratio),
        resolution_tier=classify_resolution(total_pixels),
        total_pixels=total_pixels
    )


# =========================================================================
# Lighting
# =========================================================================

def brightness_histogram(buffer: PixelBuffer) -> np.ndarray:
    """256-bin histogram of per-pixel brightness rounded to the nearest integer."""
    pixel_sums = _rgb(buffer).sum(axis=2, dtype=np.int64)
    # round(s / 3) for integer s: thirds never tie, so (s + 1) // 3 is exact
    levels = (pixel_sums + 1) // 3
    return np.bincount(levels.ravel(), minlength=HISTOGRAM_BINS)


def classify_lighting(shadows: float, midtones: float, highlights: float) -> LightingType:
    """First matching rule wins."""
    if shadows > DARK_MOODY_SHADOWS:
        return LightingType.DARK_MOODY
    if highlights > BRIGHT_AIRY_HIGHLIGHTS:
        return LightingType.BRIGHT_AIRY
    if shadows > DRAMATIC_SHADOWS:
        return LightingType.DRAMATIC_CONTRASTED
    if midtones > EVEN_SOFT_MIDTONES:
        return LightingType.EVEN_SOFT
    return LightingType.BALANCED


def analyze_lighting(buffer: PixelBuffer) -> LightingReport:
    """Shadow / midtone / highlight split of the brightness histogram."""
    _require_area(buffer, 'Lighting')

    histogram = brightness_histogram(buffer)
    n = buffer.pixel_count

    shadows = int(histogram[:SHADOW_UPPER_BIN].sum()) / n
    midtones = int(histogram[SHADOW_UPPER_BIN:HIGHLIGHT_LOWER_BIN].sum()) / n
    highlights = int(histogram[HIGHLIGHT_LOWER_BIN:].sum()) / n

    return LightingReport(
        shadow_ratio=shadows,
        midtone_ratio=midtones,
        highlight_ratio=highlights,
        lighting_type=classify_lighting(shadows, midtones, highlights)
    )


# =========================================================================
# Sharpness
# =========================================================================

def classify_sharpness(edge_score: float) -> SharpnessTier:
    if edge_score > SHARPNESS_HIGH:
        return SharpnessTier.HIGH
    if edge_score > SHARPNESS_MEDIUM:
        return SharpnessTier.MEDIUM
    if edge_score > SHARPNESS_LOW:
        return SharpnessTier.LOW
    return SharpnessTier.VERY_LOW


def analyze_sharpness(buffer: PixelBuffer, stride: int = SHARPNESS_STRIDE) -> SharpnessReport:
    """
    Mean absolute 4-neighbour Laplacian over sampled interior pixels.

    Samples y in [1, height-1) and x in [1, width-1), both stepped by stride.
    This is a local-contrast proxy used for qualitative tiers only, not a
    calibrated blur metric. Images without interior pixels score 0.
    """
    _require_area(buffer, 'Sharpness')
    if stride < 1:
        raise ValueError(f"stride must be >= 1, got {stride}")

    h, w = buffer.height, buffer.width
    if h < 3 or w < 3:
        return SharpnessReport(edge_score=0.0, tier=SharpnessTier.VERY_LOW, samples=0)

    gray = _rgb(buffer).sum(axis=2, dtype=np.int64) / 3.0

    rows = slice(1, h - 1, stride)
    cols = slice(1, w - 1, stride)
    center = gray[rows, cols]
    left = gray[rows, 0:w - 2:stride]
    right = gray[rows, 2:w:stride]
    top = gray[0:h - 2:stride, cols]
    bottom = gray[2:h:stride, cols]

    laplacian = np.abs(4.0 * center - left - right - top - bottom)
    edge_score = float(laplacian.mean())

    return SharpnessReport(
        edge_score=edge_score,
        tier=classify_sharpness(edge_score),
        samples=int(laplacian.size)
    )


# =========================================================================
# Aggregate
# =========================================================================

def analyze_features(buffer: PixelBuffer) -> FeatureSet:
    """Run every analysis and bundle the results."""
    features = FeatureSet(
        dimensions=analyze_dimensions(buffer),
        color=analyze_color(buffer),
        composition=analyze_composition(buffer),
        lighting=analyze_lighting(buffer),
        sharpness=analyze_sharpness(buffer)
    )
    logger.debug(
        f"Features for {buffer.width}x{buffer.height}: "
        f"lighting={features.lighting.lighting_type.value}, "
        f"sharpness={features.sharpness.edge_score:.2f}, "
        f"platform={features.composition.social_platform}"
    )
    return features


def default_feature_set() -> FeatureSet:
    """Neutral placeholder used when analysis fails on degenerate input."""
    return FeatureSet(
        dimensions=DimensionInfo(
            width=0, height=0, aspect_ratio=1.0, megapixels=0.0,
            orientation=Orientation.SQUARE
        ),
        color=ColorReport(
            average_brightness=0,
            dominant_color=DominantColor.NEUTRAL,
            bright_pixel_ratio=0.0,
            dark_pixel_ratio=0.0,
            saturation_pct=0.0,
            vibrancy_pct=0.0,
            average_rgb=(0, 0, 0)
        ),
        composition=CompositionReport(
            format=ImageFormat.SQUARE,
            aspect_ratio=1.0,
            social_platform=None,
            resolution_tier=ResolutionTier.VERY_LOW,
            total_pixels=0
        ),
        lighting=LightingReport(
            shadow_ratio=0.0,
            midtone_ratio=0.0,
            highlight_ratio=0.0,
            lighting_type=LightingType.BALANCED
        ),
        sharpness=SharpnessReport(edge_score=0.0, tier=SharpnessTier.VERY_LOW, samples=0)
    )
