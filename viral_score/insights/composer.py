"""
Turn a popularity score and feature set into human-readable insights.

Every observation lands in exactly one of positives, improvements or
insights. Rules are evaluated in a fixed order (resolution, platform/format,
lighting, brightness, saturation, vibrancy, dominant color, sharpness, score
band) so the output lists are deterministic.
"""

import logging
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Tuple

from viral_score.feature_analysis.types import (
    DominantColor,
    FeatureSet,
    LightingType,
    SharpnessTier,
)

logger = logging.getLogger(__name__)

# Score bands, highest first; lower bound is inclusive.
CATEGORY_BANDS: List[Tuple[float, str]] = [
    (4.5, 'Viral Ready'),
    (3.0, 'High Potential'),
    (1.5, 'Room to Grow'),
]
LOWEST_CATEGORY = 'Needs Work'

CATEGORY_DESCRIPTIONS = {
    'Viral Ready': 'This image has exceptional viral potential! It contains highly engaging visual elements.',
    'High Potential': 'This image shows good potential for engagement with appealing visual content.',
    'Room to Grow': 'This image has moderate appeal and may receive average engagement.',
    'Needs Work': 'This image may struggle to gain traction on social media platforms.',
}

SCORE_BAND_COMMENTARY = {
    'Viral Ready': 'This image has multiple viral elements working together!',
    'High Potential': 'This image has good engagement potential',
    'Room to Grow': 'Room for improvement to increase engagement',
    'Needs Work': 'Several factors could be optimized for better performance',
}

# Feature-rule thresholds
HIGH_RESOLUTION_MP = 2.0
LOW_RESOLUTION_MP = 0.5
STRONG_SCORE = 3.0
BRIGHT_AVERAGE = 150
DARK_AVERAGE = 80
HIGH_SATURATION_PCT = 40.0
LOW_SATURATION_PCT = 15.0
HIGH_VIBRANCY_PCT = 25.0
LOW_VIBRANCY_PCT = 8.0

PALETTE_NAMES = {
    DominantColor.WARM: 'Warm (red-toned)',
    DominantColor.NATURAL: 'Natural (green-toned)',
    DominantColor.COOL: 'Cool (blue-toned)',
    DominantColor.BALANCED: 'Balanced (no single channel dominates)',
    DominantColor.NEUTRAL: 'Neutral (mixed tones)',
}

PLATFORM_TIPS: Dict[str, List[str]] = {
    'Instagram Square': [
        'Square crops display at full size in the Instagram grid and feed',
        'Keep the subject centered; the grid preview crops nothing',
        'Add a carousel of related square shots to increase dwell time',
    ],
    'Instagram Portrait': [
        '4:5 portrait takes the most vertical space in the Instagram feed',
        'Place the subject in the upper two thirds to survive grid cropping',
        'Portrait crops work well for people and product shots',
    ],
    'Instagram Story': [
        'Keep text and faces out of the top and bottom 250px safe zones',
        'Full-screen stories benefit from bold, high-contrast subjects',
        'Add interactive stickers to boost story engagement',
    ],
    'Facebook Cover': [
        'Cover photos are cropped differently on mobile; keep key content centered',
        'Avoid small text; cover images render at low resolution on phones',
    ],
    'Twitter Header': [
        'The profile picture overlaps the lower left of the header',
        'Headers are cropped on mobile; keep important content in the middle band',
    ],
}

FORMAT_TIPS: Dict[str, List[str]] = {
    'Landscape': [
        'Landscape images are shown smaller in mobile feeds; consider a 4:5 crop for Instagram',
        'Wide formats suit Facebook and X/Twitter link previews',
    ],
    'Portrait': [
        'Portrait images dominate mobile feeds; a 4:5 crop is ideal for Instagram',
        'Taller 9:16 crops fit Stories and Reels',
    ],
    'Square': [
        'Square images work across Instagram, Facebook and LinkedIn without cropping',
        'Crop to exactly 1:1 to avoid letterboxing',
    ],
}

RESEARCH_TIPS = [
    'Images with faces receive 38% more engagement',
    'Bright, high-contrast images perform better in feeds',
    'Square and portrait formats optimize for mobile viewing',
    'Visual storytelling increases emotional connection',
]


@dataclass
class InsightReport:
    """Categorized, ordered observations about one analyzed image."""
    category: str
    description: str
    positives: List[str] = field(default_factory=list)
    improvements: List[str] = field(default_factory=list)
    insights: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)
    research_tips: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def categorize_score(score: float) -> str:
    """Map a raw model score to its category band."""
    for lower_bound, category in CATEGORY_BANDS:
        if score >= lower_bound:
            return category
    return LOWEST_CATEGORY


def describe_category(category: str) -> str:
    return CATEGORY_DESCRIPTIONS[category]


def platform_recommendations(features: FeatureSet) -> List[str]:
    """Tips for the matched platform, or for the format band when unmatched."""
    platform = features.composition.social_platform
    if platform is not None and platform in PLATFORM_TIPS:
        return list(PLATFORM_TIPS[platform])
    return list(FORMAT_TIPS[features.composition.format.value])


class _Collector:
    """Accumulates observations into the three output lists."""

    def __init__(self):
        self.positives: List[str] = []
        self.improvements: List[str] = []
        self.insights: List[str] = []

    def positive(self, text: str) -> None:
        self.positives.append(text)

    def improvement(self, text: str) -> None:
        self.improvements.append(text)

    def insight(self, text: str) -> None:
        self.insights.append(text)


def _resolution(out: _Collector, score: float, features: FeatureSet) -> None:
    mp = features.dimensions.megapixels
    if mp > HIGH_RESOLUTION_MP:
        out.positive(f"High resolution ({mp:.1f}MP) - great for detail")
    elif mp < LOW_RESOLUTION_MP:
        out.improvement('Higher resolution would improve image quality')
    else:
        out.insight(f"Resolution: {mp:.1f}MP ({features.composition.resolution_tier.value} tier)")


def _platform(out: _Collector, score: float, features: FeatureSet) -> None:
    composition = features.composition
    if composition.social_platform:
        out.positive(f"Optimized for {composition.social_platform}")
    else:
        out.insight(f"Format: {composition.format.value} ({composition.aspect_ratio:.2f}:1 ratio)")


def _lighting(out: _Collector, score: float, features: FeatureSet) -> None:
    lighting_type = features.lighting.lighting_type
    if lighting_type == LightingType.BRIGHT_AIRY and score >= STRONG_SCORE:
        out.positive('Bright, airy lighting appeals to social media audiences')
    elif lighting_type == LightingType.DRAMATIC_CONTRASTED and score >= STRONG_SCORE:
        out.positive('Dramatic lighting creates visual impact')
    elif lighting_type == LightingType.EVEN_SOFT:
        if score >= STRONG_SCORE:
            out.positive('Soft, even lighting provides professional look')
        else:
            out.improvement('Try more dynamic lighting for greater visual interest')
    elif lighting_type == LightingType.DARK_MOODY:
        out.improvement('Most of the frame is in shadow; lifting exposure helps images stand out in feeds')
    else:
        out.insight(f"Lighting: {lighting_type.value}")


def _brightness(out: _Collector, score: float, features: FeatureSet) -> None:
    brightness = features.color.average_brightness
    if brightness > BRIGHT_AVERAGE and score >= STRONG_SCORE:
        out.positive('Bright images tend to perform well on social media')
    elif brightness < DARK_AVERAGE:
        out.improvement('Darker images may struggle for attention in social feeds')
    else:
        out.insight(f"Average brightness: {brightness}/255")


def _saturation(out: _Collector, score: float, features: FeatureSet) -> None:
    saturation = features.color.saturation_pct
    if saturation > HIGH_SATURATION_PCT:
        out.positive(f"Rich color saturation ({saturation:.0f}%) catches the eye")
    elif saturation < LOW_SATURATION_PCT:
        out.improvement('Colors look muted; a saturation boost could add punch')
    else:
        out.insight(f"Saturation: {saturation:.0f}%")


def _vibrancy(out: _Collector, score: float, features: FeatureSet) -> None:
    vibrancy = features.color.vibrancy_pct
    if vibrancy > HIGH_VIBRANCY_PCT:
        out.positive('Vibrant, well-lit colors stand out in feeds')
    elif vibrancy < LOW_VIBRANCY_PCT:
        out.improvement('Low vibrancy; brighter, more colorful subjects draw more attention')
    else:
        out.insight(f"Vibrancy: {vibrancy:.0f}%")


def _dominant_color(out: _Collector, score: float, features: FeatureSet) -> None:
    out.insight(f"Color palette: {PALETTE_NAMES[features.color.dominant_color]}")


def _sharpness(out: _Collector, score: float, features: FeatureSet) -> None:
    tier = features.sharpness.tier
    if tier == SharpnessTier.HIGH:
        out.positive('Sharp, crisp image quality')
    elif tier == SharpnessTier.MEDIUM:
        out.insight('Sharpness: Medium')
    else:
        out.improvement('Sharper focus could improve visual appeal')


def _score_band(out: _Collector, score: float, features: FeatureSet) -> None:
    out.insight(SCORE_BAND_COMMENTARY[categorize_score(score)])


RULES = [
    _resolution,
    _platform,
    _lighting,
    _brightness,
    _saturation,
    _vibrancy,
    _dominant_color,
    _sharpness,
    _score_band,
]


def compose(score: float, features: FeatureSet) -> InsightReport:
    """
    Build the insight report for a score and its feature set.

    Args:
        score: Raw, unclamped model score
        features: Heuristic analysis of the same image

    Returns:
        InsightReport with deterministic list ordering
    """
    category = categorize_score(score)
    out = _Collector()
    for rule in RULES:
        rule(out, score, features)

    report = InsightReport(
        category=category,
        description=describe_category(category),
        positives=out.positives,
        improvements=out.improvements,
        insights=out.insights,
        recommendations=platform_recommendations(features),
        research_tips=list(RESEARCH_TIPS)
    )
    logger.debug(
        f"Composed insights for score={score:.2f} ({category}): "
        f"{len(report.positives)} positives, {len(report.improvements)} improvements"
    )
    return report
