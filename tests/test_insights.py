"""Tests for score categories and insight composition."""

import logging
from dataclasses import replace

import pytest

from viral_score.feature_analysis import (
    DominantColor,
    ImageFormat,
    LightingType,
    SharpnessTier,
    default_feature_set,
)
from viral_score.insights import (
    categorize_score,
    compose,
    describe_category,
    platform_recommendations,
)
from viral_score.insights.composer import FORMAT_TIPS, PLATFORM_TIPS, RESEARCH_TIPS

logger = logging.getLogger(__name__)


def _features(
    megapixels=1.0,
    platform=None,
    image_format=ImageFormat.SQUARE,
    aspect_ratio=1.0,
    lighting=LightingType.BALANCED,
    brightness=120,
    saturation=25.0,
    vibrancy=15.0,
    color=DominantColor.NEUTRAL,
    sharpness=SharpnessTier.MEDIUM
):
    base = default_feature_set()
    return replace(
        base,
        dimensions=replace(base.dimensions, megapixels=megapixels, aspect_ratio=aspect_ratio),
        color=replace(
            base.color,
            average_brightness=brightness,
            saturation_pct=saturation,
            vibrancy_pct=vibrancy,
            dominant_color=color
        ),
        composition=replace(
            base.composition,
            social_platform=platform,
            format=image_format,
            aspect_ratio=aspect_ratio
        ),
        lighting=replace(base.lighting, lighting_type=lighting),
        sharpness=replace(base.sharpness, tier=sharpness)
    )


@pytest.mark.parametrize('score, category', [
    (6.2, 'Viral Ready'),
    (4.5, 'Viral Ready'),
    (4.4999, 'High Potential'),
    (3.0, 'High Potential'),
    (2.99, 'Room to Grow'),
    (1.5, 'Room to Grow'),
    (1.4999, 'Needs Work'),
    (-1.0, 'Needs Work'),
])
def test_categorize_score(score, category):
    assert categorize_score(score) == category


def test_every_category_has_description():
    for category in ('Viral Ready', 'High Potential', 'Room to Grow', 'Needs Work'):
        assert describe_category(category)


class TestCompose:
    def test_strong_image(self):
        features = _features(
            megapixels=3.0,
            platform='Instagram Square',
            lighting=LightingType.BRIGHT_AIRY,
            brightness=180,
            saturation=50.0,
            vibrancy=30.0,
            color=DominantColor.WARM,
            sharpness=SharpnessTier.HIGH
        )
        report = compose(4.6, features)

        assert report.category == 'Viral Ready'
        assert report.positives == [
            'High resolution (3.0MP) - great for detail',
            'Optimized for Instagram Square',
            'Bright, airy lighting appeals to social media audiences',
            'Bright images tend to perform well on social media',
            'Rich color saturation (50%) catches the eye',
            'Vibrant, well-lit colors stand out in feeds',
            'Sharp, crisp image quality',
        ]
        assert report.improvements == []
        assert report.insights == [
            'Color palette: Warm (red-toned)',
            'This image has multiple viral elements working together!',
        ]
        assert report.recommendations == PLATFORM_TIPS['Instagram Square']
        assert report.research_tips == RESEARCH_TIPS

    def test_weak_image(self):
        features = _features(
            megapixels=0.2,
            image_format=ImageFormat.LANDSCAPE,
            aspect_ratio=2.0,
            lighting=LightingType.DARK_MOODY,
            brightness=50,
            saturation=10.0,
            vibrancy=5.0,
            sharpness=SharpnessTier.LOW
        )
        report = compose(0.5, features)

        assert report.category == 'Needs Work'
        assert report.positives == []
        assert report.improvements[0] == 'Higher resolution would improve image quality'
        assert report.improvements[-1] == 'Sharper focus could improve visual appeal'
        assert len(report.improvements) == 6
        assert report.insights[0] == 'Format: Landscape (2.00:1 ratio)'
        assert report.recommendations == FORMAT_TIPS['Landscape']

    def test_score_gates_lighting_and_brightness(self):
        features = _features(lighting=LightingType.BRIGHT_AIRY, brightness=180)

        strong = compose(3.0, features)
        weak = compose(2.9, features)

        assert 'Bright images tend to perform well on social media' in strong.positives
        assert 'Bright images tend to perform well on social media' not in weak.positives
        assert 'Lighting: Bright/Airy' in weak.insights

    def test_even_soft_lighting(self):
        features = _features(lighting=LightingType.EVEN_SOFT)
        assert 'Soft, even lighting provides professional look' in compose(3.5, features).positives
        assert 'Try more dynamic lighting for greater visual interest' in compose(2.0, features).improvements

    @pytest.mark.parametrize('score', [-1.0, 1.0, 2.0, 3.5, 5.0])
    def test_each_rule_emits_one_observation(self, score):
        report = compose(score, _features())
        total = len(report.positives) + len(report.improvements) + len(report.insights)
        assert total == 9

    def test_lists_are_not_shared(self):
        first = compose(3.0, _features(platform='Instagram Story'))
        first.recommendations.append('mutated')
        first.research_tips.clear()
        second = compose(3.0, _features(platform='Instagram Story'))

        assert 'mutated' not in second.recommendations
        assert second.research_tips == RESEARCH_TIPS

    def test_deterministic(self):
        features = _features(megapixels=3.0, sharpness=SharpnessTier.HIGH)
        assert compose(3.7, features) == compose(3.7, features)

    def test_to_dict(self):
        data = compose(3.7, _features()).to_dict()
        assert data['category'] == 'High Potential'
        assert set(data) >= {'positives', 'improvements', 'insights', 'recommendations'}
        logger.info(f"Insights: {data}")


@pytest.mark.parametrize('image_format', [ImageFormat.SQUARE, ImageFormat.LANDSCAPE, ImageFormat.PORTRAIT])
def test_format_recommendations_without_platform(image_format):
    tips = platform_recommendations(_features(image_format=image_format))
    assert tips == FORMAT_TIPS[image_format.value]
