"""Tests for heuristic feature analysis."""

import logging

import numpy as np
import pytest

from viral_score.exceptions import AnalysisError
from viral_score.feature_analysis import (
    DominantColor,
    ImageFormat,
    LightingType,
    Orientation,
    ResolutionTier,
    SharpnessTier,
    analyze_color,
    analyze_composition,
    analyze_dimensions,
    analyze_features,
    analyze_lighting,
    analyze_sharpness,
    classify_dominant_color,
    classify_lighting,
    classify_resolution,
    classify_sharpness,
    default_feature_set,
    match_social_platform,
)
from viral_score.image_processing import PixelBuffer

logger = logging.getLogger(__name__)


def _solid(width, height, rgb):
    array = np.empty((height, width, 3), dtype=np.uint8)
    array[:, :] = rgb
    return PixelBuffer.from_array(array)


def _row(levels):
    """One-pixel-high gray strip with the given brightness levels."""
    array = np.array([[[v, v, v] for v in levels]], dtype=np.uint8)
    return PixelBuffer.from_array(array)


def _checkerboard(size):
    yy, xx = np.mgrid[0:size, 0:size]
    gray = np.where((yy + xx) % 2 == 0, 255, 0).astype(np.uint8)
    return PixelBuffer.from_array(np.stack([gray] * 3, axis=2))


EMPTY = PixelBuffer(width=0, height=0, pixels=b'')


class TestDimensions:
    @pytest.mark.parametrize('width, height, orientation', [
        (100, 100, Orientation.SQUARE),
        (200, 100, Orientation.HORIZONTAL),
        (60, 100, Orientation.VERTICAL),
    ])
    def test_orientation(self, width, height, orientation):
        info = analyze_dimensions(_solid(width, height, (0, 0, 0)))
        assert info.orientation == orientation
        assert info.aspect_ratio == pytest.approx(width / height)

    def test_megapixels(self):
        info = analyze_dimensions(_solid(1000, 500, (0, 0, 0)))
        assert info.megapixels == pytest.approx(0.5)


class TestColor:
    def test_solid_warm_color(self):
        report = analyze_color(_solid(8, 8, (200, 100, 50)))

        assert report.average_rgb == (200, 100, 50)
        assert report.average_brightness == 117
        assert report.dominant_color == DominantColor.WARM
        assert report.saturation_pct == pytest.approx(75.0)
        luminance = 0.299 * 200 + 0.587 * 100 + 0.114 * 50
        assert report.vibrancy_pct == pytest.approx(75.0 * luminance / 255.0)

    def test_black_has_zero_saturation(self):
        report = analyze_color(_solid(4, 4, (0, 0, 0)))
        assert report.saturation_pct == 0.0
        assert report.vibrancy_pct == 0.0
        assert report.dark_pixel_ratio == 1.0
        assert report.bright_pixel_ratio == 0.0

    def test_bright_and_dark_ratios(self):
        report = analyze_color(_row([255, 255, 0, 0, 128]))
        assert report.bright_pixel_ratio == pytest.approx(0.4)
        assert report.dark_pixel_ratio == pytest.approx(0.4)

    def test_brightness_thresholds_are_strict(self):
        # exactly 200 is not bright, exactly 50 is not dark
        report = analyze_color(_row([200, 50]))
        assert report.bright_pixel_ratio == 0.0
        assert report.dark_pixel_ratio == 0.0

    def test_average_rounds_half_up(self):
        report = analyze_color(_row([0, 1]))
        assert report.average_rgb == (1, 1, 1)
        assert report.average_brightness == 1

    def test_ratios_in_unit_range(self):
        rng = np.random.default_rng(3)
        buffer = PixelBuffer.from_array(rng.integers(0, 256, size=(32, 48, 3), dtype=np.uint8))
        report = analyze_color(buffer)

        assert 0.0 <= report.bright_pixel_ratio <= 1.0
        assert 0.0 <= report.dark_pixel_ratio <= 1.0
        assert 0.0 <= report.saturation_pct <= 100.0
        assert 0.0 <= report.vibrancy_pct <= 100.0
        assert 0 <= report.average_brightness <= 255


@pytest.mark.parametrize('rgb, expected', [
    ((200, 100, 50), DominantColor.WARM),
    ((40, 180, 60), DominantColor.NATURAL),
    ((50, 60, 200), DominantColor.COOL),
    ((120, 125, 130), DominantColor.BALANCED),
    ((100, 100, 115), DominantColor.BALANCED),
    ((200, 200, 100), DominantColor.NEUTRAL),
    ((100, 100, 116), DominantColor.COOL),
])
def test_classify_dominant_color(rgb, expected):
    assert classify_dominant_color(*rgb) == expected


class TestComposition:
    def test_square_instagram(self):
        report = analyze_composition(_solid(1000, 1000, (0, 0, 0)))
        assert report.format == ImageFormat.SQUARE
        assert report.social_platform == 'Instagram Square'
        assert report.total_pixels == 1_000_000
        assert report.resolution_tier == ResolutionTier.MEDIUM

    def test_facebook_cover(self):
        report = analyze_composition(_solid(1000, 360, (0, 0, 0)))
        assert report.format == ImageFormat.LANDSCAPE
        assert report.social_platform == 'Facebook Cover'

    @pytest.mark.parametrize('ratio, platform', [
        (1.0, 'Instagram Square'),
        (0.8, 'Instagram Portrait'),
        (1.78, 'Instagram Story'),
        (1.75, 'Instagram Story'),
        (3.0, 'Twitter Header'),
        (2.0, None),
        (1.2, None),
    ])
    def test_match_social_platform(self, ratio, platform):
        assert match_social_platform(ratio) == platform

    def test_platform_tolerance_is_strict(self):
        assert match_social_platform(1.0 + 0.1) is None

    def test_format_boundaries(self):
        assert analyze_composition(_solid(13, 10, (0, 0, 0))).format == ImageFormat.SQUARE
        assert analyze_composition(_solid(8, 10, (0, 0, 0))).format == ImageFormat.SQUARE
        assert analyze_composition(_solid(14, 10, (0, 0, 0))).format == ImageFormat.LANDSCAPE
        assert analyze_composition(_solid(7, 10, (0, 0, 0))).format == ImageFormat.PORTRAIT

    @pytest.mark.parametrize('pixels, tier', [
        (1920 * 1080, ResolutionTier.HIGH),
        (1920 * 1080 - 1, ResolutionTier.MEDIUM),
        (1280 * 720, ResolutionTier.MEDIUM),
        (640 * 480, ResolutionTier.LOW),
        (640 * 480 - 1, ResolutionTier.VERY_LOW),
    ])
    def test_classify_resolution(self, pixels, tier):
        assert classify_resolution(pixels) == tier


class TestLighting:
    def test_black_is_dark_moody(self):
        report = analyze_lighting(_solid(10, 10, (0, 0, 0)))
        assert report.shadow_ratio == 1.0
        assert report.lighting_type == LightingType.DARK_MOODY

    def test_white_is_bright_airy(self):
        report = analyze_lighting(_solid(10, 10, (255, 255, 255)))
        assert report.highlight_ratio == 1.0
        assert report.lighting_type == LightingType.BRIGHT_AIRY

    def test_midgray_is_even_soft(self):
        report = analyze_lighting(_solid(10, 10, (128, 128, 128)))
        assert report.midtone_ratio == 1.0
        assert report.lighting_type == LightingType.EVEN_SOFT

    def test_dramatic(self):
        report = analyze_lighting(_row([0] * 4 + [128] * 6))
        assert report.shadow_ratio == pytest.approx(0.4)
        assert report.lighting_type == LightingType.DRAMATIC_CONTRASTED

    def test_balanced(self):
        report = analyze_lighting(_row([0] * 3 + [255] * 3 + [128] * 4))
        assert report.lighting_type == LightingType.BALANCED

    def test_ratios_sum_to_one(self):
        rng = np.random.default_rng(11)
        buffer = PixelBuffer.from_array(rng.integers(0, 256, size=(20, 30, 3), dtype=np.uint8))
        report = analyze_lighting(buffer)
        total = report.shadow_ratio + report.midtone_ratio + report.highlight_ratio
        assert total == pytest.approx(1.0)

    def test_band_edges(self):
        # brightness 84 is a shadow, 85 a midtone, 169 a midtone, 170 a highlight
        report = analyze_lighting(_row([84, 85, 169, 170]))
        assert report.shadow_ratio == pytest.approx(0.25)
        assert report.midtone_ratio == pytest.approx(0.5)
        assert report.highlight_ratio == pytest.approx(0.25)

    def test_first_rule_wins(self):
        assert classify_lighting(0.55, 0.0, 0.45) == LightingType.DARK_MOODY
        assert classify_lighting(0.36, 0.19, 0.45) == LightingType.BRIGHT_AIRY
        assert classify_lighting(0.5, 0.5, 0.0) == LightingType.DRAMATIC_CONTRASTED
        assert classify_lighting(0.2, 0.65, 0.15) == LightingType.BALANCED


class TestSharpness:
    def test_flat_image_scores_zero(self):
        report = analyze_sharpness(_solid(20, 20, (90, 90, 90)))
        assert report.edge_score == 0.0
        assert report.tier == SharpnessTier.VERY_LOW

    def test_checkerboard_is_sharp(self):
        report = analyze_sharpness(_checkerboard(20))
        assert report.edge_score == pytest.approx(4 * 255)
        assert report.tier == SharpnessTier.HIGH
        assert report.samples == 81

    def test_no_interior_pixels(self):
        report = analyze_sharpness(_solid(2, 50, (255, 0, 0)))
        assert report.edge_score == 0.0
        assert report.samples == 0
        assert report.tier == SharpnessTier.VERY_LOW

    def test_stride_one_samples_every_interior_pixel(self):
        report = analyze_sharpness(_solid(10, 6, (0, 0, 0)), stride=1)
        assert report.samples == 8 * 4

    def test_invalid_stride(self):
        with pytest.raises(ValueError):
            analyze_sharpness(_solid(10, 10, (0, 0, 0)), stride=0)

    @pytest.mark.parametrize('score, tier', [
        (15.01, SharpnessTier.HIGH),
        (15, SharpnessTier.MEDIUM),
        (8.5, SharpnessTier.MEDIUM),
        (8, SharpnessTier.LOW),
        (3.5, SharpnessTier.LOW),
        (3, SharpnessTier.VERY_LOW),
    ])
    def test_classify_sharpness(self, score, tier):
        assert classify_sharpness(score) == tier


class TestAnalyzeFeatures:
    def test_idempotent(self):
        rng = np.random.default_rng(42)
        buffer = PixelBuffer.from_array(rng.integers(0, 256, size=(37, 53, 3), dtype=np.uint8))

        first = analyze_features(buffer)
        second = analyze_features(buffer)
        assert first == second
        logger.info(f"Features: {first.to_dict()}")

    def test_to_dict_flattens_enums(self):
        features = analyze_features(_solid(10, 10, (200, 100, 50)))
        data = features.to_dict()

        assert data['color']['dominant_color'] == 'Warm'
        assert data['lighting']['lighting_type'] == 'Even/Soft'
        assert data['color']['average_rgb'] == [200, 100, 50]

    @pytest.mark.parametrize('analyzer', [
        analyze_dimensions,
        analyze_color,
        analyze_composition,
        analyze_lighting,
        analyze_sharpness,
        analyze_features,
    ])
    def test_zero_area_raises(self, analyzer):
        with pytest.raises(AnalysisError):
            analyzer(EMPTY)

    def test_default_feature_set(self):
        features = default_feature_set()
        assert features.sharpness.tier == SharpnessTier.VERY_LOW
        assert features.composition.social_platform is None
