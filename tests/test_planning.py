"""Tests for transformation and watermark planning."""

import pytest

from sane_image_size.core.models import TransformationPlan
from sane_image_size.core.planning import (
    get_transformation,
    get_watermark_transformation,
    replace_extension,
    watermark_width,
)


class TestGetTransformation:
    """Tests for get_transformation."""

    @pytest.mark.parametrize(
        "media_type", ["image/jpeg", "image/jpg", "image/png", "image/webp", "image/JPEG"]
    )
    def test_eligible_types_get_avif_plan(self, media_type):
        plan = get_transformation(media_type)

        assert isinstance(plan, TransformationPlan)
        assert plan.output_format == "avif"
        assert plan.quality == 75
        assert plan.max_width == 1920
        assert plan.max_height == 1920
        assert plan.fit == "inside"
        assert plan.without_enlargement is True

    @pytest.mark.parametrize(
        "media_type",
        ["image/gif", "image/avif", "image/svg+xml", "application/pdf", "image", "", None],
    )
    def test_ineligible_types_are_not_applicable(self, media_type):
        assert get_transformation(media_type) is None

    def test_custom_quality_and_size(self):
        plan = get_transformation("image/png", quality=60, max_size=800)

        assert plan.quality == 60
        assert (plan.max_width, plan.max_height) == (800, 800)

    def test_ancillary_steps_keep_metadata_then_encode(self):
        plan = get_transformation("image/jpeg", quality=50)

        assert [step.name for step in plan.transforms] == ["with_metadata", "avif"]
        assert plan.transforms[1].options == {"quality": 50}

    def test_plan_is_immutable(self):
        plan = get_transformation("image/jpeg")

        with pytest.raises(Exception):
            plan.quality = 10


class TestWatermarkWidth:
    """Tests for watermark_width."""

    @pytest.mark.parametrize(
        "image_width,expected",
        [
            (1920, 384),
            (4000, 800),
            (1000, 200),
            (500, 100),
            (499, 100),
            (200, 100),
            (100, 100),
            (80, 80),
            (1, 1),
            (1922, 384),
            (1923, 385),
        ],
    )
    def test_clamped_proportional_width(self, image_width, expected):
        assert watermark_width(image_width) == expected

    def test_never_wider_than_image(self):
        for width in range(1, 600):
            assert watermark_width(width) <= width

    def test_half_rounds_up(self):
        # 1005 * 10% = 100.5
        assert watermark_width(1005, percentage=10, minimum_width=1) == 101

    def test_custom_percentage_and_floor(self):
        assert watermark_width(1000, percentage=50, minimum_width=10) == 500
        assert watermark_width(1000, percentage=1, minimum_width=150) == 150

    def test_rejects_non_positive_width(self):
        with pytest.raises(ValueError):
            watermark_width(0)


class TestGetWatermarkTransformation:
    """Tests for get_watermark_transformation."""

    def test_plan_is_centered_and_bounded(self):
        plan = get_watermark_transformation(1920, 1280, watermark_path="/tmp/wm.png")

        assert plan.overlay_source_path == "/tmp/wm.png"
        assert plan.overlay_width == 384
        assert plan.overlay_height == 1280
        assert plan.gravity == "center"
        assert plan.background == (0, 0, 0, 0)
        assert plan.pad_canvas is True
        assert plan.output_format == "avif"

    def test_small_image_gets_full_width_mark(self):
        plan = get_watermark_transformation(90, 60)

        assert plan.overlay_width == 90

    def test_pad_canvas_can_be_disabled(self):
        plan = get_watermark_transformation(1000, 800, pad_canvas=False)

        assert plan.pad_canvas is False

    def test_rejects_non_positive_height(self):
        with pytest.raises(ValueError):
            get_watermark_transformation(100, 0)


class TestReplaceExtension:
    """Tests for replace_extension."""

    @pytest.mark.parametrize(
        "filename,expected",
        [
            ("photo.jpg", "photo.avif"),
            ("holiday.photo.PNG", "holiday.photo.avif"),
            ("dir.d/photo", "dir.d/photo.avif"),
            ("photo", "photo.avif"),
            ("", ""),
        ],
    )
    def test_replace_extension(self, filename, expected):
        assert replace_extension(filename) == expected
