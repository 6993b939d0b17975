"""Transformation and watermark planning for the image optimizer."""

import math
import re
from typing import Optional

from .models import (
    DEFAULT_WATERMARK_PATH,
    TransformationPlan,
    TransformStep,
    WatermarkPlan,
)

ELIGIBLE_SUBTYPES = frozenset({"jpeg", "jpg", "png", "webp"})
AVIF_MEDIA_TYPE = "image/avif"

_EXTENSION_RE = re.compile(r"\.[^/.]+$")


def get_transformation(
    media_type: Optional[str], quality: int = 75, max_size: int = 1920
) -> Optional[TransformationPlan]:
    """
    Build the base AVIF render plan for an uploaded file.

    Args:
        media_type: Declared media type, e.g. "image/jpeg"
        quality: AVIF quality
        max_size: Side of the square bounding box

    Returns:
        A TransformationPlan, or None when the media type is not eligible
    """
    if not media_type or "/" not in media_type:
        return None

    subtype = media_type.split("/", 1)[1].strip().lower()
    if subtype not in ELIGIBLE_SUBTYPES:
        return None

    return TransformationPlan(
        output_format="avif",
        quality=quality,
        max_width=max_size,
        max_height=max_size,
        fit="inside",
        without_enlargement=True,
        transforms=(
            TransformStep(name="with_metadata"),
            TransformStep(name="avif", options={"quality": quality}),
        ),
    )


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def watermark_width(
    image_width: int, percentage: float = 20.0, minimum_width: int = 100
) -> int:
    """Proportional watermark width, clamped to [minimum_width, image_width]."""
    if image_width <= 0:
        raise ValueError(f"Image width must be positive, got {image_width}")

    candidate = _round_half_up(image_width * percentage / 100)
    return min(max(candidate, minimum_width), image_width)


def get_watermark_transformation(
    image_width: int,
    image_height: int,
    watermark_path: str = DEFAULT_WATERMARK_PATH,
    percentage: float = 20.0,
    minimum_width: int = 100,
    quality: int = 75,
    pad_canvas: bool = True,
) -> WatermarkPlan:
    """
    Build the watermark overlay plan for a rendered base image.

    The overlay is fitted inside ``overlay_width`` x the base image height,
    so it keeps its own aspect ratio and never exceeds the base image.

    Raises:
        ValueError: If either dimension is not positive
    """
    if image_height <= 0:
        raise ValueError(f"Image height must be positive, got {image_height}")

    return WatermarkPlan(
        overlay_source_path=watermark_path,
        overlay_width=watermark_width(image_width, percentage, minimum_width),
        overlay_height=image_height,
        gravity="center",
        background=(0, 0, 0, 0),
        pad_canvas=pad_canvas,
        output_format="avif",
        quality=quality,
    )


def replace_extension(filename: str, extension: str = ".avif") -> str:
    """Replace the last extension of ``filename``, or append one."""
    if not filename:
        return filename
    if _EXTENSION_RE.search(filename):
        return _EXTENSION_RE.sub(extension, filename)
    return filename + extension
