"""Pillow implementation of the asset renderer."""

import asyncio
import io
from typing import BinaryIO, Dict, Optional

from PIL import Image, ImageOps

from ..core.exceptions import RenderError, with_error_handling
from ..core.logging_config import get_component_logger
from ..core.models import RenderResult, TransformationPlan, WatermarkPlan
from ..core.protocols import FileSourceProtocol, RenderPlan


def _encode(image: "Image.Image", output_format: str, quality: int, exif: Optional[bytes]) -> RenderResult:
    output_stream = io.BytesIO()
    save_kwargs = {"format": output_format.upper(), "quality": quality}
    if exif:
        save_kwargs["exif"] = exif
    image.save(output_stream, **save_kwargs)
    byte_size = output_stream.tell()
    output_stream.seek(0)
    return RenderResult(
        stream=output_stream,
        width=image.width,
        height=image.height,
        byte_size=byte_size,
    )


def resize_image(image_bytes: bytes, plan: TransformationPlan) -> RenderResult:
    """Fit the image inside the plan's box and re-encode it."""
    image = Image.open(io.BytesIO(image_bytes))
    image.load()

    image = ImageOps.exif_transpose(image)
    keep_metadata = any(step.name == "with_metadata" for step in plan.transforms)
    exif = image.info.get("exif") if keep_metadata else None

    if image.mode not in ("RGB", "RGBA"):
        has_alpha = "A" in image.getbands() or "transparency" in image.info
        image = image.convert("RGBA" if has_alpha else "RGB")

    box = (plan.max_width, plan.max_height)
    if plan.without_enlargement:
        # thumbnail only ever shrinks
        image.thumbnail(box, Image.Resampling.LANCZOS)
    else:
        image = ImageOps.contain(image, box, Image.Resampling.LANCZOS)

    quality = plan.quality
    for step in plan.transforms:
        if step.name == plan.output_format:
            quality = int(step.options.get("quality", quality))

    return _encode(image, plan.output_format, quality, exif)


def place_watermark(base: "Image.Image", plan: WatermarkPlan) -> "Image.Image":
    """Return ``base`` with the watermark scaled to the plan box and centered.

    The watermark is scaled up or down to the largest size that fits
    ``overlay_width`` x ``overlay_height`` with its aspect ratio kept.
    """
    base = base.convert("RGBA")

    if plan.pad_canvas:
        base = ImageOps.pad(base, base.size, color=plan.background)

    with Image.open(plan.overlay_source_path) as overlay_file:
        overlay = overlay_file.convert("RGBA")
    overlay = ImageOps.contain(
        overlay, (plan.overlay_width, plan.overlay_height), Image.Resampling.LANCZOS
    )

    if plan.gravity != "center":
        raise ValueError(f"Unsupported gravity: {plan.gravity}")
    position = (
        (base.width - overlay.width) // 2,
        (base.height - overlay.height) // 2,
    )
    base.alpha_composite(overlay, dest=position)
    return base


def composite_watermark(image_bytes: bytes, plan: WatermarkPlan) -> RenderResult:
    """Composite the watermark centered on the image and re-encode it."""
    base = Image.open(io.BytesIO(image_bytes))
    base.load()
    return _encode(place_watermark(base, plan), plan.output_format, plan.quality, None)


class PillowAssetRenderer:
    """Renders plans with Pillow in a worker thread."""

    def __init__(self, source: FileSourceProtocol):
        self._source = source
        self._logger = get_component_logger("renderer")

    @with_error_handling
    async def render(
        self,
        file_key: str,
        plan: RenderPlan,
        input_stream: Optional[BinaryIO] = None,
    ) -> RenderResult:
        if input_stream is not None:
            try:
                image_bytes = input_stream.read()
            finally:
                input_stream.close()
        else:
            image_bytes = await self._source.read(file_key)

        self._logger.debug(f"[{file_key}] Rendering {type(plan).__name__}")
        try:
            if isinstance(plan, TransformationPlan):
                return await asyncio.to_thread(resize_image, image_bytes, plan)
            return await asyncio.to_thread(composite_watermark, image_bytes, plan)
        except (OSError, ValueError, KeyError) as exc:
            raise RenderError(f"Failed to render {file_key}: {exc}") from exc

    @with_error_handling
    async def get_metadata(self, asset_path: str) -> Dict[str, int]:
        def _read() -> Dict[str, int]:
            with Image.open(asset_path) as image:
                return {"width": image.width, "height": image.height}

        try:
            return await asyncio.to_thread(_read)
        except OSError as exc:
            raise RenderError(f"Failed to read {asset_path}: {exc}") from exc
