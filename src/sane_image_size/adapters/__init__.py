"""Renderer and file store implementations."""

from .pillow_renderer import PillowAssetRenderer
from .s3_store import S3FileStore

__all__ = ["PillowAssetRenderer", "S3FileStore"]
