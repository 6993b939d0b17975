"""Core components of the upload optimization pipeline."""

from .exceptions import (
    ConfigurationError,
    ImageProcessingError,
    RenderError,
    SaneImageSizeError,
    StorageError,
    with_error_handling,
)
from .logging_config import get_component_logger, get_logger, setup_logger
from .models import (
    FilePayload,
    OptimizationOutcome,
    OptimizationResult,
    OptimizerConfig,
    QueueItem,
    RenderResult,
    RequestContext,
    TransformationPlan,
    TransformStep,
    UploadEvent,
    WatermarkPlan,
)
from .planning import (
    get_transformation,
    get_watermark_transformation,
    replace_extension,
    watermark_width,
)

__all__ = [
    "FilePayload",
    "RequestContext",
    "UploadEvent",
    "QueueItem",
    "TransformStep",
    "TransformationPlan",
    "WatermarkPlan",
    "RenderResult",
    "OptimizerConfig",
    "OptimizationOutcome",
    "OptimizationResult",
    "get_transformation",
    "get_watermark_transformation",
    "replace_extension",
    "watermark_width",
    "setup_logger",
    "get_logger",
    "get_component_logger",
    "SaneImageSizeError",
    "ConfigurationError",
    "RenderError",
    "StorageError",
    "ImageProcessingError",
    "with_error_handling",
]
