"""Shared data models for the image optimizer."""

import os
from dataclasses import dataclass
from enum import Enum
from typing import Any, BinaryIO, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .exceptions import ConfigurationError

DEFAULT_WATERMARK_PATH = (
    "/directus/extensions/directus-extension-sane-image-size/watermark.png"
)
ENV_PREFIX = "EXTENSIONS_SANE_IMAGE_SIZE_"


class FilePayload(BaseModel):
    """Mutable file record attached to an upload notification.

    Unknown fields sent by the host platform are kept so that re-storing
    the payload does not drop them.
    """

    model_config = ConfigDict(extra="allow", validate_assignment=True)

    type: str = ""
    filesize: int = 0
    width: Optional[int] = None
    height: Optional[int] = None
    filename_download: str = ""
    optimized: bool = False


class RequestContext(BaseModel):
    """Ambient execution context handed over with every upload."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    database: Any = None
    accountability: Any = None


class UploadEvent(BaseModel):
    """A "file uploaded" notification."""

    file_key: str
    payload: FilePayload
    context: RequestContext = Field(default_factory=RequestContext)


class QueueItem(BaseModel):
    """An upload waiting in the processing queue."""

    file_key: str
    payload: FilePayload
    context: RequestContext = Field(default_factory=RequestContext)

    @classmethod
    def from_event(cls, event: UploadEvent) -> "QueueItem":
        return cls(file_key=event.file_key, payload=event.payload, context=event.context)


class TransformStep(BaseModel):
    """One ancillary step applied by the renderer after resizing."""

    model_config = ConfigDict(frozen=True)

    name: str
    options: Dict[str, Any] = Field(default_factory=dict)


class TransformationPlan(BaseModel):
    """Resize and re-encode parameters for the base render."""

    model_config = ConfigDict(frozen=True)

    output_format: str = "avif"
    quality: int = Field(default=75, ge=1, le=100)
    max_width: int = Field(default=1920, gt=0)
    max_height: int = Field(default=1920, gt=0)
    fit: str = "inside"
    without_enlargement: bool = True
    transforms: Tuple[TransformStep, ...] = ()


class WatermarkPlan(BaseModel):
    """Overlay parameters for the watermark render."""

    model_config = ConfigDict(frozen=True)

    overlay_source_path: str
    overlay_width: int = Field(gt=0)
    overlay_height: int = Field(gt=0)
    gravity: str = "center"
    background: Tuple[int, int, int, int] = (0, 0, 0, 0)
    pad_canvas: bool = True
    output_format: str = "avif"
    quality: int = Field(default=75, ge=1, le=100)


@dataclass
class RenderResult:
    """Output of one renderer call.

    Whoever receives the result owns ``stream`` and must either pass it on
    or close it.
    """

    stream: BinaryIO
    width: int
    height: int
    byte_size: int


class OptimizationOutcome(str, Enum):
    """What happened to one upload."""

    OPTIMIZED = "optimized"
    SKIPPED_INELIGIBLE = "skipped_ineligible"
    SKIPPED_NOT_SMALLER = "skipped_not_smaller"
    FAILED = "failed"


class OptimizationResult(BaseModel):
    """Result of processing a single upload."""

    file_key: str
    outcome: OptimizationOutcome
    original_size: int = 0
    new_size: int = 0
    error: str = ""
    processing_time: float = 0.0


def _env_value(name: str) -> Optional[str]:
    value = os.getenv(ENV_PREFIX + name)
    if value is None or value.strip() == "":
        return None
    return value.strip()


class OptimizerConfig(BaseModel):
    """Tunables for the optimization pipeline."""

    model_config = ConfigDict(frozen=True)

    quality: int = Field(default=75, ge=1, le=100)
    max_size: int = Field(default=1920, gt=0)
    watermark_path: str = DEFAULT_WATERMARK_PATH
    watermark_percentage: float = Field(default=20.0, gt=0, le=100)
    watermark_min_width: int = Field(default=100, gt=0)
    suppress_notifications: bool = True
    pad_canvas: bool = True
    render_interval: float = Field(default=0.0, ge=0)

    @classmethod
    def from_env(cls, **overrides: Any) -> "OptimizerConfig":
        """
        Build a config from ``EXTENSIONS_SANE_IMAGE_SIZE_*`` variables.

        Args:
            **overrides: Values that take precedence over the environment

        Returns:
            Validated configuration

        Raises:
            ConfigurationError: If a variable holds an invalid value
        """
        env_fields = {
            "max_size": "MAXSIZE",
            "quality": "QUALITY",
            "watermark_path": "WATERMARK_PATH",
            "watermark_percentage": "WATERMARK_PERCENTAGE",
            "watermark_min_width": "WATERMARK_MIN_WIDTH",
            "suppress_notifications": "SUPPRESS_EVENTS",
            "pad_canvas": "PAD_CANVAS",
            "render_interval": "RENDER_INTERVAL",
        }
        values: Dict[str, Any] = {}
        for field_name, env_name in env_fields.items():
            value = _env_value(env_name)
            if value is not None:
                values[field_name] = value
        values.update(overrides)

        try:
            return cls(**values)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid optimizer configuration: {exc}") from exc
