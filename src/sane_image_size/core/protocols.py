"""Protocol definitions for dependency injection and testability."""

from typing import Any, BinaryIO, Dict, Optional, Protocol, Union

from .models import FilePayload, RenderResult, TransformationPlan, WatermarkPlan

RenderPlan = Union[TransformationPlan, WatermarkPlan]


class AssetRendererProtocol(Protocol):
    """Protocol for the external asset-rendering capability."""

    async def render(
        self,
        file_key: str,
        plan: RenderPlan,
        input_stream: Optional[BinaryIO] = None,
    ) -> RenderResult:
        """Render ``file_key`` (or ``input_stream`` when given) with ``plan``."""
        ...

    async def get_metadata(self, asset_path: str) -> Dict[str, int]:
        """Return ``width`` and ``height`` of a local asset."""
        ...


class FileStoreProtocol(Protocol):
    """Protocol for the external file store."""

    async def store(
        self,
        stream: BinaryIO,
        payload: FilePayload,
        file_key: str,
        *,
        suppress_notification: bool = False,
    ) -> None:
        """Persist ``stream`` and ``payload`` under ``file_key``."""
        ...


class FileSourceProtocol(Protocol):
    """Protocol for reading the bytes of an uploaded file."""

    async def read(self, file_key: str) -> bytes:
        """Read the stored bytes of ``file_key``."""
        ...


class LoggerProtocol(Protocol):
    """Protocol for logging operations."""

    def debug(self, message: str, *args: Any, **kwargs: Any) -> None:
        """Log debug message."""
        ...

    def info(self, message: str, *args: Any, **kwargs: Any) -> None:
        """Log info message."""
        ...

    def warning(self, message: str, *args: Any, **kwargs: Any) -> None:
        """Log warning message."""
        ...

    def error(self, message: str, *args: Any, **kwargs: Any) -> None:
        """Log error message."""
        ...
