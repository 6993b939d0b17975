import asyncio
import logging
from unittest.mock import patch

import pytest

from sane_image_size.core.exceptions import (
    ConfigurationError,
    ImageProcessingError,
    RenderError,
    SaneImageSizeError,
    StorageError,
    with_error_handling,
)


@with_error_handling
def _fail_func() -> None:
    raise ValueError("boom")


@with_error_handling
def _pipeline_fail_func() -> None:
    raise RenderError("renderer down")


@with_error_handling
async def _async_fail_func() -> None:
    raise ValueError("async boom")


@with_error_handling
async def _async_ok_func() -> int:
    return 42


def test_exception_hierarchy() -> None:
    for exc_type in (ConfigurationError, RenderError, StorageError, ImageProcessingError):
        assert issubclass(exc_type, SaneImageSizeError)


def test_with_error_handling_raises_image_processing_error() -> None:
    with pytest.raises(ImageProcessingError):
        _fail_func()


def test_with_error_handling_keeps_pipeline_errors() -> None:
    with pytest.raises(RenderError, match="renderer down"):
        _pipeline_fail_func()


def test_with_error_handling_logs_at_debug_only() -> None:
    with patch("sane_image_size.core.exceptions.get_logger") as mock_get_logger:
        mock_logger = logging.getLogger("test")
        mock_get_logger.return_value = mock_logger
        with patch.object(mock_logger, "debug") as mock_debug, patch.object(
            mock_logger, "error"
        ) as mock_error:
            with pytest.raises(ImageProcessingError):
                _fail_func()
            with pytest.raises(RenderError):
                _pipeline_fail_func()
            assert mock_debug.call_count == 2
            mock_error.assert_not_called()


def test_with_error_handling_wraps_coroutines() -> None:
    with pytest.raises(ImageProcessingError, match="async boom"):
        asyncio.run(_async_fail_func())


def test_with_error_handling_returns_coroutine_result() -> None:
    assert asyncio.run(_async_ok_func()) == 42
