"""Custom exceptions and error handling utilities for the image optimizer."""

from __future__ import annotations

import inspect
from functools import wraps
from typing import Any, Callable, TypeVar

from .logging_config import get_logger


class SaneImageSizeError(Exception):
    """Base exception for all image optimizer errors."""


class ConfigurationError(SaneImageSizeError):
    """Error raised for invalid configuration options."""


class RenderError(SaneImageSizeError):
    """Error raised when the asset renderer cannot produce a derivative."""


class StorageError(SaneImageSizeError):
    """Error raised when reading or persisting a file fails."""


class ImageProcessingError(SaneImageSizeError):
    """Error raised when processing a single upload fails unexpectedly."""


F = TypeVar("F", bound=Callable[..., Any])


def with_error_handling(func: F) -> F:
    """Wrap a function or coroutine function with standardized error handling.

    Pipeline errors are re-raised unchanged; anything else is wrapped in
    ``ImageProcessingError``. Both are logged at debug level only; reporting
    the failure is left to the caller.
    """

    if inspect.iscoroutinefunction(func):

        @wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            logger = get_logger("processor")
            try:
                return await func(*args, **kwargs)
            except SaneImageSizeError:
                logger.debug(f"Pipeline error in {func.__name__}", exc_info=True)
                raise
            except Exception as exc:  # noqa: BLE001
                logger.debug(
                    f"Unhandled error in {func.__name__}: {exc}", exc_info=True
                )
                raise ImageProcessingError(str(exc)) from exc

        return async_wrapper  # type: ignore[return-value]

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:  # type: ignore[override]
        logger = get_logger("processor")
        try:
            return func(*args, **kwargs)
        except SaneImageSizeError:
            logger.debug(f"Pipeline error in {func.__name__}", exc_info=True)
            raise
        except Exception as exc:  # noqa: BLE001
            logger.debug(f"Unhandled error in {func.__name__}: {exc}", exc_info=True)
            raise ImageProcessingError(str(exc)) from exc

    return wrapper  # type: ignore[return-value]
