"""Testing utilities and fakes for the image optimizer."""

from .fakes import (
    FakeAssetRenderer,
    FakeAsyncS3Client,
    FakeFileStore,
    FakeLogger,
    create_test_image,
    create_upload_event,
)

__all__ = [
    "FakeAssetRenderer",
    "FakeAsyncS3Client",
    "FakeFileStore",
    "FakeLogger",
    "create_test_image",
    "create_upload_event",
]
