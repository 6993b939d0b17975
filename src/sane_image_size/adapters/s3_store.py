"""S3 implementation of the file store and file source."""

import json
import posixpath
from typing import Any, BinaryIO, Callable, Dict, Optional

from botocore.exceptions import ClientError

from ..core.exceptions import StorageError
from ..core.logging_config import get_component_logger
from ..core.models import FilePayload, RequestContext, UploadEvent

PAYLOAD_METADATA_KEY = "payload"
OPTIMIZED_METADATA_KEY = "optimized"

UploadListener = Callable[[UploadEvent], Any]


class S3FileStore:
    """Reads and re-stores uploads in one S3 bucket.

    ``client`` is an open aioboto3 S3 client. When ``on_upload`` is set it
    is called after every store that does not suppress notifications.
    """

    def __init__(
        self,
        client: Any,
        bucket: str,
        on_upload: Optional[UploadListener] = None,
    ):
        self._client = client
        self._bucket = bucket
        self._on_upload = on_upload
        self._logger = get_component_logger("store")

    @property
    def bucket(self) -> str:
        return self._bucket

    def set_listener(self, on_upload: Optional[UploadListener]) -> None:
        self._on_upload = on_upload

    async def read(self, file_key: str) -> bytes:
        self._logger.debug(f"[{file_key}] Downloading s3://{self._bucket}/{file_key}")
        try:
            response = await self._client.get_object(Bucket=self._bucket, Key=file_key)
            async with response["Body"] as stream:
                return await stream.read()
        except ClientError as exc:
            raise StorageError(f"Failed to read {file_key}: {exc}") from exc

    async def store(
        self,
        stream: BinaryIO,
        payload: FilePayload,
        file_key: str,
        *,
        suppress_notification: bool = False,
    ) -> None:
        try:
            body = stream.read()
        finally:
            stream.close()

        metadata = {
            PAYLOAD_METADATA_KEY: json.dumps(payload.model_dump(mode="json")),
            OPTIMIZED_METADATA_KEY: "true" if payload.optimized else "false",
        }

        self._logger.debug(f"[{file_key}] Uploading {len(body)} bytes to s3://{self._bucket}")
        try:
            await self._client.put_object(
                Bucket=self._bucket,
                Key=file_key,
                Body=body,
                ContentType=payload.type or "application/octet-stream",
                Metadata=metadata,
            )
        except ClientError as exc:
            raise StorageError(f"Failed to store {file_key}: {exc}") from exc

        if not suppress_notification and self._on_upload is not None:
            self._on_upload(UploadEvent(file_key=file_key, payload=payload.model_copy()))

    async def load_event(
        self, file_key: str, context: Optional[RequestContext] = None
    ) -> UploadEvent:
        """Build an upload notification for an object that is already stored."""
        try:
            head = await self._client.head_object(Bucket=self._bucket, Key=file_key)
        except ClientError as exc:
            raise StorageError(f"Failed to load {file_key}: {exc}") from exc

        return UploadEvent(
            file_key=file_key,
            payload=payload_from_head(file_key, head),
            context=context or RequestContext(),
        )


def payload_from_head(file_key: str, head: Dict[str, Any]) -> FilePayload:
    """Rebuild a FilePayload from a head_object response."""
    metadata = head.get("Metadata") or {}
    raw_payload = metadata.get(PAYLOAD_METADATA_KEY)
    if raw_payload:
        try:
            return FilePayload(**json.loads(raw_payload))
        except ValueError as exc:
            raise StorageError(f"Corrupt payload metadata on {file_key}: {exc}") from exc

    return FilePayload(
        type=head.get("ContentType", ""),
        filesize=int(head.get("ContentLength", 0)),
        filename_download=posixpath.basename(file_key),
        optimized=metadata.get(OPTIMIZED_METADATA_KEY, "").lower() == "true",
    )
