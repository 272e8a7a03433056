"""
Cloudflare R2 / S3-compatible object store.

Uses boto3 with the S3-compatible API. Works with any S3-compatible storage
(R2, MinIO, AWS S3).

Streaming:
- Uploads go through upload_fileobj over a non-seekable reader on the
  request body. boto3 switches to a managed multipart upload above
  `part_size` and aborts it if the body or the store fails, so no orphaned
  partial upload is left behind. The transfer queue is bounded, so at most
  (concurrency + 1) parts are held in memory regardless of object size.
- Downloads iterate the StreamingBody in `read_chunk_size` chunks in the
  thread pool and close it when the response ends.
"""
import asyncio
import logging
from typing import Any, AsyncIterator, Dict, List, Optional

import boto3
from boto3.exceptions import S3UploadFailedError
from boto3.s3.transfer import TransferConfig
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from starlette.concurrency import run_in_threadpool

from filegate.config import Settings
from filegate.errors import ConfigurationError, StoreFailure
from filegate.storage.base import (
    DEFAULT_CONTENT_TYPE,
    ObjectInfo,
    StoredObject,
    WrittenObject,
)
from filegate.storage.streams import AsyncIteratorReader, iterate_sync_body

logger = logging.getLogger(__name__)

_STORE_ERRORS = (ClientError, BotoCoreError, S3UploadFailedError)
_MISSING_CODES = {"NoSuchKey", "404", "NotFound"}

# get_object response field -> HTTP header echoed on reads
_HTTP_METADATA_FIELDS = {
    "ContentDisposition": "Content-Disposition",
    "ContentEncoding": "Content-Encoding",
    "ContentLanguage": "Content-Language",
    "CacheControl": "Cache-Control",
}


def _error_code(error: ClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", ""))


class R2ObjectStore:
    """
    S3-compatible ObjectStore for Cloudflare R2.

    One boto3 client is built at startup and shared by every request;
    boto3 clients are thread-safe.
    """

    backend_name = "r2"

    def __init__(
        self,
        client: Any,
        bucket: str,
        prefix: str = "",
        read_chunk_size: int = 64 * 1024,
        part_size: int = 8 * 1024 * 1024,
        concurrency: int = 4,
    ):
        if not bucket:
            raise ConfigurationError("R2 bucket name is required")
        if prefix and not prefix.endswith("/"):
            prefix = prefix + "/"

        self._client = client
        self.bucket = bucket
        self.prefix = prefix
        self._read_chunk_size = read_chunk_size

        self._transfer_config = TransferConfig(
            multipart_threshold=part_size,
            multipart_chunksize=part_size,
            max_concurrency=concurrency,
            use_threads=True,
            preferred_transfer_client="classic",
        )
        # Bound read-ahead: the submitter blocks once this many parts are in flight
        self._transfer_config.max_request_queue_size = concurrency

    @classmethod
    def from_settings(cls, settings: Settings) -> "R2ObjectStore":
        """Build the store and its boto3 client from application settings."""
        if not all([
            settings.r2_endpoint,
            settings.r2_access_key,
            settings.r2_secret_key
        ]):
            raise ConfigurationError(
                "R2 storage not configured. "
                "Set R2_ENDPOINT, R2_ACCESS_KEY, and R2_SECRET_KEY "
                "(or STORAGE_BACKEND=memory for local development)."
            )

        # Use signature_version='s3v4' for R2 compatibility
        client = boto3.client(
            's3',
            endpoint_url=settings.r2_endpoint,
            aws_access_key_id=settings.r2_access_key,
            aws_secret_access_key=settings.r2_secret_key,
            region_name=settings.r2_region,
            config=Config(
                signature_version='s3v4',
                s3={'addressing_style': 'path'},  # R2 uses path-style
                retries={'max_attempts': settings.r2_max_attempts, 'mode': 'standard'},
                # R2 rejects the default CRC checksums newer botocore sends
                request_checksum_calculation='when_required',
                response_checksum_validation='when_required',
            )
        )
        logger.info(f"R2 client initialized for bucket: {settings.r2_bucket}")
        return cls(
            client=client,
            bucket=settings.r2_bucket,
            prefix=settings.r2_prefix,
            read_chunk_size=settings.read_chunk_size,
            part_size=settings.upload_part_size,
            concurrency=settings.upload_concurrency,
        )

    def _object_key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    async def put(
        self,
        key: str,
        body: AsyncIterator[bytes],
        content_type: str = DEFAULT_CONTENT_TYPE,
    ) -> WrittenObject:
        reader = AsyncIteratorReader(body, asyncio.get_running_loop())
        try:
            await run_in_threadpool(
                self._client.upload_fileobj,
                reader,
                self.bucket,
                self._object_key(key),
                ExtraArgs={"ContentType": content_type or DEFAULT_CONTENT_TYPE},
                Config=self._transfer_config,
            )
        except _STORE_ERRORS as e:
            raise StoreFailure("put", e, key=key) from e
        finally:
            reader.close()

        logger.debug(f"Uploaded {key} to R2 ({reader.bytes_read} bytes)")
        # upload_fileobj does not surface the ETag; reads report it instead
        return WrittenObject(key=key, size=reader.bytes_read, etag=None)

    async def get(self, key: str) -> Optional[StoredObject]:
        try:
            response = await run_in_threadpool(
                self._client.get_object,
                Bucket=self.bucket,
                Key=self._object_key(key),
            )
        except ClientError as e:
            if _error_code(e) in _MISSING_CODES:
                return None
            raise StoreFailure("get", e, key=key) from e
        except BotoCoreError as e:
            raise StoreFailure("get", e, key=key) from e

        streaming_body = response["Body"]
        http_metadata: Dict[str, str] = {
            header: str(response[field])
            for field, header in _HTTP_METADATA_FIELDS.items()
            if response.get(field)
        }
        return StoredObject(
            key=key,
            body=iterate_sync_body(
                streaming_body.iter_chunks(self._read_chunk_size),
                streaming_body.close,
                on_error=lambda e: StoreFailure("read", e, key=key),
            ),
            content_type=response.get("ContentType") or DEFAULT_CONTENT_TYPE,
            etag=response.get("ETag", ""),
            size=response.get("ContentLength"),
            uploaded_at=response.get("LastModified"),
            http_metadata=http_metadata,
        )

    async def list(self, limit: int = 1000) -> List[ObjectInfo]:
        kwargs: Dict[str, Any] = {"Bucket": self.bucket, "MaxKeys": limit}
        if self.prefix:
            kwargs["Prefix"] = self.prefix
        try:
            response = await run_in_threadpool(self._client.list_objects_v2, **kwargs)
        except _STORE_ERRORS as e:
            raise StoreFailure("list", e) from e

        if response.get("IsTruncated"):
            logger.debug(f"Listing truncated at {limit} objects")

        return [
            ObjectInfo(
                key=item["Key"][len(self.prefix):],
                size=item.get("Size", 0),
                uploaded_at=item["LastModified"],
            )
            for item in response.get("Contents", [])[:limit]
        ]

    async def ping(self) -> None:
        try:
            await run_in_threadpool(self._client.head_bucket, Bucket=self.bucket)
        except _STORE_ERRORS as e:
            raise StoreFailure("ping", e) from e

    async def close(self) -> None:
        self._client.close()
