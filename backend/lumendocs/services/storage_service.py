# FILE: backend/lumendocs/services/storage_service.py
# 1. Uses TransferConfig to enable Multi-Part Uploads (Chunks).
# 2. Rename is copy-then-delete; a failed source delete rolls the copy back.
# 3. Every call is bounded by connect/read timeouts from settings.

import io
import logging
from datetime import datetime, timezone
from typing import Any, Optional

import boto3
from botocore.client import Config
from boto3.s3.transfer import TransferConfig
from botocore.exceptions import BotoCoreError, ClientError

from ..core.config import Settings
from ..core.exceptions import StorageError

logger = logging.getLogger(__name__)

transfer_config = TransferConfig(
    multipart_threshold=1024 * 1024 * 15,
    max_concurrency=4,
    multipart_chunksize=1024 * 1024 * 15,
    use_threads=True
)

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}


def _is_not_found(e: ClientError) -> bool:
    return str(e.response.get("Error", {}).get("Code")) in _NOT_FOUND_CODES


def build_s3_client(settings: Settings) -> Any:
    if not all([settings.STORAGE_ACCESS_KEY_ID, settings.STORAGE_SECRET_ACCESS_KEY, settings.STORAGE_BUCKET_NAME]):
        logger.critical("!!! CRITICAL: Object storage is not configured.")
        raise StorageError("Storage service is not configured.")

    return boto3.client(
        's3',
        endpoint_url=settings.STORAGE_ENDPOINT_URL or None,
        region_name=settings.STORAGE_REGION,
        aws_access_key_id=settings.STORAGE_ACCESS_KEY_ID,
        aws_secret_access_key=settings.STORAGE_SECRET_ACCESS_KEY,
        config=Config(
            signature_version='s3v4',
            connect_timeout=settings.STORAGE_TIMEOUT_SECONDS,
            read_timeout=settings.STORAGE_TIMEOUT_SECONDS,
            retries={"max_attempts": 2},
        )
    )


class S3ObjectStore:
    def __init__(self, client: Any, bucket: str, uri_scheme: str = "gs"):
        self.client = client
        self.bucket = bucket
        self.uri_scheme = uri_scheme

    @classmethod
    def from_settings(cls, settings: Settings) -> "S3ObjectStore":
        return cls(build_s3_client(settings), settings.STORAGE_BUCKET_NAME, settings.STORAGE_URI_SCHEME)

    def blob_uri(self, key: str) -> str:
        return f"{self.uri_scheme}://{self.bucket}/{key}"

    def upload(self, key: str, data: bytes, content_type: str, original_filename: str = "") -> int:
        logger.info(f"--- [Storage Service] Uploading object: {key} ({len(data)} bytes) ---")
        extra_args = {
            "ContentType": content_type or "application/octet-stream",
            "Metadata": {
                "original-filename": original_filename.encode("ascii", "ignore").decode(),
                "uploaded-at": datetime.now(timezone.utc).isoformat(),
            },
        }
        try:
            self.client.upload_fileobj(io.BytesIO(data), self.bucket, key, ExtraArgs=extra_args, Config=transfer_config)
            return len(data)
        except (BotoCoreError, ClientError) as e:
            logger.error(f"!!! ERROR: Upload failed: {key}, Reason: {e}")
            raise StorageError(f"failed to upload object '{key}': {e}", e) from e

    def exists(self, key: str) -> bool:
        try:
            self.client.head_object(Bucket=self.bucket, Key=key)
            return True
        except ClientError as e:
            if _is_not_found(e):
                return False
            raise StorageError(f"failed to check object existence for '{key}': {e}", e) from e
        except BotoCoreError as e:
            raise StorageError(f"failed to check object existence for '{key}': {e}", e) from e

    def rename(self, old_key: str, new_key: str) -> None:
        try:
            self.client.copy_object(
                Bucket=self.bucket, Key=new_key, CopySource={"Bucket": self.bucket, "Key": old_key}
            )
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"failed to copy object from '{old_key}' to '{new_key}' during rename: {e}", e) from e

        try:
            self.client.delete_object(Bucket=self.bucket, Key=old_key)
        except (BotoCoreError, ClientError) as e:
            cleanup_error: Optional[Exception] = None
            try:
                self.client.delete_object(Bucket=self.bucket, Key=new_key)
            except (BotoCoreError, ClientError) as ce:
                cleanup_error = ce
            message = f"failed to delete original object '{old_key}' after copying to '{new_key}': {e}"
            if cleanup_error:
                message += f"; cleanup of copied object also failed: {cleanup_error}"
            raise StorageError(message, e) from e

    def delete(self, key: str) -> None:
        try:
            logger.info(f"--- Deleting: {key} ---")
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as e:
            logger.error(f"!!! ERROR: Delete failed: {e}")
            raise StorageError(f"failed to delete object '{key}': {e}", e) from e

    def signed_url(self, key: str, ttl_seconds: int) -> str:
        try:
            return self.client.generate_presigned_url(
                'get_object', Params={"Bucket": self.bucket, "Key": key}, ExpiresIn=ttl_seconds
            )
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"failed to generate signed URL for '{key}': {e}", e) from e
