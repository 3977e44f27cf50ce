import mimetypes
import os
import uuid
from typing import Optional
from urllib.parse import quote

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from errors import StorageError
from logging_config import logger
from schemas.pipeline import StoredFileHandle
from utils.text_extraction import IMAGE_EXTENSIONS, file_extension


class StorageConfig:
    @classmethod
    def get_bucket(cls) -> str:
        bucket = os.getenv("SUBMISSIONS_BUCKET")
        if not bucket:
            raise ValueError(
                "SUBMISSIONS_BUCKET environment variable is not set. "
                "Cannot store submission files."
            )
        return bucket

    @classmethod
    def get_region(cls) -> str:
        return os.getenv("AWS_REGION", "us-east-1")

    @classmethod
    def get_public_base_url(cls) -> Optional[str]:
        base = os.getenv("STORAGE_PUBLIC_BASE_URL")
        return base.rstrip("/") if base else None


class S3Storage:
    """Durable object storage for submission files, backed by an S3 bucket."""

    def __init__(self, client=None, bucket: Optional[str] = None, region: Optional[str] = None):
        self._client = client
        self._bucket = bucket
        self._region = region or StorageConfig.get_region()

    @property
    def bucket(self) -> str:
        if self._bucket is None:
            self._bucket = StorageConfig.get_bucket()
        return self._bucket

    @property
    def client(self):
        if self._client is None:
            self._client = boto3.client("s3", region_name=self._region)
        return self._client

    def _url_for(self, key: str) -> str:
        base = StorageConfig.get_public_base_url()
        if base:
            return f"{base}/{key}"
        return f"https://{self.bucket}.s3.{self._region}.amazonaws.com/{key}"

    def upload(self, file_bytes: bytes, filename: str, folder: str = "submissions") -> StoredFileHandle:
        ext = file_extension(filename)
        key = f"{folder.strip('/')}/{uuid.uuid4().hex}{'.' + ext if ext else ''}"
        content_type = mimetypes.guess_type(filename)[0] or "application/octet-stream"

        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=file_bytes,
                ContentType=content_type,
                Metadata={"original_filename": quote(filename)},
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Storage upload failed for {filename}: {e}", exc_info=True)
            raise StorageError("Failed to upload file to storage.") from e

        handle = StoredFileHandle(
            public_id=key,
            url=self._url_for(key),
            resource_type="image" if ext in IMAGE_EXTENSIONS else "raw",
        )
        logger.info(f"Uploaded {filename} → {handle.public_id}")
        return handle

    def delete(self, handle: StoredFileHandle) -> bool:
        """Best-effort removal. Failures are logged and reported as False."""
        try:
            self.client.delete_object(Bucket=self.bucket, Key=handle.public_id)
            logger.info(f"Deleted stored file: {handle.public_id}")
            return True
        except Exception as e:
            logger.error(f"Failed to delete stored file {handle.public_id}: {e}", exc_info=True)
            return False

    def download(self, handle: StoredFileHandle) -> bytes:
        try:
            obj = self.client.get_object(Bucket=self.bucket, Key=handle.public_id)
            return obj["Body"].read()
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Storage download failed for {handle.public_id}: {e}", exc_info=True)
            raise StorageError(f"Failed to retrieve stored file {handle.public_id}") from e
