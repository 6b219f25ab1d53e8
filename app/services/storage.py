"""
Object storage for uploaded resumes and voice recordings.

Two buckets are used, `resumes` and `voice-recordings`, with object keys
partitioned by session id. Objects live on the local filesystem unless an
S3-compatible endpoint (S3, R2, MinIO) is configured.
"""
import logging
from pathlib import Path
from typing import Optional

import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from app.core import config

logger = logging.getLogger(__name__)

RESUME_BUCKET = "resumes"
VOICE_BUCKET = "voice-recordings"


class StorageError(Exception):
    """Raised when an object cannot be written or read."""


class LocalObjectStorage:
    """Filesystem-backed buckets: <root>/<bucket>/<key>."""

    def __init__(self, root: str):
        self.root = Path(root)

    def _path(self, bucket: str, key: str) -> Path:
        bucket_dir = (self.root / bucket).resolve()
        path = (bucket_dir / key).resolve()
        if bucket_dir not in path.parents:
            raise StorageError(f"Invalid object key: {key}")
        return path

    def upload(self, bucket: str, key: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        """Write a new object; existing objects are never overwritten. Returns the key."""
        path = self._path(bucket, key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "xb") as f:
                f.write(data)
        except FileExistsError as e:
            raise StorageError(f"Object already exists: {bucket}/{key}") from e
        except OSError as e:
            raise StorageError(f"Failed to write {bucket}/{key}: {e}") from e
        logger.info(f"Stored {len(data)} bytes at {bucket}/{key} ({content_type})")
        return key

    def download(self, bucket: str, key: str) -> bytes:
        path = self._path(bucket, key)
        try:
            return path.read_bytes()
        except OSError as e:
            raise StorageError(f"Failed to read {bucket}/{key}: {e}") from e


class S3ObjectStorage:
    """S3-compatible buckets via boto3."""

    def __init__(self, client):
        self.client = client

    def upload(self, bucket: str, key: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        try:
            # IfNoneMatch keeps uploads from overwriting an existing object
            self.client.put_object(Bucket=bucket, Key=key, Body=data, ContentType=content_type, IfNoneMatch="*")
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"S3 upload failed for {bucket}/{key}: {e}") from e
        logger.info(f"Stored {len(data)} bytes at s3://{bucket}/{key} ({content_type})")
        return key

    def download(self, bucket: str, key: str) -> bytes:
        try:
            resp = self.client.get_object(Bucket=bucket, Key=key)
            return resp["Body"].read()
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"S3 download failed for {bucket}/{key}: {e}") from e


def _get_s3_client():
    """Return a boto3 S3 client if an endpoint and credentials are configured, else None."""
    if not config.S3_ENDPOINT or not config.S3_ACCESS_KEY or not config.S3_SECRET_KEY:
        return None
    return boto3.client(
        "s3",
        endpoint_url=config.S3_ENDPOINT,
        aws_access_key_id=config.S3_ACCESS_KEY,
        aws_secret_access_key=config.S3_SECRET_KEY,
        config=Config(signature_version="s3v4"),
        region_name=config.S3_REGION or None,
    )


def build_storage(root: Optional[str] = None):
    """Pick S3 storage when configured, otherwise local buckets under STORAGE_DIR."""
    client = _get_s3_client()
    if client is not None:
        logger.info(f"Using S3-compatible object storage at {config.S3_ENDPOINT}")
        return S3ObjectStorage(client)
    return LocalObjectStorage(root or config.STORAGE_DIR)
