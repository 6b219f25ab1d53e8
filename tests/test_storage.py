"""
Tests for resume and voice-recording object storage.
"""
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from app.services.storage import (
    LocalObjectStorage,
    S3ObjectStorage,
    StorageError,
    RESUME_BUCKET,
    VOICE_BUCKET,
    build_storage,
)


def test_local_upload_then_download(tmp_path):
    storage = LocalObjectStorage(str(tmp_path))

    key = storage.upload(RESUME_BUCKET, "session-1/1700000000000_cv.pdf", b"%PDF-data", "application/pdf")

    assert key == "session-1/1700000000000_cv.pdf"
    assert (tmp_path / RESUME_BUCKET / "session-1" / "1700000000000_cv.pdf").exists()
    assert storage.download(RESUME_BUCKET, key) == b"%PDF-data"


def test_local_upload_never_overwrites(tmp_path):
    storage = LocalObjectStorage(str(tmp_path))
    storage.upload(VOICE_BUCKET, "s/q_1.webm", b"first")

    with pytest.raises(StorageError, match="already exists"):
        storage.upload(VOICE_BUCKET, "s/q_1.webm", b"second")
    assert storage.download(VOICE_BUCKET, "s/q_1.webm") == b"first"


def test_local_rejects_keys_outside_bucket(tmp_path):
    storage = LocalObjectStorage(str(tmp_path))
    with pytest.raises(StorageError, match="Invalid object key"):
        storage.upload(RESUME_BUCKET, "../escape.txt", b"x")


def test_local_download_missing_object(tmp_path):
    storage = LocalObjectStorage(str(tmp_path))
    with pytest.raises(StorageError):
        storage.download(RESUME_BUCKET, "nope/missing.pdf")


def test_s3_upload_uses_conditional_put():
    client = MagicMock()
    storage = S3ObjectStorage(client)

    storage.upload(VOICE_BUCKET, "s/q_1.webm", b"audio", "audio/webm")

    client.put_object.assert_called_once_with(
        Bucket=VOICE_BUCKET, Key="s/q_1.webm", Body=b"audio", ContentType="audio/webm", IfNoneMatch="*"
    )


def test_s3_errors_become_storage_errors():
    client = MagicMock()
    client.get_object.side_effect = ClientError({"Error": {"Code": "NoSuchKey", "Message": "missing"}}, "GetObject")
    storage = S3ObjectStorage(client)

    with pytest.raises(StorageError, match="S3 download failed"):
        storage.download(RESUME_BUCKET, "s/cv.pdf")


def test_build_storage_defaults_to_local(tmp_path, monkeypatch):
    monkeypatch.setattr("app.core.config.S3_ENDPOINT", None)
    storage = build_storage(str(tmp_path))
    assert isinstance(storage, LocalObjectStorage)
