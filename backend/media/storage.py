"""
Object-store adapter for case media.

Wraps Django's storage API so the rest of the app only sees object keys.
With ``django-storages``' S3 backend, upload and download handles are
presigned URLs signed by the bucket's boto3 client; any other backend
(local filesystem, ``InMemoryStorage`` in tests) falls back to its plain
``url()``.
"""

from __future__ import annotations

import logging

from botocore.exceptions import BotoCoreError, ClientError
from django.core.files.storage import storages

from core.constants import MEDIA_KEY_PREFIX, ORIGINAL_PHOTO_FILENAME, WOUND_CROP_FILENAME

logger = logging.getLogger(__name__)

MEDIA_CONTENT_TYPE = "image/webp"

#: Errors an object-store call may raise for an unavailable or refusing store.
STORAGE_ERRORS = (OSError, BotoCoreError, ClientError)


def case_prefix(case_id) -> str:
    return f"{MEDIA_KEY_PREFIX}/{case_id}/"


def original_key(case_id) -> str:
    return case_prefix(case_id) + ORIGINAL_PHOTO_FILENAME


def crop_key(case_id) -> str:
    return case_prefix(case_id) + WOUND_CROP_FILENAME


class ObjectStore:

    def __init__(self, alias: str = "default"):
        self.storage = storages[alias]

    def _s3_client(self):
        connection = getattr(self.storage, "connection", None)
        bucket_name = getattr(self.storage, "bucket_name", None)
        if connection is None or not bucket_name:
            return None, None
        return connection.meta.client, bucket_name

    def upload_url(self, key: str, ttl: int) -> str:
        """Time-limited URL the client PUTs the object to."""
        client, bucket_name = self._s3_client()
        if client is None:
            return self.storage.url(key)
        return client.generate_presigned_url(
            "put_object",
            Params={"Bucket": bucket_name, "Key": key, "ContentType": MEDIA_CONTENT_TYPE},
            ExpiresIn=ttl,
        )

    def download_url(self, key: str, ttl: int) -> str:
        """Time-limited URL the client GETs the object from."""
        client, bucket_name = self._s3_client()
        if client is None:
            return self.storage.url(key)
        return client.generate_presigned_url(
            "get_object",
            Params={"Bucket": bucket_name, "Key": key},
            ExpiresIn=ttl,
        )

    def read(self, key: str) -> bytes:
        with self.storage.open(key, "rb") as fh:
            return fh.read()

    def delete(self, key: str) -> None:
        """
        Delete one object.  Deleting a missing object is not an error.

        Raises:
            One of ``STORAGE_ERRORS`` when the store refuses or is unreachable.
        """
        self.storage.delete(key)
