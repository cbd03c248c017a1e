"""Object storage gateway."""

from ttstorage.storage.base import ObjectStorage
from ttstorage.storage.s3_storage import S3ObjectStorage, create_s3_client

__all__ = [
    "ObjectStorage",
    "S3ObjectStorage",
    "create_s3_client",
]
