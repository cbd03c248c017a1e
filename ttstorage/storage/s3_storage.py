"""
S3-compatible object storage adapter (MinIO, AWS S3, LocalStack) built on boto3.
"""

from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Iterator, List, Optional, Union

import boto3
from boto3.exceptions import S3UploadFailedError
from boto3.s3.transfer import TransferConfig
from botocore.config import Config
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectTimeoutError,
    EndpointConnectionError,
    NoCredentialsError,
    PartialCredentialsError,
    ReadTimeoutError,
)

from common.constants import DOWNLOAD_CHUNK_SIZE_BYTES, MULTIPART_PART_SIZE_BYTES
from common.logging_config import get_logger
from ttstorage import config
from ttstorage.exceptions import ErrorCodes, ErrorKind, ServiceError
from ttstorage.storage.base import ObjectStorage

logger = get_logger(__name__)

SECURITY_ERROR_CODES = {
    "AccessDenied",
    "InvalidAccessKeyId",
    "SignatureDoesNotMatch",
    "UnauthorizedAccess",
    "TokenRefreshRequired",
    "ExpiredToken",
}

MISSING_BUCKET_CODES = {"404", "NoSuchBucket", "NotFound"}


def _client_error_code(e: ClientError) -> str:
    return e.response.get("Error", {}).get("Code", "")


def create_s3_client():
    """Build a boto3 S3 client from the service configuration."""
    endpoint_url = config.build_endpoint_url(config.S3_ENDPOINT, config.S3_SECURE)
    logger.debug(f"Using object store endpoint: {endpoint_url}")

    return boto3.client(
        "s3",
        endpoint_url=endpoint_url,
        aws_access_key_id=config.S3_ACCESS_KEY,
        aws_secret_access_key=config.S3_SECRET_KEY,
        region_name=config.S3_REGION,
        config=Config(signature_version="s3v4", s3={"addressing_style": "path"}),
    )


class S3ObjectStorage(ObjectStorage):
    """
    Stores file content in a single bucket of an S3-compatible service.
    """

    def __init__(self, bucket_name: str, client=None):
        self.bucket_name = bucket_name
        self.s3_client = client if client is not None else create_s3_client()
        self.transfer_config = TransferConfig(
            multipart_threshold=MULTIPART_PART_SIZE_BYTES,
            multipart_chunksize=MULTIPART_PART_SIZE_BYTES,
        )

    @contextmanager
    def _translate_errors(self, action: str, fallback_code: str) -> Generator[None, None, None]:
        try:
            yield
        except (EndpointConnectionError, ConnectTimeoutError, ReadTimeoutError) as e:
            logger.error(f"Object store unreachable during {action}: {e}")
            raise ServiceError(
                ErrorKind.STORAGE, ErrorCodes.STORAGE_CONNECTION, f"Object store error during {action}: {e}"
            ) from e
        except (NoCredentialsError, PartialCredentialsError) as e:
            logger.critical(f"Object store credentials missing during {action}: {e}")
            raise ServiceError(
                ErrorKind.STORAGE, ErrorCodes.STORAGE_SECURITY, f"Security error during {action}: {e}"
            ) from e
        except ClientError as e:
            error_code = _client_error_code(e)
            if error_code in SECURITY_ERROR_CODES:
                logger.critical(f"Object store security error {error_code} during {action}: bucket={self.bucket_name}")
                raise ServiceError(
                    ErrorKind.STORAGE, ErrorCodes.STORAGE_SECURITY, f"Security error during {action}: {e}"
                ) from e
            logger.error(f"Object store error {error_code} during {action}: {e}")
            raise ServiceError(ErrorKind.STORAGE, fallback_code, f"Object store error during {action}: {e}") from e
        except S3UploadFailedError as e:
            logger.error(f"Upload failed during {action}: {e}")
            raise ServiceError(ErrorKind.STORAGE, ErrorCodes.FILE_UPLOAD, f"I/O error during {action}: {e}") from e
        except BotoCoreError as e:
            logger.error(f"Unexpected object store error during {action}: {e}")
            raise ServiceError(
                ErrorKind.STORAGE,
                ErrorCodes.STORAGE_UNEXPECTED,
                f"An unexpected error occurred during {action}: {e}",
            ) from e

    def ensure_bucket(self) -> None:
        logger.info(f"Initializing bucket, bucket name: {self.bucket_name}")
        with self._translate_errors("bucket initialization", ErrorCodes.STORAGE_CONNECTION):
            try:
                self.s3_client.head_bucket(Bucket=self.bucket_name)
                logger.info(f"Bucket '{self.bucket_name}' already exists")
                return
            except ClientError as e:
                if _client_error_code(e) not in MISSING_BUCKET_CODES:
                    raise

            self.s3_client.create_bucket(Bucket=self.bucket_name)
            logger.info(f"Bucket '{self.bucket_name}' created successfully")

    def put_file(self, key: str, path: Union[str, Path], content_type: Optional[str] = None) -> None:
        extra_args = {"ContentType": content_type} if content_type else None
        with self._translate_errors("file upload", ErrorCodes.STORAGE_CONNECTION):
            self.s3_client.upload_file(
                str(path),
                self.bucket_name,
                key,
                ExtraArgs=extra_args,
                Config=self.transfer_config,
            )
        logger.debug(f"Uploaded {path} to s3://{self.bucket_name}/{key}")

    def get_stream(self, key: str) -> Iterator[bytes]:
        with self._translate_errors("get file from storage", ErrorCodes.STORAGE_CONNECTION):
            response = self.s3_client.get_object(Bucket=self.bucket_name, Key=key)

        return self._iter_body(key, response["Body"])

    def _iter_body(self, key: str, body) -> Iterator[bytes]:
        try:
            with self._translate_errors("get file from storage", ErrorCodes.STORAGE_CONNECTION):
                for chunk in body.iter_chunks(chunk_size=DOWNLOAD_CHUNK_SIZE_BYTES):
                    yield chunk
        finally:
            body.close()
            logger.debug(f"Closed stream for s3://{self.bucket_name}/{key}")

    def delete(self, key: str) -> None:
        with self._translate_errors("file deletion", ErrorCodes.DELETE_FROM_STORAGE):
            self.s3_client.delete_object(Bucket=self.bucket_name, Key=key)
        logger.debug(f"Deleted s3://{self.bucket_name}/{key}")

    def list_keys(self, prefix: str = "") -> List[str]:
        keys = []
        with self._translate_errors("list objects", ErrorCodes.STORAGE_CONNECTION):
            paginator = self.s3_client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self.bucket_name, Prefix=prefix):
                keys.extend(obj["Key"] for obj in page.get("Contents", []))
        return keys

    def ping(self) -> None:
        with self._translate_errors("health check", ErrorCodes.STORAGE_CONNECTION):
            self.s3_client.head_bucket(Bucket=self.bucket_name)
