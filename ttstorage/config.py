"""Configuration settings for the storage service."""

import os
import tempfile
from urllib.parse import urlsplit

from ttstorage.exceptions import ErrorCodes, ErrorKind, ServiceError


SERVICE_HOST = os.environ.get("TT_STORAGE_HOST", "0.0.0.0")

SERVICE_PORT = int(os.environ.get("TT_STORAGE_SERVICE_PORT", "8080"))

DATABASE_PATH = os.environ.get("TT_STORAGE_DATABASE_PATH", "/app/data/metadata.db")

DOMAIN = os.environ.get("TT_STORAGE_DOMAIN", f"http://localhost:{SERVICE_PORT}")

STAGING_DIR = os.environ.get("TT_STORAGE_STAGING_DIR", tempfile.gettempdir())

# Uploads can take hours; keep idle connections open for two hours.
KEEP_ALIVE_TIMEOUT_SECONDS = int(os.environ.get("TT_STORAGE_KEEP_ALIVE_TIMEOUT", "7200"))

S3_ENDPOINT = os.environ.get("S3_ENDPOINT", "localhost:9000")

S3_ACCESS_KEY = os.environ.get("S3_ACCESS_KEY", "minio_user")

S3_SECRET_KEY = os.environ.get("S3_SECRET_KEY", "minio_letmein")

S3_BUCKET_NAME = os.environ.get("S3_BUCKET_NAME", "storage-files")

S3_SECURE = os.environ.get("S3_SECURE", "false").lower() in ("1", "true", "yes")

S3_REGION = os.environ.get("S3_REGION", "us-east-1")


def build_endpoint_url(endpoint: str, secure: bool) -> str:
    """
    Turn a ``host:port`` endpoint into the URL handed to the S3 client.

    Raises:
        ServiceError: PARSE kind when the endpoint has no host or a bad port
    """
    scheme = "https" if secure else "http"
    url = f"{scheme}://{endpoint.strip()}"
    try:
        parts = urlsplit(url)
        port = parts.port
    except ValueError as e:
        raise ServiceError(ErrorKind.PARSE, ErrorCodes.PARSE_URI, f"Object store endpoint is malformed: {endpoint}") from e

    if not parts.hostname or port == 0 or parts.path not in ("", "/"):
        raise ServiceError(ErrorKind.PARSE, ErrorCodes.PARSE_URI, f"Object store endpoint is malformed: {endpoint}")

    return url
