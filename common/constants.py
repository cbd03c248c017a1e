"""Project-wide constants shared by the service and its tests."""

STREAM_CHUNK_SIZE_BYTES: int = 8 * 1024  # read size for checksum and staging passes
DOWNLOAD_CHUNK_SIZE_BYTES: int = 1024 * 1024
MULTIPART_PART_SIZE_BYTES: int = 10 * 1024 * 1024

MAX_TAGS_PER_FILE: int = 5
MAX_FILENAME_LENGTH: int = 50

DEFAULT_PAGE_SIZE: int = 20
MAX_PAGE_SIZE: int = 1000

API_PREFIX: str = "/api/v1"
STAGING_FILE_PREFIX: str = "tt-storage-upload-"
STAGING_FILE_SUFFIX: str = ".tmp"
