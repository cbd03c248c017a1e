"""Error type shared by every layer of the storage service."""

from enum import Enum


class ErrorKind(Enum):
    """
    Failure categories. Each carries the HTTP status it maps to and the
    name reported in the ``error`` field of the response body.
    """
    VALIDATION = (400, "ValidationError")
    DUPLICATE_FILE = (400, "DuplicateFile")
    NOT_FOUND_OR_ACCESS_DENIED = (404, "NotFoundOrAccessDenied")
    STORAGE = (500, "StorageError")
    METADATA_STORE = (500, "MetadataStoreError")
    PARSE = (500, "ParseError")
    INTERNAL = (500, "InternalServerError")

    def __init__(self, status_code: int, display_name: str):
        self.status_code = status_code
        self.display_name = display_name


class ErrorCodes:
    """Stable machine-readable codes returned to API clients."""
    INTERNAL_SERVER = "error.internal.server"
    FILENAME_IS_ABSENT = "error.filename.is.absent"
    NOT_FOUND_OR_ACCESS_DENIED = "error.file.not.found.or.access.denied"
    SAME_FILE = "error.same.file"
    FILE_UPLOAD = "error.file.upload"
    DELETE_FROM_STORAGE = "error.delete.from.storage"
    DELETE_FROM_DB = "error.delete.from.db"
    PARSE_VALIDATION = "error.parse.validation"
    PARSE_URI = "error.parse.uri"
    STORAGE_CONNECTION = "error.minio.connection"
    STORAGE_SECURITY = "error.minio.security"
    STORAGE_UNEXPECTED = "error.minio.unexpected"
    FILE_ABSENT = "error.file.absent"
    INVALID_JSON = "error.invalid.json"
    VALIDATION_FAILED = "error.validation.failed"
    REQUEST_PARAM_ABSENT = "error.request.param.absent"


class ServiceError(Exception):
    """
    Raised for every expected failure in the service.

    The API boundary turns it into the uniform error body using ``kind``
    for the status and ``code``/``message`` for the payload.
    """

    def __init__(self, kind: ErrorKind, code: str, message: str):
        super().__init__(message)
        self.kind = kind
        self.code = code
        self.message = message

    @property
    def status_code(self) -> int:
        return self.kind.status_code

    def __repr__(self) -> str:
        return f"ServiceError(kind={self.kind.name}, code={self.code!r}, message={self.message!r})"


class DuplicateReason(str, Enum):
    FILENAME = "filename"
    CONTENT = "content"


_DUPLICATE_MESSAGES = {
    DuplicateReason.FILENAME: "The file with the same filename already exists",
    DuplicateReason.CONTENT: "The file with the same content already exists",
}


def duplicate_file(reason: DuplicateReason) -> ServiceError:
    return ServiceError(ErrorKind.DUPLICATE_FILE, ErrorCodes.SAME_FILE, _DUPLICATE_MESSAGES[reason])


def not_found_or_access_denied() -> ServiceError:
    return ServiceError(
        ErrorKind.NOT_FOUND_OR_ACCESS_DENIED,
        ErrorCodes.NOT_FOUND_OR_ACCESS_DENIED,
        "file not found or user has no access to the file",
    )


def validation_error(message: str, code: str = ErrorCodes.VALIDATION_FAILED) -> ServiceError:
    return ServiceError(ErrorKind.VALIDATION, code, message)
