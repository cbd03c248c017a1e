"""Maps uploaded filenames to object store keys and back."""

from pathlib import Path
from types import MappingProxyType
from typing import Callable, Optional, Union

from common.logging_config import get_logger
from ttstorage.exceptions import ErrorCodes, ErrorKind, ServiceError
from ttstorage.types import FilenameMapping

logger = get_logger(__name__)

ContentSniffer = Callable[[], str]

MIME_EXTENSIONS = MappingProxyType({
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
    "application/pdf": ".pdf",
    "text/plain": ".txt",
    "text/csv": ".csv",
    "application/msword": ".doc",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": ".docx",
    "application/zip": ".zip",
    "application/gzip": ".gz",
    "application/json": ".json",
    "text/html": ".html",
    "application/xml": ".xml",
    "text/xml": ".xml",
})

# Unmapped types keep the undotted literal, so the object key reads "<uuid>unknown".
UNKNOWN_EXTENSION = "unknown"


def extension_for_mime(mime_type: str) -> str:
    return MIME_EXTENSIONS.get(mime_type, UNKNOWN_EXTENSION)


def split_extension(filename: str) -> str:
    """Return the extension with its dot, or "" when there is no dot past position 0."""
    last_dot = filename.rfind(".")
    if last_dot > 0:
        return filename[last_dot:]
    return ""


def build_mapping(file_id: str, original_name: str, sniffer: Optional[ContentSniffer] = None) -> FilenameMapping:
    """
    Derive display name, storage key and extension for a file.

    When ``original_name`` has no extension and a sniffer is given, the
    extension comes from the sniffed MIME type and is appended to the
    display name.

    Args:
        file_id: UUID of the file, used as the storage key base
        original_name: Name as uploaded or as currently stored
        sniffer: Callable returning the MIME type of the content

    Returns:
        FilenameMapping for the file
    """
    extension = split_extension(original_name)
    display_name = original_name

    if not extension and sniffer is not None:
        mime_type = sniffer()
        extension = extension_for_mime(mime_type)
        display_name = original_name + extension
        logger.debug(f"Inferred extension {extension!r} from {mime_type} [file_id={file_id}]")

    return FilenameMapping(
        display_name=display_name,
        storage_key=f"{file_id}{extension}",
        storage_key_base=file_id,
        extension=extension,
    )


def rename_mapping(file_id: str, original_name: str, new_name: str) -> FilenameMapping:
    mapping = build_mapping(file_id, original_name)
    return FilenameMapping(
        display_name=new_name + mapping.extension,
        storage_key=mapping.storage_key,
        storage_key_base=mapping.storage_key_base,
        extension=mapping.extension,
    )


def sniff_content_type(path: Union[str, Path]) -> str:
    """
    Detect the MIME type of a file from its leading bytes with libmagic.

    Raises:
        ServiceError: INTERNAL kind when libmagic cannot read the file
    """
    import magic

    try:
        return magic.from_file(str(path), mime=True)
    except (OSError, magic.MagicException) as e:
        logger.error(f"MIME type detection failed for {path}: {e}")
        raise ServiceError(ErrorKind.INTERNAL, ErrorCodes.INTERNAL_SERVER, "Error detecting mime type") from e
