"""File operation API routes."""

from typing import List, Optional
from urllib.parse import quote
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from fastapi.responses import StreamingResponse

from common.constants import API_PREFIX, MAX_TAGS_PER_FILE
from common.logging_config import get_logger
from ttstorage.dependencies import get_file_service, get_tag_service, page_request
from ttstorage.exceptions import validation_error
from ttstorage.schemas import FileResponse, PageResponse, RenameFileRequest, SuccessResponse
from ttstorage.services.file_service import FileService
from ttstorage.services.tag_service import TagService
from ttstorage.types import PageRequest, Visibility
from ttstorage.utils import parse_tags

logger = get_logger(__name__)

router = APIRouter(prefix=f"{API_PREFIX}/files", tags=["File operations"])


def _collect_tags(values: Optional[List[str]]) -> List[str]:
    tags = []
    for value in values or []:
        tags.extend(parse_tags(value))
    return tags


def content_disposition(filename: str) -> str:
    """
    Build an attachment Content-Disposition header value.

    Non-ASCII names get an RFC 5987 ``filename*`` next to an ASCII fallback.
    """
    fallback = filename.encode("ascii", "replace").decode("ascii").replace('"', "'").replace("\\", "_")
    value = f'attachment; filename="{fallback}"'
    if fallback != filename:
        value += f"; filename*=UTF-8''{quote(filename)}"
    return value


@router.post("/upload", response_model=FileResponse)
def upload_file(
    file: UploadFile = File(...),
    user_id: UUID = Form(..., alias="userId"),
    visibility: Visibility = Form(...),
    tags: Optional[List[str]] = Form(None),
    file_service: FileService = Depends(get_file_service),
    tag_service: TagService = Depends(get_tag_service),
):
    """
    Upload a file to the storage.

    Parameters:
        - file: File to upload (multipart/form-data)
        - userId: UUID of the owner
        - visibility: PUBLIC or PRIVATE
        - tags: Comma-separated tags, at most 5

    Raises:
        - 400: Validation failed or the same file already exists
        - 500: Object store or metadata store failure
    """
    tag_list = set(_collect_tags(tags))
    if len(tag_list) > MAX_TAGS_PER_FILE:
        raise validation_error(f"maximum {MAX_TAGS_PER_FILE} tags allowed per file")

    logger.info(f"Uploading the file with name '{file.filename}' to storage [user_id={user_id}]")
    record = file_service.upload_file(
        owner_id=str(user_id),
        content_type=file.content_type,
        visibility=visibility,
        tags=tag_list,
        filename=file.filename,
        file_data=file.file,
    )
    tag_service.register(record.tags)

    return FileResponse.from_record(record, file_service.build_download_link(record))


@router.get("/public", response_model=PageResponse[FileResponse])
def list_public_files(
    tags: List[str] = Query([], description="Comma-separated tags; files with any of them match"),
    pageable: PageRequest = Depends(page_request),
    file_service: FileService = Depends(get_file_service),
):
    """
    Get a paginated list of all public files.
    """
    page = file_service.list_public_files(_collect_tags(tags), pageable)
    logger.info(f"Retrieving all public files from the storage, total files: {page.total_elements}")

    return PageResponse[FileResponse].from_page(
        page, [FileResponse.from_record(r, file_service.build_download_link(r)) for r in page.content]
    )


@router.get("/users/{user_id}", response_model=PageResponse[FileResponse])
def list_user_files(
    user_id: UUID,
    tags: List[str] = Query([], description="Comma-separated tags; files with any of them match"),
    pageable: PageRequest = Depends(page_request),
    file_service: FileService = Depends(get_file_service),
):
    """
    Get a paginated list of all files of one user, public and private.
    """
    page = file_service.list_user_files(str(user_id), _collect_tags(tags), pageable)
    logger.info(f"Retrieving all user's files from the storage, total files: {page.total_elements}")

    return PageResponse[FileResponse].from_page(
        page, [FileResponse.from_record(r, file_service.build_download_link(r)) for r in page.content]
    )


@router.get("/{file_id}/users/{user_id}")
def download_file(
    file_id: UUID,
    user_id: UUID,
    file_service: FileService = Depends(get_file_service),
):
    """
    Download a file owned by the user.

    Raises:
        - 400: Malformed UUID
        - 404: File not found or not owned by the user
    """
    record, stream = file_service.get_file(str(user_id), str(file_id))
    logger.info(f"Retrieving the file with fileId: '{file_id}' from storage [user_id={user_id}]")

    return StreamingResponse(
        stream,
        media_type="application/octet-stream",
        headers={
            "Content-Disposition": content_disposition(record.filename),
            "Content-Length": str(record.size),
        }
    )


@router.put("/{file_id}/rename", response_model=FileResponse)
def rename_file(
    file_id: UUID,
    payload: RenameFileRequest,
    file_service: FileService = Depends(get_file_service),
):
    """
    Rename a file, keeping its extension.

    Raises:
        - 400: Name empty or longer than 50 characters, malformed UUID
        - 404: File not found or not owned by the user
    """
    record = file_service.rename_file(str(payload.user_id), str(file_id), payload.new_filename)
    logger.info(f"Renamed file with id {file_id} to '{record.filename}' [user_id={payload.user_id}]")

    return FileResponse.from_record(record, file_service.build_download_link(record))


@router.delete("/{file_id}/users/{user_id}", response_model=SuccessResponse)
def delete_file(
    file_id: UUID,
    user_id: UUID,
    file_service: FileService = Depends(get_file_service),
):
    """
    Delete a file from the object store and its metadata.

    Raises:
        - 404: File not found or not owned by the user
        - 500: Object store or metadata store failure
    """
    file_service.delete_file(str(user_id), str(file_id))
    logger.info(f"Deleted the file with fileId: '{file_id}' [user_id={user_id}]")

    return SuccessResponse(success=True)
