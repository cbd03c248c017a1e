"""Tag registry API routes."""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from common.constants import API_PREFIX
from ttstorage.dependencies import get_tag_service, page_request
from ttstorage.schemas import PageResponse
from ttstorage.services.tag_service import TagService
from ttstorage.types import PageRequest

router = APIRouter(prefix=f"{API_PREFIX}/tags", tags=["Tags operations"])


@router.get("", response_model=PageResponse[str])
def list_tags(
    search: Optional[str] = Query(None, description="Case-insensitive substring of the tag name"),
    pageable: PageRequest = Depends(page_request),
    tag_service: TagService = Depends(get_tag_service),
):
    """
    Get a paginated list of all registered tags filtered by 'search'.
    """
    page = tag_service.search_tags(search, pageable)
    return PageResponse[str].from_page(page, page.content)
