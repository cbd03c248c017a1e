"""Tag registry service."""

from typing import Iterable, Optional

from common.logging_config import get_logger
from ttstorage.exceptions import ServiceError
from ttstorage.repositories.tag_repository import TagRepository
from ttstorage.types import Page, PageRequest, TagRecord
from ttstorage.utils import utc_now

logger = get_logger(__name__)


class TagService:
    def __init__(self, tag_repo: Optional[TagRepository] = None):
        self.tag_repo = tag_repo if tag_repo is not None else TagRepository()

    def register(self, tags: Optional[Iterable[str]]) -> int:
        """
        Register every tag that is not known yet.

        Each tag is written on its own, so a failing tag is logged and the
        rest are still registered.

        Args:
            tags: Normalized tag names

        Returns:
            Number of tags newly registered
        """
        if not tags:
            logger.info("No tags provided")
            return 0

        created_at = utc_now()
        inserted = 0
        failed = []
        for tag in sorted(set(tags)):
            try:
                if self.tag_repo.insert_if_absent(tag, created_at):
                    inserted += 1
            except ServiceError as e:
                failed.append(tag)
                logger.error(f"Failed to register tag '{tag}': {e.message}")

        if failed:
            logger.warning(f"Registered {inserted} new tags, {len(failed)} failed: {failed}")
        else:
            logger.debug(f"Registered {inserted} new tags")
        return inserted

    def get_tag(self, tag_name: str) -> Optional[TagRecord]:
        return self.tag_repo.find_by_name(tag_name.lower())

    def search_tags(self, query: Optional[str], page_request: PageRequest) -> Page[str]:
        logger.debug(f"Searching for tags {query!r}")
        return self.tag_repo.search_tags(page_request, query=query or None)
