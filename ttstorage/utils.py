"""Utility helper functions for the storage service."""

import uuid
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Set


def generate_uuid() -> str:
    """
    Generate a new UUID4 string.

    Returns:
        UUID4 string
    """
    return str(uuid.uuid4())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_tags(tags_str: Optional[str]) -> List[str]:
    """
    Parse comma-separated tags string into list.

    Args:
        tags_str: Comma-separated tags (e.g., "tag1,tag2,tag3")

    Returns:
        List of trimmed tag strings, empty when tags_str is None or blank
    """
    if not tags_str:
        return []
    return [tag.strip() for tag in tags_str.split(',') if tag.strip()]


def normalize_tags(tags: Optional[Iterable[str]]) -> Set[str]:
    """Lowercase every tag; case-only duplicates collapse into one."""
    if tags is None:
        return set()
    return {tag.lower() for tag in tags}
