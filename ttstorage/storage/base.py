"""Object storage port used by the file service."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterator, List, Optional, Union


class ObjectStorage(ABC):
    """
    Key/value store for file content.

    Implementations raise ServiceError with the STORAGE kind for every
    backend failure.
    """

    @abstractmethod
    def ensure_bucket(self) -> None:
        """Create the target bucket if it does not exist yet."""

    @abstractmethod
    def put_file(self, key: str, path: Union[str, Path], content_type: Optional[str] = None) -> None:
        """Upload the file at ``path`` under ``key``."""

    @abstractmethod
    def get_stream(self, key: str) -> Iterator[bytes]:
        """
        Open the object under ``key``.

        The backend request happens before this returns, so a missing
        object or a connection failure is raised here rather than while
        iterating.
        """

    @abstractmethod
    def delete(self, key: str) -> None:
        """Delete the object under ``key``."""

    @abstractmethod
    def list_keys(self, prefix: str = "") -> List[str]:
        """List object keys starting with ``prefix``."""

    @abstractmethod
    def ping(self) -> None:
        """Raise if the backend is unreachable."""
