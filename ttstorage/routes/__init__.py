"""API routes package."""

from ttstorage.routes.file_routes import router as file_router
from ttstorage.routes.tag_routes import router as tag_router

__all__ = ["file_router", "tag_router"]
