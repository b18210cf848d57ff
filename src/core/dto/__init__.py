from src.core.dto.media import MediaItem, MediaType
from src.core.dto.user import UserHandle

__all__ = [
    "MediaItem",
    "MediaType",
    "UserHandle",
]
