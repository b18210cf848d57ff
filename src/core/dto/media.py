from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class MediaType(str, Enum):
    VIDEO = "video"
    IMAGE = "image"

    @classmethod
    def parse(cls, value) -> "MediaType":
        """Lenient parse; records written before the type field existed are videos."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value or "").strip().lower())
        except ValueError:
            return cls.VIDEO


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class MediaItem:
    id: str                     # unique per owner
    url: str                    # absolute http/https url
    title: str
    media_type: MediaType
    owner_id: str = ""
    created_at: datetime = field(default_factory=_utcnow)
    active: bool = True
    category: str = ""

    @property
    def is_video(self) -> bool:
        return self.media_type is MediaType.VIDEO

    @property
    def is_image(self) -> bool:
        return self.media_type is MediaType.IMAGE
