"""
URL normalization and media-type heuristics.

Shared by the submission form (to validate and correct what the user typed)
and the sequencer (to hand the viewer a stable, canonical url). The
classifiers are deliberately permissive: a url that turns out not to be an
image is reported by the viewer at display time instead of being blocked here.
"""
from __future__ import annotations

import logging
import re
from typing import Optional
from urllib.parse import SplitResult, parse_qs, urlsplit

from src.core.dto.media import MediaType
from src.core.errors import ValidationError

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = re.compile(r"\.(jpe?g|png|gif|webp|svg|bmp|tiff?)$", re.IGNORECASE)

IMAGE_HOSTS = (
    "postimg.cc",
    "i.postimg.cc",
    "canva.com",
    "imgur.com",
    "ibb.co",
    "cloudinary.com",
)

IMAGE_PATH_HINTS = ("/image", "/img", "/photo")

_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*:")
_NETWORK_SCHEMES = {"http", "https", "ftp", "ws", "wss"}

HOSTED_VIDEO_HOSTS = ("youtube.com", "youtu.be", "youtube-nocookie.com")
_HOSTED_VIDEO_ID_RE = re.compile(r"^.*(youtu\.be/|v/|u/\w/|embed/|shorts/|watch\?v=|&v=)([^#&?/]*).*")
_VIDEO_ID_LEN = 11


def _parse_absolute(value: str) -> Optional[SplitResult]:
    """Parse ``value`` as an absolute url, or return None."""
    if not value or any(ch.isspace() for ch in value.strip()):
        return None
    if not _SCHEME_RE.match(value):
        return None
    try:
        parts = urlsplit(value)
    except ValueError:
        return None
    if parts.scheme.lower() in _NETWORK_SCHEMES and not parts.hostname:
        return None
    return parts


def _parse_with_https(value: str) -> Optional[SplitResult]:
    return _parse_absolute(f"https://{value}") if value else None


def normalize_url(raw: str) -> str:
    """
    Best-effort correction of a user-typed url.

    Absolute urls are returned unchanged. Otherwise ``https://`` is prefixed
    if that yields a parseable url. Anything else is returned as given.
    """
    if _parse_absolute(raw) is not None:
        return raw
    if _parse_with_https(raw) is not None:
        return f"https://{raw}"
    return raw


def _looks_like_image(parts: SplitResult) -> bool:
    if IMAGE_EXTENSIONS.search(parts.path):
        return True
    hostname = (parts.hostname or "").lower()
    if any(host in hostname for host in IMAGE_HOSTS):
        return True
    if any(hint in parts.path for hint in IMAGE_PATH_HINTS) or "image" in parts.query:
        return True
    return False


def classify_as_image(raw: str) -> bool:
    """
    Heuristic image check.

    Recognised extensions, known image hosts and path/query hints all pass;
    so does any other http/https url, as a fallback.
    """
    if not raw:
        return False

    parts = _parse_absolute(raw)
    if parts is not None:
        if _looks_like_image(parts):
            return True
        return parts.scheme.lower() in ("http", "https")

    if _parse_with_https(raw) is not None:
        return True

    return bool(IMAGE_EXTENSIONS.search(raw))


def classify_as_video(raw: str) -> bool:
    """Any parseable url is a video candidate."""
    if not raw:
        return False
    return _parse_absolute(raw) is not None or _parse_with_https(raw) is not None


def classify(raw: str, media_type: MediaType) -> bool:
    if media_type is MediaType.IMAGE:
        return classify_as_image(raw)
    return classify_as_video(raw)


def guess_media_type(url: str) -> MediaType:
    """Used for records that carry no type (offline entries, legacy rows)."""
    parts = _parse_absolute(url)
    if parts is not None and is_hosted_video_url(url):
        return MediaType.VIDEO
    if parts is not None and _looks_like_image(parts):
        return MediaType.IMAGE
    if parts is None and IMAGE_EXTENSIONS.search(url or ""):
        return MediaType.IMAGE
    return MediaType.VIDEO


# ------------------------------------------------------------------
# Hosted video platforms
# ------------------------------------------------------------------

def is_hosted_video_url(url: str) -> bool:
    """True for links to a streaming platform that cannot be fetched as raw bytes."""
    parts = _parse_absolute(normalize_url(url or ""))
    if parts is None:
        return False
    hostname = (parts.hostname or "").lower()
    return any(hostname == host or hostname.endswith(f".{host}") for host in HOSTED_VIDEO_HOSTS)


def extract_hosted_video_id(url: str) -> Optional[str]:
    """Pull the 11-character video id out of any accepted YouTube url shape."""
    if not is_hosted_video_url(url):
        return None

    parts = urlsplit(normalize_url(url))
    hostname = (parts.hostname or "").lower()

    candidate = None
    if hostname.endswith("youtu.be"):
        candidate = parts.path.lstrip("/").split("/", 1)[0]
    elif parts.path.rstrip("/") == "/watch":
        candidate = (parse_qs(parts.query).get("v") or [None])[0]
    elif parts.path.startswith(("/embed/", "/shorts/", "/v/")):
        candidate = parts.path.split("/")[2]

    if candidate and len(candidate) == _VIDEO_ID_LEN:
        return candidate

    match = _HOSTED_VIDEO_ID_RE.match(url)
    if match and len(match.group(2)) == _VIDEO_ID_LEN:
        return match.group(2)

    logger.debug(f"No hosted video id in {url}")
    return None


def canonical_video_url(url: str) -> str:
    """
    Canonical watch url for hosted-video links, or ``url`` unchanged.

    All accepted shapes of the same video map to one string so the viewer
    sees a stable source across re-renders.
    """
    video_id = extract_hosted_video_id(url)
    if video_id is None:
        return url
    return f"https://www.youtube.com/watch?v={video_id}"


# ------------------------------------------------------------------
# Submission
# ------------------------------------------------------------------

def validate_submission(title: str, url: str, media_type: MediaType) -> str:
    """
    Check a dashboard submission and return the normalized url.

    Raises:
        ValidationError: a required field is empty or the url is rejected
    """
    title = (title or "").strip()
    url = (url or "").strip()
    if not title:
        raise ValidationError("Please enter a title", field="title")
    if not url:
        raise ValidationError("Please enter a URL", field="url")

    normalized = normalize_url(url)
    if not classify(normalized, media_type):
        kind = "image" if media_type is MediaType.IMAGE else "video"
        raise ValidationError(f"Please enter a valid {kind} URL", field="url")
    return normalized
