"""Pure helpers for pulling channel identifiers out of YouTube URLs

Supported shapes:
    https://www.youtube.com/channel/<id>
    https://www.youtube.com/@handle
    https://www.youtube.com/c/<name>
    https://www.youtube.com/user/<name>
    https://www.youtube.com/<vanity>
each optionally followed by a channel tab such as /videos or /live.
"""

from typing import List, Optional
from urllib.parse import urlparse

from .core import constants

PREFIXED_PATHS = ("channel", "c", "user")


def _path_parts(url: str) -> Optional[List[str]]:
    parsed = urlparse(url.strip())
    if not parsed.scheme or not parsed.netloc:
        return None
    parts = [p for p in parsed.path.split("/") if p]
    # Drop trailing tab segments so /@handle/videos still yields @handle
    while len(parts) > 1 and parts[-1].lower() in constants.YOUTUBE_CHANNEL_TABS:
        parts.pop()
    return parts


def is_channel_id(value: Optional[str]) -> bool:
    """Raw channel ids are recognisable by their UC prefix"""
    return bool(value) and value.startswith(constants.YOUTUBE_CHANNEL_ID_PREFIX)


def channel_segment(url: str) -> Optional[str]:
    """Return the path segment that names the channel, keeping a leading @

    /channel/<id>, /c/<name> and /user/<name> yield the second segment,
    anything else the first. Returns None for input that is not a URL or
    has no path.
    """
    parts = _path_parts(url)
    if not parts:
        return None
    if parts[0] in PREFIXED_PATHS:
        return parts[1] if len(parts) > 1 else None
    return parts[0]


def lookup_identifier(url: str) -> Optional[str]:
    """Return the identifier to resolve remotely for a stored channel URL

    Same as channel_segment() with the @ of a handle stripped. A value that
    is not a URL is treated as an identifier already and returned stripped.
    """
    if _path_parts(url) is None:
        value = url.strip().lstrip("@")
        return value or None

    segment = channel_segment(url)
    if segment is None:
        return None
    return segment[1:] if segment.startswith("@") else segment
