"""Records stored by the hub and passed between bridge components"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class Streamer:
    id: str
    name: str
    platform: str
    platform_url: str
    is_live: bool = False
    title: str = "Welcome to my stream!"
    game: Optional[str] = "Variety"
    featured: bool = False
    schedule: List[Dict[str, str]] = field(default_factory=list)
    one_time_events: List[Dict[str, str]] = field(default_factory=list)
    discord_user_id: Optional[str] = None
    youtube_channel_id: Optional[str] = None


@dataclass
class MediaItem:
    id: str
    type: str
    title: str
    thumbnail: str
    url: str
    creator: str
    date: str


@dataclass
class Event:
    id: str
    title: str
    start: str
    end: str
    status: str
    details: str = ""
    participants: List[Dict[str, str]] = field(default_factory=list)
    scoreboard: List[Dict[str, Any]] = field(default_factory=list)
    url: Optional[str] = None
    media: List[Dict[str, Any]] = field(default_factory=list)
    image_urls: List[str] = field(default_factory=list)

    @property
    def image(self) -> Optional[str]:
        """Primary image, the first entry of image_urls"""
        return self.image_urls[0] if self.image_urls else None


@dataclass(frozen=True)
class Notification:
    """Ids extracted from a hub push; either may be missing"""

    video_id: Optional[str] = None
    channel_id: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return bool(self.video_id and self.channel_id)


@dataclass(frozen=True)
class VideoMetadata:
    video_id: str
    title: Optional[str] = None
    thumbnail_url: Optional[str] = None
    channel_id: Optional[str] = None
    live_broadcast_content: Optional[str] = None


@dataclass(frozen=True)
class ChannelDetails:
    channel_id: str
    title: str
    profile_image_url: Optional[str] = None
