"""
Pytest configuration and shared fixtures for the notification bridge tests.
"""

from typing import Dict, List, Optional

import pytest

from amwhub.bridge import NotificationBridge, StateApplier
from amwhub.config import HubConfig
from amwhub.metrics import Metrics
from amwhub.models import ChannelDetails, Streamer, VideoMetadata
from amwhub.resolver import StreamerResolver
from amwhub.store import Store


BASE_ENV = {
    "YOUTUBE_PUSH_CALLBACK_URL": "https://hub.example.com/api/youtube/push",
}


def make_config(**overrides: str) -> HubConfig:
    values = dict(BASE_ENV)
    values.update(overrides)
    return HubConfig.from_mapping(values)


def push_payload(video_id: Optional[str] = "vid1", channel_id: Optional[str] = "UC123") -> str:
    """Atom entry shaped like the ones the YouTube hub delivers"""
    video_tags = f"<id>yt:video:{video_id}</id>\n    <yt:videoId>{video_id}</yt:videoId>" if video_id else ""
    channel_tag = f"<yt:channelId>{channel_id}</yt:channelId>" if channel_id else ""
    return f"""<?xml version='1.0' encoding='UTF-8'?>
<feed xmlns:yt="http://www.youtube.com/xml/schemas/2015" xmlns="http://www.w3.org/2005/Atom">
  <link rel="hub" href="https://pubsubhubbub.appspot.com"/>
  <title>YouTube video feed</title>
  <entry>
    {video_tags}
    {channel_tag}
    <title>Friday night scrims</title>
    <published>2026-10-16T19:00:00+00:00</published>
  </entry>
</feed>
"""


class FakeAPIClient:
    """Stands in for YouTubeAPIClient, recording every remote call"""

    def __init__(
        self,
        channel_ids: Optional[Dict[str, str]] = None,
        videos: Optional[Dict[str, VideoMetadata]] = None,
        available: bool = True,
    ):
        self.channel_ids = channel_ids or {}
        self.videos = videos or {}
        self.available = available
        self.resolve_calls: List[str] = []
        self.video_calls: List[str] = []

    @property
    def is_available(self) -> bool:
        return self.available

    def resolve_channel_id(self, identifier: str) -> Optional[str]:
        self.resolve_calls.append(identifier)
        return self.channel_ids.get(identifier)

    def get_video_metadata(self, video_id: str) -> Optional[VideoMetadata]:
        self.video_calls.append(video_id)
        return self.videos.get(video_id)

    def get_channel_details(self, channel_url: str) -> Optional[ChannelDetails]:
        return None


@pytest.fixture
def config() -> HubConfig:
    return make_config()


@pytest.fixture
def signed_config() -> HubConfig:
    return make_config(YOUTUBE_PUSH_SECRET="s3cret")


@pytest.fixture
def store(tmp_path) -> Store:
    """A fresh SQLite database per test"""
    return Store(str(tmp_path / "amwhub.db"))


@pytest.fixture
def metrics() -> Metrics:
    return Metrics()


@pytest.fixture
def fake_api() -> FakeAPIClient:
    return FakeAPIClient()


@pytest.fixture
def add_streamer(store: Store):
    """Factory that inserts a streamer and returns it"""

    def _add(streamer_id: str, platform_url: str, platform: str = "youtube", **fields) -> Streamer:
        streamer = Streamer(
            id=streamer_id,
            name=fields.pop("name", streamer_id.title()),
            platform=platform,
            platform_url=platform_url,
            **fields,
        )
        return store.add_streamer(streamer)

    return _add


@pytest.fixture
def make_bridge(store: Store, metrics: Metrics):
    """Factory building a bridge around the shared store"""

    def _make(config: HubConfig, api_client: Optional[FakeAPIClient] = None) -> NotificationBridge:
        resolver = StreamerResolver(store, api_client, metrics)
        applier = StateApplier(store, api_client, metrics)
        return NotificationBridge(config, resolver, applier, metrics)

    return _make
