"""Map a YouTube channel id back to a locally stored streamer"""

import logging
from typing import List, Optional

from .core import constants
from .metrics import Metrics
from .models import Streamer
from .urls import channel_segment, is_channel_id, lookup_identifier

logger = logging.getLogger("amwhub.resolver")


def matches_directly(streamer: Streamer, channel_id: str) -> bool:
    """True when the stored channel id or URL already names this channel"""
    if streamer.youtube_channel_id and streamer.youtube_channel_id == channel_id:
        return True
    segment = channel_segment(streamer.platform_url)
    return segment is not None and segment in (channel_id, f"@{channel_id}")


class StreamerResolver:
    """Finds the YouTube streamer a notification's channel id belongs to"""

    def __init__(
        self,
        store: "Store",
        api_client: Optional["YouTubeAPIClient"] = None,
        metrics: Optional[Metrics] = None,
    ):
        self.store = store
        self.api_client = api_client
        self.metrics = metrics or Metrics()

    def resolve(self, channel_id: str) -> Optional[str]:
        """Return the id of the first streamer for channel_id, or None"""
        streamers = self.store.list_streamers(platform="youtube")

        direct = [s for s in streamers if matches_directly(s, channel_id)]
        if direct:
            if len(direct) > 1:
                logger.warning(
                    f"Channel {channel_id} matches {len(direct)} streamers "
                    f"({', '.join(s.id for s in direct)}); using {direct[0].id}"
                )
            self.metrics.increment(constants.METRIC_RESOLVE_DIRECT)
            return direct[0].id

        streamer_id = self._resolve_remotely(streamers, channel_id)
        if streamer_id:
            self.metrics.increment(constants.METRIC_RESOLVE_REMOTE)
            return streamer_id

        self.metrics.increment(constants.METRIC_RESOLVE_MISS)
        return None

    def _resolve_remotely(self, streamers: List[Streamer], channel_id: str) -> Optional[str]:
        if self.api_client is None or not self.api_client.is_available:
            logger.debug("Remote channel lookup unavailable, skipping")
            return None

        for streamer in streamers:
            identifier = lookup_identifier(streamer.platform_url)
            # A raw id that failed the direct pass names a different channel
            if not identifier or is_channel_id(identifier):
                continue
            try:
                resolved = self.api_client.resolve_channel_id(identifier)
            except Exception as e:
                logger.warning(f"Channel lookup failed for {streamer.id} ({identifier}): {e}")
                continue
            if resolved == channel_id:
                logger.info(f"Matched channel {channel_id} to {streamer.id} via {identifier}")
                return streamer.id
        return None
