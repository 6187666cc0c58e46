"""Processing for PubSubHubbub verification requests and content notifications"""

import logging
from datetime import datetime, timezone
from typing import Mapping, Optional, Tuple, Union

from .core import constants
from .metrics import Metrics
from .models import MediaItem
from .notifications import SignatureCheck, parse_notification, verify_signature

logger = logging.getLogger("amwhub.bridge")


def _header(headers: Mapping[str, str], name: str) -> Optional[str]:
    """Case-insensitive header lookup that works for plain dicts too"""
    value = headers.get(name)
    if value is None:
        lowered = name.lower()
        for key, candidate in headers.items():
            if key.lower() == lowered:
                return candidate
    return value


class StateApplier:
    """Marks a streamer live and records the announced video as media"""

    def __init__(self, store: "Store", api_client: Optional["YouTubeAPIClient"] = None, metrics: Optional[Metrics] = None):
        self.store = store
        self.api_client = api_client
        self.metrics = metrics or Metrics()

    def apply(self, streamer_id: str, video_id: str) -> bool:
        """
        Apply a live notification to a resolved streamer

        Returns True when a new media row was created, False when the video
        was already recorded.
        """
        metadata = None
        if self.api_client is not None:
            metadata = self.api_client.get_video_metadata(video_id)
            if metadata is None:
                logger.info(f"No metadata for video {video_id}, using fallback title")

        title = metadata.title if metadata and metadata.title else None
        thumbnail = metadata.thumbnail_url if metadata and metadata.thumbnail_url else None

        self.store.set_live(streamer_id, True, title or constants.LIVE_TITLE_FALLBACK)

        streamer = self.store.get_streamer(streamer_id)
        item = MediaItem(
            id=f"{constants.MEDIA_ID_PREFIX}{video_id}",
            type="stream",
            title=title or constants.MEDIA_TITLE_FALLBACK,
            thumbnail=thumbnail or constants.YOUTUBE_THUMBNAIL_URL_TEMPLATE.format(video_id),
            url=constants.YOUTUBE_WATCH_URL_TEMPLATE.format(video_id),
            creator=streamer.name if streamer else streamer_id,
            date=datetime.now(timezone.utc).date().isoformat(),
        )
        created = self.store.insert_media_if_absent(item)

        self.metrics.increment(constants.METRIC_PUSH_APPLIED)
        if created:
            logger.info(f"Streamer {streamer_id} is live with video {video_id}")
        else:
            logger.info(f"Video {video_id} already recorded, refreshed live state for {streamer_id}")
        return created


class NotificationBridge:
    """Classifies each hub call on its own and turns it into a status code

    Resolution misses answer 200 so the hub does not redeliver; only a bad
    signature (403) or an unexpected failure (500) is surfaced.
    """

    def __init__(
        self,
        config: "HubConfig",
        resolver: "StreamerResolver",
        applier: StateApplier,
        metrics: Optional[Metrics] = None,
    ):
        self.config = config
        self.resolver = resolver
        self.applier = applier
        self.metrics = metrics or Metrics()

    def verify(self, params: Mapping[str, str]) -> Tuple[int, str]:
        """Answer the hub's subscription verification handshake"""
        mode = params.get("hub.mode")
        challenge = params.get("hub.challenge")
        topic = params.get("hub.topic")

        if mode and challenge:
            logger.info(f"Received {mode} verification request for {topic} - responding with challenge")
            self.metrics.increment(constants.METRIC_PUSH_VERIFIED)
            return 200, challenge

        return 404, "Not Found"

    def notify(self, body: Union[str, bytes], headers: Mapping[str, str]) -> int:
        """Process a content notification and return the HTTP status to send"""
        self.metrics.increment(constants.METRIC_PUSH_RECEIVED)

        check = verify_signature(
            body,
            self.config.push_secret,
            _header(headers, constants.HEADER_SIGNATURE_256),
            _header(headers, constants.HEADER_SIGNATURE_LEGACY),
        )
        if check is SignatureCheck.INVALID:
            logger.warning("Hub signature mismatch, rejecting notification")
            self.metrics.increment(constants.METRIC_PUSH_FORBIDDEN)
            return 403

        try:
            notification = parse_notification(body)
            if not notification.is_complete:
                logger.warning(
                    f"Notification missing ids (video={notification.video_id}, channel={notification.channel_id})"
                )
                self.metrics.increment(constants.METRIC_PUSH_IGNORED)
                return 204

            logger.info(f"Received notification for video {notification.video_id} on {notification.channel_id}")

            streamer_id = self.resolver.resolve(notification.channel_id)
            if not streamer_id:
                logger.info(f"No streamer matches channel {notification.channel_id}, ignoring")
                self.metrics.increment(constants.METRIC_PUSH_UNMATCHED)
                return 200

            self.applier.apply(streamer_id, notification.video_id)
            return 200
        except Exception as e:
            logger.error(f"Error processing notification: {e}", exc_info=True)
            self.metrics.increment(constants.METRIC_PUSH_ERRORS)
            return 500
