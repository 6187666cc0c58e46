"""PubSubHubbub subscription handling"""

import logging
from typing import Optional

import requests

from .core import constants
from .metrics import Metrics
from .urls import is_channel_id, lookup_identifier

logger = logging.getLogger("amwhub.webhook")


class PubSubHubbubSubscriber:
    """Handles PubSubHubbub subscriptions for YouTube channel feeds"""

    def __init__(
        self,
        config: "HubConfig",
        store: Optional["Store"] = None,
        api_client: Optional["YouTubeAPIClient"] = None,
        metrics: Optional[Metrics] = None,
        session: Optional[requests.Session] = None,
    ):
        self.config = config
        self.store = store
        self.api_client = api_client
        self.metrics = metrics or Metrics()
        self.session = session or requests.Session()

    def topic_url(self, channel_id: str) -> str:
        return self.config.topic_url_template.format(channel_id)

    def resolve_target(self, target: str) -> Optional[str]:
        """
        Resolve a raw channel id, a streamer id or a channel identifier to a channel id

        Order: a UC-prefixed id is used as-is; a known streamer contributes its
        cached channel id or the id in its /channel/ URL; otherwise, only when auto resolution is enabled, the
        identifier is looked up remotely and cached on the streamer.
        """
        target = (target or "").strip()
        if not target:
            return None
        if is_channel_id(target):
            return target

        streamer = self.store.get_streamer(target) if self.store else None
        if streamer is not None:
            if streamer.youtube_channel_id:
                return streamer.youtube_channel_id
            # /channel/<id> URLs carry the id without a lookup
            stored = lookup_identifier(streamer.platform_url)
            if is_channel_id(stored):
                return stored

        if not self.config.auto_resolve_channel_id:
            logger.debug(f"Automatic channel id resolution disabled, cannot resolve {target}")
            return None
        if self.api_client is None:
            return None

        identifier = lookup_identifier(streamer.platform_url if streamer else target)
        if not identifier:
            return None

        channel_id = self.api_client.resolve_channel_id(identifier)
        if channel_id and streamer is not None:
            self.store.set_youtube_channel_id(streamer.id, channel_id)
            logger.info(f"Stored channel id {channel_id} for streamer {streamer.id}")
        return channel_id

    def _request(self, mode: str, target: str) -> bool:
        channel_id = self.resolve_target(target)
        if not channel_id:
            logger.warning(f"Could not resolve a YouTube channel id for {target}; skipping {mode}")
            self.metrics.increment(constants.METRIC_SUBSCRIBE_UNRESOLVED)
            return False

        data = {
            "hub.callback": self.config.callback_url,
            "hub.mode": mode,
            "hub.topic": self.topic_url(channel_id),
            "hub.verify": "async",
        }
        if mode == "subscribe":
            data["hub.lease_seconds"] = self.config.lease_seconds
        if self.config.push_secret:
            data["hub.secret"] = self.config.push_secret

        try:
            logger.info(f"Sending {mode} request for YouTube channel {channel_id}")
            response = self.session.post(self.config.hub_url, data=data, timeout=constants.API_REQUEST_TIMEOUT)
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"Error sending {mode} request for {channel_id}: {e}")
            self.metrics.increment(constants.METRIC_SUBSCRIBE_FAILED)
            return False

        logger.info(f"{mode.capitalize()} request for {channel_id} sent successfully")
        self.metrics.increment(
            constants.METRIC_SUBSCRIBE_SENT if mode == "subscribe" else constants.METRIC_UNSUBSCRIBE_SENT
        )
        return True

    def subscribe(self, target: str) -> bool:
        """Subscribe to feed updates for a channel"""
        return self._request("subscribe", target)

    def unsubscribe(self, target: str) -> bool:
        """Unsubscribe from feed updates for a channel"""
        return self._request("unsubscribe", target)

    def subscribe_all(self) -> int:
        """Subscribe every stored YouTube streamer, returning the number of requests sent"""
        if self.store is None:
            return 0
        streamers = self.store.list_streamers(platform="youtube")
        sent = sum(1 for streamer in streamers if self.subscribe(streamer.id))
        logger.info(f"Subscribed {sent}/{len(streamers)} YouTube streamers")
        return sent

    def unsubscribe_all(self) -> int:
        if self.store is None:
            return 0
        streamers = self.store.list_streamers(platform="youtube")
        return sum(1 for streamer in streamers if self.unsubscribe(streamer.id))
