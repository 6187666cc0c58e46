"""Long-running service: callback server, subscription renewal and heartbeat"""

import json
import logging
import threading
import time
from datetime import datetime, timezone
from http.server import HTTPServer
from typing import Optional

import redis

from .api_client import YouTubeAPIClient
from .bridge import NotificationBridge, StateApplier
from .config import HubConfig
from .core import constants
from .metrics import Metrics
from .models import Streamer
from .resolver import StreamerResolver
from .server import create_server
from .store import Store
from .urls import lookup_identifier
from .webhook import PubSubHubbubSubscriber

logger = logging.getLogger("amwhub.monitor")


def connect_redis(config: HubConfig) -> Optional[redis.Redis]:
    """Connect to Redis, returning None when it is unreachable"""
    try:
        client = redis.Redis(
            host=config.redis_host,
            port=config.redis_port,
            password=config.redis_password,
            db=config.redis_db,
            decode_responses=True,
            socket_connect_timeout=5,
        )
        client.ping()
        logger.info(f"Connected to Redis at {config.redis_host}:{config.redis_port}")
        return client
    except redis.RedisError as e:
        logger.warning(f"Failed to connect to Redis: {e}. Quota persistence and heartbeat will be disabled.")
        return None


class HubMonitor:
    """Wires the bridge together and keeps subscriptions alive"""

    def __init__(
        self,
        config: HubConfig,
        store: Optional[Store] = None,
        redis_client: Optional[redis.Redis] = None,
        api_client: Optional[YouTubeAPIClient] = None,
    ):
        self.config = config
        self.redis_client = redis_client
        self.metrics = Metrics()
        self.store = store or Store(config.db_path)
        self.api_client = api_client or YouTubeAPIClient(config, self.redis_client)
        self.subscriber = PubSubHubbubSubscriber(config, self.store, self.api_client, self.metrics)
        self.resolver = StreamerResolver(self.store, self.api_client, self.metrics)
        self.applier = StateApplier(self.store, self.api_client, self.metrics)
        self.bridge = NotificationBridge(config, self.resolver, self.applier, self.metrics)

        self.running = False
        self.server: Optional[HTTPServer] = None
        self.start_time = datetime.now(timezone.utc)
        self.last_heartbeat = datetime.now(timezone.utc)
        self.last_subscription = None

    @property
    def renewal_interval(self) -> float:
        return self.config.lease_seconds * constants.PUBSUB_RENEWAL_FRACTION

    def update_heartbeat(self) -> None:
        """Update heartbeat in Redis"""
        if not self.redis_client:
            return

        try:
            now = datetime.now(timezone.utc)
            uptime = now - self.start_time

            heartbeat_data = {
                "timestamp": now.isoformat(),
                "uptime_seconds": int(uptime.total_seconds()),
                "status": "running",
                "callback_url": self.config.callback_url,
                "metrics": self.metrics.dump(),
                "quota": self.api_client.get_quota_info(),
            }

            # Set expiry to 3x heartbeat interval so stale data is cleared
            expiry = self.config.heartbeat_interval * 3
            self.redis_client.setex(constants.REDIS_KEY_HEARTBEAT, expiry, json.dumps(heartbeat_data))

            self.last_heartbeat = now
            logger.debug("Heartbeat updated")
        except redis.RedisError as e:
            logger.error(f"Error updating heartbeat: {e}")

    def renew_subscriptions(self) -> int:
        sent = self.subscriber.subscribe_all()
        self.last_subscription = datetime.now(timezone.utc)
        return sent

    def register_streamer(self, platform_url: str, name: Optional[str] = None) -> Streamer:
        """
        Add a YouTube streamer and subscribe to its feed

        The display name and channel id come from the Data API when it is
        available; otherwise the name falls back to the identifier in the URL.

        Raises:
            DuplicateStreamerError: a streamer with this URL already exists
        """
        details = self.api_client.get_channel_details(platform_url) if self.api_client.is_available else None

        streamer = Streamer(
            id=self.store.next_streamer_id(),
            name=name or (details.title if details else None) or lookup_identifier(platform_url) or platform_url,
            platform="youtube",
            platform_url=platform_url,
            youtube_channel_id=details.channel_id if details else None,
        )
        self.store.add_streamer(streamer)

        self.subscriber.subscribe(streamer.id)
        return streamer

    def remove_streamer(self, streamer_id: str) -> bool:
        """Unsubscribe a streamer's feed and delete it"""
        streamer = self.store.get_streamer(streamer_id)
        if streamer is None:
            logger.warning(f"No streamer with id {streamer_id}")
            return False

        if streamer.platform == "youtube":
            self.subscriber.unsubscribe(streamer_id)
        return self.store.remove_streamer(streamer_id)

    def check_live_streams(self) -> int:
        """
        Look up current live broadcasts for every YouTube streamer

        Catches up on announcements missed while the callback was unreachable.
        Each channel costs a search call, so this only runs on demand.
        Returns the number of new media rows recorded.
        """
        if not self.api_client.is_available:
            logger.warning("YouTube API unavailable, skipping live stream check")
            return 0

        logger.debug("Checking for live broadcasts")
        recorded = 0
        for streamer in self.store.list_streamers(platform="youtube"):
            channel_id = self.subscriber.resolve_target(streamer.id)
            if not channel_id:
                logger.debug(f"No channel id for {streamer.id}, skipping live check")
                continue

            for broadcast in self.api_client.get_live_broadcasts(channel_id):
                logger.info(f"Live stream detected for {streamer.id}: {broadcast.video_id}")
                if self.applier.apply(streamer.id, broadcast.video_id):
                    recorded += 1

        logger.info(f"Live stream check recorded {recorded} new stream(s)")
        return recorded

    def start(self) -> None:
        """Start serving callbacks and keeping subscriptions alive"""
        logger.info("Starting YouTube notification bridge")
        self.running = True
        self.start_time = datetime.now(timezone.utc)

        self.update_heartbeat()

        self.server = create_server(self.config, self.bridge, self.metrics)
        server_thread = threading.Thread(target=self._run_callback_server, daemon=True)
        server_thread.start()

        # Subscribe after the server is up so the hub's async verification can reach us
        self.renew_subscriptions()

        self._maintenance_loop()

    def stop(self) -> None:
        """Stop serving"""
        logger.info("Stopping YouTube notification bridge")
        self.running = False

        if self.server:
            self.server.server_close()

        uptime = datetime.now(timezone.utc) - self.start_time
        logger.info(f"Stats - Uptime: {uptime}, Counters: {self.metrics.dump()}")

    def _run_callback_server(self) -> None:
        """Run the HTTP server for PubSubHubbub callbacks"""
        bind_info = self.config.bind_address or "all interfaces"
        logger.info(
            f"Callback server listening on {bind_info}:{self.config.server_port}{self.config.callback_path}"
        )

        while self.running:
            self.server.handle_request()

        logger.info("Callback server stopped")

    def _maintenance_loop(self) -> None:
        while self.running:
            try:
                now = datetime.now(timezone.utc)
                if (now - self.last_heartbeat).total_seconds() >= self.config.heartbeat_interval:
                    self.update_heartbeat()

                if (
                    self.last_subscription is None
                    or (now - self.last_subscription).total_seconds() >= self.renewal_interval
                ):
                    logger.info("Renewing PubSubHubbub subscriptions")
                    self.renew_subscriptions()

                time.sleep(1)
            except KeyboardInterrupt:
                logger.info("Received interrupt signal")
                break
            except Exception as e:
                logger.error(f"Error in maintenance loop: {e}", exc_info=True)
                time.sleep(self.config.heartbeat_interval)
