"""YouTube API client with quota tracking, rate limiting and lookup caching"""

import json
import logging
import time
from collections import deque
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import requests

from .cache import LookupCache
from .core import constants
from .models import ChannelDetails, VideoMetadata
from .urls import is_channel_id, lookup_identifier

logger = logging.getLogger("amwhub.api_client")


class YouTubeAPIClient:
    """Client for YouTube Data API v3 with rate limiting"""

    def __init__(
        self,
        config: "HubConfig",
        redis_client: Optional["redis.Redis"] = None,
        channel_id_cache: Optional[LookupCache] = None,
        channel_details_cache: Optional[LookupCache] = None,
        session: Optional[requests.Session] = None,
    ):
        self.config = config
        self.base_url = constants.YOUTUBE_API_BASE_URL
        self.session = session or requests.Session()
        self.api_calls = deque(maxlen=100)  # Track last 100 API calls for rate limiting
        self.quota_exceeded = False
        self.redis_client = redis_client

        self.channel_id_cache = channel_id_cache or LookupCache(
            max_entries=config.cache_max_entries, ttl_seconds=config.cache_ttl_seconds
        )
        self.channel_details_cache = channel_details_cache or LookupCache(
            max_entries=config.cache_max_entries, ttl_seconds=config.cache_ttl_seconds
        )

        # OAuth bearer token obtained from the refresh token, if configured
        self._access_token: Optional[str] = None
        self._token_expires_at: float = 0.0

        # Quota tracking
        self.quota_used_today = 0
        self.quota_reset_date = datetime.now(timezone.utc).date()
        self.daily_quota_limit = constants.YOUTUBE_DAILY_QUOTA_LIMIT
        self.quota_costs = constants.YOUTUBE_API_QUOTA_COSTS

        # Load quota state from Redis if available
        self._load_quota_from_redis()

    @property
    def is_available(self) -> bool:
        self._roll_quota_day()
        return self.config.has_api_credentials and not self.quota_exceeded

    def _load_quota_from_redis(self) -> None:
        """Load quota state from Redis"""
        if not self.redis_client:
            return

        try:
            quota_data = self.redis_client.get(constants.REDIS_KEY_QUOTA)
            if quota_data:
                data = json.loads(quota_data)
                stored_date = datetime.fromisoformat(data["reset_date"]).date()
                today = datetime.now(timezone.utc).date()

                # Only restore if it's the same day
                if stored_date == today:
                    self.quota_used_today = data.get("used", 0)
                    self.quota_reset_date = stored_date
                    logger.info(
                        f"Restored quota state from Redis: {self.quota_used_today}/{self.daily_quota_limit} used"
                    )
                else:
                    logger.info("Quota data from previous day, starting fresh")
        except Exception as e:
            logger.error(f"Error loading quota from Redis: {e}")

    def _save_quota_to_redis(self) -> None:
        """Save quota state to Redis"""
        if not self.redis_client:
            return

        try:
            quota_data = {
                "used": self.quota_used_today,
                "limit": self.daily_quota_limit,
                "remaining": self.daily_quota_limit - self.quota_used_today,
                "reset_date": self.quota_reset_date.isoformat(),
                "last_updated": datetime.now(timezone.utc).isoformat(),
            }

            self.redis_client.setex(
                constants.REDIS_KEY_QUOTA, constants.REDIS_QUOTA_EXPIRY, json.dumps(quota_data)
            )
        except Exception as e:
            logger.error(f"Error saving quota to Redis: {e}")

    def _check_rate_limit(self) -> None:
        """Simple rate limiting check"""
        now = datetime.now(timezone.utc)
        period = timedelta(seconds=constants.RATE_LIMIT_CHECK_PERIOD)
        while self.api_calls and (now - self.api_calls[0]) > period:
            self.api_calls.popleft()

        if len(self.api_calls) >= constants.RATE_LIMIT_MAX_CALLS_PER_MINUTE:
            wait_time = constants.RATE_LIMIT_CHECK_PERIOD - (now - self.api_calls[0]).total_seconds()
            if wait_time > 0:
                logger.warning(f"Rate limit approaching, waiting {wait_time:.1f}s")
                time.sleep(wait_time)

    def _roll_quota_day(self) -> None:
        """Start a fresh quota day, clearing the exceeded flag, once the UTC date changes"""
        today = datetime.now(timezone.utc).date()
        if today == self.quota_reset_date:
            return

        logger.info(
            f"Daily quota reset. Previous day usage: {self.quota_used_today}/{self.daily_quota_limit}"
        )
        self.quota_used_today = 0
        self.quota_reset_date = today
        self.quota_exceeded = False

    def _record_api_call(self, operation: str = "unknown") -> None:
        """Record an API call for rate limiting and quota tracking"""
        self.api_calls.append(datetime.now(timezone.utc))
        self._roll_quota_day()

        cost = self.quota_costs.get(operation, 1)
        self.quota_used_today += cost

        self._save_quota_to_redis()

        # Warn once when crossing each threshold
        usage_percent = (self.quota_used_today / self.daily_quota_limit) * 100
        previous_percent = (self.quota_used_today - cost) / self.daily_quota_limit * 100
        for threshold, level in ((90, logging.WARNING), (75, logging.WARNING), (50, logging.INFO)):
            if usage_percent >= threshold > previous_percent:
                logger.log(
                    level,
                    f"YouTube API quota at {usage_percent:.1f}% ({self.quota_used_today}/{self.daily_quota_limit})",
                )
                break

    def get_quota_info(self) -> Dict[str, Any]:
        """Get current quota usage information"""
        usage_percent = (self.quota_used_today / self.daily_quota_limit) * 100
        return {
            "used": self.quota_used_today,
            "limit": self.daily_quota_limit,
            "remaining": self.daily_quota_limit - self.quota_used_today,
            "usage_percent": round(usage_percent, 2),
            "reset_date": self.quota_reset_date.isoformat(),
            "exceeded": self.quota_exceeded,
        }

    def _get_access_token(self) -> Optional[str]:
        """Exchange the configured refresh token for a bearer token, cached until near expiry"""
        now = time.time()
        if self._access_token and now < self._token_expires_at:
            return self._access_token

        data = {
            "client_id": self.config.oauth_client_id,
            "client_secret": self.config.oauth_client_secret,
            "refresh_token": self.config.oauth_refresh_token,
            "grant_type": "refresh_token",
        }

        try:
            response = self.session.post(
                constants.YOUTUBE_OAUTH_TOKEN_URL, data=data, timeout=constants.API_REQUEST_TIMEOUT
            )
        except requests.RequestException as e:
            logger.error(f"Error refreshing YouTube access token: {e}")
            return None

        if not response.ok:
            logger.error(f"Failed to refresh YouTube access token: {response.status_code} {response.text}")
            return None

        try:
            payload = response.json()
        except ValueError as e:
            logger.error(f"Error parsing YouTube token response: {e} {response.text[:200]}")
            return None

        self._access_token = payload.get("access_token")
        if not self._access_token:
            logger.error("YouTube token response did not include an access token")
            return None
        expires_in = int(payload.get("expires_in", 3600))
        self._token_expires_at = now + max(expires_in - constants.OAUTH_TOKEN_EXPIRY_MARGIN, 0)
        logger.info("Refreshed YouTube access token")
        return self._access_token

    def _handle_api_response(self, response: requests.Response) -> Optional[Dict[str, Any]]:
        """Handle API response and check for quota errors"""
        try:
            data = response.json()
        except ValueError as e:
            logger.error(f"Error parsing API response ({response.status_code}): {e} {response.text[:200]}")
            return None

        if response.ok and "error" not in data:
            return data

        error = data.get("error", {}) if isinstance(data, dict) else {}
        error_code = error.get("code", response.status_code)
        error_message = error.get("message", "")

        if error_code == 403:
            for err in error.get("errors", []):
                if err.get("reason", "") in ["quotaExceeded", "dailyLimitExceeded"]:
                    self.quota_exceeded = True
                    logger.error(f"YouTube API quota exceeded: {error_message}")
                    return None

        logger.error(f"YouTube API error {error_code}: {error_message or response.text}")
        return None

    def _get(self, endpoint: str, params: Dict[str, Any], operation: str) -> Optional[Dict[str, Any]]:
        """Perform an authenticated GET against the Data API, returning None on any failure"""
        if not self.config.has_api_credentials:
            logger.warning(f"No YouTube API credentials configured. Skipping {endpoint} request.")
            return None
        self._roll_quota_day()
        if self.quota_exceeded:
            return None

        headers = {}
        params = dict(params)
        if self.config.has_oauth:
            token = self._get_access_token()
            if token:
                headers["Authorization"] = f"Bearer {token}"
            elif self.config.api_key:
                params["key"] = self.config.api_key
            else:
                return None
        else:
            params["key"] = self.config.api_key

        self._check_rate_limit()

        try:
            response = self.session.get(
                f"{self.base_url}/{endpoint}",
                params=params,
                headers=headers,
                timeout=constants.API_REQUEST_TIMEOUT,
            )
        except requests.RequestException as e:
            logger.error(f"Error calling YouTube {endpoint}: {e}")
            return None

        self._record_api_call(operation)
        return self._handle_api_response(response)

    def resolve_channel_id(self, identifier: str) -> Optional[str]:
        """
        Resolve a handle, legacy username or custom name to a channel id

        Tries channels?forHandle, then channels?forUsername, then falls back
        to a channel search matching the title. Results are cached.
        """
        identifier = (identifier or "").strip().lstrip("@")
        if not identifier:
            return None
        if is_channel_id(identifier):
            return identifier

        cached = self.channel_id_cache.get(identifier.lower())
        if cached:
            return cached

        channel_id = None
        for lookup in ({"forHandle": f"@{identifier}"}, {"forUsername": identifier}):
            data = self._get("channels", {"part": "id", **lookup}, "channels")
            items = data.get("items", []) if data else []
            if items:
                channel_id = items[0].get("id")
                break

        if not channel_id:
            channel_id = self._search_channel_id(identifier)

        if channel_id:
            self.channel_id_cache.set(identifier.lower(), channel_id)
            logger.info(f"Resolved YouTube identifier {identifier} -> {channel_id}")
        else:
            logger.warning(f"Could not determine channel id for {identifier}")
        return channel_id

    def _search_channel_id(self, identifier: str) -> Optional[str]:
        data = self._get(
            "search", {"part": "snippet", "q": identifier, "type": "channel"}, "search"
        )
        items = data.get("items", []) if data else []
        if not items:
            return None

        for item in items:
            title = item.get("snippet", {}).get("channelTitle", "")
            if title.lower() == identifier.lower() and item.get("id", {}).get("channelId"):
                return item["id"]["channelId"]

        # No exact title match, take the top result
        return items[0].get("id", {}).get("channelId")

    def get_channel_details(self, channel_url: str) -> Optional[ChannelDetails]:
        """Get title and avatar for the channel behind a stored channel URL"""
        identifier = lookup_identifier(channel_url)
        if not identifier:
            return None

        cached = self.channel_details_cache.get(identifier.lower())
        if cached:
            return cached

        channel_id = self.resolve_channel_id(identifier)
        if not channel_id:
            return None

        data = self._get("channels", {"part": "snippet", "id": channel_id}, "channels")
        items = data.get("items", []) if data else []
        if not items:
            return None

        snippet = items[0].get("snippet", {})
        thumbnails = snippet.get("thumbnails", {})
        avatar = (thumbnails.get("high") or thumbnails.get("default") or {}).get("url")
        details = ChannelDetails(
            channel_id=channel_id, title=snippet.get("title", ""), profile_image_url=avatar
        )
        self.channel_details_cache.set(identifier.lower(), details)
        return details

    @staticmethod
    def _best_thumbnail(snippet: Dict[str, Any]) -> Optional[str]:
        thumbnails = snippet.get("thumbnails", {})
        for size in ("maxres", "high", "medium", "default"):
            if thumbnails.get(size, {}).get("url"):
                return thumbnails[size]["url"]
        return None

    def get_video_metadata(self, video_id: str) -> Optional[VideoMetadata]:
        """Get title and thumbnail for a video"""
        data = self._get("videos", {"part": "snippet", "id": video_id}, "videos")
        items = data.get("items", []) if data else []
        if not items:
            return None

        snippet = items[0].get("snippet", {})
        return VideoMetadata(
            video_id=video_id,
            title=snippet.get("title"),
            thumbnail_url=self._best_thumbnail(snippet),
            channel_id=snippet.get("channelId"),
            live_broadcast_content=snippet.get("liveBroadcastContent"),
        )

    def get_live_broadcasts(self, channel_id: str) -> List[VideoMetadata]:
        """Get current live broadcasts for a channel"""
        data = self._get(
            "search",
            {"part": "snippet", "channelId": channel_id, "eventType": "live", "type": "video"},
            "search",
        )
        items = data.get("items", []) if data else []

        broadcasts = []
        for item in items:
            video_id = item.get("id", {}).get("videoId")
            if not video_id:
                continue
            snippet = item.get("snippet", {})
            broadcasts.append(
                VideoMetadata(
                    video_id=video_id,
                    title=snippet.get("title"),
                    thumbnail_url=self._best_thumbnail(snippet),
                    channel_id=snippet.get("channelId", channel_id),
                    live_broadcast_content="live",
                )
            )
        return broadcasts
