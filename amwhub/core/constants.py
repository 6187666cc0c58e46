"""Application constants and configuration defaults"""

# YouTube API Configuration
YOUTUBE_API_BASE_URL = "https://www.googleapis.com/youtube/v3"
YOUTUBE_OAUTH_TOKEN_URL = "https://oauth2.googleapis.com/token"
YOUTUBE_DAILY_QUOTA_LIMIT = 10000

# API Operation Costs (quota units)
YOUTUBE_API_QUOTA_COSTS = {
    "search": 100,
    "channels": 1,
    "videos": 1,
}

# Seconds subtracted from an OAuth token lifetime before it is refreshed
OAUTH_TOKEN_EXPIRY_MARGIN = 60

# Redis Configuration
REDIS_DEFAULT_HOST = "localhost"
REDIS_DEFAULT_PORT = 6379
REDIS_DEFAULT_DB = 0

# Redis Key Names
REDIS_KEY_QUOTA = "amwhub:quota"
REDIS_KEY_HEARTBEAT = "amwhub:heartbeat"

# Redis Key Expiry Time (seconds)
REDIS_QUOTA_EXPIRY = 172800  # 48 hours

# Heartbeat
HEARTBEAT_INTERVAL_DEFAULT = 30  # seconds

# API Request Configuration
API_REQUEST_TIMEOUT = 10  # seconds
RATE_LIMIT_CHECK_PERIOD = 60  # 1 minute
RATE_LIMIT_MAX_CALLS_PER_MINUTE = 50

# Lookup cache
LOOKUP_CACHE_TTL_SECONDS = 86400  # 24 hours
LOOKUP_CACHE_MAX_ENTRIES = 512

# HTTP Server Configuration
DEFAULT_CALLBACK_PORT = 8080
DEFAULT_CALLBACK_PATH = "/api/youtube/push"
METRICS_PATH = "/metrics"
# Largest hub notification body the callback will read
MAX_NOTIFICATION_BYTES = 1024 * 1024

# PubSubHubbub Configuration
PUBSUB_HUB_URL = "https://pubsubhubbub.appspot.com/subscribe"
PUBSUB_TOPIC_URL_TEMPLATE = "https://www.youtube.com/xml/feeds/videos.xml?channel_id={}"
PUBSUB_SUBSCRIPTION_LEASE_SECONDS = 864000  # 10 days
PUBSUB_MIN_LEASE_SECONDS = 3600
# Renew subscriptions once this fraction of the lease has elapsed
PUBSUB_RENEWAL_FRACTION = 0.8

# Signature headers
HEADER_SIGNATURE_256 = "X-Hub-Signature-256"
HEADER_SIGNATURE_LEGACY = "X-Hub-Signature"

# YouTube channel ids all start with this prefix
YOUTUBE_CHANNEL_ID_PREFIX = "UC"

# Path segments that name a channel tab rather than the channel itself
YOUTUBE_CHANNEL_TABS = frozenset(
    ["videos", "streams", "live", "shorts", "featured", "playlists", "about", "community"]
)

# Fallback values written when video metadata is unavailable
LIVE_TITLE_FALLBACK = "Live on YouTube"
MEDIA_TITLE_FALLBACK = "YouTube Live"
MEDIA_ID_PREFIX = "yt-"
YOUTUBE_WATCH_URL_TEMPLATE = "https://www.youtube.com/watch?v={}"
YOUTUBE_THUMBNAIL_URL_TEMPLATE = "https://i.ytimg.com/vi/{}/hqdefault.jpg"

# Media types
MEDIA_TYPES = ["video", "clip", "stream", "guide", "short"]

# Event statuses
EVENT_STATUSES = ["upcoming", "live", "past"]

# Database
DEFAULT_DB_PATH = "amwhub.db"
DB_TIMEOUT = 10  # seconds

# Log Configuration
LOG_RETENTION_DAYS = 7

# Metric names
METRIC_SUBSCRIBE_SENT = "youtube.subscribe.sent"
METRIC_UNSUBSCRIBE_SENT = "youtube.unsubscribe.sent"
METRIC_SUBSCRIBE_FAILED = "youtube.subscribe.failed"
METRIC_SUBSCRIBE_UNRESOLVED = "youtube.subscribe.unresolved"
METRIC_PUSH_VERIFIED = "youtube.push.verified"
METRIC_PUSH_RECEIVED = "youtube.push.received"
METRIC_PUSH_FORBIDDEN = "youtube.push.forbidden"
METRIC_PUSH_IGNORED = "youtube.push.ignored"
METRIC_PUSH_UNMATCHED = "youtube.push.unmatched"
METRIC_PUSH_APPLIED = "youtube.push.applied"
METRIC_PUSH_ERRORS = "youtube.push.errors"
METRIC_RESOLVE_DIRECT = "youtube.resolve.direct"
METRIC_RESOLVE_REMOTE = "youtube.resolve.remote"
METRIC_RESOLVE_MISS = "youtube.resolve.miss"
