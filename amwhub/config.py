"""Configuration management for amwhub"""

import os
import logging
from typing import List, Mapping, Optional, Tuple

from .core import constants

logger = logging.getLogger('amwhub.config')

TRUE_VALUES = ('1', 'true', 'yes', 'on')


def load_env_file(env_path: str) -> None:
    """Load environment variables from .env file if it exists"""
    if not os.path.exists(env_path):
        return

    logger.info(f"Loading environment variables from {env_path}")

    with open(env_path, 'r') as f:
        for line in f:
            line = line.strip()
            # Skip comments and empty lines
            if not line or line.startswith('#'):
                continue

            # Parse KEY=VALUE
            if '=' in line:
                key, value = line.split('=', 1)
                key = key.strip()
                value = value.strip().strip('"').strip("'")

                # Only set if not already in environment
                if key and value and key not in os.environ:
                    os.environ[key] = value


def _display(var: str, value: str) -> str:
    if 'SECRET' in var or 'KEY' in var or 'PASSWORD' in var or 'TOKEN' in var:
        return f"{'*' * min(len(value), 20)}"
    return value[:50] + ('...' if len(value) > 50 else '')


def validate_environment(show_details: bool = True) -> Tuple[bool, List[str]]:
    """
    Validate required and optional environment variables

    Args:
        show_details: If True, print detailed validation results

    Returns:
        Tuple of (is_valid, missing_vars)
    """
    required_vars = {
        'YOUTUBE_PUSH_CALLBACK_URL': 'Public callback URL for PubSubHubbub (must be internet-accessible)',
    }

    optional_vars = {
        'YOUTUBE_PUSH_SECRET': 'Shared secret for signed hub callbacks (recommended for security)',
        'YOUTUBE_PUSH_HUB_URL': f'Hub subscribe endpoint (default: {constants.PUBSUB_HUB_URL})',
        'YOUTUBE_PUSH_LEASE_SECONDS': 'Requested subscription lease (default: 864000, minimum: 3600)',
        'YOUTUBE_AUTO_RESOLVE_CHANNEL_ID': 'Resolve missing channel ids through the YouTube API (default: off)',
        'YOUTUBE_API_KEY': 'YouTube Data API v3 key from https://console.cloud.google.com/apis/credentials',
        'YOUTUBE_CLIENT_ID': 'OAuth client id, used with YOUTUBE_CLIENT_SECRET and YOUTUBE_REFRESH_TOKEN',
        'YOUTUBE_CLIENT_SECRET': 'OAuth client secret',
        'YOUTUBE_REFRESH_TOKEN': 'OAuth refresh token exchanged for bearer tokens',
        'AMWHUB_DB_PATH': f'SQLite database file (default: {constants.DEFAULT_DB_PATH})',
        'AMWHUB_CALLBACK_PORT': 'Port for callback HTTP server (default: 8080)',
        'AMWHUB_CALLBACK_PATH': f'Path the hub calls back on (default: {constants.DEFAULT_CALLBACK_PATH})',
        'CALLBACK_BIND_ADDRESS': 'Address to bind callback server to (default: empty = all interfaces)',
        'REDIS_HOST': 'Redis host for heartbeat monitoring (default: localhost)',
        'REDIS_PORT': 'Redis port (default: 6379)',
        'REDIS_PASSWORD': 'Redis password if required (optional)',
        'REDIS_DB': 'Redis database number (default: 0)',
        'AMWHUB_HEARTBEAT_INTERVAL': 'Seconds between heartbeat updates (default: 30)',
    }

    missing_required = []
    has_all_required = True

    if show_details:
        print("\n=== Environment Variable Validation ===\n")
        print("REQUIRED Variables:")

    for var, description in required_vars.items():
        value = os.getenv(var)
        status = "✓" if value else "✗"

        if show_details:
            status_str = f"{status} {var}"
            if value:
                status_str += f" = {_display(var, value)}"
            else:
                status_str += " (MISSING)"

            print(f"  {status_str}")
            print(f"    → {description}")

        if not value:
            missing_required.append(var)
            has_all_required = False

    if show_details:
        print("\nOPTIONAL Variables:")

        for var, description in optional_vars.items():
            value = os.getenv(var)
            status = "✓" if value else "○"

            status_str = f"{status} {var}"
            if value:
                status_str += f" = {_display(var, value)}"
            else:
                status_str += " (using default)"

            print(f"  {status_str}")
            print(f"    → {description}")

        print()
        if has_all_required:
            print("✓ All required environment variables are set!")
        else:
            print(f"✗ Missing {len(missing_required)} required variable(s)")

    return has_all_required, missing_required


class HubConfig:
    """Configuration for the notification bridge, read once at startup"""

    def __init__(self, environ: Optional[Mapping[str, str]] = None, validate: bool = True):
        """
        Initialize configuration from environment variables

        Args:
            environ: Mapping to read from instead of os.environ
            validate: If True, validate environment before loading config
        """
        if environ is None:
            if validate:
                is_valid, missing = validate_environment(show_details=False)
                if not is_valid:
                    raise ValueError(
                        f"Missing required environment variables: {', '.join(missing)}. "
                        "Run with --validate flag to see details."
                    )
            environ = os.environ

        def get(key: str, default: str = '') -> str:
            return environ.get(key) or default

        # PubSubHubbub
        self.callback_url = get('YOUTUBE_PUSH_CALLBACK_URL', 'http://localhost:8080/api/youtube/push')
        self.push_secret = get('YOUTUBE_PUSH_SECRET')
        self.hub_url = get('YOUTUBE_PUSH_HUB_URL', constants.PUBSUB_HUB_URL)
        self.topic_url_template = constants.PUBSUB_TOPIC_URL_TEMPLATE
        self.auto_resolve_channel_id = get('YOUTUBE_AUTO_RESOLVE_CHANNEL_ID').lower() in TRUE_VALUES

        lease_seconds = int(get('YOUTUBE_PUSH_LEASE_SECONDS', str(constants.PUBSUB_SUBSCRIPTION_LEASE_SECONDS)))
        if lease_seconds < constants.PUBSUB_MIN_LEASE_SECONDS:
            raise ValueError(
                f"Invalid lease: {lease_seconds}s. Must be at least {constants.PUBSUB_MIN_LEASE_SECONDS}s"
            )
        self.lease_seconds = lease_seconds

        # YouTube Data API
        self.api_key = get('YOUTUBE_API_KEY')
        self.oauth_client_id = get('YOUTUBE_CLIENT_ID')
        self.oauth_client_secret = get('YOUTUBE_CLIENT_SECRET')
        self.oauth_refresh_token = get('YOUTUBE_REFRESH_TOKEN')

        # Lookup caches
        self.cache_ttl_seconds = int(get('AMWHUB_CACHE_TTL_SECONDS', str(constants.LOOKUP_CACHE_TTL_SECONDS)))
        self.cache_max_entries = int(get('AMWHUB_CACHE_MAX_ENTRIES', str(constants.LOOKUP_CACHE_MAX_ENTRIES)))

        # Persistence
        self.db_path = get('AMWHUB_DB_PATH', constants.DEFAULT_DB_PATH)

        # Validate and set server port
        server_port = int(get('AMWHUB_CALLBACK_PORT', str(constants.DEFAULT_CALLBACK_PORT)))
        if not (1 <= server_port <= 65535):
            raise ValueError(f"Invalid port number: {server_port}. Must be between 1-65535")
        self.server_port = server_port

        # Bind address and path for callback server
        self.bind_address = get('CALLBACK_BIND_ADDRESS')
        callback_path = get('AMWHUB_CALLBACK_PATH', constants.DEFAULT_CALLBACK_PATH)
        self.callback_path = callback_path if callback_path.startswith('/') else '/' + callback_path

        # Redis configuration for heartbeat
        self.redis_host = get('REDIS_HOST', constants.REDIS_DEFAULT_HOST)
        self.redis_port = int(get('REDIS_PORT', str(constants.REDIS_DEFAULT_PORT)))
        self.redis_password = get('REDIS_PASSWORD') or None
        self.redis_db = int(get('REDIS_DB', str(constants.REDIS_DEFAULT_DB)))
        self.heartbeat_interval = int(get('AMWHUB_HEARTBEAT_INTERVAL', str(constants.HEARTBEAT_INTERVAL_DEFAULT)))

        if not self.push_secret:
            logger.warning("YOUTUBE_PUSH_SECRET is not set. Hub callbacks will not be authenticated.")
        if not self.has_api_credentials:
            logger.warning("No YouTube API credentials configured. Remote lookups will be skipped.")

    @classmethod
    def from_mapping(cls, values: Mapping[str, str]) -> "HubConfig":
        """Build a configuration from an explicit mapping instead of the environment"""
        return cls(environ=values, validate=False)

    @property
    def has_oauth(self) -> bool:
        return bool(self.oauth_client_id and self.oauth_client_secret and self.oauth_refresh_token)

    @property
    def has_api_credentials(self) -> bool:
        return bool(self.api_key) or self.has_oauth
