#!/usr/bin/env python3
"""
AMW Hub YouTube Live Notification Bridge - Main Entry Point

This script subscribes the hub's YouTube streamers to PubSubHubbub feed
updates and serves the callback that marks streamers live when a new video
is announced.
"""

import argparse
import glob
import logging
import os
import sys
import time
from logging.handlers import RotatingFileHandler

# Configure logging with rotation
handlers = [logging.StreamHandler(sys.stdout)]

if os.environ.get("AMWHUB_LOG_FILE"):
    log_file = os.environ["AMWHUB_LOG_FILE"]
    # 10MB max file size, keep 5 backup files
    max_bytes = int(os.environ.get("AMWHUB_LOG_MAX_BYTES", 10 * 1024 * 1024))
    backup_count = int(os.environ.get("AMWHUB_LOG_BACKUP_COUNT", 5))

    file_handler = RotatingFileHandler(log_file, maxBytes=max_bytes, backupCount=backup_count)
    handlers.append(file_handler)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=handlers,
)
logger = logging.getLogger("amwhub")

from amwhub.config import HubConfig, load_env_file, validate_environment
from amwhub.core import constants
from amwhub.monitor import HubMonitor, connect_redis
from amwhub.store import DuplicateStreamerError, Store


def cleanup_old_logs(log_dir: str, max_age_days: int = constants.LOG_RETENTION_DAYS) -> None:
    """
    Delete log files older than the specified number of days

    Args:
        log_dir: Directory containing log files
        max_age_days: Maximum age of log files in days (default: 7)
    """
    if not os.path.exists(log_dir):
        return

    now = time.time()
    max_age_seconds = max_age_days * 86400

    log_patterns = [os.path.join(log_dir, "*.log"), os.path.join(log_dir, "*.log.*")]

    deleted_count = 0
    for pattern in log_patterns:
        for log_file in glob.glob(pattern):
            try:
                file_age = now - os.path.getmtime(log_file)
                if file_age > max_age_seconds:
                    os.remove(log_file)
                    logger.info(f"Deleted old log file: {log_file} (age: {file_age / 86400:.1f} days)")
                    deleted_count += 1
            except OSError as e:
                logger.warning(f"Failed to delete log file {log_file}: {e}")

    if deleted_count > 0:
        logger.info(f"Cleaned up {deleted_count} old log file(s)")


def main() -> None:
    """Main entry point"""
    parser = argparse.ArgumentParser(
        description="AMW Hub YouTube Live Notification Bridge",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Environment Variables:
  YOUTUBE_PUSH_CALLBACK_URL     Public callback URL for PubSubHubbub (required)
  YOUTUBE_PUSH_SECRET           Shared secret for signed callbacks (optional)
  YOUTUBE_PUSH_HUB_URL          Hub subscribe endpoint (default: https://pubsubhubbub.appspot.com/subscribe)
  YOUTUBE_PUSH_LEASE_SECONDS    Requested lease (default: 864000)
  YOUTUBE_AUTO_RESOLVE_CHANNEL_ID  Resolve missing channel ids via the API (default: off)
  YOUTUBE_API_KEY               YouTube Data API v3 key (optional)
  YOUTUBE_CLIENT_ID, YOUTUBE_CLIENT_SECRET, YOUTUBE_REFRESH_TOKEN
                                OAuth credentials, used instead of the API key when all are set
  AMWHUB_DB_PATH                SQLite database file (default: amwhub.db)
  AMWHUB_CALLBACK_PORT          Port for callback server (default: 8080)
  AMWHUB_CALLBACK_PATH          Callback path (default: /api/youtube/push)
  CALLBACK_BIND_ADDRESS         Bind address for callback server (default: all interfaces)
  REDIS_HOST, REDIS_PORT, REDIS_PASSWORD, REDIS_DB
                                Redis for heartbeat and quota persistence (optional)
  AMWHUB_HEARTBEAT_INTERVAL     Heartbeat update interval in seconds (default: 30)
  AMWHUB_LOG_FILE               Path to log file (optional, logs to stdout if not set)
  AMWHUB_LOG_MAX_BYTES          Max log file size in bytes before rotation (default: 10485760 = 10MB)
  AMWHUB_LOG_BACKUP_COUNT       Number of backup log files to keep (default: 5)
  AMWHUB_LOG_RETENTION_DAYS     Number of days to keep old log files (default: 7)

Example:
  export YOUTUBE_API_KEY="your-api-key"
  export YOUTUBE_PUSH_SECRET="a-long-random-string"
  export YOUTUBE_PUSH_CALLBACK_URL="https://hub.example.com/api/youtube/push"
  python -m amwhub --add-streamer https://www.youtube.com/@handle
  python -m amwhub --subscribe UCxxxxxxxxxxxxxxxxxxxxxx
  python -m amwhub
        """,
    )

    parser.add_argument("--validate", action="store_true", help="Validate environment variables and exit")
    parser.add_argument("--init-db", action="store_true", help="Create or migrate the database and exit")
    parser.add_argument(
        "--subscribe",
        metavar="TARGET",
        help="Subscribe a channel id, streamer id or channel handle and exit",
    )
    parser.add_argument(
        "--unsubscribe",
        metavar="TARGET",
        help="Unsubscribe a channel id, streamer id or channel handle and exit",
    )
    parser.add_argument(
        "--subscribe-all", action="store_true", help="Subscribe every YouTube streamer and exit"
    )
    parser.add_argument(
        "--unsubscribe-all", action="store_true", help="Unsubscribe every YouTube streamer and exit"
    )
    parser.add_argument("--add-streamer", metavar="URL", help="Add a YouTube streamer by channel URL and subscribe it")
    parser.add_argument("--name", help="Display name for --add-streamer (default: channel title)")
    parser.add_argument("--remove-streamer", metavar="ID", help="Unsubscribe and delete a streamer")
    parser.add_argument("--list-streamers", action="store_true", help="List stored streamers and exit")
    parser.add_argument(
        "--check-live", action="store_true", help="Record current live broadcasts via the YouTube API and exit"
    )

    args = parser.parse_args()

    # Try to load .env file
    load_env_file(os.path.join(os.getcwd(), ".env"))

    # Clean up old log files
    log_retention_days = int(os.environ.get("AMWHUB_LOG_RETENTION_DAYS", str(constants.LOG_RETENTION_DAYS)))
    if os.environ.get("AMWHUB_LOG_FILE"):
        log_dir = os.path.dirname(os.path.abspath(os.environ["AMWHUB_LOG_FILE"]))
        cleanup_old_logs(log_dir, log_retention_days)

    if args.validate:
        is_valid, missing = validate_environment(show_details=True)
        sys.exit(0 if is_valid else 1)

    try:
        is_valid, missing = validate_environment(show_details=False)
        if not is_valid:
            logger.error(f"Environment validation failed. Missing: {', '.join(missing)}")
            logger.error("Run with --validate flag for detailed information")
            sys.exit(1)

        config = HubConfig(validate=False)  # Already validated above

        if args.init_db:
            Store(config.db_path)
            logger.info(f"Database ready at {config.db_path}")
            return

        if args.list_streamers:
            for streamer in Store(config.db_path).list_streamers():
                status = "LIVE" if streamer.is_live else "offline"
                channel = streamer.youtube_channel_id or "-"
                print(f"{streamer.id}\t{streamer.platform}\t{status}\t{channel}\t{streamer.name}\t{streamer.platform_url}")
            return

        monitor = HubMonitor(config, redis_client=connect_redis(config))

        if args.add_streamer:
            streamer = monitor.register_streamer(args.add_streamer, args.name)
            print(f"Added {streamer.id}: {streamer.name}")
            return

        if args.remove_streamer:
            sys.exit(0 if monitor.remove_streamer(args.remove_streamer) else 1)

        if args.unsubscribe_all:
            sent = monitor.subscriber.unsubscribe_all()
            logger.info(f"{sent} unsubscribe request(s) sent")
            return

        if args.check_live:
            recorded = monitor.check_live_streams()
            logger.info(f"{recorded} live stream(s) recorded")
            return

        if args.subscribe or args.unsubscribe:
            if args.subscribe:
                ok = monitor.subscriber.subscribe(args.subscribe)
            else:
                ok = monitor.subscriber.unsubscribe(args.unsubscribe)
            sys.exit(0 if ok else 1)

        if args.subscribe_all:
            sent = monitor.subscriber.subscribe_all()
            logger.info(f"{sent} subscription request(s) sent")
            return

        try:
            monitor.start()
        except KeyboardInterrupt:
            logger.info("Shutting down...")
        finally:
            monitor.stop()

    except DuplicateStreamerError as e:
        logger.error(str(e))
        sys.exit(1)
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
