"""
SQLite persistence for the hub

The schema matches the site's existing amwhub.db (camelCase column names).
Every operation opens its own connection and runs a single statement, so
callers on different threads never share a connection.
"""

import json
import logging
import os
import sqlite3
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from .core import constants
from .models import Event, MediaItem, Streamer

logger = logging.getLogger("amwhub.store")

SCHEMA = {
    "streamers": """
        CREATE TABLE IF NOT EXISTS streamers (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            platform TEXT NOT NULL,
            platformUrl TEXT NOT NULL,
            isLive INTEGER,
            title TEXT,
            game TEXT,
            featured INTEGER,
            schedule TEXT,
            oneTimeEvents TEXT,
            discordUserId TEXT,
            youtubeChannelId TEXT
        )
    """,
    "events": """
        CREATE TABLE IF NOT EXISTS events (
            id TEXT PRIMARY KEY,
            title TEXT NOT NULL,
            start TEXT NOT NULL,
            "end" TEXT NOT NULL,
            status TEXT NOT NULL,
            details TEXT,
            image TEXT,
            participants TEXT,
            scoreboard TEXT,
            url TEXT,
            media TEXT,
            imageUrls TEXT
        )
    """,
    "events_images": """
        CREATE TABLE IF NOT EXISTS events_images (
            id TEXT PRIMARY KEY,
            eventId TEXT NOT NULL,
            filename TEXT NOT NULL,
            originalName TEXT,
            createdAt INTEGER NOT NULL,
            deletedAt INTEGER
        )
    """,
    "media": """
        CREATE TABLE IF NOT EXISTS media (
            id TEXT PRIMARY KEY,
            type TEXT NOT NULL,
            title TEXT NOT NULL,
            thumbnail TEXT NOT NULL,
            url TEXT NOT NULL,
            creator TEXT NOT NULL,
            date TEXT NOT NULL
        )
    """,
    "config": """
        CREATE TABLE IF NOT EXISTS config (
            id INTEGER PRIMARY KEY,
            discordInviteUrl TEXT
        )
    """,
}

# Columns added after the first release: table -> [(column, type)]
MIGRATIONS = {
    "streamers": [("youtubeChannelId", "TEXT")],
    "events": [("url", "TEXT"), ("media", "TEXT"), ("imageUrls", "TEXT")],
    "events_images": [("deletedAt", "INTEGER")],
}


def _load_json(value: Optional[str], default: Any) -> Any:
    if not value:
        return default
    try:
        return json.loads(value)
    except ValueError:
        logger.warning(f"Ignoring malformed JSON column value: {value[:50]}")
        return default


class DuplicateStreamerError(ValueError):
    """A streamer with the same channel URL already exists"""


class Store:
    """Manages the hub's SQLite database"""

    def __init__(self, db_path: str = constants.DEFAULT_DB_PATH):
        self.db_path = db_path
        self._ensure_directory()
        self._init_db()
        self._migrate_schema()

    def _ensure_directory(self) -> None:
        os.makedirs(os.path.dirname(os.path.abspath(self.db_path)), exist_ok=True)

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Yield a connection that commits on success and always closes"""
        conn = sqlite3.connect(self.db_path, timeout=constants.DB_TIMEOUT)
        conn.row_factory = sqlite3.Row
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    def _init_db(self) -> None:
        with self._connect() as conn:
            rows = conn.execute("SELECT name FROM sqlite_master WHERE type='table'").fetchall()
            existing = {row["name"] for row in rows}
            for table, ddl in SCHEMA.items():
                if table not in existing:
                    logger.info(f"Creating {table} table...")
                conn.execute(ddl)

    def _migrate_schema(self) -> None:
        with self._connect() as conn:
            for table, columns in MIGRATIONS.items():
                present = {row["name"] for row in conn.execute(f"PRAGMA table_info({table})")}
                for column, column_type in columns:
                    if column not in present:
                        logger.info(f'Adding "{column}" column to {table} table...')
                        conn.execute(f"ALTER TABLE {table} ADD COLUMN {column} {column_type}")

    # Streamers

    @staticmethod
    def _row_to_streamer(row: sqlite3.Row) -> Streamer:
        return Streamer(
            id=row["id"],
            name=row["name"],
            platform=row["platform"],
            platform_url=row["platformUrl"],
            is_live=bool(row["isLive"]),
            title=row["title"] or "",
            game=row["game"],
            featured=bool(row["featured"]),
            schedule=_load_json(row["schedule"], []),
            one_time_events=_load_json(row["oneTimeEvents"], []),
            discord_user_id=row["discordUserId"],
            youtube_channel_id=row["youtubeChannelId"],
        )

    def add_streamer(self, streamer: Streamer) -> Streamer:
        """Insert a new streamer; rejects a channel URL that is already present"""
        with self._connect() as conn:
            duplicate = conn.execute(
                "SELECT id FROM streamers WHERE lower(platformUrl) = lower(?)",
                (streamer.platform_url,),
            ).fetchone()
            if duplicate is not None:
                raise DuplicateStreamerError(
                    f"This channel URL has already been added ({duplicate['id']})."
                )

            conn.execute(
                """
                INSERT INTO streamers (id, name, platform, platformUrl, isLive, title, game,
                                       featured, schedule, oneTimeEvents, discordUserId, youtubeChannelId)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    streamer.id,
                    streamer.name,
                    streamer.platform,
                    streamer.platform_url,
                    1 if streamer.is_live else 0,
                    streamer.title,
                    streamer.game,
                    1 if streamer.featured else 0,
                    json.dumps(streamer.schedule),
                    json.dumps(streamer.one_time_events),
                    streamer.discord_user_id,
                    streamer.youtube_channel_id,
                ),
            )
        logger.info(f"Added streamer {streamer.id} ({streamer.name})")
        return streamer

    def next_streamer_id(self) -> str:
        """Next id in the site's streamer-<n> sequence"""
        with self._connect() as conn:
            ids = [row["id"] for row in conn.execute("SELECT id FROM streamers")]
        numbers = []
        for streamer_id in ids:
            suffix = streamer_id.rsplit("-", 1)[-1]
            if suffix.isdigit():
                numbers.append(int(suffix))
        return f"streamer-{max(numbers) + 1 if numbers else 1}"

    def remove_streamer(self, streamer_id: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM streamers WHERE id = ?", (streamer_id,))
            removed = cursor.rowcount > 0
        if removed:
            logger.info(f"Removed streamer {streamer_id}")
        return removed

    def get_streamer(self, streamer_id: str) -> Optional[Streamer]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM streamers WHERE id = ?", (streamer_id,)).fetchone()
        return self._row_to_streamer(row) if row else None

    def list_streamers(self, platform: Optional[str] = None) -> List[Streamer]:
        with self._connect() as conn:
            if platform is None:
                rows = conn.execute("SELECT * FROM streamers ORDER BY id").fetchall()
            else:
                rows = conn.execute(
                    "SELECT * FROM streamers WHERE platform = ? ORDER BY id", (platform,)
                ).fetchall()
        return [self._row_to_streamer(row) for row in rows]

    def set_live(self, streamer_id: str, is_live: bool, title: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute(
                "UPDATE streamers SET isLive = ?, title = ? WHERE id = ?",
                (1 if is_live else 0, title, streamer_id),
            )
            changed = cursor.rowcount > 0
        return changed

    def set_youtube_channel_id(self, streamer_id: str, channel_id: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute(
                "UPDATE streamers SET youtubeChannelId = ? WHERE id = ?",
                (channel_id, streamer_id),
            )
            changed = cursor.rowcount > 0
        return changed

    # Media

    def insert_media_if_absent(self, item: MediaItem) -> bool:
        """Insert a media row unless one with the same id exists

        Returns True when a row was created.
        """
        if item.type not in constants.MEDIA_TYPES:
            raise ValueError(f"Unknown media type: {item.type}")

        with self._connect() as conn:
            cursor = conn.execute(
                """
                INSERT OR IGNORE INTO media (id, type, title, thumbnail, url, creator, date)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (item.id, item.type, item.title, item.thumbnail, item.url, item.creator, item.date),
            )
            changed = cursor.rowcount > 0
        return changed

    def get_media(self, media_id: str) -> Optional[MediaItem]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM media WHERE id = ?", (media_id,)).fetchone()
        if row is None:
            return None
        return MediaItem(**{key: row[key] for key in row.keys()})

    def count_media(self, media_id: Optional[str] = None) -> int:
        with self._connect() as conn:
            if media_id is None:
                row = conn.execute("SELECT COUNT(*) AS c FROM media").fetchone()
            else:
                row = conn.execute("SELECT COUNT(*) AS c FROM media WHERE id = ?", (media_id,)).fetchone()
        return row["c"]

    # Events

    def add_event(self, event: Event) -> Event:
        if event.status not in constants.EVENT_STATUSES:
            raise ValueError(f"Unknown event status: {event.status}")

        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO events (id, title, start, "end", status, details, image,
                                    participants, scoreboard, url, media, imageUrls)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    event.id,
                    event.title,
                    event.start,
                    event.end,
                    event.status,
                    event.details,
                    event.image,
                    json.dumps(event.participants),
                    json.dumps(event.scoreboard),
                    event.url,
                    json.dumps(event.media),
                    json.dumps(event.image_urls),
                ),
            )
        return event

    def get_event(self, event_id: str) -> Optional[Event]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM events WHERE id = ?", (event_id,)).fetchone()
        if row is None:
            return None

        image_urls = _load_json(row["imageUrls"], [])
        if not image_urls and row["image"]:
            image_urls = [row["image"]]

        return Event(
            id=row["id"],
            title=row["title"],
            start=row["start"],
            end=row["end"],
            status=row["status"],
            details=row["details"] or "",
            participants=_load_json(row["participants"], []),
            scoreboard=_load_json(row["scoreboard"], []),
            url=row["url"],
            media=_load_json(row["media"], []),
            image_urls=image_urls,
        )

    def remove_event(self, event_id: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM events WHERE id = ?", (event_id,))
            changed = cursor.rowcount > 0
        return changed

    # Site config

    def get_config(self) -> Dict[str, Any]:
        with self._connect() as conn:
            row = conn.execute("SELECT discordInviteUrl FROM config WHERE id = 1").fetchone()
        return {"discordInviteUrl": row["discordInviteUrl"] if row else None}

    def set_discord_invite_url(self, url: str) -> None:
        with self._connect() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO config (id, discordInviteUrl) VALUES (1, ?)", (url,)
            )
