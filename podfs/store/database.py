"""
SQLite Database for Feeds, Directories and Pod Keys

Design Decision: Feed and Directory Backend
===========================================

Options Considered:
1. One JSON file per feed
   - Readable, but a crash mid-write can tear the latest update
2. SQLite through aiosqlite
3. A network key-value service
   - Needs a server for what is a single-user deployment

Decision: SQLite through aiosqlite
- A feed publish is a single INSERT, applied fully or not at all
- History is kept; the latest row per (topic, owner) wins
- podfs.db sits next to the blobs, one directory to back up

Tables:
- feed_updates: append-only history of signed feed payloads
- directory_entries: names under each (owner, directory)
- pods: local keystore (pod name -> private key) for the CLI
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional

import aiosqlite

from ..account import PodWallet
from ..feed import verify_feed_update
from .base import DirectoryEntry, FeedUpdate

logger = logging.getLogger(__name__)

# Schema version for migrations
SCHEMA_VERSION = 1


class Database:
    """
    SQLite database for the local deployment.

    Stores:
    - Feed history
    - Directory entries
    - Pod signing keys
    """

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self._connection: Optional[aiosqlite.Connection] = None
        self.feeds = SqliteFeeds(self)
        self.directory = SqliteDirectory(self)

    @property
    def connection(self) -> aiosqlite.Connection:
        if self._connection is None:
            raise RuntimeError("Database is not connected")
        return self._connection

    async def connect(self):
        """Open database connection."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._connection = await aiosqlite.connect(self.db_path)
        self._connection.row_factory = aiosqlite.Row

        # Initialize schema
        await self._init_schema()

        logger.info(f"Database connected: {self.db_path}")

    async def close(self):
        """Close database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None

    async def __aenter__(self) -> 'Database':
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def _init_schema(self):
        """Initialize database schema."""
        await self._connection.executescript("""
            -- Schema information
            CREATE TABLE IF NOT EXISTS schema_info (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            );

            -- Feed history (append-only)
            CREATE TABLE IF NOT EXISTS feed_updates (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                topic TEXT NOT NULL,
                owner TEXT NOT NULL,
                payload BLOB NOT NULL,
                signature BLOB NOT NULL,
                published_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            );

            -- Directory entries
            CREATE TABLE IF NOT EXISTS directory_entries (
                owner TEXT NOT NULL,
                dir_path TEXT NOT NULL,
                name TEXT NOT NULL,
                is_file INTEGER NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                PRIMARY KEY (owner, dir_path, name, is_file)
            );

            -- Local pod keystore
            CREATE TABLE IF NOT EXISTS pods (
                name TEXT PRIMARY KEY,
                private_key BLOB NOT NULL,
                address TEXT NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            );

            -- Create indexes
            CREATE INDEX IF NOT EXISTS idx_feed_topic_owner ON feed_updates(topic, owner);
        """)
        await self._connection.execute(
            """INSERT INTO schema_info (key, value) VALUES ('version', ?)
               ON CONFLICT(key) DO UPDATE SET value = ?""",
            (str(SCHEMA_VERSION), str(SCHEMA_VERSION))
        )
        await self._connection.commit()

    # === Pods ===

    async def add_pod(self, name: str, wallet: PodWallet):
        """Add or replace a pod key."""
        await self.connection.execute(
            """INSERT INTO pods (name, private_key, address)
               VALUES (?, ?, ?)
               ON CONFLICT(name) DO UPDATE SET private_key = ?, address = ?""",
            (name, wallet.private_bytes(), wallet.address,
             wallet.private_bytes(), wallet.address)
        )
        await self.connection.commit()

    async def get_pods(self) -> Dict[str, PodWallet]:
        """Load all pod keys."""
        async with self.connection.execute(
            "SELECT name, private_key FROM pods ORDER BY name"
        ) as cursor:
            rows = await cursor.fetchall()
            return {
                row['name']: PodWallet.from_private_bytes(bytes(row['private_key']))
                for row in rows
            }


class SqliteFeeds:
    """FeedService view over the database."""

    def __init__(self, db: Database):
        self._db = db

    async def publish(self, update: FeedUpdate) -> None:
        verify_feed_update(update)
        await self._db.connection.execute(
            """INSERT INTO feed_updates (topic, owner, payload, signature)
               VALUES (?, ?, ?, ?)""",
            (update.topic, update.owner, update.payload, update.signature)
        )
        await self._db.connection.commit()

    async def resolve(self, topic: str, owner: str) -> Optional[bytes]:
        async with self._db.connection.execute(
            """SELECT payload FROM feed_updates
               WHERE topic = ? AND owner = ?
               ORDER BY id DESC LIMIT 1""",
            (topic, owner)
        ) as cursor:
            row = await cursor.fetchone()
            return bytes(row['payload']) if row else None


class SqliteDirectory:
    """DirectoryIndex view over the database."""

    def __init__(self, db: Database):
        self._db = db

    async def add_entry(self, owner: str, dir_path: str, name: str, is_file: bool) -> None:
        await self._db.connection.execute(
            """INSERT INTO directory_entries (owner, dir_path, name, is_file)
               VALUES (?, ?, ?, ?)
               ON CONFLICT(owner, dir_path, name, is_file)
               DO UPDATE SET updated_at = CURRENT_TIMESTAMP""",
            (owner, dir_path, name, int(is_file))
        )
        await self._db.connection.commit()

    async def remove_entry(self, owner: str, dir_path: str, name: str, is_file: bool) -> None:
        await self._db.connection.execute(
            """DELETE FROM directory_entries
               WHERE owner = ? AND dir_path = ? AND name = ? AND is_file = ?""",
            (owner, dir_path, name, int(is_file))
        )
        await self._db.connection.commit()

    async def list_entries(self, owner: str, dir_path: str) -> List[DirectoryEntry]:
        async with self._db.connection.execute(
            """SELECT name, is_file FROM directory_entries
               WHERE owner = ? AND dir_path = ?
               ORDER BY name""",
            (owner, dir_path)
        ) as cursor:
            rows = await cursor.fetchall()
            return [DirectoryEntry(name=row['name'], is_file=bool(row['is_file'])) for row in rows]


async def init_database(data_dir: Path) -> Database:
    """Initialize and return a database instance."""
    db = Database(Path(data_dir) / "podfs.db")
    await db.connect()
    return db
