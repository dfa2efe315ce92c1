"""Database manager for the staff status bot with pooled SQLite connections."""

import os
import sqlite3
import logging
import time
from typing import Optional, List, Dict, Any
from contextlib import contextmanager
from datetime import datetime, timezone
from queue import Queue, Empty, Full

from bot.tracker import MemberStat

logger = logging.getLogger(__name__)


def _to_timestamp(dt: datetime) -> float:
    """Convert a datetime to a Unix timestamp, treating naive values as UTC."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.timestamp()


def _row_to_member_stat(row: sqlite3.Row) -> MemberStat:
    return MemberStat(
        member_id=row['member_id'],
        online_time=row['online_time'],
        idle_time=row['idle_time'],
        dnd_time=row['dnd_time'],
        offline_time=row['offline_time'],
        last_status=row['last_status'],
        last_update=datetime.fromtimestamp(row['last_update'], tz=timezone.utc),
    )


class DatabaseManager:
    """Manages SQLite connections and guild tracking documents."""

    def __init__(self, db_file: str, pool_size: int = 5):
        """
        Initialize database manager with connection pooling.

        Args:
            db_file: Path to SQLite database file
            pool_size: Number of connections to maintain in the pool (default: 5)
        """
        self.db_file = db_file
        self.pool_size = pool_size
        self._pool: Queue = Queue(maxsize=pool_size)

        self._initialize_pool()
        self._initialize_database()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_file, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        # Needed for ON DELETE CASCADE on member_stats
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def _initialize_pool(self):
        """Initialize the connection pool with connections."""
        for _ in range(self.pool_size):
            self._pool.put(self._connect())
        logger.info(f"Initialized database connection pool with {self.pool_size} connections")

    def _get_connection_from_pool(self) -> sqlite3.Connection:
        """Get a connection from the pool, creating a new one if pool is empty."""
        try:
            return self._pool.get_nowait()
        except Empty:
            logger.debug("Connection pool exhausted, creating temporary connection")
            return self._connect()

    def _return_connection_to_pool(self, conn: sqlite3.Connection):
        """Return a connection to the pool."""
        try:
            self._pool.put_nowait(conn)
        except Full:
            conn.close()

    def close_pool(self):
        """Close all connections in the pool. Should be called on shutdown."""
        while not self._pool.empty():
            try:
                conn = self._pool.get_nowait()
                conn.close()
            except Empty:
                break
        logger.info("Closed all database connections in pool")

    @contextmanager
    def get_connection(self):
        """
        Context manager for database connections from pool.
        Commits on success, rolls back on error.

        Yields:
            sqlite3.Connection: Database connection from pool
        """
        conn = self._get_connection_from_pool()
        try:
            yield conn
            conn.commit()
        except Exception as e:
            conn.rollback()
            logger.error(f"Database error: {e}")
            raise
        finally:
            self._return_connection_to_pool(conn)

    def _initialize_database(self):
        """Create tables if they don't exist."""
        with self.get_connection() as conn:
            cursor = conn.cursor()

            # One row per guild with tracking enabled
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS guilds (
                    guild_id INTEGER PRIMARY KEY,
                    role_id INTEGER,
                    channel_id INTEGER,
                    message_id INTEGER,
                    added_at INTEGER NOT NULL
                )
            """)

            # Per-member accumulators, embedded in the guild document
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS member_stats (
                    guild_id INTEGER NOT NULL,
                    member_id INTEGER NOT NULL,
                    online_time REAL NOT NULL DEFAULT 0,
                    idle_time REAL NOT NULL DEFAULT 0,
                    dnd_time REAL NOT NULL DEFAULT 0,
                    offline_time REAL NOT NULL DEFAULT 0,
                    last_status TEXT NOT NULL DEFAULT 'offline',
                    last_update REAL NOT NULL,
                    position INTEGER NOT NULL,
                    PRIMARY KEY (guild_id, member_id),
                    FOREIGN KEY (guild_id) REFERENCES guilds(guild_id) ON DELETE CASCADE
                )
            """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_member_stats_position
                ON member_stats(guild_id, position)
            """)

        logger.info(f"Database initialized: {self.db_file}")

    def _write_member_stat(self, cursor: sqlite3.Cursor, guild_id: int, stat: MemberStat):
        """Update a member row in place, or append it at the end of the list."""
        cursor.execute("""
            UPDATE member_stats
            SET online_time = ?, idle_time = ?, dnd_time = ?, offline_time = ?,
                last_status = ?, last_update = ?
            WHERE guild_id = ? AND member_id = ?
        """, (stat.online_time, stat.idle_time, stat.dnd_time, stat.offline_time,
              stat.last_status, _to_timestamp(stat.last_update), guild_id, stat.member_id))

        if cursor.rowcount == 0:
            cursor.execute("""
                INSERT INTO member_stats
                (guild_id, member_id, online_time, idle_time, dnd_time, offline_time,
                 last_status, last_update, position)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?,
                        (SELECT COALESCE(MAX(position), -1) + 1 FROM member_stats WHERE guild_id = ?))
            """, (guild_id, stat.member_id, stat.online_time, stat.idle_time, stat.dnd_time,
                  stat.offline_time, stat.last_status, _to_timestamp(stat.last_update), guild_id))

    def get_guild_config(self, guild_id: int) -> Optional[Dict[str, Any]]:
        """
        Get a guild's tracking configuration and member stats.

        Args:
            guild_id: Discord guild ID

        Returns:
            Dict with guild_id, role_id, channel_id, message_id and members
            (list of MemberStat), or None if tracking is not configured
        """
        try:
            with self.get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute("SELECT * FROM guilds WHERE guild_id = ?", (guild_id,))
                row = cursor.fetchone()
                if not row:
                    return None

                config = dict(row)
                cursor.execute("""
                    SELECT * FROM member_stats WHERE guild_id = ? ORDER BY position
                """, (guild_id,))
                config['members'] = [_row_to_member_stat(r) for r in cursor.fetchall()]
                return config
        except Exception as e:
            logger.error(f"Failed to get guild config {guild_id}: {e}")
            return None

    def get_guild_settings(self, guild_id: int) -> Optional[Dict[str, Any]]:
        """Get a guild's role, channel and message IDs without loading member stats."""
        try:
            with self.get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute("SELECT * FROM guilds WHERE guild_id = ?", (guild_id,))
                row = cursor.fetchone()
                return dict(row) if row else None
        except Exception as e:
            logger.error(f"Failed to get guild settings {guild_id}: {e}")
            return None

    def get_all_guild_configs(self) -> List[Dict[str, Any]]:
        """Get every configured guild, members included."""
        try:
            with self.get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute("SELECT guild_id FROM guilds ORDER BY added_at, guild_id")
                guild_ids = [row['guild_id'] for row in cursor.fetchall()]
        except Exception as e:
            logger.error(f"Failed to list guild configs: {e}")
            return []

        configs = []
        for guild_id in guild_ids:
            config = self.get_guild_config(guild_id)
            if config:
                configs.append(config)
        return configs

    def upsert_guild_config(self, guild_id: int, role_id: Optional[int] = None,
                            channel_id: Optional[int] = None, message_id: Optional[int] = None,
                            members: Optional[List[MemberStat]] = None) -> bool:
        """
        Create a guild config, or overwrite only the fields provided.

        Args:
            guild_id: Discord guild ID
            role_id: Tracked role ID
            channel_id: Channel holding the status panel
            message_id: Status panel message ID
            members: Member stats to update in place or append

        Returns:
            bool: True if successful
        """
        try:
            with self.get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute("""
                    INSERT OR IGNORE INTO guilds (guild_id, added_at)
                    VALUES (?, ?)
                """, (guild_id, int(datetime.now(timezone.utc).timestamp())))

                fields = {'role_id': role_id, 'channel_id': channel_id, 'message_id': message_id}
                updates = {name: value for name, value in fields.items() if value is not None}
                if updates:
                    assignments = ", ".join(f"{name} = ?" for name in updates)
                    cursor.execute(
                        f"UPDATE guilds SET {assignments} WHERE guild_id = ?",
                        (*updates.values(), guild_id)
                    )

                for stat in members or []:
                    self._write_member_stat(cursor, guild_id, stat)
                return True
        except Exception as e:
            logger.error(f"Failed to upsert guild config {guild_id}: {e}")
            return False

    def get_member_stat(self, guild_id: int, member_id: int) -> Optional[MemberStat]:
        """Get one member's stats, or None if the member has not been seen."""
        try:
            with self.get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute("""
                    SELECT * FROM member_stats WHERE guild_id = ? AND member_id = ?
                """, (guild_id, member_id))
                row = cursor.fetchone()
                return _row_to_member_stat(row) if row else None
        except Exception as e:
            logger.error(f"Failed to get stats for member {member_id} in guild {guild_id}: {e}")
            return None

    def upsert_member_stat(self, guild_id: int, stat: MemberStat) -> bool:
        """
        Save a single member's stats without touching the rest of the guild.

        Returns:
            bool: True if saved, False if the guild is not configured or on error
        """
        try:
            with self.get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute("SELECT 1 FROM guilds WHERE guild_id = ?", (guild_id,))
                if cursor.fetchone() is None:
                    return False
                self._write_member_stat(cursor, guild_id, stat)
                return True
        except Exception as e:
            logger.error(f"Failed to save stats for member {stat.member_id} in guild {guild_id}: {e}")
            return False

    def reset_member_stats(self, guild_id: int, now: Optional[datetime] = None) -> Optional[int]:
        """
        Zero every tracked member's accumulators, keeping their last status.

        Args:
            guild_id: Discord guild ID
            now: New last_update value (defaults to now)

        Returns:
            Number of members reset, or None if the guild is not configured
        """
        now = now or datetime.now(timezone.utc)
        try:
            with self.get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute("SELECT 1 FROM guilds WHERE guild_id = ?", (guild_id,))
                if cursor.fetchone() is None:
                    return None

                cursor.execute("SELECT * FROM member_stats WHERE guild_id = ?", (guild_id,))
                stats = [_row_to_member_stat(row) for row in cursor.fetchall()]
                for stat in stats:
                    stat.reset(now)
                    self._write_member_stat(cursor, guild_id, stat)
                reset_count = len(stats)
                logger.info(f"Reset stats for {reset_count} members in guild {guild_id}")
                return reset_count
        except Exception as e:
            logger.error(f"Failed to reset stats for guild {guild_id}: {e}")
            return None

    def delete_guild_config(self, guild_id: int) -> bool:
        """
        Remove a guild's config and all of its member stats.
        Deleting a guild that is not configured is not an error.

        Returns:
            bool: True if successful, False on database error
        """
        try:
            with self.get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute("DELETE FROM member_stats WHERE guild_id = ?", (guild_id,))
                members_deleted = cursor.rowcount
                cursor.execute("DELETE FROM guilds WHERE guild_id = ?", (guild_id,))
                if cursor.rowcount:
                    logger.info(f"Removed guild {guild_id} from database. Deleted {members_deleted} member records.")
                return True
        except Exception as e:
            logger.error(f"Failed to delete guild config {guild_id}: {e}")
            return False

    def get_database_health(self) -> Dict[str, Any]:
        """
        Get database health status.

        Returns:
            Dict with health information
        """
        health = {
            'status': 'unknown',
            'can_connect': False,
            'can_read': False,
            'latency_ms': None,
            'file_size_mb': 0.0
        }

        try:
            if os.path.exists(self.db_file):
                file_size = os.path.getsize(self.db_file)
                health['file_size_mb'] = round(file_size / (1024 * 1024), 2)

            started = time.perf_counter()
            with self.get_connection() as conn:
                health['can_connect'] = True

                cursor = conn.cursor()
                cursor.execute("SELECT COUNT(*) FROM guilds")
                cursor.fetchone()
                health['can_read'] = True

            health['latency_ms'] = round((time.perf_counter() - started) * 1000, 2)
            health['status'] = 'healthy'

        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            health['status'] = 'unhealthy'
            health['error'] = str(e)

        return health
