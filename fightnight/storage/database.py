"""SQLite database operations"""
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional


class Database:
    """SQLite key/value storage for serialized guild settings"""

    def __init__(self, db_path: str = "data/bot.db"):
        """Initialize database connection"""
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _init_db(self):
        """Create tables if they don't exist"""
        with self._get_connection() as conn:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS guild_settings (
                    guild_id TEXT PRIMARY KEY,
                    data TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)

            conn.commit()

    @contextmanager
    def _get_connection(self):
        """Get database connection with context manager"""
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    def get_guild_settings(self, guild_id: str) -> Optional[str]:
        """Get the serialized settings of a guild, or None if absent"""
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT data FROM guild_settings WHERE guild_id = ?",
                (guild_id,)
            )
            row = cursor.fetchone()
            if row:
                return row['data']
            return None

    def put_guild_settings(self, guild_id: str, data: str):
        """Insert or replace the serialized settings of a guild"""
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("""
                INSERT OR REPLACE INTO guild_settings
                (guild_id, data, updated_at)
                VALUES (?, ?, ?)
            """, (guild_id, data, datetime.now(timezone.utc).isoformat()))
            conn.commit()

    def delete_guild_settings(self, guild_id: str):
        """Remove the stored settings of a guild"""
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "DELETE FROM guild_settings WHERE guild_id = ?",
                (guild_id,)
            )
            conn.commit()

    def list_guild_ids(self) -> List[str]:
        """List every guild with stored settings"""
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT guild_id FROM guild_settings ORDER BY guild_id ASC")
            return [row['guild_id'] for row in cursor.fetchall()]
