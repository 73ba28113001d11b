"""
Survey Pulse - Database Module
SQLite with WAL mode, schema management, and connection handling
"""

import sqlite3
from pathlib import Path
from datetime import datetime
from typing import Optional, List, Tuple
from contextlib import contextmanager

from core.logger import log_success, log_error, log_config, log_section

# Schema version for migrations
SCHEMA_VERSION = 2

# SQL schema definition
SCHEMA_SQL = """
-- Schema version tracking
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

-- Operation reports from the survey scheduler, queued for upload
CREATE TABLE IF NOT EXISTS log_messages (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    timestamp TIMESTAMP NOT NULL,
    version TEXT NOT NULL DEFAULT '0',
    message TEXT NOT NULL,
    tag TEXT NOT NULL,
    schedule_name TEXT NOT NULL DEFAULT 'default',
    uploaded BOOLEAN DEFAULT FALSE
);

-- Indexes
CREATE INDEX IF NOT EXISTS idx_log_messages_timestamp ON log_messages(timestamp DESC);
CREATE INDEX IF NOT EXISTS idx_log_messages_pending ON log_messages(uploaded) WHERE uploaded = FALSE;
"""

# Migration SQL for v1 -> v2 (reports are tagged with the schedule that produced them)
MIGRATION_V2_SQL = """
ALTER TABLE log_messages ADD COLUMN schedule_name TEXT NOT NULL DEFAULT 'default';
"""


class Database:
    """SQLite database manager with WAL mode and thread-safe connections."""

    def __init__(
        self,
        db_path: Path,
        busy_timeout_ms: int = 10000,
    ):
        """
        Initialize the database.

        Args:
            db_path: Path to the SQLite database file
            busy_timeout_ms: Timeout for busy/locked database
        """
        self.db_path = db_path
        self.busy_timeout_ms = busy_timeout_ms
        self._initialized = False

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    def initialize(self) -> bool:
        """
        Initialize the database: create file, set WAL mode, apply schema.

        Returns:
            True if successful, False otherwise
        """
        try:
            # Ensure data directory exists
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

            log_section("Initializing database", "📁")
            log_config("Path", str(self.db_path), indent=1)

            with self.get_connection() as conn:
                # Enable WAL mode for better concurrency
                conn.execute("PRAGMA journal_mode=WAL")
                conn.execute("PRAGMA synchronous=NORMAL")
                conn.execute(f"PRAGMA busy_timeout={self.busy_timeout_ms}")

                # Check current schema version
                cursor = conn.execute(
                    "SELECT name FROM sqlite_master WHERE type='table' AND name='schema_version'"
                )
                if cursor.fetchone() is None:
                    # Fresh database, apply full schema
                    conn.executescript(SCHEMA_SQL)
                    conn.execute(
                        "INSERT INTO schema_version (version) VALUES (?)",
                        (SCHEMA_VERSION,)
                    )
                    log_config("Schema", f"Created (v{SCHEMA_VERSION})", indent=1)
                else:
                    cursor = conn.execute(
                        "SELECT MAX(version) FROM schema_version"
                    )
                    current_version = cursor.fetchone()[0] or 0
                    if current_version < SCHEMA_VERSION:
                        self._apply_migrations(conn, current_version)
                    log_config("Schema", f"Version {current_version}", indent=1)

                cursor = conn.execute("PRAGMA journal_mode")
                mode = cursor.fetchone()[0]
                log_config("Mode", f"{mode.upper()} (Write-Ahead Logging)", indent=1)

            log_success("Database ready")
            self._initialized = True
            return True

        except Exception as e:
            log_error(f"Database initialization failed: {e}")
            return False

    def _apply_migrations(self, conn: sqlite3.Connection, from_version: int) -> None:
        """
        Apply schema migrations from from_version to SCHEMA_VERSION.

        Raises:
            RuntimeError: If any migration fails - running with a
                          half-migrated schema is never allowed.
        """
        try:
            if from_version < 2:
                conn.executescript(MIGRATION_V2_SQL)
                conn.execute(
                    "INSERT INTO schema_version (version) VALUES (?)",
                    (2,)
                )
                log_config("Migration", "v1 → v2 (log_messages.schedule_name)", indent=1)
        except Exception as e:
            log_error(f"Migration failed (v{from_version} → v{SCHEMA_VERSION}): {e}")
            raise RuntimeError(
                f"Database migration failed: {e}. "
                f"Please fix the database or delete it to start fresh."
            ) from e

    @contextmanager
    def get_connection(self) -> sqlite3.Connection:
        """
        Get a database connection with proper configuration.

        Yields:
            Configured SQLite connection
        """
        conn = sqlite3.connect(
            self.db_path,
            timeout=self.busy_timeout_ms / 1000,
            check_same_thread=False
        )
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def execute(
        self,
        sql: str,
        params: Tuple = (),
        fetch: bool = False
    ) -> Optional[List[sqlite3.Row]]:
        """
        Execute a SQL statement.

        Args:
            sql: SQL statement
            params: Parameters for the statement
            fetch: Whether to fetch and return results

        Returns:
            List of rows if fetch=True, None otherwise
        """
        with self.get_connection() as conn:
            cursor = conn.execute(sql, params)
            if fetch:
                return cursor.fetchall()
            return None

    def insert_log_message(
        self,
        timestamp: datetime,
        version: str,
        message: str,
        tag: str,
        schedule_name: str = "default"
    ) -> int:
        """
        Store one operation report.

        Returns:
            The new row ID
        """
        with self.get_connection() as conn:
            cursor = conn.execute(
                """
                INSERT INTO log_messages (timestamp, version, message, tag, schedule_name)
                VALUES (?, ?, ?, ?, ?)
                """,
                (timestamp.isoformat(), version, message, tag, schedule_name)
            )
            return cursor.lastrowid

    def get_recent_log_messages(self, limit: int = 20) -> List[sqlite3.Row]:
        """Get the most recent reports, newest first."""
        return self.execute(
            """
            SELECT id, timestamp, version, message, tag, schedule_name, uploaded
            FROM log_messages
            ORDER BY id DESC
            LIMIT ?
            """,
            (limit,),
            fetch=True
        ) or []

    def get_stats(self) -> dict:
        """Get database statistics."""
        stats = {}

        with self.get_connection() as conn:
            cursor = conn.execute("SELECT COUNT(*) FROM log_messages")
            stats["total_reports"] = cursor.fetchone()[0]

            cursor = conn.execute(
                "SELECT COUNT(*) FROM log_messages WHERE uploaded = FALSE"
            )
            stats["pending_upload"] = cursor.fetchone()[0]

        return stats


# Global database instance
_db: Optional[Database] = None


def get_database() -> Database:
    """Get the global database instance."""
    if _db is None:
        raise RuntimeError("Database not initialized. Call init_database() first.")
    return _db


def init_database(db_path: Path, busy_timeout_ms: int = 10000) -> Database:
    """Initialize the global database instance."""
    global _db
    _db = Database(db_path, busy_timeout_ms)
    _db.initialize()
    return _db
