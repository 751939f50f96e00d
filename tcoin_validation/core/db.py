"""
SQLite storage handle.

A ``Database`` is constructed once per application and passed to the
components that need it. Each operation acquires its own connection through
``connection()`` or ``transaction()`` and releases it on exit.
"""

import sqlite3
from contextlib import contextmanager
from typing import Generator

from .config import ensure_db_directory, sqlite_path
from .errors import StorageFailure
from ..util.logging import logger

REQUIRED_TABLES = ('users', 'oracle_requests')


class Database:
    """Explicitly constructed storage handle over a SQLite file."""

    def __init__(self, connection_string: str, timeout: float = 5.0):
        self.connection_string = connection_string
        self.path = sqlite_path(connection_string)
        self.timeout = timeout
        ensure_db_directory(self.path)

    def _connect(self) -> sqlite3.Connection:
        # Autocommit mode: transactions are opened explicitly in transaction()
        conn = sqlite3.connect(self.path, timeout=self.timeout, isolation_level=None)
        conn.row_factory = sqlite3.Row  # Enable dict-like access to rows
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @contextmanager
    def connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Get a connection for single-statement work (each statement commits on its own)."""
        try:
            conn = self._connect()
        except sqlite3.Error as e:
            logger.error(f"Failed to open database '{self.path}': {e}")
            raise StorageFailure(f"Database unavailable: {e}") from e
        try:
            yield conn
        except sqlite3.Error as e:
            logger.error(f"Database error: {e}")
            raise StorageFailure(f"Database error: {e}") from e
        finally:
            conn.close()

    @contextmanager
    def transaction(self) -> Generator[sqlite3.Connection, None, None]:
        """Run a block inside BEGIN IMMEDIATE so concurrent writers serialize.

        Commits on success. Any exception rolls back before propagating;
        sqlite3 errors are re-raised as StorageFailure.
        """
        with self.connection() as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                # SQLite may already have rolled back on its own
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")

    def init_schema(self):
        """Create the tables if they do not exist yet."""
        with self.connection() as conn:
            conn.execute("PRAGMA journal_mode = WAL")

            conn.execute('''
                CREATE TABLE IF NOT EXISTS users (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    username TEXT NOT NULL UNIQUE,
                    legal_name TEXT,
                    date_of_birth TEXT,
                    identity_document TEXT,
                    identity_document_country TEXT,
                    issue_date TEXT,
                    issue_place TEXT,
                    expirity_date TEXT,
                    address TEXT UNIQUE,
                    valid BOOLEAN NOT NULL DEFAULT FALSE,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            ''')

            conn.execute('''
                CREATE TABLE IF NOT EXISTS oracle_requests (
                    request_id TEXT PRIMARY KEY,
                    requester_address TEXT NOT NULL,
                    state TEXT NOT NULL DEFAULT 'PENDING' CHECK(state IN ('PENDING', 'FULFILLED')),
                    nonce INTEGER NOT NULL UNIQUE,
                    result BOOLEAN,
                    fulfillment_hash TEXT,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    fulfilled_at TIMESTAMP
                )
            ''')

            conn.execute('CREATE INDEX IF NOT EXISTS idx_oracle_requests_state ON oracle_requests(state)')

        logger.info(f"Database initialized at {self.path}")

    def health_check(self) -> bool:
        """Check that the database is reachable and has the required tables."""
        try:
            with self.connection() as conn:
                cursor = conn.execute("SELECT name FROM sqlite_master WHERE type='table'")
                table_names = {row[0] for row in cursor.fetchall()}
                return set(REQUIRED_TABLES).issubset(table_names)
        except StorageFailure as e:
            logger.error(f"Database health check failed: {e}")
            return False
