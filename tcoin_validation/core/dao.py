"""
Data access for user records.
Every mutation is a single UPDATE/INSERT statement, so writes to one record
are atomic at the storage layer.
"""

import sqlite3
import uuid
from typing import Optional

from .db import Database
from .errors import InvalidInput
from .schema import UserRecord
from ..util.logging import logger

USER_COLUMNS = (
    "id, username, legal_name, date_of_birth, identity_document, identity_document_country, "
    "issue_date, issue_place, expirity_date, address, valid, created_at, updated_at"
)


def _row_to_user(row: sqlite3.Row) -> UserRecord:
    return UserRecord(
        id=row['id'],
        username=row['username'],
        legal_name=row['legal_name'],
        date_of_birth=row['date_of_birth'],
        identity_document=row['identity_document'],
        identity_document_country=row['identity_document_country'],
        issue_date=row['issue_date'],
        issue_place=row['issue_place'],
        expirity_date=row['expirity_date'],
        address=row['address'],
        valid=bool(row['valid']),
        created_at=row['created_at'],
        updated_at=row['updated_at']
    )


class UserDAO:
    """Data access object for the users table."""

    def __init__(self, db: Database):
        self.db = db

    def create_user(self, legal_name: Optional[str], date_of_birth: Optional[str],
                    address: Optional[str] = None, username: Optional[str] = None) -> int:
        """Insert a new user with valid=False and return its id."""
        username = username or str(uuid.uuid4())
        with self.db.connection() as conn:
            try:
                cursor = conn.execute(
                    "INSERT INTO users (username, legal_name, date_of_birth, address, valid) VALUES (?, ?, ?, ?, FALSE)",
                    (username, legal_name, date_of_birth, address)
                )
            except sqlite3.IntegrityError as e:
                logger.warning(f"Rejected user insert: {e}")
                raise InvalidInput("Username or address already registered") from e
            return cursor.lastrowid

    def get_user(self, user_id: int) -> Optional[UserRecord]:
        with self.db.connection() as conn:
            row = conn.execute(
                f"SELECT {USER_COLUMNS} FROM users WHERE id = ?", (user_id,)
            ).fetchone()
            return _row_to_user(row) if row else None

    def get_user_by_address(self, address: str, conn: sqlite3.Connection = None) -> Optional[UserRecord]:
        """Look up a user by checksummed address, optionally on a caller's open transaction."""
        query = f"SELECT {USER_COLUMNS} FROM users WHERE address = ?"
        if conn is not None:
            row = conn.execute(query, (address,)).fetchone()
        else:
            with self.db.connection() as own_conn:
                row = own_conn.execute(query, (address,)).fetchone()
        return _row_to_user(row) if row else None

    def get_status(self, user_id: int) -> Optional[bool]:
        """Return only the valid flag, or None when the user does not exist."""
        with self.db.connection() as conn:
            row = conn.execute("SELECT valid FROM users WHERE id = ?", (user_id,)).fetchone()
            return bool(row['valid']) if row else None

    def update_identity(self, user_id: int, identity_document: str, identity_document_country: str,
                        issue_date: str, issue_place: str, expirity_date: str,
                        mark_valid: bool) -> bool:
        """Store identity fields (and optionally set valid) in one statement. False if no such user."""
        with self.db.connection() as conn:
            cursor = conn.execute(
                """UPDATE users
                   SET identity_document = ?, identity_document_country = ?, issue_date = ?,
                       issue_place = ?, expirity_date = ?,
                       valid = CASE WHEN ? THEN TRUE ELSE valid END,
                       updated_at = CURRENT_TIMESTAMP
                   WHERE id = ?""",
                (identity_document, identity_document_country, issue_date,
                 issue_place, expirity_date, mark_valid, user_id)
            )
            return cursor.rowcount > 0

    def set_valid(self, user_id: int, valid: bool, conn: sqlite3.Connection = None) -> bool:
        """Set the valid flag. False if no such user."""
        query = "UPDATE users SET valid = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?"
        if conn is not None:
            return conn.execute(query, (valid, user_id)).rowcount > 0
        with self.db.connection() as own_conn:
            return own_conn.execute(query, (valid, user_id)).rowcount > 0

    def set_address(self, user_id: int, address: str) -> bool:
        with self.db.connection() as conn:
            try:
                cursor = conn.execute(
                    "UPDATE users SET address = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                    (address, user_id)
                )
            except sqlite3.IntegrityError as e:
                raise InvalidInput(f"Address {address} is already linked to another user") from e
            return cursor.rowcount > 0

    def count_users(self) -> int:
        with self.db.connection() as conn:
            return conn.execute("SELECT COUNT(*) FROM users").fetchone()[0]
