"""
Correlation table mapping outstanding oracle request ids to their requester.

Mirrors the Validator contract's requestId -> user and fulfillments mappings
so the API can reason about pending and fulfilled requests.
"""

import sqlite3
from typing import List, Optional

from ..core.db import Database
from ..core.errors import InvalidInput
from ..core.schema import RequestCorrelation, RequestState
from .encoding import checksum_address, normalize_request_id

REQUEST_COLUMNS = "request_id, requester_address, state, nonce, result, fulfillment_hash, created_at, fulfilled_at"


def _row_to_request(row: sqlite3.Row) -> RequestCorrelation:
    return RequestCorrelation(
        request_id=row['request_id'],
        requester_address=row['requester_address'],
        state=RequestState(row['state']),
        nonce=row['nonce'],
        result=None if row['result'] is None else bool(row['result']),
        fulfillment_hash=row['fulfillment_hash'],
        created_at=row['created_at'],
        fulfilled_at=row['fulfilled_at']
    )


class CorrelationTable:
    """SQLite-backed request correlation table."""

    def __init__(self, db: Database):
        self.db = db

    def next_nonce(self, conn: sqlite3.Connection) -> int:
        """Next request counter value. Call inside a transaction so it cannot be handed out twice."""
        return conn.execute("SELECT COALESCE(MAX(nonce), 0) + 1 FROM oracle_requests").fetchone()[0]

    def record_request(self, request_id: str, requester_address: str, fulfillment_hash: str = None,
                       nonce: int = None, conn: sqlite3.Connection = None) -> RequestCorrelation:
        """Insert a PENDING entry for a new outbound request."""
        try:
            request_id = normalize_request_id(request_id)
        except ValueError as e:
            raise InvalidInput(str(e)) from e
        requester_address = checksum_address(requester_address)

        if conn is None:
            with self.db.transaction() as own_conn:
                return self._insert(own_conn, request_id, requester_address, fulfillment_hash, nonce)
        return self._insert(conn, request_id, requester_address, fulfillment_hash, nonce)

    def _insert(self, conn: sqlite3.Connection, request_id: str, requester_address: str,
                fulfillment_hash: Optional[str], nonce: Optional[int]) -> RequestCorrelation:
        if nonce is None:
            nonce = self.next_nonce(conn)
        try:
            conn.execute(
                "INSERT INTO oracle_requests (request_id, requester_address, state, nonce, fulfillment_hash) VALUES (?, ?, ?, ?, ?)",
                (request_id, requester_address, RequestState.PENDING.value, nonce, fulfillment_hash)
            )
        except sqlite3.IntegrityError as e:
            raise InvalidInput(f"Request {request_id} is already recorded") from e
        return self.get(request_id, conn=conn)

    def get(self, request_id: str, conn: sqlite3.Connection = None) -> Optional[RequestCorrelation]:
        try:
            request_id = normalize_request_id(request_id)
        except ValueError:
            return None

        query = f"SELECT {REQUEST_COLUMNS} FROM oracle_requests WHERE request_id = ?"
        if conn is not None:
            row = conn.execute(query, (request_id,)).fetchone()
        else:
            with self.db.connection() as own_conn:
                row = own_conn.execute(query, (request_id,)).fetchone()
        return _row_to_request(row) if row else None

    def get_requester(self, request_id: str) -> Optional[str]:
        """The contract's getUserByRequestId view."""
        request = self.get(request_id)
        return request.requester_address if request else None

    def is_fulfilled(self, request_id: str) -> bool:
        request = self.get(request_id)
        return bool(request and request.fulfilled)

    def mark_fulfilled(self, conn: sqlite3.Connection, request_id: str, result: bool) -> bool:
        """PENDING -> FULFILLED on the caller's transaction. False if the entry was not pending."""
        cursor = conn.execute(
            """UPDATE oracle_requests
               SET state = ?, result = ?, fulfilled_at = CURRENT_TIMESTAMP
               WHERE request_id = ? AND state = ?""",
            (RequestState.FULFILLED.value, result, request_id, RequestState.PENDING.value)
        )
        return cursor.rowcount == 1

    def list_requests(self, pending_only: bool = False, limit: int = 100) -> List[RequestCorrelation]:
        query = f"SELECT {REQUEST_COLUMNS} FROM oracle_requests"
        params = []
        if pending_only:
            query += " WHERE state = ?"
            params.append(RequestState.PENDING.value)
        query += " ORDER BY nonce DESC LIMIT ?"
        params.append(limit)

        with self.db.connection() as conn:
            return [_row_to_request(row) for row in conn.execute(query, params).fetchall()]

    def list_pending(self) -> List[RequestCorrelation]:
        return self.list_requests(pending_only=True)
