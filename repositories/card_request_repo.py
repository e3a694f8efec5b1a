"""
repositories/card_request_repo.py
----------------------------------
Data access layer for card requests.
"""

from typing import Optional

from db.executor import RetryExecutor
from models.card_request import CardRequest
from utils.logger import get_logger

logger = get_logger(__name__)

_SELECT_WITH_USERNAME = """
    SELECT cr.*, u.username AS requested_by_username
    FROM card_requests cr
    LEFT JOIN users u ON cr.requested_by = u.id
"""


class CardRequestRepository:
    """Repository for CRUD operations on the card_requests table."""

    def __init__(self, executor: RetryExecutor):
        self.db = executor

    # ── READ ──────────────────────────────────────────────

    def get_all(self, status: Optional[str] = None) -> list[CardRequest]:
        """Requests, newest first, optionally limited to one status."""
        sql = _SELECT_WITH_USERNAME
        params: list = []
        if status:
            sql += " WHERE cr.status = %s"
            params.append(status)
        sql += " ORDER BY cr.created_at DESC, cr.id DESC;"
        return [self._row_to_request(r) for r in self.db.execute(sql, params)]

    def get_by_id(self, request_id: int) -> Optional[CardRequest]:
        row = self.db.execute(
            _SELECT_WITH_USERNAME + " WHERE cr.id = %s;", (request_id,), fetch="one"
        )
        return self._row_to_request(row) if row else None

    # ── WRITE (cursor level, for composed transactions) ───

    @staticmethod
    def insert(cur, request: CardRequest) -> int:
        """Insert a request row and return its id."""
        cur.execute(
            """
            INSERT INTO card_requests (title, description, icon, thumbnail_url, requested_by, status)
            VALUES (%s, %s, %s, %s, %s, %s)
            RETURNING id;
            """,
            (request.title, request.description or None, request.icon or None,
             request.thumbnail_url or None, request.requested_by, request.status),
        )
        return cur.fetchone()["id"]

    @staticmethod
    def attach_card(cur, request_id: int, card_id: int) -> None:
        cur.execute("UPDATE card_requests SET card_id = %s WHERE id = %s;", (card_id, request_id))

    @classmethod
    def fetch(cls, cur, request_id: int) -> Optional[CardRequest]:
        cur.execute(_SELECT_WITH_USERNAME + " WHERE cr.id = %s;", (request_id,))
        row = cur.fetchone()
        return cls._row_to_request(row) if row else None

    # ── UPDATE / DELETE ───────────────────────────────────

    def update_status(self, request_id: int, status: str) -> Optional[CardRequest]:
        """
        Persist a new status.

        Returns:
            The refreshed request, or None if it does not exist.
        """
        def work(cur) -> Optional[CardRequest]:
            cur.execute(
                "UPDATE card_requests SET status = %s WHERE id = %s;", (status, request_id)
            )
            if cur.rowcount == 0:
                return None
            return self.fetch(cur, request_id)

        return self.db.run(work)

    def delete(self, request_id: int) -> bool:
        """Delete a request. The card created for it is left untouched."""
        return self.db.execute(
            "DELETE FROM card_requests WHERE id = %s;", (request_id,), fetch=None
        ) > 0

    @staticmethod
    def _row_to_request(row: dict) -> CardRequest:
        return CardRequest(
            id=row["id"],
            title=row["title"],
            description=row["description"],
            icon=row.get("icon"),
            thumbnail_url=row["thumbnail_url"],
            requested_by=row["requested_by"],
            card_id=row["card_id"],
            status=row["status"],
            requested_by_username=row.get("requested_by_username"),
            created_at=row["created_at"],
        )
