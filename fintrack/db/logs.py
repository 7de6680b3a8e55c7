"""Activity log repository backing the audit log."""

import logging
from datetime import date
from typing import Optional

from fintrack.config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, local_now

from .base import BaseRepository
from .models import LogEntry

logger = logging.getLogger(__name__)


class LogRepository(BaseRepository):
    """Repository for the per-user activity log."""

    def __init__(self, db_path=None, init_schema: bool = False):
        super().__init__(db_path, init_schema=init_schema)

    def insert(self, user_id: str, message: str) -> LogEntry:
        now = local_now()
        with self._get_connection() as conn:
            cursor = conn.execute(
                "INSERT INTO logs (user_id, message, created_at) VALUES (?, ?, ?)",
                (user_id, message, now.isoformat()),
            )
            return LogEntry(
                id=cursor.lastrowid, user_id=user_id, message=message, created_at=now
            )

    def get_by_user(
        self,
        user_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> list[LogEntry]:
        """Get a page of a user's log entries, newest first."""
        limit = min(limit, MAX_PAGE_SIZE)
        query = "SELECT * FROM logs WHERE user_id = ?"
        params: list = [user_id]

        if start_date is not None:
            query += " AND substr(created_at, 1, 10) >= ?"
            params.append(start_date.isoformat())
        if end_date is not None:
            query += " AND substr(created_at, 1, 10) <= ?"
            params.append(end_date.isoformat())

        query += " ORDER BY created_at DESC, id DESC LIMIT ? OFFSET ?"
        params.extend([limit, (page - 1) * limit])

        with self._get_connection() as conn:
            cursor = conn.execute(query, params)
            return [LogEntry.from_row(row) for row in cursor.fetchall()]
