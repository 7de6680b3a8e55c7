"""Categories repository module."""

import logging
import sqlite3
from typing import Optional

from fintrack.config import local_now
from fintrack.models import TransactionType

from .base import BaseRepository
from .models import Category

logger = logging.getLogger(__name__)


class CategoryRepository(BaseRepository):
    """Repository for income/expense categories."""

    def __init__(self, db_path=None, init_schema: bool = False):
        super().__init__(db_path, init_schema=init_schema)

    def create(
        self,
        name: str,
        category_type: TransactionType,
        user_id: Optional[str] = None,
    ) -> Category:
        """Create a category. Without ``user_id`` the category is global."""
        now = local_now()
        with self._get_connection() as conn:
            cursor = conn.execute(
                """
                INSERT INTO categories (name, category_type, user_id, created_at)
                VALUES (?, ?, ?, ?)
                """,
                (name, category_type.value, user_id, now.isoformat()),
            )
            logger.info(f"Created {category_type.value} category '{name}'")
            return Category(
                id=cursor.lastrowid,
                name=name,
                category_type=category_type,
                user_id=user_id,
                created_at=now,
            )

    def get_by_id(
        self, category_id: int, conn: Optional[sqlite3.Connection] = None
    ) -> Optional[Category]:
        """Get a category by ID, or None if it does not exist."""
        with self._joined(conn) as c:
            row = c.execute(
                "SELECT * FROM categories WHERE id = ?", (category_id,)
            ).fetchone()
            return Category.from_row(row) if row else None

    def get_for_user(self, user_id: Optional[str] = None) -> list[Category]:
        """Get global categories plus those owned by ``user_id``."""
        with self._get_connection() as conn:
            cursor = conn.execute(
                """
                SELECT * FROM categories
                WHERE user_id IS NULL OR user_id = ?
                ORDER BY category_type, name
                """,
                (user_id,),
            )
            return [Category.from_row(row) for row in cursor.fetchall()]

    def update(self, category: Category) -> Category:
        with self._get_connection() as conn:
            conn.execute(
                "UPDATE categories SET name = ?, category_type = ? WHERE id = ?",
                (category.name, category.category_type.value, category.id),
            )
        logger.info(f"Updated category {category.id}")
        return category

    def delete(self, category_id: int) -> bool:
        """
        Delete a category.

        Raises:
            sqlite3.IntegrityError: If transactions still reference the category
        """
        with self._get_connection() as conn:
            cursor = conn.execute("DELETE FROM categories WHERE id = ?", (category_id,))
            deleted = cursor.rowcount > 0
            if deleted:
                logger.info(f"Deleted category {category_id}")
            return deleted
