# storage.py
"""
SQLite-backed storage for users, establishments and attachments.

Each method opens its own connection and closes it before returning. Rows
come back as plain dicts keyed by column name. Create methods take the
acting user's id explicitly; nothing here substitutes a default owner.
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

from .database import get_db
from .query import EstablishmentFilters, resolve_conditions, resolve_sort
from .utils import hash_password, utc_now_iso

logger = logging.getLogger(__name__)

SQL_OPERATORS = {"==": "=", ">=": ">="}

ESTABLISHMENT_COLUMNS = ("name", "category", "location", "description", "rating", "cover_image", "user_id")


def build_establishment_query(
    filters: Optional[EstablishmentFilters] = None, sort_by: Optional[str] = None
) -> Tuple[str, List[Any]]:
    """Compose the SELECT for a filtered, sorted establishment listing."""
    sql = "SELECT * FROM establishments"
    params: List[Any] = []

    conditions = resolve_conditions(filters)
    if conditions:
        clauses = []
        for condition in conditions:
            clauses.append(f"{condition.field} {SQL_OPERATORS[condition.op]} ?")
            params.append(condition.value)
        sql += " WHERE " + " AND ".join(clauses)

    order = resolve_sort(sort_by)
    if order:
        field, descending = order
        sql += f" ORDER BY {field} {'DESC' if descending else 'ASC'}"

    return sql, params


class DatabaseStorage:

    # --- Users ---

    def get_user(self, user_id: int) -> Optional[Dict[str, Any]]:
        return self._fetch_one("SELECT * FROM users WHERE id = ?", (user_id,))

    def get_user_by_username(self, username: str) -> Optional[Dict[str, Any]]:
        return self._fetch_one("SELECT * FROM users WHERE username = ?", (username,))

    def create_user(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a user; the password is hashed before it is stored."""
        conn = get_db()
        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO users (username, password, email, display_name, photo_url, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    data["username"],
                    hash_password(data["password"]),
                    data["email"],
                    data.get("display_name"),
                    data.get("photo_url"),
                    utc_now_iso(),
                ),
            )
            user_id = cursor.lastrowid
            conn.commit()
            cursor.execute("SELECT * FROM users WHERE id = ?", (user_id,))
            return dict(cursor.fetchone())
        finally:
            conn.close()

    # --- Establishments ---

    def get_establishments(
        self, filters: Optional[EstablishmentFilters] = None, sort_by: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        sql, params = build_establishment_query(filters, sort_by)
        logger.debug("Listing establishments: %s %s", sql, params)
        return self._fetch_all(sql, params)

    def get_establishment(self, establishment_id: int) -> Optional[Dict[str, Any]]:
        return self._fetch_one("SELECT * FROM establishments WHERE id = ?", (establishment_id,))

    def create_establishment(self, data: Dict[str, Any], user_id: int) -> Dict[str, Any]:
        conn = get_db()
        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO establishments (
                    name, category, location, description, rating, cover_image, user_id, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    data["name"],
                    data["category"],
                    data["location"],
                    data.get("description"),
                    data.get("rating") or "5",
                    data.get("cover_image"),
                    user_id,
                    utc_now_iso(),
                ),
            )
            establishment_id = cursor.lastrowid
            conn.commit()
            cursor.execute("SELECT * FROM establishments WHERE id = ?", (establishment_id,))
            return dict(cursor.fetchone())
        finally:
            conn.close()

    def update_establishment(self, establishment_id: int, data: Dict[str, Any]) -> bool:
        """Merge the given columns into the row. Unknown keys are ignored."""
        updates = {k: v for k, v in data.items() if k in ESTABLISHMENT_COLUMNS}
        conn = get_db()
        try:
            cursor = conn.cursor()
            if not updates:
                cursor.execute("SELECT id FROM establishments WHERE id = ?", (establishment_id,))
                return cursor.fetchone() is not None
            assignments = ", ".join(f"{column} = ?" for column in updates)
            cursor.execute(
                f"UPDATE establishments SET {assignments} WHERE id = ?",
                (*updates.values(), establishment_id),
            )
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()

    def delete_establishment(self, establishment_id: int) -> bool:
        """Delete the establishment and, first, every attachment that points at it."""
        conn = get_db()
        try:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM attachments WHERE establishment_id = ?", (establishment_id,))
            removed_attachments = cursor.rowcount
            cursor.execute("DELETE FROM establishments WHERE id = ?", (establishment_id,))
            deleted = cursor.rowcount > 0
            conn.commit()
        finally:
            conn.close()
        logger.info(
            "Deleted establishment %s (found=%s) with %d attachment(s)",
            establishment_id, deleted, removed_attachments,
        )
        return deleted

    # --- Attachments ---

    def get_attachments(self, establishment_id: int) -> List[Dict[str, Any]]:
        return self._fetch_all(
            "SELECT * FROM attachments WHERE establishment_id = ? ORDER BY id", (establishment_id,)
        )

    def get_attachment(self, attachment_id: int) -> Optional[Dict[str, Any]]:
        return self._fetch_one("SELECT * FROM attachments WHERE id = ?", (attachment_id,))

    def create_attachment(self, data: Dict[str, Any], user_id: int) -> Dict[str, Any]:
        conn = get_db()
        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO attachments (
                    file_name, file_type, file_size, file_path, storage_key,
                    establishment_id, user_id, upload_date
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    data["file_name"],
                    data["file_type"],
                    data["file_size"],
                    data["file_path"],
                    data.get("storage_key"),
                    data["establishment_id"],
                    user_id,
                    utc_now_iso(),
                ),
            )
            attachment_id = cursor.lastrowid
            conn.commit()
            cursor.execute("SELECT * FROM attachments WHERE id = ?", (attachment_id,))
            return dict(cursor.fetchone())
        finally:
            conn.close()

    def delete_attachment(self, attachment_id: int) -> bool:
        conn = get_db()
        try:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM attachments WHERE id = ?", (attachment_id,))
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()

    # --- helpers ---

    def _fetch_one(self, sql, params) -> Optional[Dict[str, Any]]:
        conn = get_db()
        try:
            cursor = conn.cursor()
            cursor.execute(sql, params)
            row = cursor.fetchone()
            return dict(row) if row else None
        finally:
            conn.close()

    def _fetch_all(self, sql, params) -> List[Dict[str, Any]]:
        conn = get_db()
        try:
            cursor = conn.cursor()
            cursor.execute(sql, params)
            return [dict(row) for row in cursor.fetchall()]
        finally:
            conn.close()


storage = DatabaseStorage()
