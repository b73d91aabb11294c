"""SQLite-backed lookup of the contacts an account owns."""

from __future__ import annotations

import sqlite3
from pathlib import Path


class ContactDirectory:
    """Minimal contact table used to validate account-scoped contact ids."""

    def __init__(self, db_path: str) -> None:
        self._db_path = Path(db_path)
        if self._db_path.parent and not self._db_path.parent.exists():
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self._db_path, check_same_thread=False)

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS contacts (
                    account_id TEXT NOT NULL,
                    contact_id TEXT NOT NULL,
                    name TEXT NOT NULL DEFAULT '',
                    PRIMARY KEY (account_id, contact_id)
                )
                """
            )

    def add(self, *, account_id: str, contact_id: str, name: str = "") -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO contacts (account_id, contact_id, name)
                VALUES (?, ?, ?)
                ON CONFLICT(account_id, contact_id) DO UPDATE SET name = excluded.name
                """,
                (account_id, contact_id, name),
            )

    def exists(self, *, account_id: str, contact_id: str) -> bool:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT 1 FROM contacts WHERE account_id = ? AND contact_id = ?",
                (account_id, contact_id),
            ).fetchone()
        return row is not None


__all__ = ["ContactDirectory"]
