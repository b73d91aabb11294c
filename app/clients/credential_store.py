"""SQLite persistence for per-account integration credentials."""

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from app.models.credential import CredentialRecord, CredentialStatus

if TYPE_CHECKING:
    from app.services.token_cipher import TokenCipherService


class StaleCredentialError(Exception):
    """Raised when a credential changed between read and write."""


class CredentialStore:
    """Stores at most one credential row per (account, integration) pair.

    Tokens are encrypted before they reach disk. Every token update bumps the
    ``version`` column and only applies when the caller still holds the latest
    version, so a refresh racing a re-authorization cannot silently clobber
    the newer row.
    """

    def __init__(self, db_path: str, token_cipher: "TokenCipherService") -> None:
        self._db_path = Path(db_path)
        if self._db_path.parent and not self._db_path.parent.exists():
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._cipher = token_cipher
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS integration_credentials (
                    account_id TEXT NOT NULL,
                    app_id TEXT NOT NULL,
                    access_token_encrypted TEXT NOT NULL,
                    refresh_token_encrypted TEXT NOT NULL,
                    token_expires_at INTEGER NOT NULL,
                    reference_id TEXT NOT NULL,
                    scope TEXT NOT NULL DEFAULT '',
                    status TEXT NOT NULL,
                    version INTEGER NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    PRIMARY KEY (account_id, app_id)
                )
                """
            )

    def _to_record(self, row: sqlite3.Row) -> CredentialRecord:
        return CredentialRecord(
            account_id=row["account_id"],
            app_id=row["app_id"],
            access_token=self._cipher.decrypt(row["access_token_encrypted"]),
            refresh_token=self._cipher.decrypt(row["refresh_token_encrypted"]),
            token_expires_at=row["token_expires_at"],
            reference_id=row["reference_id"],
            scope=row["scope"],
            status=CredentialStatus(row["status"]),
            version=row["version"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    def get(self, *, account_id: str, app_id: str) -> Optional[CredentialRecord]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM integration_credentials WHERE account_id = ? AND app_id = ?",
                (account_id, app_id),
            ).fetchone()
        if not row:
            return None
        return self._to_record(row)

    def replace(self, record: CredentialRecord) -> CredentialRecord:
        """Drop any existing credential for the pair and store ``record`` fresh."""
        now = datetime.now(timezone.utc)
        stored = record.copy(update={"version": 1, "created_at": now, "updated_at": now})
        with self._connect() as conn:
            conn.execute(
                "DELETE FROM integration_credentials WHERE account_id = ? AND app_id = ?",
                (stored.account_id, stored.app_id),
            )
            conn.execute(
                """
                INSERT INTO integration_credentials (
                    account_id, app_id, access_token_encrypted,
                    refresh_token_encrypted, token_expires_at, reference_id,
                    scope, status, version, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    stored.account_id,
                    stored.app_id,
                    self._cipher.encrypt(stored.access_token),
                    self._cipher.encrypt(stored.refresh_token),
                    stored.token_expires_at,
                    stored.reference_id,
                    stored.scope,
                    stored.status.value,
                    stored.version,
                    stored.created_at.isoformat(),
                    stored.updated_at.isoformat(),
                ),
            )
        return stored

    def update_tokens(
        self,
        record: CredentialRecord,
        *,
        access_token: str,
        refresh_token: str,
        token_expires_at: int,
    ) -> CredentialRecord:
        """Overwrite the token fields of ``record`` in place."""
        now = datetime.now(timezone.utc)
        with self._connect() as conn:
            cursor = conn.execute(
                """
                UPDATE integration_credentials
                SET access_token_encrypted = ?,
                    refresh_token_encrypted = ?,
                    token_expires_at = ?,
                    version = version + 1,
                    updated_at = ?
                WHERE account_id = ? AND app_id = ? AND version = ?
                """,
                (
                    self._cipher.encrypt(access_token),
                    self._cipher.encrypt(refresh_token),
                    token_expires_at,
                    now.isoformat(),
                    record.account_id,
                    record.app_id,
                    record.version,
                ),
            )
        if cursor.rowcount != 1:
            raise StaleCredentialError(
                f"Credential for account {record.account_id} changed concurrently."
            )
        return record.copy(
            update={
                "access_token": access_token,
                "refresh_token": refresh_token,
                "token_expires_at": token_expires_at,
                "version": record.version + 1,
                "updated_at": now,
            }
        )

    def delete(self, *, account_id: str, app_id: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM integration_credentials WHERE account_id = ? AND app_id = ?",
                (account_id, app_id),
            )
        return cursor.rowcount > 0

    def count(self, *, account_id: str, app_id: str) -> int:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT COUNT(*) AS total FROM integration_credentials "
                "WHERE account_id = ? AND app_id = ?",
                (account_id, app_id),
            ).fetchone()
        return int(row["total"])


__all__ = ["CredentialStore", "StaleCredentialError"]
