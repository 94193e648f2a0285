"""SQLite storage for encrypted secrets.

Values are encrypted by the bound CryptoProvider before they reach the
database and are only decrypted on an explicit decrypt_secret() call.
Uniqueness of (name, project, environment) is enforced by the table's
UNIQUE constraint, never by a read-then-write check.
"""

import sqlite3
from dataclasses import replace
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, Optional, Union

from ..utils.logging import get_logger
from .config import VaultConfig, get_vault_config
from .crypto import AESGCMCryptoProvider, CryptoProvider
from .exceptions import (
    ConflictError,
    NotFoundError,
    StaleSecretError,
    StoreClosedError,
)
from .models import (
    Secret,
    SecretFilter,
    generate_secret_id,
    normalize_tags,
    parse_timestamp,
    utc_now,
)

logger = get_logger(__name__)


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS secrets (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    project TEXT NOT NULL,
    environment TEXT NOT NULL,
    tags TEXT NOT NULL,
    value_encrypted TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    UNIQUE (name, project, environment)
);

CREATE INDEX IF NOT EXISTS idx_project_env ON secrets(project, environment);
CREATE INDEX IF NOT EXISTS idx_name ON secrets(name);
"""

# Fixed query shapes, keyed by a stable name
QUERIES = {
    "insert": """
        INSERT INTO secrets (
            id, name, project, environment, tags, value_encrypted, created_at, updated_at
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
    """,
    "select_by_id": "SELECT * FROM secrets WHERE id = ?",
    "select_by_name": (
        "SELECT * FROM secrets WHERE name = ? AND project = ? AND environment = ?"
    ),
    "update_value": "UPDATE secrets SET value_encrypted = ?, updated_at = ? WHERE id = ?",
    "delete_by_id": "DELETE FROM secrets WHERE id = ?",
    "select_envelopes": "SELECT id, value_encrypted FROM secrets ORDER BY rowid",
    "reencrypt_value": "UPDATE secrets SET value_encrypted = ? WHERE id = ?",
}

# Newest first; rowid breaks ties between identical timestamps
LIST_ORDER = " ORDER BY created_at DESC, rowid DESC"

# Room for every fixed shape plus each list shape
STATEMENT_CACHE_SIZE = 32


def _require_text(value: str, field_name: str) -> str:
    if not isinstance(value, str) or not value:
        raise ValueError(f"{field_name} must be a non-empty string")
    return value


class SecretStore:
    """Durable store of encrypted secrets backed by an SQLite file.

    Each query shape is compiled once and reused: SQL text is looked up
    from a lazily populated cache keyed by shape, so SQLite's prepared
    statement cache sees an identical statement for every call of that
    shape. Parameters are always bound late.

    A store instance belongs to the thread that opened it. Concurrent
    callers open their own instances on the same file and SQLite's
    locking serializes their writes.
    """

    def __init__(
        self,
        db_path: Union[Path, str],
        crypto: CryptoProvider,
        busy_timeout: float = 5.0,
    ):
        """Open (creating if needed) the secrets database.

        Args:
            db_path: Path to the SQLite file (":memory:" for a private database)
            crypto: Provider used to encrypt and decrypt values
            busy_timeout: Seconds to wait on a locked database
        """
        self.db_path = Path(db_path)
        self._crypto = crypto
        self._statements: dict[str, str] = {}
        self._conn: Optional[sqlite3.Connection] = self._open(busy_timeout)

    def _open(self, busy_timeout: float) -> sqlite3.Connection:
        conn = sqlite3.connect(
            str(self.db_path),
            timeout=busy_timeout,
            cached_statements=STATEMENT_CACHE_SIZE,
        )
        try:
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA journal_mode = WAL")
            conn.executescript(SCHEMA_SQL)
            conn.commit()
        except Exception:
            conn.close()
            raise
        logger.debug(f"Opened secret store at {self.db_path}")
        return conn

    @property
    def conn(self) -> sqlite3.Connection:
        """The open database connection."""
        if self._conn is None:
            raise StoreClosedError()
        return self._conn

    @property
    def closed(self) -> bool:
        """Whether close() has been called."""
        return self._conn is None

    @property
    def crypto(self) -> CryptoProvider:
        """The provider currently bound to this store."""
        return self._crypto

    def close(self) -> None:
        """Close the database connection and drop cached statements."""
        if self._conn is None:
            return
        self._statements.clear()
        try:
            self._conn.close()
        finally:
            self._conn = None
        logger.debug(f"Closed secret store at {self.db_path}")

    def __enter__(self) -> "SecretStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ===================
    # Query cache
    # ===================

    def _statement(self, key: str) -> str:
        """Get the SQL for a fixed query shape."""
        sql = self._statements.get(key)
        if sql is None:
            sql = QUERIES[key]
            self._statements[key] = sql
        return sql

    def _list_statement(self, secret_filter: SecretFilter) -> str:
        """Get the SQL for a list filter shape."""
        key = secret_filter.shape
        sql = self._statements.get(key)
        if sql is None:
            sql = "SELECT * FROM secrets"
            clauses = []
            if secret_filter.project is not None:
                clauses.append("project = ?")
            if secret_filter.environment is not None:
                clauses.append("environment = ?")
            if clauses:
                sql += " WHERE " + " AND ".join(clauses)
            sql += LIST_ORDER
            self._statements[key] = sql
        return sql

    def _fetch_one(self, key: str, params: tuple) -> Optional[Secret]:
        row = self.conn.execute(self._statement(key), params).fetchone()
        if row is None:
            return None
        return Secret.from_row(row)

    # ===================
    # Secret CRUD
    # ===================

    def add_secret(
        self,
        name: str,
        value: str,
        project: str,
        environment: str,
        tags: Optional[list[str]] = None,
    ) -> Secret:
        """
        Encrypt and store a new secret.

        Args:
            name: Variable name (e.g., "DB_PASSWORD")
            value: Plaintext value to encrypt
            project: Project namespace
            environment: Deployment stage
            tags: Optional labels for filtering

        Returns:
            The stored Secret

        Raises:
            ConflictError: If name/project/environment already exists
        """
        conn = self.conn
        now = utc_now()
        secret = Secret(
            id=generate_secret_id(),
            name=_require_text(name, "name"),
            project=_require_text(project, "project"),
            environment=_require_text(environment, "environment"),
            tags=normalize_tags(tags),
            value_encrypted=self._crypto.encrypt(value),
            created_at=now,
            updated_at=now,
        )

        try:
            with conn:
                conn.execute(
                    self._statement("insert"),
                    (
                        secret.id,
                        secret.name,
                        secret.project,
                        secret.environment,
                        secret.tags_json(),
                        secret.value_encrypted,
                        secret.created_at.isoformat(),
                        secret.updated_at.isoformat(),
                    ),
                )
        except sqlite3.IntegrityError:
            raise ConflictError(
                f"Secret '{name}' already exists in {project}/{environment}"
            )

        logger.debug(f"Added secret {secret.id} ({name} in {project}/{environment})")
        return secret

    def get_secret(self, secret_id: str) -> Optional[Secret]:
        """Get a secret by ID, or None if it does not exist."""
        return self._fetch_one("select_by_id", (secret_id,))

    def get_secret_by_name(
        self, name: str, project: str, environment: str
    ) -> Optional[Secret]:
        """Get a secret by name, project and environment, or None."""
        return self._fetch_one("select_by_name", (name, project, environment))

    def list_secrets(
        self,
        secret_filter: Optional[SecretFilter] = None,
        *,
        project: Optional[str] = None,
        environment: Optional[str] = None,
        tags: Optional[list[str]] = None,
    ) -> list[Secret]:
        """
        List secrets matching every supplied filter dimension.

        Either pass a SecretFilter or the project/environment/tags
        keywords. Tags match when a secret has at least one of them.

        Returns:
            Matching secrets, most recently created first
        """
        if secret_filter is None:
            secret_filter = SecretFilter(project=project, environment=environment, tags=tags)
        elif project is not None or environment is not None or tags is not None:
            raise ValueError("Pass either a SecretFilter or filter keywords, not both")

        params = [
            value
            for value in (secret_filter.project, secret_filter.environment)
            if value is not None
        ]
        cursor = self.conn.execute(self._list_statement(secret_filter), params)
        secrets = [Secret.from_row(row) for row in cursor]

        # Exact tag membership on the parsed lists
        if secret_filter.tags:
            secrets = [s for s in secrets if secret_filter.matches_tags(s.tags)]

        return secrets

    def update_secret(
        self,
        secret_id: str,
        value: str,
        expected_updated_at: Union[datetime, str, None] = None,
    ) -> Secret:
        """
        Re-encrypt a secret with a new value.

        Only value_encrypted and updated_at change.

        Args:
            secret_id: ID of the secret to update
            value: New plaintext value
            expected_updated_at: If given, only update when the stored
                updated_at still equals this value

        Returns:
            The updated Secret

        Raises:
            NotFoundError: If the secret does not exist
            StaleSecretError: If expected_updated_at no longer matches
        """
        conn = self.conn
        value_encrypted = self._crypto.encrypt(value)
        if isinstance(expected_updated_at, str):
            expected_updated_at = parse_timestamp(expected_updated_at)

        # The write lock is held from the read through the update
        with conn:
            conn.execute("BEGIN IMMEDIATE")
            current = self._fetch_one("select_by_id", (secret_id,))
            if current is None:
                raise NotFoundError(secret_id)
            if expected_updated_at is not None and current.updated_at != expected_updated_at:
                raise StaleSecretError(secret_id)

            # updated_at strictly increases even on a coarse clock
            updated_at = max(utc_now(), current.updated_at + timedelta(microseconds=1))
            conn.execute(
                self._statement("update_value"),
                (value_encrypted, updated_at.isoformat(), secret_id),
            )

        logger.debug(f"Updated secret {secret_id}")
        return replace(current, value_encrypted=value_encrypted, updated_at=updated_at)

    def delete_secret(self, secret_id: str) -> None:
        """Delete a secret. Deleting a missing ID is a no-op."""
        conn = self.conn
        with conn:
            cursor = conn.execute(self._statement("delete_by_id"), (secret_id,))
        if cursor.rowcount:
            logger.debug(f"Deleted secret {secret_id}")

    def decrypt_secret(self, secret: Secret) -> str:
        """
        Decrypt a secret's value.

        Raises:
            DecryptionError: Wrong key or corrupted envelope
        """
        if self._conn is None:
            raise StoreClosedError()
        return self._crypto.decrypt(secret.value_encrypted)

    # ===================
    # Key rotation
    # ===================

    def reencrypt_all(
        self,
        new_crypto: CryptoProvider,
        on_progress: Optional[Callable[[str, int, int], None]] = None,
    ) -> int:
        """
        Re-encrypt every secret under a new provider.

        Runs in a single write transaction: if any value fails to decrypt,
        nothing is changed. On success the store is rebound to new_crypto.

        Args:
            new_crypto: Provider for the new key
            on_progress: Optional callback(secret_id, current, total) after
                each record; total is counted inside the transaction

        Returns:
            Number of secrets re-encrypted

        Raises:
            DecryptionError: If a stored value cannot be decrypted with the current key
        """
        conn = self.conn
        with conn:
            conn.execute("BEGIN IMMEDIATE")
            rows = conn.execute(self._statement("select_envelopes")).fetchall()
            for current, row in enumerate(rows, 1):
                plaintext = self._crypto.decrypt(row["value_encrypted"])
                conn.execute(
                    self._statement("reencrypt_value"),
                    (new_crypto.encrypt(plaintext), row["id"]),
                )
                if on_progress:
                    on_progress(row["id"], current, len(rows))

        self._crypto = new_crypto
        logger.info(f"Re-encrypted {len(rows)} secret(s) in {self.db_path}")
        return len(rows)


def open_store(config: Optional[VaultConfig] = None) -> SecretStore:
    """
    Open the secret store described by a vault configuration.

    Args:
        config: Key and storage location (default: global vault config)

    Returns:
        Open SecretStore bound to an AES-GCM provider

    Raises:
        InvalidKeyError: If the configured key is missing or invalid
    """
    config = config or get_vault_config()
    crypto = AESGCMCryptoProvider(config.encryption_key)

    db_path = Path(config.db_path)
    if str(db_path) != ":memory:":
        db_path.parent.mkdir(parents=True, exist_ok=True)

    return SecretStore(db_path, crypto, busy_timeout=config.busy_timeout_seconds)
