"""
auth/store.py -- Storage port and SQLAlchemy Core persistence for credentials.

Pattern: Repository + Data Mapper.
CredentialStore is the port the core depends on; UserStore is the SQLAlchemy
Core repository that implements it, and _row_to_credential is the mapper.
Services never touch SQL directly, and tests can substitute any object with
the same four methods.

Security:
  All queries use bound parameters. No f-strings in SQL.

  update() is a compare-and-set on last_password_update: it only writes if
  the stored epoch is still the one the caller read, so of two concurrent
  password changes exactly one wins. Salt, secret and last_password_update
  go out in ONE UPDATE statement inside one transaction, so no reader ever
  sees a new salt next to an old secret.

DB path: auth/habit_auth.db unless DATABASE_URL says otherwise.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from typing import Literal, Protocol

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event, text
from sqlalchemy.engine import Engine

from auth.models import Credential

# ---------------------------------------------------------------------------
# Port
# ---------------------------------------------------------------------------


class CredentialStore(Protocol):
    """What the auth core needs from persistence. Nothing more."""

    def find_by_login_key(self, key: str) -> Credential | None: ...

    def find_by_id(self, identifier: str) -> Credential | None: ...

    def save(self, credential: Credential) -> Credential: ...

    def update(self, credential: Credential, expected_epoch: int) -> bool: ...


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(32), nullable=False, unique=True),
    Column("email", String(254), unique=True),  # NULL allowed when login_field="name"
    Column("salt", String(29), nullable=False),  # bcrypt salt: $2b$NN$ + 22 chars
    Column("secret", Text, nullable=False),
    Column("last_password_update", Integer, nullable=False),
    Column("created_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers are not blocked during writes.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """SQLAlchemy Core implementation of CredentialStore.

    Usage:
        store = UserStore("sqlite:///:memory:")
        saved = store.save(credential)
        store.find_by_login_key("ElonMusk")
        store.close()
    """

    def __init__(self, db_url: str, login_field: Literal["name", "email"] = "name") -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)
        self._login_column = _users.c[login_field]

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        with self.engine.connect() as conn:
            return conn.execute(text("SELECT 1")).scalar() == 1

    def find_by_login_key(self, key: str) -> Credential | None:
        """Exact, case-sensitive match on the configured login column."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(self._login_column == key)).fetchone()
        return _row_to_credential(row) if row is not None else None

    def find_by_id(self, identifier: str) -> Credential | None:
        """Look up by primary key. Identifiers that are not integers match nothing."""
        try:
            pk = int(identifier)
        except (TypeError, ValueError):
            return None
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == pk)).fetchone()
        return _row_to_credential(row) if row is not None else None

    def save(self, credential: Credential) -> Credential:
        """Insert a new credential and return it with id and created_at filled in.

        Raises sqlalchemy.exc.IntegrityError if the name or email is taken.
        AuthService.register() turns that into CredentialExists -- it covers
        the race where two registrations pass the existence check together.
        """
        created_at = _now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.insert().values(
                    name=credential.name,
                    email=credential.email,
                    salt=credential.salt,
                    secret=credential.secret,
                    last_password_update=credential.last_password_update,
                    created_at=created_at,
                )
            )
            conn.commit()
            new_id = result.inserted_primary_key[0]
        return replace(credential, id=str(new_id), created_at=created_at)

    def update(self, credential: Credential, expected_epoch: int) -> bool:
        """Persist a rotated password if the stored epoch still equals expected_epoch.

        Returns False if the record no longer exists or another password change
        landed first.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.update()
                .where(_users.c.id == int(credential.id))
                .where(_users.c.last_password_update == expected_epoch)
                .values(
                    salt=credential.salt,
                    secret=credential.secret,
                    last_password_update=credential.last_password_update,
                )
            )
            conn.commit()
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_credential(row) -> Credential:
    return Credential(
        id=str(row.id),
        name=row.name,
        email=row.email,
        salt=row.salt,
        secret=row.secret,
        last_password_update=row.last_password_update,
        created_at=row.created_at,
    )
