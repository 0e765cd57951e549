"""
auth/store.py -- SQLAlchemy Core persistence layer for user credentials.

Pattern: Repository + Data Mapper. UserStore is the repository; _row_to_user
is the mapper. Route and dependency code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  hide_parameters=True on the engine keeps bound values (password hashes,
  emails) out of SQLAlchemy exception text, so a logged StoreFailure traceback
  never contains a credential.

  Every SQLAlchemyError is re-raised as StoreFailure (or UsernameTaken for a
  unique-constraint hit). The route layer maps StoreFailure to a generic 500
  and logs the chained cause server-side only.

DB path: auth/vss_auth.db by default (Settings.database_url).

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event, select, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.errors import StoreFailure, UsernameTaken
from auth.models import UserRecord

logger = logging.getLogger("vss.store")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(255), nullable=False, unique=True),
    Column("email", String(320)),
    Column("password_hash", Text, nullable=False),
    Column("created_at", String(32), nullable=False),
)


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _row_to_user(row) -> UserRecord:
    return UserRecord(
        id=row.id,
        username=row.username,
        email=row.email,
        password_hash=row.password_hash,
        created_at=row.created_at,
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for stored credentials.

    Usage:
        store = UserStore()
        user_id = store.insert_user("alice", "alice@example.com", hash_password("s3cret"))
        user = store.find_by_username("alice")
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args, hide_parameters=True)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    def has_users(self) -> bool:
        """Return True if at least one user record exists."""
        try:
            with self.engine.connect() as conn:
                result = conn.execute(text("SELECT COUNT(*) FROM users")).scalar()
        except SQLAlchemyError as exc:
            raise StoreFailure("Could not count users.") from exc
        return (result or 0) > 0

    def insert_user(self, username: str, email: str | None, password_hash: str) -> int:
        """Insert a new user and return its assigned database ID.

        Raises:
            UsernameTaken: the username already exists.
            StoreFailure:  any other database error.
        """
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    _users.insert().values(
                        username=username,
                        email=email,
                        password_hash=password_hash,
                        created_at=_now_iso(),
                    )
                )
                conn.commit()
                return result.inserted_primary_key[0]
        except IntegrityError as exc:
            raise UsernameTaken("Username already exists.") from exc
        except SQLAlchemyError as exc:
            raise StoreFailure("Could not insert user.") from exc

    def find_by_username(self, username: str) -> UserRecord | None:
        """Return the UserRecord for username, or None if no such user exists."""
        try:
            with self.engine.connect() as conn:
                row = conn.execute(select(_users).where(_users.c.username == username)).fetchone()
        except SQLAlchemyError as exc:
            raise StoreFailure("Could not look up user.") from exc
        return _row_to_user(row) if row else None

    def close(self) -> None:
        self.engine.dispose()
