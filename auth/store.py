"""
auth/store.py -- SQLAlchemy Core persistence layer for user accounts.

Pattern: Repository + Data Mapper.
UserStore is the repository; _row_to_user is the mapper. Service and route
code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  UNIQUE(email) is enforced in SQL. The service checks for an existing email
  first to return a friendly error, but the constraint is what actually
  prevents two concurrent registrations from creating duplicate accounts.

First-admin bootstrap:
  The first registrant becomes admin. A COUNT(*) followed by INSERT is racy,
  so the decision is made by claiming a single-row marker table
  (admin_bootstrap, CHECK (id = 1)) with INSERT OR IGNORE in the same
  transaction as the user INSERT. Exactly one transaction can ever claim the
  row; if the user INSERT fails the claim is rolled back with it.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event, text
from sqlalchemy.engine import Engine

from auth.models import User

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("name", String(100), nullable=False),
    Column("hashed_password", Text, nullable=False),
    Column("role", String(30), nullable=False, server_default="user"),
    Column("is_verified", Integer, nullable=False, server_default="0"),
    Column("verification_token", String(128), nullable=False, server_default=""),
    Column("verified_at", String(32)),
    Column("created_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers do not block during writes.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def make_engine(db_url: str) -> Engine:
    """Create an Engine with the SQLite connection tweaks every store needs."""
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_wal_mode)
    return engine


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User entities.

    Usage:
        store = UserStore("sqlite:///authkeeper.db")
        user = store.create_user(User(email="a@example.com", name="A", hashed_password=hash_password("pw")))
        store.get_by_email("a@example.com")
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        self.engine: Engine = make_engine(db_url)
        metadata.create_all(self.engine)
        self._ensure_admin_bootstrap()

    def _ensure_admin_bootstrap(self) -> None:
        """Create the admin_bootstrap marker table.

        Databases that already hold users but predate the marker get it
        seeded here, so an existing install never hands out a second admin.
        """
        with self.engine.connect() as conn:
            conn.execute(
                text(
                    """
                    CREATE TABLE IF NOT EXISTS admin_bootstrap (
                        id INTEGER PRIMARY KEY CHECK (id = 1),
                        email TEXT NOT NULL
                    )
                    """
                )
            )
            conn.execute(
                text(
                    "INSERT OR IGNORE INTO admin_bootstrap (id, email) "
                    "SELECT 1, email FROM users ORDER BY id LIMIT 1"
                )
            )
            conn.commit()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def count(self) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(text("SELECT COUNT(*) FROM users")).scalar()
        return result or 0

    def get_by_email(self, email: str) -> User | None:
        """Look up a user by normalized email. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_id(self, user_id: int) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> User:
        """Insert a new user, deciding its role atomically, and return the stored record.

        The caller's user.role is ignored: the role is "admin" if this
        transaction claims the admin_bootstrap marker, "user" otherwise.

        Raises sqlalchemy.exc.IntegrityError if the email already exists. The
        marker claim is rolled back with the failed insert.
        """
        with self.engine.begin() as conn:
            claimed = conn.execute(
                text("INSERT OR IGNORE INTO admin_bootstrap (id, email) VALUES (1, :email)"),
                {"email": user.email},
            ).rowcount
            role = "admin" if claimed == 1 else "user"
            result = conn.execute(
                _users.insert().values(
                    email=user.email,
                    name=user.name,
                    hashed_password=user.hashed_password,
                    role=role,
                    is_verified=1 if user.is_verified else 0,
                    verification_token=user.verification_token,
                    verified_at=user.verified_at,
                    created_at=now_iso(),
                )
            )
            user_id = result.inserted_primary_key[0]
        return self.get_by_id(user_id)

    def save(self, user: User) -> bool:
        """Persist the mutable fields of an existing user.

        Only the verification state and display name are written back. email
        and role are immutable after creation.

        Returns True if a row was updated, False if user.id was not found.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.update()
                .where(_users.c.id == user.id)
                .values(
                    name=user.name,
                    is_verified=1 if user.is_verified else 0,
                    verification_token=user.verification_token,
                    verified_at=user.verified_at,
                )
            )
            conn.commit()
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        email=row.email,
        name=row.name,
        hashed_password=row.hashed_password,
        role=row.role,
        is_verified=bool(row.is_verified),
        verification_token=row.verification_token or "",
        verified_at=row.verified_at,
        created_at=row.created_at,
    )
