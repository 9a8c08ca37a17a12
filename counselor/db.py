from sqlalchemy import event
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine, Session
import os

PG_HOST = os.getenv("PG_HOST", "postgres")
PG_PORT = os.getenv("PG_PORT", "5432")
PG_USER = os.getenv("PG_USER", "appuser")
PG_PASSWORD = os.getenv("PG_PASSWORD", "apppass")
PG_DB = os.getenv("PG_DB", "appdb")

DATABASE_URL = os.getenv("DATABASE_URL") or (
    f"postgresql://{PG_USER}:{PG_PASSWORD}@{PG_HOST}:{PG_PORT}/{PG_DB}"
)

DB_ECHO = os.getenv("DB_ECHO", "0") == "1"


def build_engine(url: str = DATABASE_URL, echo: bool = DB_ECHO):
    """
    Create an engine for the given URL.

    SQLite gets one shared connection (so in-memory databases survive across
    sessions) and foreign keys switched on, otherwise ON DELETE CASCADE
    is ignored.
    """
    if not url.startswith("sqlite"):
        return create_engine(url, echo=echo)

    sqlite_engine = create_engine(
        url,
        echo=echo,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(sqlite_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, _record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return sqlite_engine


engine = build_engine()


def init_db():
    """Create all tables if they don't exist."""
    # models must be imported so their tables are registered on the metadata
    import counselor.models  # noqa: F401

    SQLModel.metadata.create_all(engine)


def get_session():
    """Provide a new SQLModel session."""
    return Session(engine)
