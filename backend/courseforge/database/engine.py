from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool

from courseforge.config.settings import get_settings


# Supabase's session pooler holds one Postgres backend per client connection
POOLER_MARKERS = (".pooler.", ".supabase.")


def _enable_sqlite_foreign_keys(dbapi_connection, _connection_record) -> None:  # noqa: ANN001
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _postgres_options(database_url: str) -> dict[str, Any]:
    if any(marker in database_url for marker in POOLER_MARKERS):
        return {
            "pool_size": 3,
            "max_overflow": 2,
            "pool_recycle": 1800,
            # The pooler cannot keep server-side prepared statements
            "connect_args": {"connect_timeout": 10, "prepare_threshold": None},
        }
    return {
        "pool_size": 10,
        "max_overflow": 10,
        "pool_recycle": 3600,
        "connect_args": {"connect_timeout": 10},
    }


def create_app_engine(database_url: str | None = None) -> AsyncEngine:
    """Create the async engine for ``database_url`` (default: settings.DATABASE_URL).

    Postgres gets pre-pinged LIFO pools, small when the URL points at the
    Supabase pooler. SQLite gets foreign keys switched on, and in-memory
    databases share a single connection.
    """
    database_url = database_url or get_settings().DATABASE_URL

    if not database_url.startswith("sqlite"):
        return create_async_engine(
            database_url,
            pool_pre_ping=True,
            pool_use_lifo=True,
            **_postgres_options(database_url),
        )

    sqlite_options: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
    if ":memory:" in database_url:
        sqlite_options["poolclass"] = StaticPool

    sqlite_engine = create_async_engine(database_url, **sqlite_options)
    event.listen(sqlite_engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    return sqlite_engine


engine: AsyncEngine = create_app_engine()
