"""Database handle, schema migrations and process-wide lifecycle for SQLite.

SQLite Configuration Choices:
    - **WAL (Write-Ahead Logging)**: Allows concurrent readers while writing,
      so a request reading events is not blocked by a sync writing them.

    - **Foreign Keys**: Disabled by default in SQLite; enabled per connection.

    - **Transactional DDL**: pysqlite issues its own BEGIN only before DML
      statements, which would let a failed migration leave half-created
      tables behind. Its transaction handling is switched off on connect and
      SQLAlchemy emits BEGIN itself, so every ``engine.begin()`` block,
      migrations included, is a single atomic transaction.

Lifecycle:
    One ``Database`` per process, opened lazily by :func:`init_database` and
    released by :func:`close_database`. Components never reach for the
    module-level handle directly; they receive it through
    :class:`calhub.core.context.CalendarContext`.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import NamedTuple

from sqlalchemy import Connection, Engine, insert, select
from sqlalchemy import event as sa_event
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, SQLModel, create_engine
from sqlmodel.pool import StaticPool

from calhub.core.config import settings
from calhub.core.errors import DatabaseError, DatabaseErrorKind
from calhub.core.result import NOTHING, Err, Ok, Option, Result, Some
from calhub.models import CachedEvent, CalendarSyncState, Credential, SchemaMigration, Setting

logger = logging.getLogger(__name__)


class Migration(NamedTuple):
    id: int
    name: str
    apply: Callable[[Connection], None]


def _create_tables(*models: type[SQLModel]) -> Callable[[Connection], None]:
    def apply(conn: Connection) -> None:
        SQLModel.metadata.create_all(conn, tables=[m.__table__ for m in models])

    return apply


MIGRATIONS: list[Migration] = [
    Migration(1, "001_settings", _create_tables(Setting)),
    Migration(2, "002_calendar_events", _create_tables(CachedEvent, CalendarSyncState)),
    Migration(3, "003_credentials", _create_tables(Credential)),
]


@dataclass
class Database:
    """Owned handle on the application database."""
    engine: Engine

    def session(self) -> Session:
        return Session(self.engine)

    def close(self) -> None:
        self.engine.dispose()


def create_database_engine(database_url: str) -> Engine:
    """Create an engine with the per-connection SQLite configuration."""
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        # A single shared connection, otherwise every checkout sees a new empty database
        engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            echo=settings.debug,
        )
    else:
        engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            echo=settings.debug,
        )

    @sa_event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @sa_event.listens_for(engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return engine


def run_migrations(
    engine: Engine, migrations: list[Migration] | None = None
) -> Result[list[str], DatabaseError]:
    """Apply pending migrations in one transaction.

    Returns the names of the migrations applied by this call. If any
    migration fails, none of the pending ones are recorded or kept.
    """
    migrations = MIGRATIONS if migrations is None else migrations
    applied: list[str] = []

    try:
        with engine.begin() as conn:
            SchemaMigration.__table__.create(conn, checkfirst=True)
            executed = set(conn.execute(select(SchemaMigration.__table__.c.id)).scalars())

            for migration in sorted(migrations, key=lambda m: m.id):
                if migration.id in executed:
                    continue
                migration.apply(conn)
                conn.execute(
                    insert(SchemaMigration.__table__).values(
                        id=migration.id,
                        name=migration.name,
                        executed_at=datetime.now(UTC),
                    )
                )
                applied.append(migration.name)
    except SQLAlchemyError as e:
        logger.error(f"Migration failed, rolled back: {e}")
        return Err(DatabaseError(DatabaseErrorKind.MIGRATION_FAILED, f"Migration failed: {e}", e))

    if applied:
        logger.info(f"Applied migrations: {', '.join(applied)}")
    return Ok(applied)


def open_database(database_url: str) -> Result[Database, DatabaseError]:
    """Open a database, verify the connection and bring the schema up to date."""
    try:
        engine = create_database_engine(database_url)
        with engine.connect():
            pass
    except SQLAlchemyError as e:
        logger.error(f"Failed to open database {database_url}: {e}")
        return Err(DatabaseError(DatabaseErrorKind.OPEN_FAILED, f"Failed to open database: {database_url}", e))

    match run_migrations(engine):
        case Err(error):
            engine.dispose()
            return Err(error)

    return Ok(Database(engine))


_database: Database | None = None


def init_database(database_url: str | None = None) -> Result[Database, DatabaseError]:
    """Open the process-wide database once; later calls return the same handle."""
    global _database

    if _database is not None:
        return Ok(_database)

    result = open_database(database_url or settings.database_url)
    if isinstance(result, Ok):
        _database = result.value
        logger.info("Database initialized")
    return result


def get_database() -> Option[Database]:
    return NOTHING if _database is None else Some(_database)


def require_database() -> Result[Database, DatabaseError]:
    if _database is None:
        return Err(DatabaseError(DatabaseErrorKind.NOT_INITIALIZED, "Database is not initialized"))
    return Ok(_database)


def close_database() -> None:
    """Release the process-wide database handle."""
    global _database

    if _database is not None:
        _database.close()
        _database = None
        logger.info("Database closed")
