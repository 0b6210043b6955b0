from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from .config import settings


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def create_primary_engine(url: str, lock_timeout_ms: int | None = None) -> Engine:
    """
    Engine for the write path (reservations, lifecycle transitions).

    PostgreSQL: row locks via SELECT ... FOR UPDATE, bounded by lock_timeout.
    SQLite has no row locks, so every transaction starts with BEGIN IMMEDIATE,
    which takes the database write lock up front and serializes writers.
    """
    if lock_timeout_ms is None:
        lock_timeout_ms = settings.db_lock_timeout_ms

    if not _is_sqlite(url):
        connect_args = {}
        if url.startswith("postgresql"):
            connect_args["options"] = f"-c lock_timeout={lock_timeout_ms}"
        return create_engine(url, pool_pre_ping=True, connect_args=connect_args)

    # check_same_thread=False: request workers share the pool across threads
    engine = create_engine(
        url,
        connect_args={"check_same_thread": False, "timeout": lock_timeout_ms / 1000},
    )

    @event.listens_for(engine, "connect")
    def _sqlite_connect(dbapi_connection, _):
        # Take transaction control away from pysqlite so "begin" below is authoritative
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _sqlite_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


def create_read_engine(url: str) -> Engine:
    """Engine for lock-free availability reads (may point at a replica)."""
    if not _is_sqlite(url):
        return create_engine(url, pool_pre_ping=True)

    engine = create_engine(url, connect_args={"check_same_thread": False})

    @event.listens_for(engine, "connect")
    def _sqlite_fk(dbapi_connection, _):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return engine


engine = create_primary_engine(settings.resolved_database_url)
read_engine = create_read_engine(settings.resolved_replica_url)

# SessionLocal: primary database, used by every write
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
    bind=engine,
)

# ReadSessionLocal: availability queries, no locks taken
ReadSessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
    bind=read_engine,
)


def init_db(bind: Engine | None = None) -> None:
    """Create all tables (local runs and tests; production uses alembic)."""
    from .models import Base

    Base.metadata.create_all(bind=bind or engine)


# Dependency for FastAPI (writes go through the session factories in dependencies.py)
def get_read_db():
    db = ReadSessionLocal()
    try:
        yield db
    finally:
        db.close()
