from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from albumrank.core.config import settings

_MEMORY_URLS = ("sqlite://", "sqlite:///:memory:")


def _engine_kwargs(url: str) -> dict:
    if not url.startswith("sqlite"):
        return {"pool_pre_ping": True}
    kwargs: dict = {"connect_args": {"check_same_thread": False}}
    # in-memory databases live on one connection; share it
    if url in _MEMORY_URLS:
        kwargs["poolclass"] = StaticPool
    return kwargs


def make_engine(url: str) -> Engine:
    engine = create_engine(url, **_engine_kwargs(url))
    if engine.dialect.name != "sqlite":
        return engine

    immediate = url not in _MEMORY_URLS

    @event.listens_for(engine, "connect")
    def _sqlite_connect(dbapi_conn, _record):
        # ON DELETE CASCADE is inert in SQLite unless enabled per connection
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()
        if immediate:
            # hand BEGIN over to the "begin" hook below
            dbapi_conn.isolation_level = None

    if immediate:
        # SQLite ignores FOR UPDATE and pysqlite defers BEGIN to the first write,
        # so ledger reads would run unlocked. Take the write lock up front instead.
        @event.listens_for(engine, "begin")
        def _sqlite_begin(conn):
            conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


engine = make_engine(settings.database_url)

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
