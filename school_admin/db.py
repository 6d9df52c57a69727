from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, declarative_base

from school_admin.config import settings


def make_engine(url: str, **kwargs):
    # connect_args for sqlite to allow multithreading
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    engine = create_engine(url, **kwargs)
    if engine.dialect.name == "sqlite":
        _sqlite_transactions(engine)
    return engine


def _sqlite_transactions(engine):
    """Give every session a real SQLite transaction.

    pysqlite only emits BEGIN ahead of writes, so a session reading several
    tables would otherwise see each SELECT at a different point in time.
    WAL lets a reader keep its snapshot while other connections commit.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


engine = make_engine(settings.database_url)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def init_db(bind=None):
    # models must be imported so their tables are registered on Base
    from school_admin import models  # noqa: F401
    Base.metadata.create_all(bind=bind or engine)


@contextmanager
def session_scope(factory=None):
    db_session = (factory or SessionLocal)()
    try:
        yield db_session
    finally:
        db_session.close()
