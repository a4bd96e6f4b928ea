from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

Base = declarative_base()

IN_MEMORY_SQLITE = ("sqlite://", "sqlite:///:memory:")


def begin_immediate(engine: Engine) -> None:
    """
    Makes every transaction on a SQLite engine start with BEGIN IMMEDIATE.
    The write lock is then taken by the first statement, reads included, so a
    conflict check and the insert that follows it cannot interleave with
    another writer. pysqlite's own BEGIN is switched off so SQLAlchemy emits it.
    """
    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(database_url: str) -> Engine:
    """
    Creates the engine for the configured database.
    In-memory SQLite gets a single shared connection so every session sees the same tables.
    """
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if database_url in IN_MEMORY_SQLITE:
            # One connection shared by every session: nothing to serialize against
            kwargs["poolclass"] = StaticPool
            return create_engine(database_url, **kwargs)
        engine = create_engine(database_url, **kwargs)
        begin_immediate(engine)
        return engine
    return create_engine(database_url, pool_pre_ping=True)


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)
