import time
from typing import Callable, TypeVar

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from pantry.core.config import settings
from pantry.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class Base(DeclarativeBase):
    pass


def build_engine(url: str, **kwargs) -> Engine:
    is_sqlite = url.startswith("sqlite")
    connect_args = kwargs.pop("connect_args", None)
    if connect_args is None:
        connect_args = {"check_same_thread": False, "timeout": 30} if is_sqlite else {}

    eng = create_engine(url, connect_args=connect_args, pool_pre_ping=True, **kwargs)

    if is_sqlite:
        immediate = settings.SQLITE_IMMEDIATE_TRANSACTIONS

        @event.listens_for(eng, "connect")
        def _set_sqlite_pragmas(dbapi_connection, _):
            if immediate:
                # let SQLAlchemy emit BEGIN itself (see _begin_immediate)
                dbapi_connection.isolation_level = None
            cur = dbapi_connection.cursor()
            cur.execute("PRAGMA journal_mode=WAL;")
            cur.execute("PRAGMA synchronous=NORMAL;")
            cur.execute("PRAGMA foreign_keys=ON;")
            cur.close()

        if immediate:
            @event.listens_for(eng, "begin")
            def _begin_immediate(conn):
                # take the write lock up front so read-then-write sequences serialize
                conn.exec_driver_sql("BEGIN IMMEDIATE")

    return eng


engine = build_engine(settings.DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def run_in_transaction(db: Session, fn: Callable[[Session], T], attempts: int | None = None) -> T:
    """Run ``fn(db)`` and retry it when the database reports a lock conflict.

    ``fn`` owns its commit. Any failure rolls the session back; only
    OperationalError (deadlock, lock timeout, "database is locked") is retried,
    with exponential backoff, and the last one is re-raised.
    """
    attempts = attempts or settings.TX_MAX_ATTEMPTS

    for attempt in range(1, attempts + 1):
        try:
            return fn(db)
        except OperationalError as e:
            db.rollback()
            if attempt >= attempts:
                logger.error("transaction failed after %d attempts: %s", attempt, e)
                raise
            delay = settings.TX_RETRY_BASE_SECONDS * 2 ** (attempt - 1)
            logger.warning("transaction conflict (attempt %d/%d), retrying in %.2fs: %s",
                           attempt, attempts, delay, e)
            time.sleep(delay)
        except Exception:
            db.rollback()
            raise

    raise RuntimeError("unreachable")  # pragma: no cover
