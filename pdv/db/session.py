from contextlib import contextmanager
from sqlalchemy import create_engine, event
from sqlalchemy.exc import OperationalError
from sqlalchemy.pool import QueuePool, StaticPool
from sqlalchemy.orm import sessionmaker, declarative_base
from pdv.core.config import settings
from pdv.core.errors import TransientIOError
import logging
import threading
import contextvars

DATABASE_URL = settings.DATABASE_URL


def _engine_kwargs(url: str) -> dict:
    # SQLite cannot share connections across threads by default and an
    # in-memory database only lives as long as its single connection.
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:") or ":memory:" in url:
            kwargs["poolclass"] = StaticPool
        return kwargs
    # pool_pre_ping avoids "server has gone away" errors on stale connections.
    return {
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_pre_ping": True,
        "pool_recycle": settings.DB_POOL_RECYCLE,
        "poolclass": QueuePool,
    }


engine = create_engine(DATABASE_URL, **_engine_kwargs(DATABASE_URL))

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

# --- Pool monitoring: log connects and checkouts to help diagnose excess connections ---
_pool_logger = logging.getLogger("pdv.db.pool")
_connect_count = 0
_checkout_count = 0
_pool_lock = threading.Lock()

# --- Per-request DB query counting using ContextVar ---
# The request middleware sets a one-element list at the start of each request;
# the cursor listener increments it in place (context copies share the list),
# so the number of DB roundtrips per HTTP request can be logged.
request_db_query_count = contextvars.ContextVar("request_db_query_count", default=None)
_global_db_query_count = 0


@event.listens_for(engine, "connect")
def _on_connect(dbapi_connection, connection_record):
    global _connect_count
    with _pool_lock:
        _connect_count += 1
        cnt = _connect_count
    if DATABASE_URL.startswith("sqlite"):
        # SQLite ships with foreign keys disabled
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()
    if cnt % settings.DB_LOG_EVERY_N == 0:
        _pool_logger.info(f"SQLAlchemy Pool CONNECT events: total opened={cnt}")


@event.listens_for(engine, "checkout")
def _on_checkout(dbapi_connection, connection_record, connection_proxy):
    global _checkout_count
    with _pool_lock:
        _checkout_count += 1
        cnt = _checkout_count
    if cnt % settings.DB_LOG_EVERY_N == 0:
        _pool_logger.info(f"SQLAlchemy Pool CHECKOUT events: total checkouts={cnt}")


@event.listens_for(engine, "before_cursor_execute")
def _on_before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
    box = request_db_query_count.get()
    if box is not None:
        box[0] += 1
    global _global_db_query_count
    with _pool_lock:
        _global_db_query_count += 1


def get_global_db_queries_total() -> int:
    """Return the total number of DB roundtrips since process start."""
    return _global_db_query_count


def get_db():
    """FastAPI dependency that provides a scoped SQLAlchemy Session.

    The session is always closed after the request so the connection goes
    back to the pool.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _import_models():
    # Import models here so they are registered on the metadata
    import pdv.models.product  # noqa: F401
    import pdv.models.client  # noqa: F401
    import pdv.models.pedido  # noqa: F401
    import pdv.models.pedido_item  # noqa: F401
    import pdv.models.condicional  # noqa: F401
    import pdv.models.condicional_item  # noqa: F401


def create_db():
    _import_models()
    Base.metadata.create_all(bind=engine)


def drop_db():
    _import_models()
    Base.metadata.drop_all(bind=engine)


@contextmanager
def atomic(db):
    """Run a block of writes as one transaction on `db`.

    Commits when the block finishes; any exception rolls back everything done
    inside it. Dropped connections surface as TransientIOError.
    """
    try:
        yield db
        db.commit()
    except OperationalError as exc:
        db.rollback()
        raise TransientIOError(f"Falha de comunicação com o banco de dados: {exc.orig}") from exc
    except Exception:
        db.rollback()
        raise
