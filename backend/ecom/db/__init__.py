import importlib
import logging

from sqlalchemy import create_engine, event
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import declarative_base, sessionmaker

from ecom.config import settings

log = logging.getLogger("ecom.db")

DATABASE_URL = settings.DATABASE_URL

# connection execution options read when a transaction starts
BEGIN_MODE = "ecom_begin_mode"
LOCK_TIMEOUT = "ecom_lock_timeout"

# postgres SQLSTATE lock_not_available
PG_LOCK_NOT_AVAILABLE = "55P03"


def _millis(seconds: float) -> int:
    return max(1, int(seconds * 1000))


def make_engine(url: str):
    """
    Build an engine for ``url``.

    SQLite gets the pysqlite transaction recipe: the driver's own implicit
    BEGIN is disabled and ``BEGIN IMMEDIATE`` is emitted when SQLAlchemy
    starts a transaction. That makes SAVEPOINT (begin_nested) work and makes
    write transactions serialize instead of failing on lock upgrade.
    Connections carrying ``BEGIN_MODE="DEFERRED"`` start plain read
    transactions instead, and ``LOCK_TIMEOUT`` (seconds) replaces the busy
    timeout for that transaction. On other backends ``LOCK_TIMEOUT`` becomes
    ``SET LOCAL lock_timeout``.
    """
    if not url.startswith("sqlite"):
        eng = create_engine(url, future=True, echo=False, pool_pre_ping=True)

        if eng.dialect.name == "postgresql":

            @event.listens_for(eng, "begin")
            def _pg_begin(conn):
                timeout = conn.get_execution_options().get(LOCK_TIMEOUT)
                if timeout is not None:
                    conn.exec_driver_sql(f"SET LOCAL lock_timeout = {_millis(timeout)}")

        return eng

    eng = create_engine(
        url,
        future=True,
        echo=False,
        connect_args={
            "check_same_thread": False,
            "timeout": settings.SQLITE_BUSY_TIMEOUT_SECONDS,
        },
    )

    @event.listens_for(eng, "connect")
    def _sqlite_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cur = dbapi_connection.cursor()
        cur.execute("PRAGMA foreign_keys=ON")
        cur.close()

    @event.listens_for(eng, "begin")
    def _sqlite_begin(conn):
        opts = conn.get_execution_options()
        # set on every begin so a pooled connection never keeps a short wait
        timeout = opts.get(LOCK_TIMEOUT, settings.SQLITE_BUSY_TIMEOUT_SECONDS)
        conn.exec_driver_sql(f"PRAGMA busy_timeout = {_millis(timeout)}")
        conn.exec_driver_sql(f"BEGIN {opts.get(BEGIN_MODE, 'IMMEDIATE')}")

    return eng


def is_lock_timeout(exc: Exception) -> bool:
    """True when ``exc`` is the database giving up on a lock wait."""
    if not isinstance(exc, OperationalError):
        return False
    orig = exc.orig
    if getattr(orig, "pgcode", None) == PG_LOCK_NOT_AVAILABLE:
        return True
    return "database is locked" in str(orig)


engine = make_engine(DATABASE_URL)
# reads never need the SQLite write lock
read_engine = engine.execution_options(**{BEGIN_MODE: "DEFERRED"})
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
ReadSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=read_engine)
Base = declarative_base()

# model modules must be imported before create_all so metadata is populated
MODEL_MODULES = [
    "ecom.models.user",
    "ecom.models.product",
    "ecom.models.order",
]


def load_models():
    for mod in MODEL_MODULES:
        importlib.import_module(mod)


def init_db(reset: bool = False):
    """
    Create the schema. With ``reset`` (or RESET_DB=1) drop everything first.
    """
    load_models()
    if reset or settings.RESET_DB:
        log.warning("Resetting database %s", engine.url.render_as_string(hide_password=True))
        Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    log.info("Database initialized.")


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_read_db():
    db = ReadSessionLocal()
    try:
        yield db
    finally:
        db.close()
