"""
Database engine and session factory.

DATABASE_URL selects the store. Without it, a local SQLite file next to this
module is used. Foreign keys are switched on for every SQLite connection, so
box change history can only reference existing locations.
"""
import os
import logging
from pathlib import Path

from dotenv import load_dotenv
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import QueuePool

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent
DEFAULT_SQLITE_PATH = BASE_DIR / "boxtracker.db"

# Some hosting environments accidentally prepend "DATABASE_URL=" to the value
# (e.g. when copying `export DATABASE_URL=...`)
URL_PREFIX = "DATABASE_URL="

env_path = BASE_DIR / ".env"
if env_path.exists():
    load_dotenv(dotenv_path=env_path)
else:
    # Fall back to default load (will pick up system env vars if already set)
    load_dotenv()

# Database connection pooling configuration (used for non-SQLite databases)
POOL_SIZE = int(os.getenv("DB_POOL_SIZE", 10))
MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", 20))
POOL_TIMEOUT = int(os.getenv("DB_POOL_TIMEOUT", 30))
POOL_RECYCLE = int(os.getenv("DB_POOL_RECYCLE", 3600))  # Recycle connections after 1 hour


def resolve_database_url(raw_url=None) -> str:
    """Clean up DATABASE_URL, falling back to the local SQLite file when unset."""
    url = (raw_url if raw_url is not None else os.getenv("DATABASE_URL", "")).strip()
    if url.startswith(URL_PREFIX):
        url = url[len(URL_PREFIX):].strip()

    if not url:
        url = f"sqlite:///{DEFAULT_SQLITE_PATH.as_posix()}"
        logger.warning(
            "DATABASE_URL not found in environment. Falling back to SQLite at %s",
            DEFAULT_SQLITE_PATH
        )
    return url


def enable_sqlite_foreign_keys(target_engine: Engine) -> None:
    """SQLite only enforces FOREIGN KEY clauses on connections that opt in."""
    @event.listens_for(target_engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def build_engine(url: str, **overrides) -> Engine:
    """
    Create an engine for `url`.
    SQLite engines share connections across threads and enforce foreign keys;
    other databases get a sized QueuePool. Keyword overrides win over both.
    """
    engine_kwargs = {
        "echo": False,
        "future": True,
        "pool_pre_ping": True,
    }

    if url.startswith("sqlite"):
        engine_kwargs["connect_args"] = {"check_same_thread": False}
    else:
        engine_kwargs.update(
            {
                "poolclass": QueuePool,
                "pool_size": POOL_SIZE,
                "max_overflow": MAX_OVERFLOW,
                "pool_timeout": POOL_TIMEOUT,
                "pool_recycle": POOL_RECYCLE,
            }
        )
    engine_kwargs.update(overrides)

    new_engine = create_engine(url, **engine_kwargs)
    if new_engine.dialect.name == "sqlite":
        enable_sqlite_foreign_keys(new_engine)
    return new_engine


DATABASE_URL = resolve_database_url()

engine = build_engine(DATABASE_URL)

SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)

Base = declarative_base()

if engine.dialect.name == "sqlite":
    logger.info("Database configured with SQLite at %s (foreign keys enforced)", DATABASE_URL)
else:
    logger.info("Database connection pool configured: size=%s, max_overflow=%s", POOL_SIZE, MAX_OVERFLOW)
