"""
Database base configuration for SQLAlchemy models.

This module uses SQLAlchemy 2.0 style with DeclarativeBase. The engine is
synchronous: every engine operation is a short read-modify-write that runs
inside the caller's transaction.
"""

from typing import Generator
import os

from dotenv import load_dotenv
from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

# Load environment variables
load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "") or "sqlite:///./assessment.db"

# Echo SQL in development only
DEBUG = os.getenv("DEBUG", "False").lower() in ("true", "1", "yes")

# Database connection pool settings (ignored for SQLite)
POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "10"))
POOL_MAX_OVERFLOW = int(os.getenv("DB_POOL_MAX_OVERFLOW", "20"))
POOL_TIMEOUT = int(os.getenv("DB_POOL_TIMEOUT", "30"))
POOL_RECYCLE = int(os.getenv("DB_POOL_RECYCLE", "3600"))
POOL_PRE_PING = os.getenv("DB_POOL_PRE_PING", "True").lower() in (
    "true",
    "1",
    "yes",
)


def build_engine(url: str = DATABASE_URL, echo: bool = DEBUG):
    """
    Create a SQLAlchemy engine for the given URL.

    SQLite gets ``check_same_thread=False`` so sessions can be handed to
    worker threads; server databases get the pooled configuration above.
    """
    if url.startswith("sqlite"):
        return create_engine(
            url, echo=echo, connect_args={"check_same_thread": False}
        )

    return create_engine(
        url,
        echo=echo,
        pool_size=POOL_SIZE,
        max_overflow=POOL_MAX_OVERFLOW,
        pool_timeout=POOL_TIMEOUT,
        pool_recycle=POOL_RECYCLE,
        pool_pre_ping=POOL_PRE_PING,  # Verify connections are alive before using them
    )


engine = build_engine()

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class Base(DeclarativeBase):
    """
    SQLAlchemy 2.0 declarative base class with type annotation support.
    """

    pass


def get_db() -> Generator[Session, None, None]:
    """
    Yield a database session and ensure it is rolled back on error and closed.

    Suitable as a dependency for whichever adapter (HTTP, RPC, CLI) wraps
    the engine operations.
    """
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
