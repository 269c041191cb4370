"""
Database engine and session management.

Sessions are synchronous (SQLAlchemy ORM); services call them from async
code paths because every query is a short indexed lookup.
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from shortlink_app.config import settings


# SQLite needs check_same_thread=False because FastAPI serves sync
# dependencies from a thread pool
connect_args = {"check_same_thread": False} if settings.database_url.startswith("sqlite") else {}

engine = create_engine(
    settings.database_url,
    connect_args=connect_args,
    pool_pre_ping=True,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """
    FastAPI dependency that yields a database session per request.

    The session is always closed, even when the handler raises.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
