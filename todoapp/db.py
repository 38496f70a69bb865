# PURPOSE: create the SQLAlchemy engine and a Session factory.

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base

from .config import settings


def make_engine(db_url: str) -> Engine:
    """Engine for `db_url`; SQLite gets cross-thread access, servers get liveness checks."""
    if db_url.startswith("sqlite"):
        return create_engine(db_url, connect_args={"check_same_thread": False})
    return create_engine(db_url, pool_pre_ping=True)


engine = make_engine(settings.DATABASE_URL)

# SessionLocal: opened/closed per request in FastAPI (see store_db.get_db)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base: parent class for all ORM models (tables)
Base = declarative_base()
