# database.py
from contextlib import asynccontextmanager

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session

# Base will be used to create our database models (the tables)
Base = declarative_base()


def make_engine(database_url: str) -> Engine:
    """Creates the engine for the given URL. Supabase-style postgres:// URLs are accepted."""
    if database_url.startswith("postgres://"):
        database_url = "postgresql://" + database_url[len("postgres://"):]
    if database_url.startswith("sqlite"):
        return create_engine(database_url, connect_args={"check_same_thread": False})
    return create_engine(database_url, pool_size=20, max_overflow=30, pool_timeout=30)


def make_session_factory(engine: Engine) -> sessionmaker:
    # Each call of the factory returns a new database session
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(engine: Engine) -> None:
    import models  # noqa: F401  registers the tables on Base.metadata
    Base.metadata.create_all(bind=engine)


@asynccontextmanager
async def get_async_db(session_factory: sessionmaker) -> Session:
    """
    An async context manager to handle database sessions automatically.
    Used by the route handlers, the bot handlers and the setup flows.
    """
    db = session_factory()
    try:
        yield db
    finally:
        db.close()
