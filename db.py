# db.py

from sqlmodel import SQLModel, create_engine, Session
from sqlalchemy.pool import StaticPool

from config import load_settings

settings = load_settings()

# Defaults to a medintake.db file next to your code
DATABASE_URL = settings.database.url


def make_engine(url: str, echo: bool = False):
    """
    SQLite needs cross-thread access under FastAPI, and in-memory
    databases need a single shared connection
    """
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql://", 1)
    if not url.startswith("sqlite"):
        return create_engine(url, echo=echo, pool_pre_ping=True)
    kwargs = {"connect_args": {"check_same_thread": False}}
    if url in ("sqlite://", "sqlite:///:memory:"):
        kwargs["poolclass"] = StaticPool
    return create_engine(url, echo=echo, **kwargs)


# Create the SQLModel engine
engine = make_engine(DATABASE_URL, echo=settings.database.echo)


def configure(url: str, echo: bool = False):
    """
    Point the module at another database (tests, CLI --database).
    Call init_db() afterwards to create the tables there.
    """
    global engine
    engine = make_engine(url, echo=echo)
    return engine


def init_db():
    """
    Create all tables in the database.
    Call this once at application startup.
    """
    import models  # noqa: F401  registers the medical_records table
    SQLModel.metadata.create_all(engine)


def get_session():
    """
    Return a new SQLModel Session.
    Use this to read/write MedicalRecord rows.
    """
    return Session(engine)
