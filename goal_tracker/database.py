from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from goal_tracker.core.config import DATABASE_URL

Base = declarative_base()


def build_engine(url: str):
    """Create an engine; SQLite connections are shared with the sync worker threads."""
    connect_args = {}
    if url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(
        url,
        pool_pre_ping=True,              # Validate connections before use
        connect_args=connect_args,
        echo=False,                      # Set to True for SQL debugging
        future=True,
    )


def build_sessionmaker(engine):
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=engine,
        expire_on_commit=False  # Keep objects accessible after commit
    )


engine = build_engine(DATABASE_URL)

