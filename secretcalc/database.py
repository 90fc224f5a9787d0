"""Database connection and initialization."""

from sqlmodel import SQLModel, Session, create_engine

from secretcalc.config import settings

# Import all models so SQLModel registers them
import secretcalc.models  # noqa: F401

engine = create_engine(
    f"sqlite:///{settings.db_path}",
    echo=settings.debug,
    connect_args={"check_same_thread": False, "timeout": 15},
)


def init_db() -> None:
    """Create all tables and enable WAL mode."""
    SQLModel.metadata.create_all(engine)

    # WAL lets history reads proceed while a message write is in flight
    with engine.connect() as conn:
        conn.exec_driver_sql("PRAGMA journal_mode=WAL")
        conn.exec_driver_sql("PRAGMA synchronous=NORMAL")
        conn.commit()


def get_session():
    """FastAPI dependency: yields a database session."""
    with Session(engine) as session:
        yield session


def new_session() -> Session:
    """Open a session outside the request cycle (relay handlers, background tasks)."""
    return Session(engine)
