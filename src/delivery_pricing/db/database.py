"""SQLite engine and session factory for the reference stores."""

import logging
from pathlib import Path
from typing import Any

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import sessionmaker

from .schema import Base, PricingMetadata

logger = logging.getLogger(__name__)

SCHEMA_VERSION = "1.0.0"


def create_sqlite_engine(db_path: str | Path, busy_timeout_seconds: float = 30.0) -> Engine:
    """Engine whose connections enforce foreign keys and wait out competing writers.

    ``busy_timeout_seconds`` bounds how long a statement waits on a locked
    database before failing with "database is locked".
    """
    engine = create_engine(
        f"sqlite:///{db_path}",
        connect_args={"check_same_thread": False, "timeout": busy_timeout_seconds},
    )

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection: Any, _record: Any) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return engine


def init_database(db_path: str | Path, busy_timeout_seconds: float = 30.0) -> sessionmaker[Any]:
    """Create the schema if needed and return a session factory."""
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    engine = create_sqlite_engine(db_path, busy_timeout_seconds)
    Base.metadata.create_all(engine)
    session_maker = sessionmaker(bind=engine, expire_on_commit=False)

    with session_maker() as session:
        stored = session.get(PricingMetadata, "schema_version")
        if stored is None:
            session.add(PricingMetadata(key="schema_version", value=SCHEMA_VERSION))
            session.commit()
            logger.info("Initialized pricing database at %s", db_path)
        elif stored.value != SCHEMA_VERSION:
            logger.warning(
                "Database %s has schema %s, code expects %s",
                db_path,
                stored.value,
                SCHEMA_VERSION,
            )

    return session_maker
