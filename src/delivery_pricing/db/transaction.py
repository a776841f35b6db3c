"""Unit-of-work helpers for the SQL stores."""

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy.orm import Session, sessionmaker


@contextmanager
def transaction(session: Session) -> Iterator[Session]:
    """Run the block as one unit of work on ``session``.

    Commits when the block exits cleanly and rolls back on any exception,
    including a failed commit. Inside an already open transaction the block
    becomes a savepoint, so a failure undoes only the block's own writes.

    Example:
        with transaction(session):
            repo.create(coupon)
            repo.set_active(other_id, False)
    """
    scope = session.begin_nested() if session.in_transaction() else session.begin()
    with scope:
        yield session


@contextmanager
def session_scope(session_factory: sessionmaker[Any]) -> Iterator[Session]:
    """Open a session, run the block in one transaction, then close it."""
    with session_factory() as session, transaction(session):
        yield session
