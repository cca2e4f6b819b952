from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.orm import Session


@contextmanager
def atomic(session: Session) -> Iterator[Session]:
    """
    One all-or-nothing unit of work.

    Commits when the block exits cleanly; rolls back on any exception (service
    errors included) and re-raises, so callers never observe a partial write.
    """
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
