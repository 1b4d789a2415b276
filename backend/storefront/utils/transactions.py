from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.orm import Session


@contextmanager
def atomic(session: Session) -> Iterator[Session]:
    """
    Run a block as one all-or-nothing unit of work on the given Session.

    The block's writes are committed when it exits normally. Any exception,
    including a service error raised halfway through, rolls the whole
    transaction back before propagating, so no partial state is ever
    committed. Services own the session's unit of work: whatever the caller
    left pending in the session is committed or discarded along with it.
    Usage:
        with atomic(db):
            ... DB work ...
    """
    try:
        yield session
        session.commit()
    except BaseException:
        session.rollback()
        raise
