import logging
import os
from contextlib import ExitStack, contextmanager
from typing import Iterable, Iterator, Optional

from filelock import FileLock, Timeout

from storefront.config import settings

log = logging.getLogger("locks")


class LockTimeout(Exception):
    def __init__(self, name: str):
        super().__init__(f"Could not acquire lock {name!r}; try again")
        self.name = name


def _lock_path(name: str) -> str:
    os.makedirs(settings.LOCK_DIR, exist_ok=True)
    return os.path.join(settings.LOCK_DIR, f"{name}.lock")


@contextmanager
def hold_locks(names: Iterable[str], timeout: Optional[float] = None) -> Iterator[list]:
    """
    Acquire one file lock per name, in sorted order, and hold them all for
    the duration of the block.

    The locks serialize writers across threads and worker processes even on
    backends without row-level locking (SQLite). Callers must always take
    their locks through this helper so the acquisition order stays global.
    """
    timeout = settings.LOCK_TIMEOUT_SECONDS if timeout is None else timeout
    ordered = sorted(set(names))
    with ExitStack() as stack:
        for name in ordered:
            lock = FileLock(_lock_path(name))
            try:
                stack.enter_context(lock.acquire(timeout=timeout))
            except Timeout:
                log.warning("lock timeout name=%s timeout=%s", name, timeout)
                raise LockTimeout(name)
        yield ordered


def product_lock_name(product_id: int) -> str:
    # zero-padded so string order matches numeric order
    return f"product-{product_id:012d}"


def order_lock_name(order_id: int) -> str:
    # bucketed so the lock dir holds a bounded set of files
    return f"order-{order_id % settings.LOCK_BUCKETS:04d}"


def cart_lock_name(user_id: int) -> str:
    return f"cart-{user_id % settings.LOCK_BUCKETS:04d}"
