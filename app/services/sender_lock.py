"""Per-sender locks keyed by phone number.

Two messages from the same sender are processed one after the other so the
second sees the first exchange in its history. Other senders are unaffected.
In-process locks are held in a WeakValueDictionary and disappear once no request
uses them. On PostgreSQL a transaction-scoped advisory lock also orders workers
in other processes.
"""

import threading
import weakref
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import text
from sqlalchemy.orm import Session


class SenderLockRegistry:
    def __init__(self) -> None:
        self._locks: "weakref.WeakValueDictionary[str, _KeyedLock]" = weakref.WeakValueDictionary()
        self._guard = threading.Lock()

    def lock_for(self, key: str) -> "_KeyedLock":
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = _KeyedLock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, key: str, enabled: bool = True) -> Iterator[None]:
        if not enabled:
            yield
            return
        lock = self.lock_for(key)
        with lock:
            yield

    def __len__(self) -> int:
        return len(self._locks)


class _KeyedLock:
    """threading.Lock cannot be weakly referenced, so wrap it."""

    __slots__ = ("_lock", "__weakref__")

    def __init__(self) -> None:
        self._lock = threading.Lock()

    def acquire(self, blocking: bool = True, timeout: float = -1) -> bool:
        return self._lock.acquire(blocking, timeout)

    def release(self) -> None:
        self._lock.release()

    def locked(self) -> bool:
        return self._lock.locked()

    def __enter__(self) -> "_KeyedLock":
        self._lock.acquire()
        return self

    def __exit__(self, *exc) -> None:
        self._lock.release()


_registry = SenderLockRegistry()


def get_sender_locks() -> SenderLockRegistry:
    return _registry


def acquire_transaction_lock(db: Session, key: str) -> bool:
    """Block until the advisory lock for key is held. Released on commit or rollback.

    Only PostgreSQL has advisory locks; other backends return False.
    """
    if db.get_bind().dialect.name != "postgresql":
        return False
    db.execute(text("SELECT pg_advisory_xact_lock(hashtext(:key))"), {"key": key})
    return True
