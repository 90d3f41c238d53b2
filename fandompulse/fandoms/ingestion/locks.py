"""
In-process per-key locks.

Ingestion for the same (fandom, platform) must not interleave its snapshot
read and write. Locks are created lazily and kept for the process lifetime
(the key space is tracked fandoms x platforms).
"""

from __future__ import annotations

from contextlib import contextmanager
from threading import Lock
from typing import Hashable, Iterator

_registry_lock = Lock()
_locks: dict[Hashable, Lock] = {}


def lock_for(key: Hashable) -> Lock:
    with _registry_lock:
        lock = _locks.get(key)
        if lock is None:
            lock = Lock()
            _locks[key] = lock
        return lock


@contextmanager
def key_lock(key: Hashable) -> Iterator[None]:
    """Hold the lock for `key` for the duration of the block."""
    lock = lock_for(key)
    with lock:
        yield
