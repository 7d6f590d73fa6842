"""Process-local keyed locks serializing writers on one shared row.

Row locks (`SELECT ... FOR UPDATE`) serialize writers across processes on
databases that support them; these locks give the same ordering inside one
process, including on SQLite where row locks are not available.
"""

from __future__ import annotations

from collections.abc import Hashable, Iterator
from contextlib import contextmanager
from threading import Lock
from weakref import WeakValueDictionary


class _KeyedLock:
    __slots__ = ("lock", "__weakref__")

    def __init__(self) -> None:
        self.lock = Lock()


_LOCKS: WeakValueDictionary[Hashable, _KeyedLock] = WeakValueDictionary()
_REGISTRY_LOCK = Lock()


@contextmanager
def keyed_lock(*key: Hashable) -> Iterator[None]:
    """Hold the lock for `key` for the duration of the block."""
    with _REGISTRY_LOCK:
        entry = _LOCKS.get(key)
        if entry is None:
            entry = _KeyedLock()
            _LOCKS[key] = entry
    with entry.lock:
        yield
