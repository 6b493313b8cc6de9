from __future__ import annotations

from collections import OrderedDict
import threading
from typing import Generic, Hashable, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class LRUCache(Generic[K, V]):
    """Bounded mapping that evicts least-recently-used keys.

    When full, ``slack`` extra entries are evicted at once so a cache sitting
    at capacity does not evict on every insert.
    """

    def __init__(self, capacity: int = 500, slack: int = 50) -> None:
        self._capacity = max(capacity, 1)
        self._slack = max(slack, 0)
        self._data: OrderedDict[K, V] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: K) -> V | None:
        with self._lock:
            if key not in self._data:
                return None
            self._data.move_to_end(key)
            return self._data[key]

    def put(self, key: K, value: V) -> None:
        with self._lock:
            if key in self._data:
                self._data.move_to_end(key)
                self._data[key] = value
                return
            if len(self._data) >= self._capacity:
                evict = min(len(self._data) - self._capacity + 1 + self._slack, len(self._data))
                for _ in range(evict):
                    self._data.popitem(last=False)
            self._data[key] = value

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._data

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)
