import threading
from typing import Any, Callable, Dict


class StaticCacheManager:
    """Process-wide memo cache shared by the installer services."""

    def __init__(self):
        self._items: Dict[str, Any] = {}
        self._lock = threading.Lock()

    def get(self, key: str, acquire: Callable[[], Any]) -> Any:
        with self._lock:
            if key in self._items:
                return self._items[key]
        value = acquire()
        with self._lock:
            self._items.setdefault(key, value)
            return self._items[key]

    def remove(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, key: str) -> bool:
        return key in self._items
