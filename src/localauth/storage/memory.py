"""In-process key-value store, used by tests and the ``memory`` backend."""

from threading import Lock

from localauth.storage.interfaces import KeyValueStore


class MemoryStore(KeyValueStore):
    """A dict-backed store.  Contents are lost when the process exits.

    Args:
        initial: Optional key/value pairs to pre-populate the store with.
    """

    def __init__(self, initial: dict[str, str] | None = None):
        self._data: dict[str, str] = dict(initial or {})
        self._lock = Lock()

    def get_item(self, key: str) -> str | None:
        with self._lock:
            return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def remove_item(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def compare_and_set(
        self, key: str, expected: str | None, value: str
    ) -> bool:
        with self._lock:
            if self._data.get(key) != expected:
                return False
            self._data[key] = value
            return True
