"""Abstract interface for the key-value persistence layer.

The repositories depend only on :class:`KeyValueStore`, so in-memory,
JSON-file and SQLite backends (and any future one) can be swapped in without
touching the repository or service layers.
"""

from abc import ABC, abstractmethod


class KeyValueStore(ABC):
    """Abstract base class for string-valued key-value stores.

    Values are opaque strings; the repositories store JSON documents in them.
    Implementations must wrap backend failures in
    :class:`~localauth.core.exceptions.StorageError`.

    Example usage::

        store = JsonFileStore()                  # concrete implementation
        accounts = AccountRepository(store)      # injected into repository
        service = AuthService(accounts, SessionStore(store))
    """

    @abstractmethod
    def get_item(self, key: str) -> str | None:
        """Return the value stored under *key*, or ``None`` if absent.

        Raises:
            StorageError: If the backend cannot be read.
        """

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        """Store *value* under *key*, replacing any previous value.

        The write is all-or-nothing: readers see either the old or the new
        value.

        Raises:
            StorageError: If the backend cannot be written.
        """

    @abstractmethod
    def remove_item(self, key: str) -> None:
        """Delete *key*.  Removing an absent key is not an error.

        Raises:
            StorageError: If the backend cannot be written.
        """

    @abstractmethod
    def compare_and_set(
        self, key: str, expected: str | None, value: str
    ) -> bool:
        """Store *value* only if the current value equals *expected*.

        Args:
            key: The key to update.
            expected: The value the caller last read, or ``None`` to require
                that the key is absent.
            value: The new value.

        Returns:
            ``True`` if the value was written, ``False`` if another writer
            changed it first.

        Raises:
            StorageError: If the backend cannot be read or written.
        """
