"""Key-value persistence layer: interface and concrete backends."""

from localauth.storage.interfaces import KeyValueStore
from localauth.storage.json_file import JsonFileStore
from localauth.storage.memory import MemoryStore
from localauth.storage.sqlite import SQLiteStore

__all__ = ["JsonFileStore", "KeyValueStore", "MemoryStore", "SQLiteStore"]
