"""JSON-file key-value store.

Each key is kept in its own file under ``~/.config/localauth/`` (or the
directory given to the constructor)::

    @auth_user   ->  auth_user.json
    @auth_users  ->  auth_users.json

Files are replaced atomically (write to a temporary file, then
``os.replace``) and their permissions are restricted to the owner (0o600).
"""

import os
import re
import tempfile
from pathlib import Path
from threading import Lock

from localauth.core.exceptions import StorageError
from localauth.storage.interfaces import KeyValueStore

DEFAULT_DIR = Path.home() / ".config" / "localauth"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


class JsonFileStore(KeyValueStore):
    """Stores every key as a separate file in one directory.

    ``compare_and_set`` is atomic with respect to other threads using the
    same store instance.  It is not atomic across processes; use
    :class:`~localauth.storage.sqlite.SQLiteStore` for that.

    Args:
        directory: Directory holding the files.  Defaults to
            ``~/.config/localauth``.  Created on first write.
    """

    def __init__(self, directory: Path | None = None):
        self._dir = directory or DEFAULT_DIR
        self._lock = Lock()

    @property
    def directory(self) -> Path:
        return self._dir

    def path_for(self, key: str) -> Path:
        """Return the file that holds *key*.

        Args:
            key: The store key, e.g. ``"@auth_users"``.

        Returns:
            A :class:`pathlib.Path` inside the store directory.
        """
        name = _UNSAFE_CHARS.sub("_", key.lstrip("@")) or "_"
        return self._dir / f"{name}.json"

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _read(self, key: str) -> str | None:
        path = self.path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(f"Cannot read {path}: {e}") from e
        except UnicodeDecodeError as e:
            raise StorageError(f"{path} is not valid UTF-8: {e}") from e

    def _write(self, key: str, value: str) -> None:
        path = self.path_for(key)
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self._dir, prefix=f".{path.stem}-", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    fh.write(value)
                os.chmod(tmp_name, 0o600)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StorageError(f"Cannot write {path}: {e}") from e

    # ------------------------------------------------------------------
    # KeyValueStore interface
    # ------------------------------------------------------------------

    def get_item(self, key: str) -> str | None:
        with self._lock:
            return self._read(key)

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            self._write(key, value)

    def remove_item(self, key: str) -> None:
        path = self.path_for(key)
        with self._lock:
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                raise StorageError(f"Cannot remove {path}: {e}") from e

    def compare_and_set(
        self, key: str, expected: str | None, value: str
    ) -> bool:
        with self._lock:
            if self._read(key) != expected:
                return False
            self._write(key, value)
            return True
