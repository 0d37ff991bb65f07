"""Persistence of the single signed-in user under the ``@auth_user`` key."""

import json
import logging

from localauth.core.models import SessionUser
from localauth.storage.interfaces import KeyValueStore

logger = logging.getLogger(__name__)

SESSION_KEY = "@auth_user"


class SessionStore:
    """Reads, writes and clears the one session slot.

    Args:
        store: The key-value store holding ``@auth_user``.
    """

    def __init__(self, store: KeyValueStore):
        self._store = store

    def load(self) -> SessionUser | None:
        """Return the persisted session user, if there is a valid one.

        A record that is not valid JSON, or lacks any of ``id``, ``name`` and
        ``email``, is treated as no session at all.

        Raises:
            StorageError: If the store cannot be read.
        """
        raw = self._store.get_item(SESSION_KEY)
        if raw is None:
            return None
        try:
            return SessionUser.from_dict(json.loads(raw))
        except (ValueError, RecursionError):
            logger.warning(
                "Stored session is unreadable; ignoring it", exc_info=True
            )
            return None

    def save(self, user: SessionUser) -> None:
        """Overwrite the slot with *user*.

        Raises:
            StorageError: If the store cannot be written.
        """
        self._store.set_item(SESSION_KEY, json.dumps(user.to_dict()))

    def clear(self) -> None:
        """Remove the slot.  Clearing an empty slot is a no-op.

        Raises:
            StorageError: If the store cannot be written.
        """
        self._store.remove_item(SESSION_KEY)
