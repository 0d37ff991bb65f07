"""Repository for registered accounts.

The whole account collection is stored as one JSON array under the
``@auth_users`` key.  This repository is the only code that reads or writes
that key.

Uniqueness:
  Emails are unique case-insensitively.  :meth:`AccountRepository.insert`
  re-reads the collection, checks for a duplicate and writes the new
  collection with :meth:`KeyValueStore.compare_and_set`, retrying when
  another writer got there first.  Two concurrent inserts of the same email
  therefore cannot both be stored.
"""

import json
import logging
import uuid

from localauth.core.exceptions import DuplicateEmailError, StorageError
from localauth.core.models import Account
from localauth.storage.interfaces import KeyValueStore

logger = logging.getLogger(__name__)

ACCOUNTS_KEY = "@auth_users"


def _same_email(a: str, b: str) -> bool:
    return a.lower() == b.lower()


class AccountRepository:
    """Reads and writes the account collection through a key-value store.

    Usage::

        repo = AccountRepository(MemoryStore())
        repo.insert(Account(id=repo.new_account_id(), name="Ada",
                            email="ada@example.com", password="secret1"))
        repo.find_by_email("ADA@example.com")   # -> Account(...)

    Args:
        store: The key-value store holding ``@auth_users``.
        max_retries: Compare-and-set attempts before :meth:`insert` gives up.
    """

    def __init__(self, store: KeyValueStore, max_retries: int = 5):
        self._store = store
        self._max_retries = max_retries

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _decode(raw: str | None) -> list[Account]:
        """Parse the stored JSON array.  Any malformed content yields ``[]``."""
        if raw is None:
            return []
        try:
            data = json.loads(raw)
            if not isinstance(data, list):
                raise ValueError("Account collection must be a JSON array")
            return [Account.from_dict(item) for item in data]
        except (ValueError, RecursionError):
            logger.warning(
                "Stored account collection is unreadable; treating it as empty",
                exc_info=True,
            )
            return []

    @staticmethod
    def _encode(accounts: list[Account]) -> str:
        return json.dumps([a.to_dict() for a in accounts])

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_accounts(self) -> list[Account]:
        """Return every stored account.

        Returns:
            A list of :class:`Account` instances, empty when nothing is
            stored or the stored data cannot be parsed.

        Raises:
            StorageError: If the store cannot be read.
        """
        return self._decode(self._store.get_item(ACCOUNTS_KEY))

    def find_by_email(self, email: str) -> Account | None:
        """Return the account whose email matches *email* in any case.

        Raises:
            StorageError: If the store cannot be read.
        """
        for account in self.list_accounts():
            if _same_email(account.email, email):
                return account
        return None

    def find_by_credentials(self, email: str, password: str) -> Account | None:
        """Return the account matching *email* (any case) and *password*.

        The password is compared exactly.

        Raises:
            StorageError: If the store cannot be read.
        """
        for account in self.list_accounts():
            if _same_email(account.email, email) and account.password == password:
                return account
        return None

    def new_account_id(self) -> str:
        """Return a random identifier not used by any stored account."""
        taken = {a.id for a in self.list_accounts()}
        while True:
            candidate = uuid.uuid4().hex
            if candidate not in taken:
                return candidate

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def insert(self, account: Account) -> None:
        """Append *account* to the stored collection.

        Args:
            account: The new account.

        Raises:
            DuplicateEmailError: If an account with the same email (any
                case) already exists.
            StorageError: If the store fails, or the collection kept changing
                underneath for ``max_retries`` attempts.
        """
        for attempt in range(1, self._max_retries + 1):
            raw = self._store.get_item(ACCOUNTS_KEY)
            accounts = self._decode(raw)
            if any(_same_email(a.email, account.email) for a in accounts):
                raise DuplicateEmailError(
                    "User with this email already exists"
                )
            updated = self._encode([*accounts, account])
            if self._store.compare_and_set(ACCOUNTS_KEY, raw, updated):
                logger.info("Account %s created", account.id)
                return
            logger.debug(
                "Account collection changed during insert (attempt %d)", attempt
            )
        raise StorageError(
            f"Account collection kept changing; gave up after "
            f"{self._max_retries} attempts"
        )
