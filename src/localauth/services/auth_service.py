"""Service layer that owns the authentication state machine.

States::

    INITIALIZING --initialize()--> AUTHENTICATED | UNAUTHENTICATED
    UNAUTHENTICATED --login()/signup()--> AUTHENTICATED
    AUTHENTICATED --logout()--> UNAUTHENTICATED

Every mutating operation returns an :class:`AuthResult`.  Library exceptions
raised by the repositories are caught here and turned into failed results;
none of them reach the caller.
"""

import logging
from collections.abc import Callable
from threading import Event, RLock

from localauth.core.exceptions import (
    InvalidCredentialsError,
    InvalidFormatError,
    InvalidInputError,
    LocalAuthError,
    StorageError,
)
from localauth.core.models import (
    Account,
    AuthResult,
    AuthSnapshot,
    AuthState,
    SessionUser,
)
from localauth.core.validation import MIN_PASSWORD_LENGTH, is_valid_email
from localauth.repositories.accounts import AccountRepository
from localauth.repositories.session import SessionStore
from localauth.storage.interfaces import KeyValueStore

logger = logging.getLogger(__name__)

Listener = Callable[[AuthSnapshot], None]

NOT_READY = "Authentication is still initializing"


class AuthService:
    """Login, signup, logout and session restore over injected repositories.

    The service is the only writer of the in-memory session.  Callers observe
    it through :attr:`snapshot` (and its shortcuts) or by registering a
    listener with :meth:`subscribe`.

    Mutating operations are serialised by an internal lock; the service
    expects at most one caller at a time but stays consistent if that
    assumption is broken.

    Args:
        accounts: Repository of registered accounts.
        sessions: Store of the signed-in user.
    """

    def __init__(self, accounts: AccountRepository, sessions: SessionStore):
        self.accounts = accounts
        self.sessions = sessions
        self._snapshot = AuthSnapshot(AuthState.INITIALIZING)
        self._listeners: list[Listener] = []
        self._ready = Event()
        self._lock = RLock()

    @classmethod
    def from_store(cls, store: KeyValueStore) -> "AuthService":
        """Build a service whose repositories share one key-value store."""
        return cls(AccountRepository(store), SessionStore(store))

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    @property
    def snapshot(self) -> AuthSnapshot:
        return self._snapshot

    @property
    def state(self) -> AuthState:
        return self._snapshot.state

    @property
    def user(self) -> SessionUser | None:
        return self._snapshot.user

    @property
    def is_loading(self) -> bool:
        return self._snapshot.is_loading

    @property
    def is_authenticated(self) -> bool:
        return self._snapshot.is_authenticated

    def wait_until_ready(self, timeout: float | None = None) -> bool:
        """Block until :meth:`initialize` has resolved the startup session.

        Returns:
            ``True`` once ready, ``False`` if *timeout* elapsed first.
        """
        return self._ready.wait(timeout)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call *listener* with the new snapshot after every state change.

        Returns:
            A function that removes the listener again.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _transition(self, snapshot: AuthSnapshot) -> None:
        previous = self._snapshot
        self._snapshot = snapshot
        logger.info(
            "Auth state %s -> %s", previous.state.value, snapshot.state.value
        )
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Auth state listener %r failed", listener)

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    def initialize(self) -> AuthSnapshot:
        """Restore the persisted session, once.

        A missing, unreadable or corrupt session resolves to
        ``UNAUTHENTICATED``; startup never fails.  Calls after the first are
        no-ops.

        Returns:
            The resolved snapshot.
        """
        with self._lock:
            if self._ready.is_set():
                logger.debug("initialize() called again; already resolved")
                return self._snapshot
            try:
                user = self.sessions.load()
            except StorageError:
                logger.error(
                    "Could not load the stored session; starting signed out",
                    exc_info=True,
                )
                user = None
            if user is not None:
                self._transition(AuthSnapshot(AuthState.AUTHENTICATED, user))
            else:
                self._transition(AuthSnapshot(AuthState.UNAUTHENTICATED))
            self._ready.set()
            return self._snapshot

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def login(self, email: str, password: str) -> AuthResult:
        """Sign in with an existing account.

        The email matches in any case; the password must match exactly.

        Args:
            email: Account email.
            password: Account password.

        Returns:
            A successful :class:`AuthResult`, or a failed one carrying
            ``"Email and password are required"``,
            ``"Invalid email or password"`` or a storage error message.
        """
        with self._lock:
            if self.is_loading:
                return AuthResult.fail(NOT_READY)
            try:
                user = self._authenticate(email, password)
                self.sessions.save(user)
            except StorageError:
                logger.error("Login failed on storage", exc_info=True)
                return AuthResult.fail(
                    "An unexpected error occurred during login"
                )
            except LocalAuthError as e:
                logger.info("Login rejected: %s", e)
                return AuthResult.fail(str(e))
            self._transition(AuthSnapshot(AuthState.AUTHENTICATED, user))
            return AuthResult.ok()

    def signup(self, name: str, email: str, password: str) -> AuthResult:
        """Register a new account and sign it in.

        Email format and password length are checked here as well as in the
        form validation, so callers that skip the form are held to the same
        rules.

        The account is stored before the session is written.  If the session
        write fails the account stays registered and the user stays signed
        out, so the caller should offer :meth:`login` next: signing up again
        with the same email fails with "User with this email already exists".

        Args:
            name: Display name.
            email: Email address, unique in any case.
            password: Password of at least six characters.

        Returns:
            A successful :class:`AuthResult`, or a failed one describing the
            first problem found.
        """
        with self._lock:
            if self.is_loading:
                return AuthResult.fail(NOT_READY)
            try:
                account = self._register(name, email, password)
                user = account.to_session_user()
                self.sessions.save(user)
            except StorageError:
                logger.error("Signup failed on storage", exc_info=True)
                return AuthResult.fail(
                    "An unexpected error occurred during signup"
                )
            except LocalAuthError as e:
                logger.info("Signup rejected: %s", e)
                return AuthResult.fail(str(e))
            self._transition(AuthSnapshot(AuthState.AUTHENTICATED, user))
            return AuthResult.ok()

    def logout(self) -> AuthResult:
        """Sign out.  Signing out while signed out also succeeds.

        If the stored session cannot be removed the user stays signed in and
        a failed result is returned.
        """
        with self._lock:
            if self.is_loading:
                return AuthResult.fail(NOT_READY)
            try:
                self.sessions.clear()
            except StorageError:
                logger.error("Logout failed on storage", exc_info=True)
                return AuthResult.fail(
                    "An unexpected error occurred during logout"
                )
            if self.state is not AuthState.UNAUTHENTICATED:
                self._transition(AuthSnapshot(AuthState.UNAUTHENTICATED))
            return AuthResult.ok()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _authenticate(self, email: str, password: str) -> SessionUser:
        if not email or not password:
            raise InvalidInputError("Email and password are required")
        account = self.accounts.find_by_credentials(email, password)
        if account is None:
            raise InvalidCredentialsError("Invalid email or password")
        return account.to_session_user()

    def _register(self, name: str, email: str, password: str) -> Account:
        if not name or not email or not password:
            raise InvalidInputError("Name, email, and password are required")
        if not is_valid_email(email):
            raise InvalidFormatError("Invalid email format")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise InvalidFormatError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
            )
        account = Account(
            id=self.accounts.new_account_id(),
            name=name,
            email=email,
            password=password,
        )
        self.accounts.insert(account)
        return account
