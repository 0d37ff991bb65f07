"""Data model dataclasses shared across the library."""

from dataclasses import asdict, dataclass
from enum import Enum


def _require_str(data: dict, key: str) -> str:
    """Return ``data[key]`` if it is a string, otherwise raise ValueError."""
    value = data.get(key)
    if not isinstance(value, str):
        raise ValueError(f"Field {key!r} is missing or not a string")
    return value


# ----------------------
# SessionUser
# ----------------------


@dataclass(frozen=True)
class SessionUser:
    """The currently authenticated identity, without its password."""

    id: str
    name: str
    email: str

    def to_dict(self) -> dict[str, str]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "SessionUser":
        """Build a session user from its stored JSON object.

        Args:
            data: The decoded JSON object.

        Returns:
            A :class:`SessionUser` instance.

        Raises:
            ValueError: If ``data`` is not a dict or any field is missing or
                not a string.
        """
        if not isinstance(data, dict):
            raise ValueError("Session user must be a JSON object")
        return cls(
            id=_require_str(data, "id"),
            name=_require_str(data, "name"),
            email=_require_str(data, "email"),
        )


# ----------------------
# Account
# ----------------------


@dataclass(frozen=True)
class Account:
    """A registered account as stored under ``@auth_users``."""

    id: str
    name: str
    email: str
    """Unique across all accounts, compared case-insensitively."""

    password: str
    """Stored and compared in plaintext (see DESIGN.md)."""

    def to_session_user(self) -> SessionUser:
        """Project this account onto a :class:`SessionUser`."""
        return SessionUser(id=self.id, name=self.name, email=self.email)

    def to_dict(self) -> dict[str, str]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "Account":
        """Build an account from its stored JSON object.

        Raises:
            ValueError: If ``data`` is not a dict or any field is missing or
                not a string.
        """
        if not isinstance(data, dict):
            raise ValueError("Account must be a JSON object")
        return cls(
            id=_require_str(data, "id"),
            name=_require_str(data, "name"),
            email=_require_str(data, "email"),
            password=_require_str(data, "password"),
        )


# ----------------------
# AuthResult
# ----------------------


@dataclass(frozen=True)
class AuthResult:
    """Outcome of a mutating auth operation.

    ``error`` is set only when ``success`` is ``False``.
    """

    success: bool
    error: str | None = None

    @classmethod
    def ok(cls) -> "AuthResult":
        return cls(success=True)

    @classmethod
    def fail(cls, message: str) -> "AuthResult":
        return cls(success=False, error=message)

    def to_dict(self) -> dict:
        if self.success:
            return {"success": True}
        return {"success": False, "error": self.error}


# ----------------------
# AuthState
# ----------------------


class AuthState(str, Enum):
    """Lifecycle states of the auth engine."""

    INITIALIZING = "initializing"
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"


@dataclass(frozen=True)
class AuthSnapshot:
    """An immutable view of the engine state, delivered to subscribers."""

    state: AuthState
    user: SessionUser | None = None
    """Set only when ``state`` is :attr:`AuthState.AUTHENTICATED`."""

    @property
    def is_loading(self) -> bool:
        return self.state is AuthState.INITIALIZING

    @property
    def is_authenticated(self) -> bool:
        return self.state is AuthState.AUTHENTICATED
