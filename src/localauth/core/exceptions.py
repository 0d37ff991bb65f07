"""Domain exceptions for the localauth library.

These never escape :class:`~localauth.services.auth_service.AuthService`;
the service converts each of them into a failed
:class:`~localauth.core.models.AuthResult`.
"""


class LocalAuthError(Exception):
    """Base class for all localauth library exceptions."""


class InvalidInputError(LocalAuthError):
    """Raised when a required field is missing at the coarse pre-check."""


class InvalidFormatError(LocalAuthError):
    """Raised when an email or password does not have the required shape."""


class InvalidCredentialsError(LocalAuthError):
    """Raised when no account matches the supplied email and password."""


class DuplicateEmailError(LocalAuthError):
    """Raised when an account with the same email (any case) already exists."""


class StorageError(LocalAuthError):
    """Raised when the key-value store fails to read or write.

    The underlying backend exception (``OSError``, ``sqlite3.Error``, …) is
    always chained as ``__cause__``.
    """
