"""Field-level and form-level validation for the login and signup forms.

:func:`validate_field` and :func:`validate_all` are pure functions over raw
input strings.  :class:`FormState` layers the interactive behaviour of a form
on top of them: values, current errors, and the *touched* flags that decide
when an error is shown to the user.

Example usage::

    errors = validate_all(
        {"email": "john@", "password": "123"}, names=LOGIN_FIELDS
    )
    # {"email": "Email address is incomplete",
    #  "password": "Password must be at least 6 characters"}
"""

import re
from collections.abc import Iterable, Mapping

MIN_NAME_LENGTH = 2
MIN_PASSWORD_LENGTH = 6

EMAIL_PATTERN = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")

LOGIN_FIELDS: tuple[str, ...] = ("email", "password")
SIGNUP_FIELDS: tuple[str, ...] = ("name", "email", "password", "confirm_password")

PASSWORD_TOO_SHORT = (
    f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
)
PASSWORDS_DO_NOT_MATCH = "Passwords do not match"


def is_valid_email(value: str) -> bool:
    """Return ``True`` if *value* looks like ``local@domain.tld``.

    The whole string must match; surrounding whitespace makes it invalid.
    """
    return EMAIL_PATTERN.fullmatch(value) is not None


# ---------------------------------------------------------------------------
# Per-field rules
# ---------------------------------------------------------------------------


def _validate_name(value: str, context: Mapping[str, str]) -> str | None:
    trimmed = value.strip()
    if not trimmed:
        return "Name is required"
    if len(trimmed) < MIN_NAME_LENGTH:
        return f"Name must be at least {MIN_NAME_LENGTH} characters"
    return None


def _validate_email(value: str, context: Mapping[str, str]) -> str | None:
    if not value.strip():
        return "Email is required"
    if not is_valid_email(value):
        return "Email address is incomplete"
    return None


def _validate_password(value: str, context: Mapping[str, str]) -> str | None:
    if not value:
        return "Password is required"
    if len(value) < MIN_PASSWORD_LENGTH:
        return PASSWORD_TOO_SHORT
    return None


def _validate_confirm_password(
    value: str, context: Mapping[str, str]
) -> str | None:
    if not value:
        return "Please confirm your password"
    if value != context.get("password", ""):
        return PASSWORDS_DO_NOT_MATCH
    return None


_RULES = {
    "name": _validate_name,
    "email": _validate_email,
    "password": _validate_password,
    "confirm_password": _validate_confirm_password,
    # camelCase key used by form payloads
    "confirmPassword": _validate_confirm_password,
}


def validate_field(
    field: str,
    value: str,
    context: Mapping[str, str] | None = None,
) -> str | None:
    """Return the validation error for a single field, or ``None``.

    Args:
        field: Field name (``name``, ``email``, ``password`` or
            ``confirm_password``, also accepted as ``confirmPassword``).
            Unknown fields never fail.
        value: The raw, untrimmed input.
        context: The other values of the form.  ``confirm_password`` is
            compared against ``context["password"]``.

    Returns:
        A human-readable error message, or ``None`` when the value is valid.
    """
    rule = _RULES.get(field)
    if rule is None:
        return None
    return rule(value, context or {})


def validate_all(
    fields: Mapping[str, str],
    names: Iterable[str] | None = None,
) -> dict[str, str]:
    """Validate every field of a form and return all errors together.

    No rule short-circuits another: every invalid field is reported.

    Args:
        fields: Mapping of field name to raw value.  Also used as the
            context for cross-field rules.
        names: Fields to validate.  Defaults to every key of *fields* that
            has a rule.  A name missing from *fields* is validated as an
            empty string.

    Returns:
        A mapping of field name to error message.  Valid fields are absent.
    """
    if names is None:
        names = [f for f in fields if f in _RULES]
    errors: dict[str, str] = {}
    for field in names:
        error = validate_field(field, fields.get(field, ""), fields)
        if error:
            errors[field] = error
    return errors


# ---------------------------------------------------------------------------
# Interactive form state
# ---------------------------------------------------------------------------


class FormState:
    """Values, errors and touched flags of one form.

    Errors are recorded as the user types and blurs fields, but a field's
    error is only *visible* once that field has been touched.  Submitting the
    form validates everything and touches every field.

    Args:
        fields: The field names of this form, e.g. :data:`SIGNUP_FIELDS`.
    """

    def __init__(self, fields: Iterable[str]):
        self.fields: tuple[str, ...] = tuple(fields)
        self.values: dict[str, str] = {f: "" for f in self.fields}
        self.errors: dict[str, str] = {}
        self.touched: dict[str, bool] = {f: False for f in self.fields}

    def update(self, field: str, value: str) -> None:
        """Store a new value, as on every keystroke.

        Any existing error for the field is cleared.  Password fields are
        also re-checked live so a mismatch shows up before blur.
        """
        self.values[field] = value
        self.errors.pop(field, None)

        if field == "password":
            if 0 < len(value) < MIN_PASSWORD_LENGTH:
                self.errors["password"] = PASSWORD_TOO_SHORT
            confirm = self.values.get("confirm_password", "")
            if self.touched.get("confirm_password") and confirm:
                if value != confirm:
                    self.errors["confirm_password"] = PASSWORDS_DO_NOT_MATCH
                else:
                    self.errors.pop("confirm_password", None)
        elif field == "confirm_password":
            if value and value != self.values.get("password", ""):
                self.errors["confirm_password"] = PASSWORDS_DO_NOT_MATCH

    def blur(self, field: str) -> None:
        """Mark a field as touched and record its error, if any."""
        self.touched[field] = True
        error = validate_field(field, self.values.get(field, ""), self.values)
        if error:
            self.errors[field] = error

    def submit(self) -> bool:
        """Validate every field and touch them all.

        Returns:
            ``True`` if the form has no errors.
        """
        self.errors = validate_all(self.values, names=self.fields)
        self.touched = {f: True for f in self.fields}
        return not self.errors

    def visible_error(self, field: str) -> str | None:
        """Return the field's error only if the field has been touched."""
        if not self.touched.get(field):
            return None
        return self.errors.get(field)

    def password_match_status(self) -> str | None:
        """Return ``"match"``, ``"mismatch"``, or ``None`` while unconfirmed."""
        confirm = self.values.get("confirm_password", "")
        if not confirm:
            return None
        if confirm == self.values.get("password", ""):
            return "match"
        return "mismatch"
