"""Unit tests for field and form validation."""

import pytest

from localauth.core.validation import (
    LOGIN_FIELDS,
    SIGNUP_FIELDS,
    FormState,
    is_valid_email,
    validate_all,
    validate_field,
)


class TestName:
    @pytest.mark.parametrize("value", ["", "   "])
    def test_blank_is_required(self, value):
        assert validate_field("name", value) == "Name is required"

    def test_single_char_is_too_short(self):
        assert (
            validate_field("name", " J ")
            == "Name must be at least 2 characters"
        )

    def test_two_chars_is_valid(self):
        assert validate_field("name", "Jo") is None


class TestEmail:
    def test_blank_is_required(self):
        assert validate_field("email", "  ") == "Email is required"

    @pytest.mark.parametrize(
        "value", ["john", "john@", "john@example", "jo hn@example.com", "a@@b.c"]
    )
    def test_incomplete(self, value):
        assert validate_field("email", value) == "Email address is incomplete"

    def test_surrounding_whitespace_is_incomplete(self):
        assert (
            validate_field("email", " john@example.com")
            == "Email address is incomplete"
        )

    @pytest.mark.parametrize(
        "value", ["john@example.com", "a@b.c", "first.last@sub.domain.org"]
    )
    def test_valid(self, value):
        assert validate_field("email", value) is None
        assert is_valid_email(value)

    def test_trailing_newline_is_rejected(self):
        assert not is_valid_email("john@example.com\n")


class TestPassword:
    def test_empty_is_required(self):
        assert validate_field("password", "") == "Password is required"

    def test_five_chars_fails(self):
        assert (
            validate_field("password", "12345")
            == "Password must be at least 6 characters"
        )

    def test_six_chars_passes(self):
        assert validate_field("password", "123456") is None

    def test_whitespace_counts(self):
        assert validate_field("password", "      ") is None


class TestConfirmPassword:
    def test_empty_asks_for_confirmation(self):
        assert (
            validate_field("confirm_password", "", {"password": "secret1"})
            == "Please confirm your password"
        )

    def test_mismatch(self):
        assert (
            validate_field("confirm_password", "secret2", {"password": "secret1"})
            == "Passwords do not match"
        )

    def test_match(self):
        assert (
            validate_field("confirm_password", "secret1", {"password": "secret1"})
            is None
        )

    def test_without_context_any_value_mismatches(self):
        assert validate_field("confirm_password", "x") == "Passwords do not match"

    def test_camel_case_key_is_validated(self):
        assert (
            validate_field("confirmPassword", "x", {"password": "y"})
            == "Passwords do not match"
        )
        assert validate_field("confirmPassword", "", {}) == (
            "Please confirm your password"
        )

    def test_camel_case_key_in_validate_all(self):
        errors = validate_all({"password": "secret1", "confirmPassword": "secret2"})
        assert errors == {"confirmPassword": "Passwords do not match"}


def test_unknown_field_never_fails():
    assert validate_field("nickname", "") is None


class TestValidateAll:
    def test_reports_every_invalid_field(self):
        errors = validate_all(
            {"name": "", "email": "bad", "password": "123", "confirm_password": ""}
        )
        assert errors == {
            "name": "Name is required",
            "email": "Email address is incomplete",
            "password": "Password must be at least 6 characters",
            "confirm_password": "Please confirm your password",
        }

    def test_valid_form_has_no_errors(self):
        errors = validate_all(
            {
                "name": "John Doe",
                "email": "john@example.com",
                "password": "password123",
                "confirm_password": "password123",
            }
        )
        assert errors == {}

    def test_names_restricts_fields(self):
        errors = validate_all(
            {"name": "", "email": "john@example.com", "password": "1"},
            names=LOGIN_FIELDS,
        )
        assert errors == {"password": "Password must be at least 6 characters"}

    def test_missing_named_field_is_validated_as_empty(self):
        errors = validate_all({}, names=["email"])
        assert errors == {"email": "Email is required"}


class TestFormState:
    def test_errors_hidden_until_touched(self):
        form = FormState(SIGNUP_FIELDS)
        form.update("password", "123")
        assert form.errors["password"] == "Password must be at least 6 characters"
        assert form.visible_error("password") is None
        form.blur("password")
        assert (
            form.visible_error("password")
            == "Password must be at least 6 characters"
        )

    def test_typing_clears_error(self):
        form = FormState(LOGIN_FIELDS)
        form.blur("email")
        assert form.visible_error("email") == "Email is required"
        form.update("email", "j")
        assert form.visible_error("email") is None

    def test_blur_does_not_clear_existing_error(self):
        form = FormState(LOGIN_FIELDS)
        form.errors["email"] = "Email is required"
        form.update("email", "john@example.com")
        form.errors["email"] = "stale"
        form.blur("email")
        assert form.errors["email"] == "stale"

    def test_submit_touches_all_and_reports_all(self):
        form = FormState(SIGNUP_FIELDS)
        assert form.submit() is False
        assert all(form.touched.values())
        assert set(form.errors) == set(SIGNUP_FIELDS)

    def test_submit_valid_form(self):
        form = FormState(SIGNUP_FIELDS)
        form.update("name", "John Doe")
        form.update("email", "john@example.com")
        form.update("password", "password123")
        form.update("confirm_password", "password123")
        assert form.submit() is True
        assert form.errors == {}

    def test_confirm_password_live_mismatch(self):
        form = FormState(SIGNUP_FIELDS)
        form.update("password", "secret1")
        form.update("confirm_password", "secret")
        assert form.errors["confirm_password"] == "Passwords do not match"
        form.update("confirm_password", "secret1")
        assert "confirm_password" not in form.errors

    def test_password_change_rechecks_touched_confirmation(self):
        form = FormState(SIGNUP_FIELDS)
        form.update("password", "secret1")
        form.update("confirm_password", "secret1")
        form.blur("confirm_password")
        form.update("password", "secret2")
        assert form.visible_error("confirm_password") == "Passwords do not match"
        form.update("password", "secret1")
        assert form.visible_error("confirm_password") is None

    def test_password_match_status(self):
        form = FormState(SIGNUP_FIELDS)
        form.update("password", "secret1")
        assert form.password_match_status() is None
        form.update("confirm_password", "secret")
        assert form.password_match_status() == "mismatch"
        form.update("confirm_password", "secret1")
        assert form.password_match_status() == "match"
