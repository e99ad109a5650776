import pytest

from clientportal.core.exceptions import (
    AuthError,
    ConflictError,
    ForbiddenError,
    InvalidOrExpiredTokenError,
    InvalidTokenError,
    LockedError,
    NotFoundError,
    UnauthorizedError,
    ValidationFailedError,
)


@pytest.mark.parametrize(
    "error,kind,status",
    [
        (ValidationFailedError("bad"), "validation_failed", 400),
        (InvalidOrExpiredTokenError(), "invalid_or_expired_token", 400),
        (UnauthorizedError("no"), "unauthorized", 401),
        (InvalidTokenError("no"), "invalid_token", 401),
        (ForbiddenError("no"), "forbidden", 403),
        (NotFoundError("gone"), "not_found", 404),
        (ConflictError("taken"), "conflict", 409),
        (LockedError(3), "locked", 423),
    ],
)
def test_error_classification(error, kind, status):
    assert isinstance(error, AuthError)
    assert error.kind == kind
    assert error.status_code == status


def test_invalid_token_is_unauthorized():
    assert isinstance(InvalidTokenError("x"), UnauthorizedError)


def test_locked_message_and_details():
    error = LockedError(7)
    assert error.message == "Account locked. Try again in 7 minutes."
    assert error.minutes_remaining == 7
    assert error.to_dict() == {
        "error": "locked",
        "message": "Account locked. Try again in 7 minutes.",
        "details": {"minutes_remaining": 7},
    }


def test_to_dict_omits_empty_details():
    assert ConflictError("Email already in use").to_dict() == {
        "error": "conflict",
        "message": "Email already in use",
    }


def test_default_token_message():
    assert str(InvalidOrExpiredTokenError()) == "Token invalid or expired"
