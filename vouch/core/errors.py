"""Error kinds raised by the credential and token services.

Every failure the services raise on purpose is an ``AuthError`` tagged with
an ``ErrorKind``. The mapping from kind to HTTP status lives in
``vouch.api.errors`` and nowhere else.
"""

from enum import StrEnum


class ErrorKind(StrEnum):
    """Tag for an ``AuthError``."""

    INVALID_ALGORITHM = "invalid_algorithm"
    TOKEN_INVALID = "token_invalid"
    USER_NOT_FOUND = "user_not_found"
    TOKEN_NOT_FOUND = "token_not_found"
    ALREADY_ACTIVATED = "already_activated"
    EXPIRED = "expired"
    USER_EXISTS = "user_exists"
    BAD_CREDENTIALS = "bad_credentials"
    FORBIDDEN = "forbidden"


class AuthError(Exception):
    """A classified failure of an authentication or token operation."""

    def __init__(self, kind: ErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message

    def __repr__(self) -> str:
        return f"AuthError({self.kind.value!r}, {self.message!r})"
