"""Password hashing and verification using Argon2id."""

import argon2

_hasher = argon2.PasswordHasher(
    time_cost=2,
    memory_cost=65536,
    parallelism=1,
)

# Verified against when the account does not exist, so unknown emails cost
# the same as wrong passwords.
_DUMMY_HASH = _hasher.hash("vouch-dummy-password")


def hash_password(password: str) -> str:
    """Hash a password using Argon2id."""
    return _hasher.hash(password)


def verify_password(plain: str, hashed: str | None) -> bool:
    """Verify a plaintext password against its Argon2 hash.

    A missing hash still runs a full verification and returns False.
    """
    try:
        return _hasher.verify(hashed or _DUMMY_HASH, plain) and hashed is not None
    except (
        argon2.exceptions.VerifyMismatchError,
        argon2.exceptions.InvalidHashError,
    ):
        return False
