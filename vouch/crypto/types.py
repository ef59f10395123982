"""Type definitions for signing keys and bearer tokens."""

from pydantic import BaseModel, ConfigDict


class SigningAlgorithm(BaseModel):
    """An HMAC signing algorithm the key manager can generate keys for."""

    model_config = ConfigDict(frozen=True)

    name: str
    jwt_alg: str
    key_bytes: int


class DecodedToken(BaseModel):
    """Verified bearer token claims."""

    model_config = ConfigDict(extra="allow")

    sub: str = ""
    iat: float
    exp: float
