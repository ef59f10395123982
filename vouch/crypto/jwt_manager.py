"""Bearer token issuance and verification with the KMS-protected HMAC key."""

import base64
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import jwt
from jwt.types import Options
from pydantic import ValidationError

from vouch.core.errors import AuthError, ErrorKind
from vouch.crypto.key_manager import KeyLifecycleManager
from vouch.crypto.keys import resolve_algorithm
from vouch.crypto.kms import KmsClient
from vouch.crypto.types import DecodedToken

Clock = Callable[[], datetime]

# Expiry is checked by ``validate`` against the injected clock, not by PyJWT.
_DECODE_OPTIONS: Options = {
    "verify_exp": False,
    "verify_iat": False,
    "require": ["sub", "iat", "exp"],
}


def _utcnow() -> datetime:
    return datetime.now(UTC)


class JWTManager:
    """Issues and verifies HMAC-signed bearer tokens.

    The signing key is fetched and decrypted on every call; nothing is cached.
    ``iat`` and ``exp`` are fractional epoch seconds so that millisecond TTLs
    survive encoding.
    """

    def __init__(
        self,
        key_manager: KeyLifecycleManager,
        kms: KmsClient,
        algorithm: str,
        ttl_ms: int,
        clock: Clock = _utcnow,
    ) -> None:
        self._key_manager = key_manager
        self._kms = kms
        self._algorithm = algorithm
        self._ttl = timedelta(milliseconds=ttl_ms)
        self._clock = clock

    async def _signing_key(self) -> bytes:
        encrypted = await self._key_manager.get_encrypted_signing_key()
        encoded = await self._kms.decrypt(encrypted)
        return base64.b64decode(encoded)

    async def issue(self, subject: str) -> str:
        """Create a signed token for ``subject`` expiring after the TTL."""
        jwt_alg = resolve_algorithm(self._algorithm).jwt_alg
        now = self._clock()
        payload = {
            "sub": subject,
            "iat": now.timestamp(),
            "exp": (now + self._ttl).timestamp(),
        }
        return jwt.encode(payload, await self._signing_key(), algorithm=jwt_alg)

    async def decode(self, token: str) -> DecodedToken:
        """Verify the signature and return the claims, expired or not."""
        jwt_alg = resolve_algorithm(self._algorithm).jwt_alg
        key = await self._signing_key()
        try:
            raw = jwt.decode(token, key, algorithms=[jwt_alg], options=_DECODE_OPTIONS)
            return DecodedToken.model_validate(raw)
        except (jwt.PyJWTError, ValidationError) as exc:
            raise AuthError(ErrorKind.TOKEN_INVALID, "JWT is invalid") from exc

    async def extract_subject(self, token: str) -> str:
        """Return the token subject; raises ``TokenInvalid`` on bad signatures."""
        return (await self.decode(token)).sub

    async def validate(self, token: str, expected_subject: str) -> bool:
        """True iff the subject matches and the token has not yet expired."""
        claims = await self.decode(token)
        if claims.sub != expected_subject:
            return False
        return claims.exp > self._clock().timestamp()
