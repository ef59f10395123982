"""HMAC signing algorithm lookup and secret key generation."""

import base64
import secrets

import structlog

from vouch.core.errors import AuthError, ErrorKind
from vouch.crypto.types import SigningAlgorithm

logger = structlog.get_logger(__name__)

_ALGORITHMS = {
    "HMACSHA256": SigningAlgorithm(name="HMAC-SHA256", jwt_alg="HS256", key_bytes=32),
    "HMACSHA384": SigningAlgorithm(name="HMAC-SHA384", jwt_alg="HS384", key_bytes=48),
    "HMACSHA512": SigningAlgorithm(name="HMAC-SHA512", jwt_alg="HS512", key_bytes=64),
}


def _normalize(name: str) -> str:
    return name.upper().replace("-", "").replace("_", "")


def resolve_algorithm(name: str) -> SigningAlgorithm:
    """Return the algorithm for a configured name such as ``HMAC-SHA256``.

    Accepts ``HmacSHA256`` style spellings too. Raises ``InvalidAlgorithm``
    for anything else; the service cannot sign or verify without it.
    """
    algorithm = _ALGORITHMS.get(_normalize(name))
    if algorithm is None:
        logger.warning("signing_algorithm_not_found", algorithm=name)
        raise AuthError(ErrorKind.INVALID_ALGORITHM, "Algorithm not found")
    return algorithm


def generate_secret_key(algorithm_name: str) -> bytes:
    """Generate a random key for the algorithm, base64-encoded."""
    algorithm = resolve_algorithm(algorithm_name)
    return base64.b64encode(secrets.token_bytes(algorithm.key_bytes))
