"""Fetch-or-create lifecycle of the KMS-encrypted signing key."""

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from vouch.crypto.keys import generate_secret_key
from vouch.crypto.kms import KmsClient
from vouch.db.repo_keys import get_signing_key, insert_key_if_absent

logger = structlog.get_logger(__name__)


class KeyLifecycleManager:
    """Sole owner of the stored signing key.

    The key is created lazily on first use and never mutated afterwards.
    Only the KMS ciphertext ever reaches storage.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        kms: KmsClient,
        key_id: str,
        algorithm: str,
    ) -> None:
        self._session_factory = session_factory
        self._kms = kms
        self._key_id = key_id
        self._algorithm = algorithm

    async def get_encrypted_signing_key(self) -> bytes:
        """Return the stored key ciphertext, generating and storing it if absent."""
        async with self._session_factory() as session:
            existing = await get_signing_key(session, self._key_id)
            if existing is not None:
                return existing.encrypted_material

            logger.info("signing_key_not_found", key_id=self._key_id)
            ciphertext = await self._kms.encrypt(generate_secret_key(self._algorithm))
            try:
                stored = await insert_key_if_absent(session, self._key_id, ciphertext)
                material = stored.encrypted_material
                await session.commit()
            except Exception:
                await session.rollback()
                raise

        if material == ciphertext:
            logger.info("signing_key_stored", key_id=self._key_id)
        else:
            logger.info("signing_key_created_concurrently", key_id=self._key_id)
        return material
