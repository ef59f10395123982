"""Tests for the signing key fetch-or-create lifecycle."""

import asyncio
import base64

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tests.conftest import KMS_KEY_ID, SIGNING_KEY_ID
from vouch.core.errors import AuthError, ErrorKind
from vouch.crypto.key_manager import KeyLifecycleManager
from vouch.crypto.kms import LocalKmsClient
from vouch.db.repo_keys import get_signing_key


class CountingKms(LocalKmsClient):
    """LocalKmsClient that counts encrypt calls."""

    def __init__(self, master_key: bytes) -> None:
        super().__init__(master_key, KMS_KEY_ID, "ctx")
        self.encrypt_calls = 0

    async def encrypt(self, plaintext: bytes) -> bytes:
        self.encrypt_calls += 1
        return await super().encrypt(plaintext)


class RendezvousKms(CountingKms):
    """Holds every encrypt call until ``parties`` callers are inside it."""

    def __init__(self, master_key: bytes, parties: int) -> None:
        super().__init__(master_key)
        self._barrier = asyncio.Barrier(parties)
        self.produced: list[bytes] = []

    async def encrypt(self, plaintext: bytes) -> bytes:
        ciphertext = await super().encrypt(plaintext)
        self.produced.append(ciphertext)
        await self._barrier.wait()
        return ciphertext


class FailingKms(LocalKmsClient):
    """LocalKmsClient whose encrypt always fails like a remote outage."""

    async def encrypt(self, plaintext: bytes) -> bytes:
        raise ConnectionError("kms unreachable")


@pytest.fixture
def counting_kms() -> CountingKms:
    return CountingKms(b"k" * 32)


def _manager(
    factory: async_sessionmaker[AsyncSession], kms: LocalKmsClient, algorithm: str
) -> KeyLifecycleManager:
    return KeyLifecycleManager(factory, kms, key_id=SIGNING_KEY_ID, algorithm=algorithm)


class TestGetEncryptedSigningKey:
    """Tests for KeyLifecycleManager.get_encrypted_signing_key."""

    async def test_first_call_generates_encrypts_and_stores(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        counting_kms: CountingKms,
    ) -> None:
        manager = _manager(session_factory, counting_kms, "HMAC-SHA256")
        ciphertext = await manager.get_encrypted_signing_key()

        assert counting_kms.encrypt_calls == 1
        async with session_factory() as session:
            stored = await get_signing_key(session, SIGNING_KEY_ID)
        assert stored is not None
        assert stored.encrypted_material == ciphertext

        plaintext = await counting_kms.decrypt(ciphertext)
        assert len(base64.b64decode(plaintext)) == 32

    async def test_second_call_returns_same_ciphertext_without_encrypting(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        counting_kms: CountingKms,
    ) -> None:
        manager = _manager(session_factory, counting_kms, "HMAC-SHA256")
        first = await manager.get_encrypted_signing_key()
        second = await manager.get_encrypted_signing_key()
        assert first == second
        assert counting_kms.encrypt_calls == 1

    async def test_existing_key_is_returned_unchanged(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        counting_kms: CountingKms,
    ) -> None:
        await _manager(session_factory, counting_kms, "HMAC-SHA256").get_encrypted_signing_key()
        other = CountingKms(b"k" * 32)
        again = await _manager(session_factory, other, "HMAC-SHA512").get_encrypted_signing_key()
        assert other.encrypt_calls == 0
        assert len(base64.b64decode(await other.decrypt(again))) == 32

    async def test_invalid_algorithm_is_fatal_and_stores_nothing(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        counting_kms: CountingKms,
    ) -> None:
        manager = _manager(session_factory, counting_kms, "NOT-AN-ALGORITHM")
        with pytest.raises(AuthError) as exc_info:
            await manager.get_encrypted_signing_key()
        assert exc_info.value.kind is ErrorKind.INVALID_ALGORITHM
        assert counting_kms.encrypt_calls == 0
        async with session_factory() as session:
            assert await get_signing_key(session, SIGNING_KEY_ID) is None

    async def test_kms_failure_propagates_and_stores_nothing(
        self,
        session_factory: async_sessionmaker[AsyncSession],
    ) -> None:
        manager = _manager(
            session_factory, FailingKms(b"k" * 32, KMS_KEY_ID, "ctx"), "HMAC-SHA256"
        )
        with pytest.raises(ConnectionError):
            await manager.get_encrypted_signing_key()
        async with session_factory() as session:
            assert await get_signing_key(session, SIGNING_KEY_ID) is None


class TestConcurrentFirstUse:
    """Concurrent first-time callers against separate database connections."""

    async def test_callers_converge_on_one_stored_key(
        self, file_session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        callers = 5
        kms = RendezvousKms(b"k" * 32, parties=callers)
        managers = [
            _manager(file_session_factory, kms, "HMAC-SHA256") for _ in range(callers)
        ]

        results = await asyncio.gather(
            *(m.get_encrypted_signing_key() for m in managers)
        )

        assert kms.encrypt_calls == callers
        assert len(set(results)) == 1
        winner = results[0]
        assert winner in kms.produced
        assert sum(c != winner for c in kms.produced) == callers - 1
        async with file_session_factory() as session:
            stored = await get_signing_key(session, SIGNING_KEY_ID)
        assert stored is not None
        assert stored.encrypted_material == winner

    async def test_later_callers_reuse_converged_key(
        self, file_session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        kms = RendezvousKms(b"k" * 32, parties=3)
        first = await asyncio.gather(
            *(
                _manager(file_session_factory, kms, "HMAC-SHA256").get_encrypted_signing_key()
                for _ in range(3)
            )
        )
        later = await _manager(
            file_session_factory, kms, "HMAC-SHA256"
        ).get_encrypted_signing_key()
        assert later == first[0]
        assert kms.encrypt_calls == 3
