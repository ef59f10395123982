"""Envelope encryption through a remote or local symmetric KMS key.

Both clients are bound to one key id and one AAD context at construction.
A value encrypted under one AAD context can only be decrypted under the same
context.
"""

import asyncio
import base64
import os
from typing import Any, Protocol

import boto3
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from vouch.core.settings import AuthSettings

NONCE_BYTES = 12
AAD_CONTEXT_KEY = "aad"


class KmsClient(Protocol):
    """Encrypt/decrypt oracle keyed by a fixed key id and AAD context."""

    async def encrypt(self, plaintext: bytes) -> bytes: ...

    async def decrypt(self, ciphertext: bytes) -> bytes: ...


class AwsKmsClient:
    """KMS client backed by AWS KMS symmetric keys.

    boto3 is blocking, so calls run in a worker thread. Service and transport
    errors (``botocore.exceptions.ClientError`` and friends) propagate as is.
    """

    def __init__(self, client: Any, key_id: str, aad_context: str) -> None:
        self._client = client
        self._key_id = key_id
        self._context = {AAD_CONTEXT_KEY: aad_context}

    async def encrypt(self, plaintext: bytes) -> bytes:
        resp = await asyncio.to_thread(
            self._client.encrypt,
            KeyId=self._key_id,
            Plaintext=plaintext,
            EncryptionContext=self._context,
        )
        return resp["CiphertextBlob"]

    async def decrypt(self, ciphertext: bytes) -> bytes:
        resp = await asyncio.to_thread(
            self._client.decrypt,
            KeyId=self._key_id,
            CiphertextBlob=ciphertext,
            EncryptionContext=self._context,
        )
        return resp["Plaintext"]


class LocalKmsClient:
    """In-process AES-256-GCM stand-in for the remote KMS.

    Ciphertext layout is ``nonce || AEAD output``. The key id and the AAD
    context are both bound as associated data, so a mismatch on decrypt
    raises ``cryptography.exceptions.InvalidTag``.
    """

    def __init__(self, master_key: bytes, key_id: str, aad_context: str) -> None:
        self._aead = AESGCM(master_key)
        self._associated = f"{key_id}\x00{aad_context}".encode()

    async def encrypt(self, plaintext: bytes) -> bytes:
        nonce = os.urandom(NONCE_BYTES)
        return nonce + self._aead.encrypt(nonce, plaintext, self._associated)

    async def decrypt(self, ciphertext: bytes) -> bytes:
        nonce, body = ciphertext[:NONCE_BYTES], ciphertext[NONCE_BYTES:]
        return self._aead.decrypt(nonce, body, self._associated)


def build_kms_client(settings: AuthSettings) -> KmsClient:
    """Create the KMS client selected by ``AUTH_KMS_PROVIDER``."""
    if settings.kms_provider == "local":
        return LocalKmsClient(
            master_key=base64.b64decode(settings.local_kms_master_key),
            key_id=settings.kms_key_id,
            aad_context=settings.kms_aad_context,
        )
    if settings.kms_provider == "aws":
        return AwsKmsClient(
            client=boto3.client("kms", region_name=settings.kms_region),
            key_id=settings.kms_key_id,
            aad_context=settings.kms_aad_context,
        )
    raise ValueError(f"Unknown KMS provider: {settings.kms_provider}")
