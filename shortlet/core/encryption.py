"""AES-256-GCM encryption for payout account numbers.

Ciphertexts are bound to the owning host through GCM associated data, so an
encrypted number copied onto another host's account no longer decrypts.
"""

import os
from dataclasses import dataclass
from functools import lru_cache
from uuid import UUID

from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from shortlet.config import settings

NONCE_SIZE = 12


class EncryptionService:
    """AES-256-GCM encryption service for bank account numbers."""

    def __init__(self, key: bytes) -> None:
        """Initialize with 32-byte key for AES-256."""
        if len(key) != 32:
            raise ValueError("Encryption key must be 32 bytes for AES-256")
        self._aesgcm = AESGCM(key)

    def encrypt(self, plaintext: str, associated_data: bytes | None = None) -> bytes:
        """Encrypt a string and return bytes (nonce + ciphertext)."""
        nonce = os.urandom(NONCE_SIZE)
        return nonce + self._aesgcm.encrypt(nonce, plaintext.encode("utf-8"), associated_data)

    def decrypt(self, ciphertext: bytes, associated_data: bytes | None = None) -> str:
        """Decrypt bytes produced by :meth:`encrypt` with the same associated data."""
        if len(ciphertext) <= NONCE_SIZE:
            raise ValueError("Ciphertext too short")
        nonce, encrypted_data = ciphertext[:NONCE_SIZE], ciphertext[NONCE_SIZE:]
        return self._aesgcm.decrypt(nonce, encrypted_data, associated_data).decode("utf-8")


@lru_cache
def get_encryption_service() -> EncryptionService:
    """Get cached encryption service instance."""
    key = settings.encryption_key.encode("utf-8")
    return EncryptionService(key.ljust(32, b"\0")[:32])


@dataclass(frozen=True)
class SealedAccountNumber:
    ciphertext: bytes
    masked: str


def mask_account_number(account_number: str) -> str:
    """Keep the last four digits visible."""
    if len(account_number) <= 4:
        return account_number
    return "*" * (len(account_number) - 4) + account_number[-4:]


def seal_account_number(account_number: str, host_id: UUID) -> SealedAccountNumber:
    return SealedAccountNumber(
        ciphertext=get_encryption_service().encrypt(account_number, host_id.bytes),
        masked=mask_account_number(account_number),
    )


def open_account_number(ciphertext: bytes, host_id: UUID) -> str:
    """Decrypt a host's account number for a transfer.

    Raises:
        cryptography.exceptions.InvalidTag: If the ciphertext belongs to another host
    """
    return get_encryption_service().decrypt(ciphertext, host_id.bytes)
