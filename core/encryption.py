"""AES-256-GCM encryption of individual record fields."""

import hashlib
import logging
import os
import re

from accountform.core.config import ENCRYPTION_AAD
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

logger = logging.getLogger(__name__)

NONCE_SIZE = 12
TAG_SIZE = 16

_HEX_KEY = re.compile(r"^[0-9a-fA-F]{64}$")


class FieldCipher:
    """Encrypts strings to ``nonce:tag:ciphertext`` (hex) tokens."""

    def __init__(self, key: bytes, aad: bytes = ENCRYPTION_AAD):
        if len(key) != 32:
            raise ValueError("AES-256 requires a 32-byte key")
        self._key = key
        self._aad = aad

    @classmethod
    def from_secret(cls, secret: str) -> "FieldCipher":
        """Build from ENCRYPTION_KEY: 64 hex chars, any passphrase, or empty.

        An empty secret yields a random per-process key, so data encrypted
        before a restart can no longer be read.
        """
        if not secret:
            logger.warning("ENCRYPTION_KEY not set; using an ephemeral key")
            return cls(os.urandom(32))
        if _HEX_KEY.match(secret):
            return cls(bytes.fromhex(secret))
        return cls(hashlib.sha256(secret.encode("utf-8")).digest())

    def encrypt(self, plaintext: str) -> str:
        nonce = os.urandom(NONCE_SIZE)
        encryptor = Cipher(algorithms.AES(self._key), modes.GCM(nonce)).encryptor()
        encryptor.authenticate_additional_data(self._aad)
        ciphertext = encryptor.update(plaintext.encode("utf-8")) + encryptor.finalize()
        return f"{nonce.hex()}:{encryptor.tag.hex()}:{ciphertext.hex()}"

    def decrypt(self, token: str) -> str:
        """Raises ValueError if the token is malformed or was tampered with."""
        try:
            nonce_hex, tag_hex, ciphertext_hex = token.split(":")
            nonce = bytes.fromhex(nonce_hex)
            tag = bytes.fromhex(tag_hex)
            ciphertext = bytes.fromhex(ciphertext_hex)
        except ValueError as e:
            raise ValueError("Malformed encrypted value") from e

        if len(nonce) != NONCE_SIZE or len(tag) != TAG_SIZE:
            raise ValueError("Malformed encrypted value")

        decryptor = Cipher(algorithms.AES(self._key), modes.GCM(nonce, tag)).decryptor()
        decryptor.authenticate_additional_data(self._aad)
        try:
            plaintext = decryptor.update(ciphertext) + decryptor.finalize()
        except InvalidTag as e:
            raise ValueError("Decryption failed") from e
        return plaintext.decode("utf-8")


def hash_value(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()
