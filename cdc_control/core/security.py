"""
Credential decryption for data source passwords.

Values are produced by ``encrypt_value()`` as
base64(nonce + ciphertext + tag), AES-256-GCM with a 96-bit nonce.
"""

import base64
import binascii
import os
from functools import lru_cache

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM


NONCE_SIZE = 12


@lru_cache(maxsize=4)
def get_cipher(key: str) -> AESGCM:
    """
    Get AES-256-GCM cipher instance for a master key.

    Accepts a base64-encoded 32 byte key or a raw 32 byte string.
    Fails loudly if the key is invalid rather than silently padding.
    """
    try:
        key_bytes = base64.b64decode(key, validate=True)
        if len(key_bytes) == 32:
            return AESGCM(key_bytes)
    except (binascii.Error, ValueError):
        pass

    if len(key.encode("utf-8")) == 32:
        return AESGCM(key.encode("utf-8"))

    raise ValueError(
        f"Credential encryption key must be exactly 32 bytes "
        f"(or base64-encoded 32 bytes). Got {len(key.encode('utf-8'))} bytes."
    )


def encrypt_value(value: str, key: str) -> str:
    """Encrypt a string value using AES-256-GCM."""
    if not value:
        return value

    nonce = os.urandom(NONCE_SIZE)
    ciphertext = get_cipher(key).encrypt(nonce, value.encode("utf-8"), None)
    return base64.b64encode(nonce + ciphertext).decode("utf-8")


def decrypt_value(encrypted_value: str, key: str) -> str:
    """Decrypt a base64-encoded AES-256-GCM encrypted string."""
    if not encrypted_value:
        return encrypted_value

    try:
        combined = base64.b64decode(encrypted_value)
        nonce = combined[:NONCE_SIZE]
        ciphertext = combined[NONCE_SIZE:]
        plaintext = get_cipher(key).decrypt(nonce, ciphertext, None)
        return plaintext.decode("utf-8")
    except (binascii.Error, InvalidTag, UnicodeDecodeError) as e:
        raise ValueError(f"Decryption failed: {e}") from e
