"""
Symmetric encryption for the refresh tokens handed out to clients.

- Algorithm: AES-256-GCM
- Key: SHA-256 of the configured secret string
- Nonce: random 12 bytes per encryption
- Format: hex(nonce):hex(ciphertext + tag)

The GCM tag authenticates the envelope, so a wrong secret or an edited
envelope fails loudly instead of decrypting to garbage.
"""

import hashlib
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .errors import DecryptionError

NONCE_LENGTH = 12  # 96 bits, the GCM standard


def _derive_key(secret: str) -> bytes:
    return hashlib.sha256(secret.encode("utf-8")).digest()


def encrypt(plaintext: str, secret: str) -> str:
    """
    Encrypt a token string for the client to hold.

    Args:
        plaintext: The raw token
        secret: The server-held encryption secret

    Returns:
        str: Envelope in format "nonce_hex:ciphertext_hex"
    """
    nonce = os.urandom(NONCE_LENGTH)
    ciphertext = AESGCM(_derive_key(secret)).encrypt(nonce, plaintext.encode("utf-8"), None)
    return nonce.hex() + ":" + ciphertext.hex()


def decrypt(envelope: str, secret: str) -> str:
    """
    Recover a token from an envelope produced by `encrypt`.

    Raises:
        DecryptionError: If the envelope is malformed, was tampered with, or
            was encrypted under a different secret
    """
    if not isinstance(envelope, str):
        raise DecryptionError("Encrypted token must be a string")

    nonce_hex, sep, ciphertext_hex = envelope.partition(":")
    if not sep:
        raise DecryptionError("Encrypted token is missing its nonce")

    try:
        nonce = bytes.fromhex(nonce_hex)
        ciphertext = bytes.fromhex(ciphertext_hex)
    except ValueError as e:
        raise DecryptionError(f"Encrypted token is not valid hex: {e}") from e

    if len(nonce) != NONCE_LENGTH:
        raise DecryptionError(f"Invalid nonce length: expected {NONCE_LENGTH}, got {len(nonce)}")

    try:
        plaintext = AESGCM(_derive_key(secret)).decrypt(nonce, ciphertext, None)
    except InvalidTag as e:
        raise DecryptionError("Encrypted token failed authentication") from e

    try:
        return plaintext.decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecryptionError("Decrypted token is not valid UTF-8") from e
