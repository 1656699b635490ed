"""
SecretBin Encryption Layer — PBKDF2-SHA512 key derivation + AES-256-GCM.

Handles: finalize → serialize → derive key → encrypt → crypto URL.

The working key never leaves this module. What the caller gets back is
the base58 base key (for the URL fragment) and the encoded payload (for
the server). Knowing both, plus the password if one was set, is enough
to decrypt:

    key = PBKDF2-HMAC-SHA512(base_key || utf8(password), salt, 210000, 32)
    plaintext = AES-256-GCM-open(key, nonce, ciphertext+tag)
"""

import logging
import os
from dataclasses import dataclass
from typing import Tuple

import base58
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from . import cryptourl
from .content import Secret
from .cryptourl import CryptoURL, WirePayload
from .errors import ErrorKind, SecretBinError

logger = logging.getLogger('secretbin.crypto')

BASE_KEY_SIZE = 32
NONCE_SIZE = 12  # 96-bit nonce, as recommended for AES-GCM
SALT_SIZE = 16
KEY_SIZE = 32  # AES-256
TAG_SIZE = 16

# OWASP recommendation for PBKDF2-HMAC-SHA512
PBKDF2_ITERATIONS = 210000


@dataclass(frozen=True)
class EncryptionResult:
    """Output of one encryption. Never reused across secrets."""

    base_key: bytes
    nonce: bytes
    salt: bytes
    iterations: int
    ciphertext: bytes

    @property
    def key_token(self) -> str:
        return base58.b58encode(self.base_key).decode('ascii')

    def crypto_url(self) -> CryptoURL:
        return CryptoURL(
            nonce=self.nonce,
            salt=self.salt,
            iterations=self.iterations,
            ciphertext=self.ciphertext,
        )


def random_bytes(size: int) -> bytes:
    """Cryptographically secure random bytes."""
    try:
        return os.urandom(size)
    except (OSError, NotImplementedError) as e:
        raise SecretBinError(
            ErrorKind.RANDOMNESS_FAILURE,
            f"Secure random source failed: {e}",
        ) from e


def generate_base_key() -> bytes:
    """Generate a random 256-bit base key."""
    return random_bytes(BASE_KEY_SIZE)


def derive_key(base_key: bytes, password: str, salt: bytes,
               iterations: int = PBKDF2_ITERATIONS) -> bytes:
    """
    Derive the AES key from the base key and an optional password.

    The password is appended to the base key; an empty password still
    goes through the full derivation.
    """
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA512(),
        length=KEY_SIZE,
        salt=salt,
        iterations=iterations,
    )
    return kdf.derive(base_key + password.encode('utf-8'))


def seal(plaintext: bytes, password: str, base_key: bytes, nonce: bytes,
         salt: bytes, iterations: int = PBKDF2_ITERATIONS) -> EncryptionResult:
    """
    Encrypt plaintext with explicit parameters.

    Deterministic for fixed inputs; encrypt() supplies fresh random ones.

    Returns:
        EncryptionResult with ciphertext = ciphertext || 16-byte tag
    """
    if len(base_key) != BASE_KEY_SIZE:
        raise ValueError(f"Base key must be {BASE_KEY_SIZE} bytes, got {len(base_key)}")
    if len(nonce) != NONCE_SIZE:
        raise ValueError(f"Nonce must be {NONCE_SIZE} bytes, got {len(nonce)}")

    key = derive_key(base_key, password, salt, iterations)

    try:
        aesgcm = AESGCM(key)
    except ValueError as e:
        raise SecretBinError(
            ErrorKind.CIPHER_CONSTRUCTION_FAILURE,
            f"Cannot construct AES-256-GCM cipher: {e}",
        ) from e

    # Returns ciphertext + 16-byte tag appended, no associated data
    ct_with_tag = aesgcm.encrypt(nonce, plaintext, None)

    return EncryptionResult(
        base_key=base_key,
        nonce=nonce,
        salt=salt,
        iterations=iterations,
        ciphertext=ct_with_tag,
    )


def encrypt_bytes(plaintext: bytes, password: str = '') -> EncryptionResult:
    """Encrypt raw bytes with a fresh base key, nonce and salt."""
    base_key = generate_base_key()
    nonce = random_bytes(NONCE_SIZE)
    salt = random_bytes(SALT_SIZE)
    return seal(plaintext, password, base_key, nonce, salt)


def encrypt(secret: Secret, password: str = '',
            compact: bool = False) -> Tuple[str, WirePayload]:
    """
    Encrypt a secret for submission.

    Args:
        secret: The secret to encrypt. Missing content types are filled in.
        password: Optional extra factor, '' for none
        compact: Use the binary (CBOR) wire format instead of the string one

    Returns:
        (key_token, payload)
        - base58 base key, to be shared out-of-band only
        - Text or Binary crypto URL for the server
    """
    secret.finalize()
    plaintext = secret.to_bytes(compact)

    result = encrypt_bytes(plaintext, password)
    payload = cryptourl.encode(result.crypto_url(), compact)

    logger.debug(
        "Encrypted %d plaintext bytes into %d ciphertext bytes (%s)",
        len(plaintext), len(result.ciphertext), 'compact' if compact else 'legacy',
    )

    return result.key_token, payload
