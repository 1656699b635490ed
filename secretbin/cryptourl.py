"""
Crypto URL codec.

A crypto URL carries everything a holder of the key needs to decrypt a
secret: the cipher parameters and the ciphertext. Two encodings exist.

Legacy (string, any server):
    crypto://?algorithm=AES256-GCM&key-algorithm=pbkdf2&nonce=<b58>&salt=<b58>
        &iter=210000&hash=SHA-512#<base64 ciphertext+tag>

Compact (binary, servers >= 2.1.0):
    CBOR map {algorithm, key-algorithm, nonce, salt, iter, hash, data}
    with nonce, salt and data as raw byte strings.

Nonce and salt are base58 in the legacy form while the body is base64.
Existing servers and links depend on that exact mix.
"""

import base64
import binascii
from dataclasses import dataclass
from typing import Union
from urllib.parse import parse_qsl, quote

import base58
import cbor2

from .errors import ErrorKind, SecretBinError

ALGORITHM = 'AES256-GCM'
KEY_ALGORITHM = 'pbkdf2'
HASH = 'SHA-512'

SCHEME = 'crypto://'


@dataclass(frozen=True)
class CryptoURL:
    """Decryption parameters plus the ciphertext (with GCM tag appended)."""

    nonce: bytes
    salt: bytes
    iterations: int
    ciphertext: bytes
    algorithm: str = ALGORITHM
    key_algorithm: str = KEY_ALGORITHM
    hash: str = HASH

    def params(self) -> dict:
        return {
            'algorithm': self.algorithm,
            'key-algorithm': self.key_algorithm,
            'nonce': self.nonce,
            'salt': self.salt,
            'iter': self.iterations,
            'hash': self.hash,
        }


# ---------------------------------------------------------------------------
# Wire payload variant
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Text:
    """Legacy payload, sent in the `data` string field."""
    value: str


@dataclass(frozen=True)
class Binary:
    """Compact payload, sent in the `dataBytes` binary field."""
    value: bytes


WirePayload = Union[Text, Binary]


def encode(url: CryptoURL, compact: bool) -> WirePayload:
    """Encode a crypto URL in the chosen wire format."""
    if compact:
        return Binary(encode_compact(url))
    return Text(encode_legacy(url))


# ---------------------------------------------------------------------------
# Legacy string form
# ---------------------------------------------------------------------------

def encode_legacy(url: CryptoURL) -> str:
    query = '&'.join([
        f"algorithm={quote(url.algorithm, safe='')}",
        f"key-algorithm={quote(url.key_algorithm, safe='')}",
        f"nonce={base58.b58encode(url.nonce).decode('ascii')}",
        f"salt={base58.b58encode(url.salt).decode('ascii')}",
        f"iter={url.iterations}",
        f"hash={quote(url.hash, safe='')}",
    ])
    body = base64.b64encode(url.ciphertext).decode('ascii')
    return f"{SCHEME}?{query}#{body}"


def parse_legacy(value: str) -> CryptoURL:
    """
    Parse a legacy crypto URL string.

    Raises:
        SecretBinError(SECRET_PARSE): If the string is not a crypto URL.
    """
    if not value.startswith(SCHEME + '?'):
        raise SecretBinError(ErrorKind.SECRET_PARSE, "Not a crypto URL")

    rest = value[len(SCHEME) + 1:]
    query, sep, body = rest.partition('#')
    if not sep:
        raise SecretBinError(ErrorKind.SECRET_PARSE, "Crypto URL has no ciphertext")

    params = dict(parse_qsl(query, keep_blank_values=True))
    try:
        return CryptoURL(
            algorithm=params['algorithm'],
            key_algorithm=params['key-algorithm'],
            nonce=base58.b58decode(params['nonce']),
            salt=base58.b58decode(params['salt']),
            iterations=int(params['iter']),
            hash=params['hash'],
            ciphertext=base64.b64decode(body, validate=True),
        )
    except KeyError as e:
        raise SecretBinError(ErrorKind.SECRET_PARSE, f"Missing crypto URL parameter {e}") from e
    except (ValueError, binascii.Error) as e:
        raise SecretBinError(ErrorKind.SECRET_PARSE, f"Invalid crypto URL: {e}") from e


# ---------------------------------------------------------------------------
# Compact binary form
# ---------------------------------------------------------------------------

def encode_compact(url: CryptoURL) -> bytes:
    obj = url.params()
    obj['data'] = url.ciphertext
    return cbor2.dumps(obj)


def parse_compact(value: bytes) -> CryptoURL:
    """
    Parse a compact (CBOR) crypto URL.

    Raises:
        SecretBinError(SECRET_PARSE): If the bytes are not a crypto URL map.
    """
    try:
        obj = cbor2.loads(value)
    except (cbor2.CBORDecodeError, ValueError) as e:
        raise SecretBinError(ErrorKind.SECRET_PARSE, f"Invalid compact crypto URL: {e}") from e

    if not isinstance(obj, dict):
        raise SecretBinError(ErrorKind.SECRET_PARSE, "Compact crypto URL is not a map")

    try:
        url = CryptoURL(
            algorithm=obj['algorithm'],
            key_algorithm=obj['key-algorithm'],
            nonce=obj['nonce'],
            salt=obj['salt'],
            iterations=obj['iter'],
            hash=obj['hash'],
            ciphertext=obj['data'],
        )
    except KeyError as e:
        raise SecretBinError(ErrorKind.SECRET_PARSE, f"Missing crypto URL parameter {e}") from e

    for name in ('nonce', 'salt', 'ciphertext'):
        if not isinstance(getattr(url, name), bytes):
            raise SecretBinError(ErrorKind.SECRET_PARSE, f"Crypto URL {name} is not a byte string")
    if not isinstance(url.iterations, int):
        raise SecretBinError(ErrorKind.SECRET_PARSE, "Crypto URL iter is not an integer")
    return url


def decode(payload: WirePayload) -> CryptoURL:
    """Parse either wire form back into a CryptoURL."""
    if isinstance(payload, Binary):
        return parse_compact(payload.value)
    return parse_legacy(payload.value)
