"""SecretBin — end-to-end encrypted secret sharing client. AES-256-GCM + PBKDF2-SHA512."""

from .client import Client, Options, burn_after_wire_value
from .config import Config, Expires, Banner, use_compact_encoding
from .content import Secret, Attachment
from .crypto import encrypt, derive_key, seal
from .cryptourl import CryptoURL, Text, Binary, parse_legacy, parse_compact
from .errors import ErrorKind, SecretBinError
from .password import PasswordOptions, generate_password

__version__ = '1.0.0'

__all__ = [
    'Client', 'Options', 'burn_after_wire_value',
    'Config', 'Expires', 'Banner', 'use_compact_encoding',
    'Secret', 'Attachment',
    'encrypt', 'derive_key', 'seal',
    'CryptoURL', 'Text', 'Binary', 'parse_legacy', 'parse_compact',
    'ErrorKind', 'SecretBinError',
    'PasswordOptions', 'generate_password',
]
