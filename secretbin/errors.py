"""
SecretBin error taxonomy.

Every failure the client reports itself is a SecretBinError carrying one
ErrorKind. Server-reported errors keep their original name, message and
status, so calling code can match on the kind instead of on instances.
"""

from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    """Closed set of error kinds. Values are the names used on the wire."""

    INVALID_EXPIRATION_TIME = 'InvalidExpirationTime'
    SECRET_NOT_FOUND = 'SecretNotFoundError'
    SECRET_ALREADY_EXISTS = 'SecretAlreadyExistsError'
    SECRET_LIST = 'SecretListError'
    SECRET_READ = 'SecretReadError'
    SECRET_CREATE = 'SecretCreateError'
    SECRET_UPDATE = 'SecretUpdateError'
    SECRET_DELETE = 'SecretDeleteError'
    SECRET_PARSE = 'SecretParseError'
    SECRET_POLICY = 'SecretPolicyError'
    SECRET_SIZE_LIMIT = 'SecretSizeLimitError'

    # Local failures, never sent by a server
    RANDOMNESS_FAILURE = 'RandomnessFailure'
    CIPHER_CONSTRUCTION_FAILURE = 'CipherConstructionFailure'

    # Server name outside this table
    UNKNOWN = 'UnknownError'

    @classmethod
    def from_name(cls, name: str) -> 'ErrorKind':
        try:
            return cls(name)
        except ValueError:
            return cls.UNKNOWN


class SecretBinError(Exception):
    """An error raised by the client or reported by a SecretBin server."""

    def __init__(self, kind: ErrorKind, message: str = '', status: int = 0,
                 name: Optional[str] = None):
        self.kind = kind
        self.name = name or kind.value
        self.message = message
        self.status = status
        super().__init__(f"{self.name}: {message}")

    @classmethod
    def from_response(cls, body, status: int = 0) -> 'SecretBinError':
        """
        Build an error from a server's `{name, message, status}` body.

        Bodies of any other shape become an UNKNOWN error carrying the
        HTTP status.
        """
        if not isinstance(body, dict):
            text = str(body).strip() if body is not None else ''
            return cls(
                ErrorKind.UNKNOWN,
                message=text or f"HTTP {status}",
                status=status,
            )

        name = str(body.get('name', ''))
        return cls(
            ErrorKind.from_name(name),
            message=str(body.get('message', '')),
            status=int(body.get('status', 0) or status),
            name=name or None,
        )

    def __eq__(self, other):
        if isinstance(other, SecretBinError):
            return self.kind is other.kind and self.name == other.name
        if isinstance(other, ErrorKind):
            return self.kind is other
        return NotImplemented

    def __hash__(self):
        return hash((self.kind, self.name))
