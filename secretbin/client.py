"""
SecretBin client — submit encrypted secrets.

Submitting a secret:
1. Resolve the expiration choice against the server's table
2. Encrypt the secret locally (the server never sees plaintext or key)
3. POST the crypto URL to /api/secret
4. Return <endpoint>/secret/<id>#<base58 key>

The key only ever appears in the URL fragment of the returned link.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from . import crypto
from .api import API, DEFAULT_TIMEOUT, PostSecretPayload
from .config import Config
from .content import Secret
from .cryptourl import Binary
from .errors import ErrorKind, SecretBinError

logger = logging.getLogger('secretbin.client')

# The server reads burnAfter=-1 as "never burn". 0 means the secret is kept
# out of the server's garbage collector, so the client never sends it.
NO_BURN = -1


@dataclass
class Options:
    # Additional factor alongside the encryption key (optional)
    password: str = ''

    # Name of one of Config.expires; '' selects the server default
    expires: str = ''

    # Reads after which the secret is deleted, 0 for never
    burn_after: int = 0


def burn_after_wire_value(burn_after: int) -> int:
    """Map a caller's burn-after count to the value sent to the server."""
    if burn_after < 0:
        raise ValueError(f"burn_after must be >= 0, got {burn_after}")
    if burn_after == 0:
        return NO_BURN
    return burn_after


class Client:
    """A connection to one SecretBin server."""

    def __init__(self, endpoint: str, transport: Optional[httpx.BaseTransport] = None,
                 timeout: float = DEFAULT_TIMEOUT):
        self.api = API(endpoint, transport=transport, timeout=timeout)

        try:
            info = self.api.get_info()
            config = self.api.get_config()
            self.config = Config.from_api(self.api.endpoint, info, config)
        except BaseException:
            self.api.close()
            raise

        # CBOR instead of JSON+base64 from server v2.1.0 on; fixed for the
        # lifetime of the client
        self.use_compact = self.config.compact_encoding

        logger.debug(
            "Connected to %s (version %s, %s encoding)",
            self.api.endpoint, self.config.version,
            'compact' if self.use_compact else 'legacy',
        )

    def close(self):
        self.api.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def resolve_expires(self, expires: str) -> str:
        """
        Return the expiration name to use for a submission.

        Raises:
            SecretBinError(INVALID_EXPIRATION_TIME): If the name is unknown
        """
        if not expires:
            expires = self.config.default_expires

        if expires not in self.config.expires:
            valid = ', '.join(self.config.expire_options_sorted())
            raise SecretBinError(
                ErrorKind.INVALID_EXPIRATION_TIME,
                f"Invalid expiration time '{expires}'. Valid options are: {valid}",
            )
        return expires

    def submit_secret(self, secret: Secret, options: Optional[Options] = None) -> str:
        """
        Create a secret on the server and return its access URL.

        Raises:
            SecretBinError: Invalid options, local crypto failure, or any
                error reported by the server
            httpx.HTTPError: On transport failures
        """
        options = options or Options()

        # Validate before doing any crypto or network work
        expires = self.resolve_expires(options.expires)
        burn_after = burn_after_wire_value(options.burn_after)

        key, payload = crypto.encrypt(secret, options.password, self.use_compact)

        body = PostSecretPayload(
            expires=expires,
            burn_after=burn_after,
            password_protected=options.password != '',
        )
        if isinstance(payload, Binary):
            body.data_bytes = payload.value
        else:
            body.data = payload.value

        result = self.api.post_secret(body, use_cbor=self.use_compact)
        secret_id = result.get('id') if isinstance(result, dict) else None
        if not secret_id:
            raise SecretBinError(
                ErrorKind.SECRET_CREATE,
                "Server accepted the secret but returned no id",
            )

        logger.debug("Created secret %s (expires %s, burn after %d)",
                     secret_id, expires, burn_after)

        return f"{self.api.endpoint}/secret/{secret_id}#{key}"
