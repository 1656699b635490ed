"""
HTTP transport for the SecretBin API.

    GET  /api/info     -> {version}
    GET  /api/config   -> {banner, branding, defaults, expires}
    POST /api/secret   -> {id}

Request bodies are JSON, or CBOR when the server takes the compact wire
format. Responses are always JSON. Any status other than 200 carries a
{name, message, status} body and is raised as a SecretBinError.
"""

import json
import logging
from dataclasses import dataclass
from typing import Optional

import cbor2
import httpx

from .errors import SecretBinError

logger = logging.getLogger('secretbin.api')

DEFAULT_TIMEOUT = 30


@dataclass
class PostSecretPayload:
    """Body for POST /api/secret. Exactly one of data/data_bytes is set."""

    expires: str
    burn_after: int
    password_protected: bool
    data: str = ''
    data_bytes: Optional[bytes] = None

    def to_dict(self) -> dict:
        body = {
            'data': self.data,
            'expires': self.expires,
            'burnAfter': self.burn_after,
            'passwordProtected': self.password_protected,
        }
        if self.data_bytes:
            body['dataBytes'] = self.data_bytes
        return body


class API:
    """Thin wrapper around an httpx.Client bound to one SecretBin endpoint."""

    def __init__(self, endpoint: str, transport: Optional[httpx.BaseTransport] = None,
                 timeout: float = DEFAULT_TIMEOUT):
        self.endpoint = endpoint.rstrip('/')
        self._http = httpx.Client(transport=transport, timeout=timeout)

    def close(self):
        self._http.close()

    def url(self, path: str) -> str:
        return f"{self.endpoint}{path}"

    def get_info(self) -> dict:
        return self.call('GET', '/api/info')

    def get_config(self) -> dict:
        return self.call('GET', '/api/config')

    def post_secret(self, payload: PostSecretPayload, use_cbor: bool = False) -> dict:
        return self.call('POST', '/api/secret', payload.to_dict(), use_cbor)

    def call(self, method: str, path: str, payload: dict = None,
             use_cbor: bool = False) -> dict:
        """
        Make one API call and decode the JSON response.

        Raises:
            SecretBinError: On any non-200 response (name/message/status kept)
            httpx.HTTPError: On transport failures
        """
        headers = {}
        content = None
        if payload is not None:
            if use_cbor:
                content = cbor2.dumps(payload)
                headers['Content-Type'] = 'application/cbor'
            else:
                content = json.dumps(payload).encode('utf-8')
                headers['Content-Type'] = 'application/json'

        res = self._http.request(method, self.url(path), content=content, headers=headers)
        logger.debug("%s %s -> %d", method, path, res.status_code)

        if res.status_code != 200:
            try:
                body = res.json()
            except ValueError:
                body = res.text
            raise SecretBinError.from_response(body, status=res.status_code)

        return res.json()
