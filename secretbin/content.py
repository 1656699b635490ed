"""
SecretBin content model — the plaintext of a secret.

A secret is a text message plus any number of file attachments. It is
serialized into a canonical byte form right before encryption:

    {message, attachments: [{name, contentType, data}]}

JSON (attachment data as standard base64) for the legacy wire format,
CBOR (attachment data as raw bytes) for the compact one.
"""

import base64
import json
import mimetypes
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

import cbor2


def guess_content_type(name: str) -> str:
    """MIME type for a filename's extension, or '' if it is unknown."""
    _, ext = os.path.splitext(name)
    if not ext:
        return ''
    content_type, _ = mimetypes.guess_type('file' + ext.lower(), strict=False)
    return content_type or ''


@dataclass
class Attachment:
    """A single file attached to a secret."""

    name: str
    content_type: str
    data: bytes

    def to_dict(self, raw_data: bool = False) -> dict:
        return {
            'name': self.name,
            'contentType': self.content_type,
            'data': self.data if raw_data else base64.b64encode(self.data).decode('ascii'),
        }


@dataclass
class Secret:
    """Plaintext payload of a secret: a message and its attachments."""

    message: str = ''
    attachments: List[Attachment] = field(default_factory=list)

    def add_attachment(self, name: str, content_type: str, data: bytes) -> Attachment:
        """
        Append an attachment.

        An empty content type is left empty here; it is filled in from the
        filename extension by finalize() when the secret is encrypted.
        """
        if self.attachments is None:
            self.attachments = []

        attachment = Attachment(name=name, content_type=content_type, data=bytes(data))
        self.attachments.append(attachment)
        return attachment

    def add_file_attachment(self, path) -> Attachment:
        """
        Read a file and attach it under its base name.

        Raises:
            OSError: If the file cannot be read (not wrapped).
        """
        p = Path(path)
        data = p.read_bytes()
        return self.add_attachment(p.name, '', data)

    def finalize(self) -> None:
        """Make the secret ready for serialization.

        Guarantees a (possibly empty) attachment list and infers every
        missing content type from the attachment's filename.
        """
        if self.attachments is None:
            self.attachments = []

        for attachment in self.attachments:
            if not attachment.content_type:
                attachment.content_type = guess_content_type(attachment.name)

    def to_dict(self, raw_data: bool = False) -> dict:
        return {
            'message': self.message,
            'attachments': [a.to_dict(raw_data) for a in (self.attachments or [])],
        }

    def to_bytes(self, compact: bool = False) -> bytes:
        """Canonical byte form: CBOR if compact, otherwise JSON."""
        if compact:
            return cbor2.dumps(self.to_dict(raw_data=True))
        return json.dumps(self.to_dict(), separators=(',', ':')).encode('utf-8')

    @classmethod
    def from_bytes(cls, data: bytes, compact: bool = False) -> 'Secret':
        """Inverse of to_bytes()."""
        if compact:
            obj = cbor2.loads(data)
        else:
            obj = json.loads(data.decode('utf-8'))

        secret = cls(message=obj.get('message', ''))
        for a in obj.get('attachments') or []:
            raw = a.get('data', b'')
            if not compact:
                raw = base64.b64decode(raw)
            secret.add_attachment(a.get('name', ''), a.get('contentType', ''), raw)
        return secret
