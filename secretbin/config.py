"""
Server configuration as advertised by a SecretBin instance.

Built once when a client connects, from GET /api/info and GET /api/config.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

from packaging.version import Version

# First server release that accepts the compact (CBOR) wire format
MIN_COMPACT_VERSION = Version('2.1.0')


def use_compact_encoding(version) -> bool:
    """True if a server at `version` accepts the compact wire format."""
    if not isinstance(version, Version):
        version = Version(str(version))
    return version >= MIN_COMPACT_VERSION


@dataclass(frozen=True)
class Expires:
    """One expiration choice offered by the server."""

    count: int
    unit: str
    seconds: int

    @classmethod
    def from_dict(cls, data: dict) -> 'Expires':
        return cls(
            count=int(data.get('count', 0)),
            unit=str(data.get('unit', '')),
            seconds=int(data.get('seconds', 0)),
        )

    def __str__(self) -> str:
        s = 's' if self.count > 1 else ''
        return f"{self.count} {self.unit}{s} ({self.seconds}s)"


@dataclass(frozen=True)
class Banner:
    type: str  # "info", "warning" or "error"
    text: str


@dataclass
class Config:
    name: str
    endpoint: str
    version: Version
    expires: Dict[str, Expires] = field(default_factory=dict)
    default_expires: str = ''
    banner: Optional[Banner] = None

    @classmethod
    def from_api(cls, endpoint: str, info: dict, config: dict) -> 'Config':
        """Build a Config from the /api/info and /api/config bodies."""
        banner = None
        raw_banner = config.get('banner') or {}
        if raw_banner.get('enabled'):
            banner = Banner(
                type=raw_banner.get('type', ''),
                text=(raw_banner.get('text') or {}).get('en', ''),
            )

        expires = {
            name: Expires.from_dict(value)
            for name, value in (config.get('expires') or {}).items()
        }

        return cls(
            name=(config.get('branding') or {}).get('appName', ''),
            endpoint=endpoint,
            version=Version(info['version']),
            expires=expires,
            default_expires=(config.get('defaults') or {}).get('expires', ''),
            banner=banner,
        )

    @property
    def compact_encoding(self) -> bool:
        return use_compact_encoding(self.version)

    def expires_sorted(self) -> Iterator[Tuple[str, Expires]]:
        """Yield (name, Expires) pairs, shortest duration first."""
        for name in self.expire_options_sorted():
            yield name, self.expires[name]

    def expire_options_sorted(self) -> List[str]:
        """Expiration option names, shortest duration first."""
        return sorted(self.expires, key=lambda name: self.expires[name].seconds)
