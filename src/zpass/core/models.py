"""
Base data models for vaults and password requests
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..security.kdf import KdfParams


@dataclass(frozen=True)
class Vault:
    """
    A sealed secret key plus everything needed to open it again.

    ``ciphertext`` is the AES-GCM output: the encrypted secret key followed
    by its 16-byte authentication tag.
    """

    format_version: int
    kdf: KdfParams
    salt: bytes
    iv: bytes
    ciphertext: bytes

    def __repr__(self):
        # keep key material out of logs and tracebacks
        return (
            f"Vault(format_version={self.format_version!r}, kdf={self.kdf!r}, "
            f"salt=<{len(self.salt)} bytes>, iv=<{len(self.iv)} bytes>, "
            f"ciphertext=<{len(self.ciphertext)} bytes>)"
        )


@dataclass(frozen=True)
class PasswordRequest:
    """Identifies one derived password inside a vault."""

    domain: str
    username: str
    version: int = 0

    def __post_init__(self):
        if not isinstance(self.domain, str) or not isinstance(self.username, str):
            raise ValueError("domain and username must be strings")
        if isinstance(self.version, bool) or not isinstance(self.version, int):
            raise ValueError("version must be an integer")
        if not 0 <= self.version < 2**64:
            raise ValueError("version must be a non-negative 64-bit integer")
