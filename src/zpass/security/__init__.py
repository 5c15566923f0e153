"""Security core of zpass: vault sealing and deterministic password derivation.

This package provides:
- Argon2id passphrase stretching
- AES-256-GCM sealing of the vault secret key
- a strict, versioned text codec for sealed vaults
- SHA3-256 based password derivation under a configurable policy
- the vault manager and its explicit unlocked sessions

Nothing in here reads files, prompts or touches the clipboard.
"""

from .kdf import KdfParams, generate_salt, derive_key
from .cipher import encrypt, decrypt
from .codec import serialize, deserialize, FORMAT_VERSION
from .derivation import PasswordPolicy, CHARSETS, derive_password
from .session import UnlockedSession, VaultManager

__all__ = [
    "KdfParams",
    "generate_salt",
    "derive_key",
    "encrypt",
    "decrypt",
    "serialize",
    "deserialize",
    "FORMAT_VERSION",
    "PasswordPolicy",
    "CHARSETS",
    "derive_password",
    "UnlockedSession",
    "VaultManager",
]
