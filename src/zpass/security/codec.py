"""Versioned text encoding of a sealed vault.

Document layout (UTF-8 JSON, keys sorted, binary fields hex-encoded)::

    {"ciphertext": "<hex>", "format": "zpass-vault", "iv": "<hex>",
     "kdf": {"algo": "argon2id", "key_len": 32, "memory": 65536,
             "parallelism": 1, "time": 3},
     "salt": "<hex>", "version": 1}

The document is plain text so it can be exported as-is or rendered into
another transport. Parsing is strict: an unknown ``version`` is rejected
before the KDF, salt, IV or ciphertext fields are looked at.
"""
from __future__ import annotations

import json
import struct
from typing import Any, Dict

from ..core.exceptions import MalformedVaultError, UnsupportedVersionError
from ..core.models import Vault
from .cipher import IV_LENGTH, KEY_LENGTH, TAG_LENGTH
from .kdf import SALT_LENGTH, KdfParams

FORMAT_MARKER = "zpass-vault"
FORMAT_VERSION = 1
CIPHERTEXT_LENGTH = KEY_LENGTH + TAG_LENGTH


def header_bytes(format_version: int, kdf: KdfParams, salt: bytes) -> bytes:
    """
    Canonical bytes of the vault header, used as AEAD associated data.

    Layout: marker, then version (u16), time/memory/parallelism/key_len (u32 each),
    then a length-prefixed salt; all big-endian.
    """
    marker = FORMAT_MARKER.encode("ascii")
    return b"".join(
        [
            struct.pack(">B", len(marker)),
            marker,
            struct.pack(">H", format_version),
            struct.pack(">IIII", kdf.time_cost, kdf.memory_cost, kdf.parallelism, kdf.key_len),
            struct.pack(">B", len(salt)),
            salt,
        ]
    )


def to_dict(vault: Vault) -> Dict[str, Any]:
    return {
        "format": FORMAT_MARKER,
        "version": vault.format_version,
        "kdf": vault.kdf.to_dict(),
        "salt": vault.salt.hex(),
        "iv": vault.iv.hex(),
        "ciphertext": vault.ciphertext.hex(),
    }


def serialize(vault: Vault) -> bytes:
    """Encode ``vault``; equal vaults always give identical bytes."""
    text = json.dumps(to_dict(vault), sort_keys=True, separators=(",", ":"))
    return (text + "\n").encode("utf-8")


def _hex_field(doc: Dict[str, Any], name: str, length: int) -> bytes:
    value = doc.get(name)
    if not isinstance(value, str):
        raise MalformedVaultError(f"field {name!r} must be a hex string")
    try:
        raw = bytes.fromhex(value)
    except ValueError as e:
        raise MalformedVaultError(f"field {name!r} is not valid hex") from e
    if len(raw) != length:
        raise MalformedVaultError(f"field {name!r} must be {length} bytes, got {len(raw)}")
    return raw


def from_dict(doc: Any) -> Vault:
    if not isinstance(doc, dict):
        raise MalformedVaultError("vault document must be a JSON object")
    if doc.get("format") != FORMAT_MARKER:
        raise MalformedVaultError("not a zpass vault (format marker mismatch)")

    version = doc.get("version")
    if isinstance(version, bool) or not isinstance(version, int):
        raise MalformedVaultError("field 'version' must be an integer")
    if version != FORMAT_VERSION:
        raise UnsupportedVersionError(
            f"unsupported vault format version {version} (supported: {FORMAT_VERSION})"
        )

    kdf_doc = doc.get("kdf")
    if not isinstance(kdf_doc, dict):
        raise MalformedVaultError("field 'kdf' must be an object")
    try:
        kdf = KdfParams.from_dict(kdf_doc)
    except ValueError as e:
        raise MalformedVaultError(f"invalid KDF parameters: {e}") from e

    return Vault(
        format_version=version,
        kdf=kdf,
        salt=_hex_field(doc, "salt", SALT_LENGTH),
        iv=_hex_field(doc, "iv", IV_LENGTH),
        ciphertext=_hex_field(doc, "ciphertext", CIPHERTEXT_LENGTH),
    )


def deserialize(data: bytes | str) -> Vault:
    """Parse bytes produced by :func:`serialize`; raises a FormatError subclass on bad input."""
    if isinstance(data, (bytes, bytearray)):
        try:
            data = bytes(data).decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedVaultError("vault is not valid UTF-8") from e
    try:
        doc = json.loads(data)
    except json.JSONDecodeError as e:
        raise MalformedVaultError(f"vault is not valid JSON: {e.msg}") from e
    except RecursionError as e:
        raise MalformedVaultError("vault JSON is nested too deeply") from e
    return from_dict(doc)
