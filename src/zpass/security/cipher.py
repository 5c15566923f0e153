"""AES-256-GCM sealing of the vault secret key.

Every call to :func:`encrypt` draws its own 96-bit IV and returns it next to
the ciphertext; there is no way to pass an IV in, so a (key, IV) pair is
never reused. The GCM tag is appended to the ciphertext by ``AESGCM``.
"""
from __future__ import annotations

import os
from typing import Callable, Optional, Tuple

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from ..core.exceptions import AuthenticationFailedError

KEY_LENGTH = 32  # AES-256
IV_LENGTH = 12  # 96-bit GCM nonce
TAG_LENGTH = 16


def _check_key(key: bytes) -> None:
    if len(key) != KEY_LENGTH:
        raise ValueError(f"AES-256 requires a {KEY_LENGTH}-byte key, got {len(key)}")


def encrypt(
    plaintext: bytes,
    key: bytes,
    associated_data: Optional[bytes] = None,
    random_bytes: Callable[[int], bytes] = os.urandom,
) -> Tuple[bytes, bytes]:
    """
    Encrypt ``plaintext`` under ``key`` and return ``(iv, ciphertext)``.

    ``associated_data`` is authenticated but not encrypted; the same bytes
    must be handed to :func:`decrypt`.
    """
    _check_key(key)
    iv = random_bytes(IV_LENGTH)
    if len(iv) != IV_LENGTH:
        raise ValueError("random source returned a short IV")
    ct = AESGCM(key).encrypt(iv, bytes(plaintext), associated_data)
    return iv, ct


def decrypt(
    ciphertext: bytes,
    key: bytes,
    iv: bytes,
    associated_data: Optional[bytes] = None,
) -> bytes:
    """
    Decrypt and authenticate ``ciphertext``.

    Raises :class:`AuthenticationFailedError` when the key is wrong or any of
    ciphertext, IV or associated data were altered.
    """
    _check_key(key)
    if len(iv) != IV_LENGTH:
        raise AuthenticationFailedError(f"IV must be {IV_LENGTH} bytes")
    if len(ciphertext) < TAG_LENGTH:
        raise AuthenticationFailedError("Ciphertext too short to contain tag")
    try:
        return AESGCM(key).decrypt(iv, ciphertext, associated_data)
    except InvalidTag as e:
        raise AuthenticationFailedError(
            "authentication failed: wrong passphrase or corrupted vault"
        ) from e
