"""Vault lifecycle: create, unlock, lock and re-key.

There is no process-wide "current vault". :meth:`VaultManager.unlock` returns
an :class:`UnlockedSession` that owns the decrypted secret key; passwords are
derived through it and :meth:`UnlockedSession.lock` wipes the key (best-effort,
the key lives in a ``bytearray`` that is overwritten with zeros). A session may
carry a TTL, after which it locks itself on next use.
"""
from __future__ import annotations

import logging
import os
import time
from typing import Callable, Optional

from ..core.exceptions import (
    AuthenticationFailedError,
    SessionLockedError,
    UnsupportedVersionError,
    WeakPassphraseError,
)
from ..core.models import PasswordRequest, Vault
from .cipher import decrypt, encrypt
from .codec import FORMAT_VERSION, header_bytes
from .derivation import PasswordPolicy, derive
from .kdf import SALT_LENGTH, KdfParams

logger = logging.getLogger(__name__)

SECRET_KEY_LENGTH = 32


def _wipe(buf: bytearray) -> None:
    for i in range(len(buf)):
        buf[i] = 0


def _as_bytes(passphrase: bytes | str) -> bytes:
    if isinstance(passphrase, str):
        return passphrase.encode("utf-8")
    return bytes(passphrase)


class UnlockedSession:
    """An unlocked vault. Only :class:`VaultManager` creates these."""

    def __init__(self, secret_key: bytes, ttl_seconds: Optional[float] = None):
        self._secret_key: Optional[bytearray] = bytearray(secret_key)
        self._expires_at: Optional[float] = None
        if ttl_seconds is not None:
            self._expires_at = time.time() + float(ttl_seconds)

    def __repr__(self):
        state = "locked" if self._secret_key is None else "unlocked"
        return f"UnlockedSession(<{state}>)"

    def __enter__(self) -> "UnlockedSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.lock()

    @property
    def locked(self) -> bool:
        return self._secret_key is None

    def _require_key(self) -> bytearray:
        """Return the unlocked key or raise if locked/expired."""
        if self._secret_key is None:
            raise SessionLockedError("Session is locked")
        if self._expires_at is not None and time.time() > self._expires_at:
            # auto-lock on expiry
            self.lock()
            logger.info("session expired and was locked")
            raise SessionLockedError("Session expired and was locked")
        return self._secret_key

    def extend(self, extra_seconds: float) -> None:
        """Push the expiry out by ``extra_seconds``; no-op on sessions without a TTL."""
        self._require_key()
        if self._expires_at is not None:
            self._expires_at += float(extra_seconds)

    def derive(self, request: PasswordRequest, policy: Optional[PasswordPolicy] = None) -> str:
        return derive(self._require_key(), request, policy)

    def derive_password(
        self,
        domain: str,
        username: str,
        version: int = 0,
        policy: Optional[PasswordPolicy] = None,
    ) -> str:
        return self.derive(PasswordRequest(domain, username, version), policy)

    def lock(self) -> None:
        """Clear the secret key from memory (best-effort). Safe to call twice."""
        try:
            if self._secret_key is not None:
                _wipe(self._secret_key)
        finally:
            self._secret_key = None
            self._expires_at = None


class VaultManager:
    """
    Creates, opens and re-keys vaults.

    ``random_bytes`` is the secure random source for secret keys, salts and
    IVs; it defaults to :func:`os.urandom`.
    """

    def __init__(
        self,
        kdf_params: Optional[KdfParams] = None,
        min_passphrase_length: int = 1,
        random_bytes: Callable[[int], bytes] = os.urandom,
        session_ttl: Optional[float] = None,
    ):
        self.kdf_params = kdf_params or KdfParams()
        # an empty passphrase is never acceptable
        self.min_passphrase_length = max(1, int(min_passphrase_length))
        self.random_bytes = random_bytes
        self.session_ttl = session_ttl

    def _check_new_passphrase(self, passphrase: bytes) -> None:
        if len(passphrase) < self.min_passphrase_length:
            raise WeakPassphraseError(
                f"passphrase must be at least {self.min_passphrase_length} characters"
            )

    def _seal(self, secret_key: bytes | bytearray, passphrase: bytes) -> Vault:
        salt = self.random_bytes(SALT_LENGTH)
        kdf = self.kdf_params
        key = bytearray(kdf.derive(passphrase, salt))
        try:
            iv, ciphertext = encrypt(
                bytes(secret_key),
                bytes(key),
                associated_data=header_bytes(FORMAT_VERSION, kdf, salt),
                random_bytes=self.random_bytes,
            )
        finally:
            _wipe(key)
        return Vault(format_version=FORMAT_VERSION, kdf=kdf, salt=salt, iv=iv, ciphertext=ciphertext)

    def create(self, passphrase: bytes | str) -> Vault:
        """Generate a fresh secret key and return it sealed under ``passphrase``."""
        passphrase = _as_bytes(passphrase)
        self._check_new_passphrase(passphrase)
        secret_key = bytearray(self.random_bytes(SECRET_KEY_LENGTH))
        try:
            vault = self._seal(secret_key, passphrase)
        finally:
            _wipe(secret_key)
        logger.info("created vault (kdf time=%d memory=%d)", vault.kdf.time_cost, vault.kdf.memory_cost)
        return vault

    def unlock(self, vault: Vault, passphrase: bytes | str) -> UnlockedSession:
        """
        Open ``vault`` with ``passphrase``.

        Raises AuthenticationFailedError on a wrong passphrase or a tampered vault.
        """
        if vault.format_version != FORMAT_VERSION:
            raise UnsupportedVersionError(f"unsupported vault format version {vault.format_version}")
        key = bytearray(vault.kdf.derive(_as_bytes(passphrase), vault.salt))
        try:
            plaintext = bytearray(
                decrypt(
                    vault.ciphertext,
                    bytes(key),
                    vault.iv,
                    associated_data=header_bytes(vault.format_version, vault.kdf, vault.salt),
                )
            )
        except AuthenticationFailedError:
            logger.warning("vault unlock failed")
            raise
        finally:
            _wipe(key)
        try:
            session = UnlockedSession(plaintext, ttl_seconds=self.session_ttl)
        finally:
            _wipe(plaintext)
        logger.info("vault unlocked")
        return session

    def lock(self, session: UnlockedSession) -> None:
        session.lock()
        logger.info("vault locked")

    def change_passphrase(self, session: UnlockedSession, new_passphrase: bytes | str) -> Vault:
        """
        Re-seal the session's secret key under ``new_passphrase`` with a new salt and IV.

        The secret key itself is unchanged, so every derived password stays valid.
        """
        new_passphrase = _as_bytes(new_passphrase)
        self._check_new_passphrase(new_passphrase)
        vault = self._seal(session._require_key(), new_passphrase)
        logger.info("vault passphrase changed")
        return vault
