"""
Runtime configuration read from ZPASS_* environment variables.

    ZPASS_HOME                   vault store root (default ~/.zpass)
    ZPASS_KDF_TIME_COST          Argon2id passes for new vaults (3)
    ZPASS_KDF_MEMORY_COST        Argon2id memory in KiB for new vaults (65536)
    ZPASS_KDF_PARALLELISM        Argon2id lanes for new vaults (1)
    ZPASS_MIN_PASSPHRASE_LENGTH  shortest accepted new passphrase (8)
    ZPASS_DEFAULT_LENGTH         password length when none is given (20)
    ZPASS_DEFAULT_CHARSET        charset name or literal characters ("full")
    ZPASS_SESSION_TTL            seconds an unlocked session lives (unset: no limit)
    ZPASS_LOG_LEVEL              logging level name (WARNING)

KDF settings only affect vaults sealed from now on; existing vaults carry
their own parameters.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from .exceptions import InvalidPolicyError, InvalidSettingError
from ..security.derivation import PasswordPolicy
from ..security.kdf import KdfParams
from ..security.session import VaultManager


def _int_setting(env: Mapping[str, str], name: str, default: int, minimum: int = 0) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise InvalidSettingError(f"{name} must be an integer, got {raw!r}") from e
    if value < minimum:
        raise InvalidSettingError(f"{name} must be at least {minimum}, got {value}")
    return value


@dataclass
class Settings:
    home: Path = field(default_factory=lambda: Path.home() / ".zpass")
    kdf: KdfParams = field(default_factory=KdfParams)
    min_passphrase_length: int = 8
    default_length: int = 20
    default_charset: str = "full"
    session_ttl: Optional[float] = None
    log_level: int = logging.WARNING

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ

        home = env.get("ZPASS_HOME")
        try:
            kdf = KdfParams(
                time_cost=_int_setting(env, "ZPASS_KDF_TIME_COST", 3, minimum=1),
                memory_cost=_int_setting(env, "ZPASS_KDF_MEMORY_COST", 65536, minimum=8),
                parallelism=_int_setting(env, "ZPASS_KDF_PARALLELISM", 1, minimum=1),
            )
        except ValueError as e:
            raise InvalidSettingError(f"invalid KDF settings: {e}") from e

        ttl = _int_setting(env, "ZPASS_SESSION_TTL", 0, minimum=0)

        level_name = env.get("ZPASS_LOG_LEVEL", "WARNING").strip().upper()
        level = logging.getLevelName(level_name)
        if not isinstance(level, int):
            raise InvalidSettingError(f"ZPASS_LOG_LEVEL: unknown level {level_name!r}")

        settings = cls(
            home=Path(home).expanduser() if home else Path.home() / ".zpass",
            kdf=kdf,
            min_passphrase_length=_int_setting(env, "ZPASS_MIN_PASSPHRASE_LENGTH", 8, minimum=1),
            default_length=_int_setting(env, "ZPASS_DEFAULT_LENGTH", 20, minimum=1),
            default_charset=env.get("ZPASS_DEFAULT_CHARSET") or "full",
            session_ttl=float(ttl) if ttl else None,
            log_level=level,
        )
        # fail early on a policy that could never be satisfied
        try:
            settings.default_policy()
        except InvalidPolicyError as e:
            raise InvalidSettingError(f"ZPASS_DEFAULT_LENGTH/ZPASS_DEFAULT_CHARSET: {e}") from e
        return settings

    def default_policy(self, length: Optional[int] = None, charset: Optional[str] = None) -> PasswordPolicy:
        return PasswordPolicy.from_options(
            length=self.default_length if length is None else length,
            charset=self.default_charset if charset is None else charset,
        )

    def vault_manager(self) -> VaultManager:
        return VaultManager(
            kdf_params=self.kdf,
            min_passphrase_length=self.min_passphrase_length,
            session_ttl=self.session_ttl,
        )
