"""Passphrase stretching for zpass vaults (Argon2id)."""
from __future__ import annotations

import os
from dataclasses import asdict, dataclass
from typing import Any, Dict

from argon2.exceptions import HashingError
from argon2.low_level import Type, hash_secret_raw

from ..core.exceptions import KdfError

ALGORITHM = "argon2id"
SALT_LENGTH = 16
KEY_LENGTH = 32

# upper bounds on stored work factors, so a crafted vault cannot ask for
# lanes argon2 refuses or for a derivation that never finishes
MAX_TIME_COST = 1024
MAX_MEMORY_COST = 2 ** 22  # KiB, 4 GiB
MAX_PARALLELISM = 2 ** 24 - 1


def generate_salt(length: int = SALT_LENGTH) -> bytes:
    """Return a cryptographically secure random salt."""
    return os.urandom(length)


def derive_key(
    passphrase: bytes | str,
    salt: bytes,
    time_cost: int = 3,
    memory_cost: int = 65536,
    parallelism: int = 1,
    key_len: int = KEY_LENGTH,
) -> bytes:
    """
    Derive an encryption key from a passphrase using Argon2id.
    Returns raw derived key bytes.
    """
    if isinstance(passphrase, str):
        passphrase = passphrase.encode("utf-8")

    try:
        return hash_secret_raw(
            secret=passphrase,
            salt=salt,
            time_cost=time_cost,
            memory_cost=memory_cost,
            parallelism=parallelism,
            hash_len=key_len,
            type=Type.ID,
        )
    except HashingError as e:
        raise KdfError(f"argon2id derivation failed: {e}") from e


@dataclass(frozen=True)
class KdfParams:
    """Argon2id work factors. Stored next to every vault so unlock uses what sealed it."""

    time_cost: int = 3
    memory_cost: int = 65536  # KiB
    parallelism: int = 1
    key_len: int = KEY_LENGTH

    def __post_init__(self) -> None:
        for name, value in asdict(self).items():
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"KDF parameter {name} must be an integer")
            if value >= 2 ** 32:
                raise ValueError(f"KDF parameter {name} is out of range")
        if not 1 <= self.time_cost <= MAX_TIME_COST:
            raise ValueError(f"time_cost must be between 1 and {MAX_TIME_COST}")
        if not 1 <= self.parallelism <= MAX_PARALLELISM:
            raise ValueError(f"parallelism must be between 1 and {MAX_PARALLELISM}")
        if self.memory_cost > MAX_MEMORY_COST:
            raise ValueError(f"memory_cost must be at most {MAX_MEMORY_COST} KiB")
        # argon2 needs at least 8 KiB of memory per lane
        if self.memory_cost < 8 * self.parallelism:
            raise ValueError("memory_cost must be at least 8 * parallelism KiB")
        if self.key_len != KEY_LENGTH:
            raise ValueError(f"key_len must be {KEY_LENGTH} for AES-256")

    def derive(self, passphrase: bytes | str, salt: bytes) -> bytes:
        return derive_key(
            passphrase,
            salt,
            time_cost=self.time_cost,
            memory_cost=self.memory_cost,
            parallelism=self.parallelism,
            key_len=self.key_len,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "algo": ALGORITHM,
            "time": self.time_cost,
            "memory": self.memory_cost,
            "parallelism": self.parallelism,
            "key_len": self.key_len,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "KdfParams":
        """Rebuild params from :meth:`to_dict` output; raises ValueError on anything unexpected."""
        if data.get("algo") != ALGORITHM:
            raise ValueError(f"unsupported KDF algorithm: {data.get('algo')!r}")
        try:
            return cls(
                time_cost=data["time"],
                memory_cost=data["memory"],
                parallelism=data["parallelism"],
                key_len=data.get("key_len", KEY_LENGTH),
            )
        except KeyError as e:
            raise ValueError(f"missing KDF parameter: {e.args[0]}") from e

