"""Unit tests for the Key Derivation Function (KDF) module."""

from unittest.mock import patch

import pytest
from argon2.exceptions import HashingError

from zpass.core.exceptions import KdfError, ZPassError
from zpass.security.kdf import (
    MAX_MEMORY_COST,
    MAX_PARALLELISM,
    MAX_TIME_COST,
    KdfParams,
    derive_key,
    generate_salt,
)


CHEAP = dict(time_cost=1, memory_cost=8, parallelism=1)


def test_generate_salt_defaults():
    """Ensure salt generation returns bytes of the default length (16)."""
    salt = generate_salt()
    assert isinstance(salt, bytes)
    assert len(salt) == 16


def test_generate_salt_custom_length():
    salt = generate_salt(length=32)
    assert len(salt) == 32


def test_generate_salt_is_random():
    assert generate_salt() != generate_salt()


def test_derive_key_with_string_passphrase():
    key = derive_key("secure_string_passphrase", generate_salt(), **CHEAP)
    assert isinstance(key, bytes)
    assert len(key) == 32


def test_derive_key_str_and_bytes_agree():
    """Passing the same passphrase as str or bytes yields the same key."""
    salt = generate_salt()
    assert derive_key("passphrase123", salt, **CHEAP) == derive_key(b"passphrase123", salt, **CHEAP)


def test_derive_key_is_deterministic():
    salt = b"\x01" * 16
    assert derive_key(b"pass", salt, **CHEAP) == derive_key(b"pass", salt, **CHEAP)


def test_derive_key_depends_on_salt_and_passphrase():
    salt = b"\x01" * 16
    base = derive_key(b"pass", salt, **CHEAP)
    assert derive_key(b"pass", b"\x02" * 16, **CHEAP) != base
    assert derive_key(b"pas5", salt, **CHEAP) != base


def test_derive_key_depends_on_work_factor():
    salt = b"\x01" * 16
    assert derive_key(b"pass", salt, time_cost=1, memory_cost=8) != derive_key(
        b"pass", salt, time_cost=2, memory_cost=8
    )


# ==============================================================================
# Tests: KdfParams
# ==============================================================================

def test_kdf_params_defaults_are_conservative():
    params = KdfParams()
    assert params.time_cost == 3
    assert params.memory_cost == 65536
    assert params.parallelism == 1
    assert params.key_len == 32


def test_kdf_params_derive_matches_function():
    params = KdfParams(**CHEAP)
    salt = b"\xaa" * 16
    assert params.derive("pw", salt) == derive_key(b"pw", salt, **CHEAP)


def test_kdf_params_dict_roundtrip():
    params = KdfParams(time_cost=2, memory_cost=1024, parallelism=4)
    assert params.to_dict() == {
        "algo": "argon2id",
        "time": 2,
        "memory": 1024,
        "parallelism": 4,
        "key_len": 32,
    }
    assert KdfParams.from_dict(params.to_dict()) == params


@pytest.mark.parametrize(
    "kwargs",
    [
        dict(time_cost=0),
        dict(parallelism=0),
        dict(memory_cost=4),
        dict(key_len=16),
        dict(time_cost="3"),
        dict(time_cost=True),
        dict(memory_cost=2 ** 32),
        dict(time_cost=MAX_TIME_COST + 1),
        dict(memory_cost=MAX_MEMORY_COST + 1),
        dict(parallelism=MAX_PARALLELISM + 1, memory_cost=MAX_MEMORY_COST),
        dict(parallelism=2 ** 25, memory_cost=2 ** 28),
    ],
)
def test_kdf_params_rejects_bad_values(kwargs):
    with pytest.raises(ValueError):
        KdfParams(**kwargs)


def test_kdf_params_from_dict_rejects_other_algorithms():
    with pytest.raises(ValueError, match="unsupported KDF algorithm"):
        KdfParams.from_dict({"algo": "pbkdf2", "time": 1, "memory": 8, "parallelism": 1})


def test_kdf_params_from_dict_missing_field():
    with pytest.raises(ValueError, match="missing KDF parameter"):
        KdfParams.from_dict({"algo": "argon2id", "time": 1, "parallelism": 1})


def test_kdf_params_accepts_the_caps():
    params = KdfParams(time_cost=MAX_TIME_COST, memory_cost=MAX_MEMORY_COST, parallelism=1)
    assert params.memory_cost == 2 ** 22


def test_kdf_params_from_dict_rejects_oversized_work_factors():
    with pytest.raises(ValueError, match="time_cost"):
        KdfParams.from_dict({"algo": "argon2id", "time": 2 ** 31, "memory": 8, "parallelism": 1})


# ==============================================================================
# Tests: Argon2 failures
# ==============================================================================

def test_derive_key_wraps_argon2_errors():
    with patch("zpass.security.kdf.hash_secret_raw", side_effect=HashingError("Too many lanes")):
        with pytest.raises(KdfError, match="Too many lanes") as exc_info:
            derive_key(b"pass", b"\x01" * 16, **CHEAP)
    assert isinstance(exc_info.value, ZPassError)
    assert isinstance(exc_info.value.__cause__, HashingError)
