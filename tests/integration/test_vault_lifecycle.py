"""End-to-end vault lifecycle through the store, codec and vault manager."""

import pytest

from zpass.core.exceptions import AuthenticationFailedError, MalformedVaultError, SessionLockedError
from zpass.core.preferences import Preference
from zpass.core.store import VaultStore
from zpass.security.codec import deserialize, serialize
from zpass.security.derivation import PasswordPolicy
from zpass.security.kdf import KdfParams
from zpass.security.session import VaultManager

# --- Fixtures ---


@pytest.fixture
def manager():
    return VaultManager(kdf_params=KdfParams(time_cost=1, memory_cost=8, parallelism=1))


@pytest.fixture
def store(tmp_path):
    return VaultStore(tmp_path / "zpass")


# --- Tests ---


def test_create_derive_lock_reopen(manager, store):
    store.add("personal", manager.create("correct-horse"))

    session = manager.unlock(store.load("personal"), "correct-horse")
    first = session.derive_password("example.com", "alice", 0)
    manager.lock(session)
    with pytest.raises(SessionLockedError):
        session.derive_password("example.com", "alice", 0)

    with pytest.raises(AuthenticationFailedError):
        manager.unlock(store.load("personal"), "wrong-horse")

    with manager.unlock(store.load("personal"), "correct-horse") as session:
        assert session.derive_password("example.com", "alice", 0) == first
        assert session.derive_password("example.com", "alice", 1) != first


def test_export_import_keeps_passwords(manager, store, tmp_path):
    store.add("personal", manager.create("correct-horse"))
    exported = store.read_bytes("personal")

    other = VaultStore(tmp_path / "elsewhere")
    other.add("restored", deserialize(exported))
    assert other.read_bytes("restored") == exported

    with manager.unlock(store.load(), "correct-horse") as a, manager.unlock(other.load(), "correct-horse") as b:
        assert a.derive_password("example.com", "alice") == b.derive_password("example.com", "alice")


def test_vault_opens_with_its_own_kdf_params(manager, store):
    store.add("personal", manager.create("correct-horse"))
    with manager.unlock(store.load(), "correct-horse") as session:
        expected = session.derive_password("example.com", "alice")

    # a manager configured for stronger new vaults still opens older ones
    stronger = VaultManager(kdf_params=KdfParams(time_cost=2, memory_cost=16, parallelism=1))
    with stronger.unlock(store.load(), "correct-horse") as session:
        assert session.derive_password("example.com", "alice") == expected


def test_passphrase_change_persists(manager, store):
    store.add("personal", manager.create("correct-horse"))
    with manager.unlock(store.load(), "correct-horse") as session:
        expected = session.derive_password("example.com", "alice")
        store.save("personal", manager.change_passphrase(session, "battery-staple"))

    with pytest.raises(AuthenticationFailedError):
        manager.unlock(store.load(), "correct-horse")
    with manager.unlock(store.load(), "battery-staple") as session:
        assert session.derive_password("example.com", "alice") == expected


def test_preferences_drive_derivation(manager, store):
    store.add("personal", manager.create("correct-horse"))
    prefs = store.load_preferences()
    prefs.add(Preference("example.com", "alice", policy=PasswordPolicy(length=12)))
    prefs.bump_version("example.com", "alice")
    store.save_preferences(None, prefs)

    request, policy = store.load_preferences().resolve("example.com")
    with manager.unlock(store.load(), "correct-horse") as session:
        password = session.derive(request, policy)
        assert password == session.derive_password("example.com", "alice", 1, PasswordPolicy(length=12))
    assert len(password) == 12


def test_truncated_vault_file_is_rejected(manager, store):
    store.add("personal", manager.create("correct-horse"))
    path = store.vault_path("personal")
    path.write_bytes(path.read_bytes()[:40])
    with pytest.raises(MalformedVaultError):
        store.load()


def test_serialized_form_is_stable(manager, store):
    vault = manager.create("correct-horse")
    store.add("personal", vault)
    assert serialize(store.load()) == serialize(vault)
