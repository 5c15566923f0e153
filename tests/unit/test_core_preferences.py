"""Unit tests for per-site preferences."""

import pytest

from zpass.core.exceptions import (
    PreferenceError,
    PreferenceExistsError,
    PreferenceNotFoundError,
)
from zpass.core.models import PasswordRequest
from zpass.core.preferences import Preference, Preferences
from zpass.security.derivation import ALPHANUMERIC, DEFAULT_POLICY, PasswordPolicy


# ==============================================================================
# Fixtures
# ==============================================================================

@pytest.fixture
def prefs():
    p = Preferences()
    p.add(Preference("example.com", "alice"))
    p.add(Preference("example.com", "bob", policy=PasswordPolicy(length=12, charset=ALPHANUMERIC, require_classes=())))
    p.add(Preference("github.com", "alice", version=2))
    return p


# ==============================================================================
# Tests: Adding & defaults
# ==============================================================================

def test_first_preference_per_domain_is_default(prefs):
    assert prefs.get("example.com", "alice").default
    assert not prefs.get("example.com", "bob").default
    assert prefs.get("github.com", "alice").default


def test_add_ignores_caller_default_flag():
    p = Preferences()
    p.add(Preference("example.com", "alice"))
    stored = p.add(Preference("example.com", "bob", default=True))
    assert not stored.default
    assert p.get_default("example.com").username == "alice"


def test_add_duplicate(prefs):
    with pytest.raises(PreferenceExistsError):
        prefs.add(Preference("example.com", "alice", version=5))


def test_add_invalid_version():
    with pytest.raises(ValueError):
        Preferences().add(Preference("example.com", "alice", version=-1))


def test_set_default_is_exclusive(prefs):
    prefs.set_default("example.com", "bob")
    defaults = [p.username for p in prefs.for_domain("example.com") if p.default]
    assert defaults == ["bob"]


def test_set_default_unknown(prefs):
    with pytest.raises(PreferenceNotFoundError):
        prefs.set_default("example.com", "carol")


def test_len_and_iter(prefs):
    assert len(prefs) == 3
    assert [(p.domain, p.username) for p in prefs] == [
        ("example.com", "alice"),
        ("example.com", "bob"),
        ("github.com", "alice"),
    ]


# ==============================================================================
# Tests: Versions & removal
# ==============================================================================

def test_bump_version(prefs):
    assert prefs.bump_version("github.com", "alice") == 3
    assert prefs.get("github.com", "alice").version == 3


def test_bump_version_unknown(prefs):
    with pytest.raises(PreferenceNotFoundError):
        prefs.bump_version("nowhere.org", "alice")


def test_remove_default_promotes_next(prefs):
    prefs.remove("example.com", "alice")
    assert prefs.get("example.com", "alice") is None
    assert prefs.get_default("example.com").username == "bob"


def test_remove_last_for_domain(prefs):
    prefs.remove("github.com", "alice")
    assert prefs.get_default("github.com") is None
    assert len(prefs) == 2


# ==============================================================================
# Tests: Resolve
# ==============================================================================

def test_resolve_uses_domain_default(prefs):
    request, policy = prefs.resolve("example.com")
    assert request == PasswordRequest("example.com", "alice", 0)
    assert policy == DEFAULT_POLICY


def test_resolve_named_user(prefs):
    request, policy = prefs.resolve("example.com", username="bob")
    assert request.username == "bob"
    assert policy.length == 12


def test_resolve_overrides(prefs):
    request, policy = prefs.resolve("github.com", length=8, version=0)
    assert request == PasswordRequest("github.com", "alice", 0)
    assert policy.length == 8
    assert policy.require_classes == DEFAULT_POLICY.require_classes


def test_resolve_short_length_trims_classes(prefs):
    _, policy = prefs.resolve("example.com", length=2)
    assert policy.length == 2
    assert policy.require_classes == ("lower", "upper")


def test_resolve_keeps_stored_version(prefs):
    request, _ = prefs.resolve("github.com")
    assert request.version == 2


def test_resolve_unknown_domain(prefs):
    with pytest.raises(PreferenceNotFoundError):
        prefs.resolve("nowhere.org")


def test_resolve_unknown_user(prefs):
    with pytest.raises(PreferenceNotFoundError):
        prefs.resolve("example.com", username="carol")


# ==============================================================================
# Tests: Serialization
# ==============================================================================

def test_list_roundtrip(prefs):
    restored = Preferences.from_list(prefs.to_list())
    assert restored.to_list() == prefs.to_list()
    assert restored.get("example.com", "bob").policy == prefs.get("example.com", "bob").policy


def test_preference_dict_fields():
    data = Preference("example.com", "alice", version=4).to_dict()
    assert data["domain"] == "example.com"
    assert data["version"] == 4
    assert data["policy"]["length"] == 20
    assert data["default"] is False


@pytest.mark.parametrize(
    "data",
    [
        {"username": "alice"},
        {"domain": "example.com"},
        {"domain": "example.com", "username": "alice", "version": -1},
        {"domain": "example.com", "username": "alice", "version": "one"},
        {"domain": "example.com", "username": "alice", "policy": {"length": 0}},
        {"domain": "example.com", "username": 7},
        "example.com",
    ],
)
def test_from_dict_rejects_bad_records(data):
    with pytest.raises(PreferenceError):
        Preference.from_dict(data)


def test_from_list_rejects_non_list():
    with pytest.raises(PreferenceError):
        Preferences.from_list({"domain": "example.com"})
