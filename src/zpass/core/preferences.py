"""
Per-site preferences kept alongside a vault.

A preference remembers, for one (domain, username), the password version and
policy last used, so a password can be regenerated from the domain alone.
Each domain has at most one default preference; it answers lookups that
leave out the username.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterator, List, Optional, Tuple

from .exceptions import (
    InvalidPolicyError,
    PreferenceError,
    PreferenceExistsError,
    PreferenceNotFoundError,
)
from .models import PasswordRequest
from ..security.derivation import PasswordPolicy


@dataclass
class Preference:
    domain: str
    username: str
    version: int = 0
    policy: PasswordPolicy = field(default_factory=PasswordPolicy)
    default: bool = False

    def request(self) -> PasswordRequest:
        return PasswordRequest(self.domain, self.username, self.version)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "domain": self.domain,
            "username": self.username,
            "version": self.version,
            "policy": self.policy.to_dict(),
            "default": self.default,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Preference":
        try:
            pref = cls(
                domain=data["domain"],
                username=data["username"],
                version=data.get("version", 0),
                policy=PasswordPolicy.from_dict(data.get("policy", {})),
                default=bool(data.get("default", False)),
            )
            # validates domain/username/version
            pref.request()
        except (KeyError, TypeError, AttributeError, ValueError, InvalidPolicyError) as e:
            raise PreferenceError(f"invalid preference record: {e}") from e
        return pref


class Preferences:
    """Collection of preferences with one default per domain."""

    def __init__(self, items: Optional[List[Preference]] = None):
        self._items: List[Preference] = list(items or [])

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Preference]:
        return iter(self._items)

    def get(self, domain: str, username: str) -> Optional[Preference]:
        for p in self._items:
            if p.domain == domain and p.username == username:
                return p
        return None

    def require(self, domain: str, username: str) -> Preference:
        pref = self.get(domain, username)
        if pref is None:
            raise PreferenceNotFoundError(f"No preference for {username!r} at {domain!r}")
        return pref

    def get_default(self, domain: str) -> Optional[Preference]:
        for p in self._items:
            if p.domain == domain and p.default:
                return p
        return None

    def for_domain(self, domain: str) -> List[Preference]:
        return [p for p in self._items if p.domain == domain]

    def add(self, preference: Preference) -> Preference:
        """Add ``preference``; the first one for a domain becomes its default."""
        if self.get(preference.domain, preference.username) is not None:
            raise PreferenceExistsError(
                f"Preference for {preference.username!r} at {preference.domain!r} already exists"
            )
        preference.request()
        stored = replace(preference, default=self.get_default(preference.domain) is None)
        self._items.append(stored)
        return stored

    def set_default(self, domain: str, username: str) -> None:
        """Make (domain, username) the only default for ``domain``."""
        self.require(domain, username)
        for p in self._items:
            if p.domain == domain:
                p.default = p.username == username

    def bump_version(self, domain: str, username: str) -> int:
        """Rotate a password by moving its preference to the next version."""
        pref = self.require(domain, username)
        pref.version += 1
        return pref.version

    def remove(self, domain: str, username: str) -> None:
        pref = self.require(domain, username)
        self._items.remove(pref)
        if pref.default:
            remaining = self.for_domain(domain)
            if remaining:
                remaining[0].default = True

    def resolve(
        self,
        domain: str,
        username: Optional[str] = None,
        length: Optional[int] = None,
        version: Optional[int] = None,
    ) -> Tuple[PasswordRequest, PasswordPolicy]:
        """
        Fill in a password request from stored preferences.

        Without ``username`` the domain default is used. ``length`` and
        ``version`` override the stored values when given.
        """
        if username is None:
            pref = self.get_default(domain)
            if pref is None:
                raise PreferenceNotFoundError(f"No default preference for {domain!r}")
        else:
            pref = self.require(domain, username)

        policy = pref.policy
        if length is not None and length != policy.length:
            policy = PasswordPolicy.from_options(
                length=length,
                charset=policy.charset,
                require_classes=policy.require_classes[:length] if length > 0 else (),
            )
        request = PasswordRequest(
            pref.domain,
            pref.username,
            pref.version if version is None else version,
        )
        return request, policy

    def to_list(self) -> List[Dict[str, Any]]:
        return [p.to_dict() for p in self._items]

    @classmethod
    def from_list(cls, data: List[Dict[str, Any]]) -> "Preferences":
        if not isinstance(data, list):
            raise PreferenceError("preferences must be a list")
        return cls([Preference.from_dict(d) for d in data])
