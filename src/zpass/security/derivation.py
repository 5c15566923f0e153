"""Deterministic site passwords from a vault secret key.

Preimage (all lengths 4-byte big-endian)::

    len(tag) || tag || len(key) || key || len(domain) || domain
    || len(username) || username || version (8 bytes)

Block ``i`` of the byte stream is ``SHA3-256(preimage || i)`` with ``i`` as
4 bytes big-endian. Characters are picked by rejection sampling so every
charset symbol is equally likely. When a policy requires character classes,
one character of each class is drawn first, the rest from the whole charset,
and the result is shuffled with Fisher-Yates from the same stream.

Nothing here depends on the platform or on state: same inputs, same password.
"""
from __future__ import annotations

import hashlib
import string
import struct
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from ..core.exceptions import InvalidPolicyError
from ..core.models import PasswordRequest

DOMAIN_TAG = b"zpass-password-v1"
MAX_LENGTH = 1024
DEFAULT_LENGTH = 20

LETTERS = string.ascii_lowercase + string.ascii_uppercase
ALPHANUMERIC = LETTERS + string.digits
SYMBOLS = "!#$%&()*+,-./:;<=>?@[]^_{|}~"
FULL = ALPHANUMERIC + SYMBOLS
# chr(33)..chr(124), the alphabet older zpass versions mapped hash bytes onto
PRINTABLE = "".join(chr(c) for c in range(33, 125))

CHARSETS = {
    "alphanumeric": ALPHANUMERIC,
    "letters": LETTERS,
    "digits": string.digits,
    "symbols": SYMBOLS,
    "full": FULL,
    "printable": PRINTABLE,
}

CHARACTER_CLASSES = {
    "lower": string.ascii_lowercase,
    "upper": string.ascii_uppercase,
    "digit": string.digits,
    "symbol": string.punctuation,
}


@dataclass(frozen=True)
class PasswordPolicy:
    """Shape of a derived password. Invalid policies cannot be constructed."""

    length: int = DEFAULT_LENGTH
    charset: str = FULL
    require_classes: Sequence[str] = ("lower", "upper", "digit", "symbol")

    def __post_init__(self):
        if not isinstance(self.require_classes, (list, tuple)):
            raise InvalidPolicyError("require_classes must be a list of class names")
        object.__setattr__(self, "require_classes", tuple(self.require_classes))
        self.validate()

    def validate(self) -> None:
        if isinstance(self.length, bool) or not isinstance(self.length, int):
            raise InvalidPolicyError("length must be an integer")
        if not 1 <= self.length <= MAX_LENGTH:
            raise InvalidPolicyError(f"length must be between 1 and {MAX_LENGTH}, got {self.length}")
        if not isinstance(self.charset, str) or not self.charset:
            raise InvalidPolicyError("charset must be a non-empty string")
        if len(self.charset) > 256:
            raise InvalidPolicyError("charset may hold at most 256 characters")
        if len(set(self.charset)) != len(self.charset):
            raise InvalidPolicyError("charset contains duplicate characters")
        if len(set(self.require_classes)) != len(self.require_classes):
            raise InvalidPolicyError("require_classes contains duplicates")
        for name in self.require_classes:
            if name not in CHARACTER_CLASSES:
                raise InvalidPolicyError(f"unknown character class: {name!r}")
            if not self.class_chars(name):
                raise InvalidPolicyError(f"charset has no characters of class {name!r}")
        if len(self.require_classes) > self.length:
            raise InvalidPolicyError("more required classes than password characters")

    def class_chars(self, name: str) -> str:
        """Characters of class ``name`` that the charset allows, in charset order."""
        members = CHARACTER_CLASSES[name]
        return "".join(c for c in self.charset if c in members)

    @classmethod
    def from_options(
        cls,
        length: Optional[int] = None,
        charset: Optional[str] = None,
        require_classes: Optional[Sequence[str]] = None,
    ) -> "PasswordPolicy":
        """
        Build a policy from user-facing options.

        ``charset`` may be a key of :data:`CHARSETS` or a literal set of characters.
        Without explicit ``require_classes`` every class present in the charset is
        required, as long as the length leaves room for it.
        """
        if length is None:
            length = DEFAULT_LENGTH
        if charset is None:
            charset = FULL
        charset = CHARSETS.get(charset, charset)
        if require_classes is None:
            present = [
                name for name, members in CHARACTER_CLASSES.items()
                if any(c in members for c in charset)
            ]
            require_classes = present[:length] if isinstance(length, int) and length > 0 else ()
        return cls(length=length, charset=charset, require_classes=tuple(require_classes))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "length": self.length,
            "charset": self.charset,
            "require_classes": list(self.require_classes),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PasswordPolicy":
        if not isinstance(data, dict):
            raise InvalidPolicyError("policy must be an object")
        return cls(
            length=data.get("length", DEFAULT_LENGTH),
            charset=data.get("charset", FULL),
            require_classes=data.get("require_classes", ()),
        )


DEFAULT_POLICY = PasswordPolicy()


def _frame(data: bytes) -> bytes:
    return struct.pack(">I", len(data)) + data


def password_preimage(secret_key: bytes, request: PasswordRequest) -> bytes:
    return b"".join(
        [
            _frame(DOMAIN_TAG),
            _frame(bytes(secret_key)),
            _frame(request.domain.encode("utf-8")),
            _frame(request.username.encode("utf-8")),
            struct.pack(">Q", request.version),
        ]
    )


class _ByteStream:
    """Endless SHA3-256 counter-mode stream over a fixed preimage."""

    def __init__(self, preimage: bytes):
        self._preimage = preimage
        self._counter = 0
        self._block = b""
        self._pos = 0

    def next_byte(self) -> int:
        if self._pos >= len(self._block):
            self._block = hashlib.sha3_256(self._preimage + struct.pack(">I", self._counter)).digest()
            self._counter += 1
            self._pos = 0
        b = self._block[self._pos]
        self._pos += 1
        return b

    def below(self, n: int) -> int:
        """Uniform integer in ``[0, n)`` for ``1 <= n <= 256``."""
        limit = 256 - 256 % n
        while True:
            b = self.next_byte()
            if b < limit:
                return b % n


def _render(policy: PasswordPolicy, stream: _ByteStream) -> str:
    chars: List[str] = []
    for name in policy.require_classes:
        pool = policy.class_chars(name)
        chars.append(pool[stream.below(len(pool))])
    while len(chars) < policy.length:
        chars.append(policy.charset[stream.below(len(policy.charset))])

    if policy.require_classes:
        for i in range(len(chars) - 1, 0, -1):
            j = stream.below(i + 1)
            chars[i], chars[j] = chars[j], chars[i]
    return "".join(chars)


def derive(secret_key: bytes, request: PasswordRequest, policy: Optional[PasswordPolicy] = None) -> str:
    """Derive the password identified by ``request``."""
    if policy is None:
        policy = DEFAULT_POLICY
    policy.validate()
    if not secret_key:
        raise ValueError("secret_key must not be empty")
    return _render(policy, _ByteStream(password_preimage(secret_key, request)))


def derive_password(
    secret_key: bytes,
    domain: str,
    username: str,
    version: int,
    policy: Optional[PasswordPolicy] = None,
) -> str:
    """
    Map ``(secret_key, domain, username, version)`` to a password.

    Pure: no randomness, no I/O, identical output on every platform.
    Raises :class:`InvalidPolicyError` for an impossible policy and
    ``ValueError`` for malformed inputs.
    """
    return derive(secret_key, PasswordRequest(domain, username, version), policy)
