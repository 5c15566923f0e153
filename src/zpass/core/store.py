"""
Vault store: named vaults on disk

Structure Map for reference:
==============================
 - <root>/                         (default ~/.zpass)
      - settings.json              {"default_vault": "<name>"}
      - vaults/
          - {name}/
              - vault.json         sealed vault (see security/codec.py)
              - preferences.json   per-site preferences
==============================

The store only moves bytes around. Sealing, unlocking and deriving happen in
zpass.security; nothing here ever sees a passphrase or a secret key.
Writes go to a temporary file in the target directory and are swapped in
with os.replace, so a crash never leaves half a vault behind.
"""

from __future__ import annotations

import json
import logging
import os
import re
import shutil
import tempfile
from pathlib import Path
from typing import Any, List, Optional

from .exceptions import (
    InvalidVaultNameError,
    PreferenceError,
    StoreError,
    VaultExistsError,
    VaultNotFoundError,
)
from .models import Vault
from .preferences import Preferences
from ..security.codec import deserialize, serialize

logger = logging.getLogger(__name__)

VAULT_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]{0,63}$")


def _atomic_write(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp, 0o600)
        os.replace(tmp, path)
    except BaseException:
        try:
            os.unlink(tmp)
        except FileNotFoundError:
            pass
        raise


class VaultStore:
    """A directory of named vaults with one default."""

    def __init__(self, root: Optional[str | Path] = None):
        self.root = Path(root).expanduser() if root else Path.home() / ".zpass"

    # ------------------------------------------------------------------
    # Path helpers
    # ------------------------------------------------------------------

    @property
    def settings_path(self) -> Path:
        return self.root / "settings.json"

    @property
    def vaults_root(self) -> Path:
        return self.root / "vaults"

    def vault_dir(self, name: str) -> Path:
        if not isinstance(name, str) or not VAULT_NAME_RE.match(name):
            raise InvalidVaultNameError(
                f"Invalid vault name {name!r}: use letters, digits, '.', '_' or '-'"
            )
        return self.vaults_root / name

    def vault_path(self, name: str) -> Path:
        return self.vault_dir(name) / "vault.json"

    def preferences_path(self, name: str) -> Path:
        return self.vault_dir(name) / "preferences.json"

    # ------------------------------------------------------------------
    # Store settings
    # ------------------------------------------------------------------

    def _load_settings(self) -> dict:
        if not self.settings_path.exists():
            return {}
        try:
            with open(self.settings_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise StoreError(f"Corrupted store settings at {self.settings_path}") from e
        if not isinstance(data, dict):
            raise StoreError(f"Corrupted store settings at {self.settings_path}")
        return data

    def _save_settings(self, data: dict) -> None:
        _atomic_write(self.settings_path, json.dumps(data, indent=2).encode("utf-8"))

    def default_name(self) -> Optional[str]:
        name = self._load_settings().get("default_vault")
        if name and self.exists(name):
            return name
        return None

    def set_default(self, name: str) -> None:
        if not self.exists(name):
            raise VaultNotFoundError(f"Vault {name!r} not found.")
        settings = self._load_settings()
        settings["default_vault"] = name
        self._save_settings(settings)
        logger.info("default vault set to %s", name)

    def _resolve(self, name: Optional[str]) -> str:
        if name is None:
            name = self.default_name()
            if name is None:
                raise VaultNotFoundError("No default vault; create one first.")
        if not self.exists(name):
            raise VaultNotFoundError(f"Vault {name!r} not found.")
        return name

    # ------------------------------------------------------------------
    # Vaults
    # ------------------------------------------------------------------

    def names(self) -> List[str]:
        if not self.vaults_root.exists():
            return []
        return sorted(
            p.name for p in self.vaults_root.iterdir()
            if p.is_dir() and (p / "vault.json").exists()
        )

    def exists(self, name: str) -> bool:
        return self.vault_path(name).exists()

    def add(self, name: str, vault: Vault) -> None:
        """Persist a new vault; the first vault in the store becomes the default."""
        if self.exists(name):
            raise VaultExistsError(f"Vault {name!r} already exists.")
        first = not self.names()
        _atomic_write(self.vault_path(name), serialize(vault))
        _atomic_write(self.preferences_path(name), b"[]")
        logger.info("stored new vault %s", name)
        if first or self.default_name() is None:
            self.set_default(name)

    def load(self, name: Optional[str] = None) -> Vault:
        """Read a vault (the default one when ``name`` is None)."""
        name = self._resolve(name)
        return deserialize(self.vault_path(name).read_bytes())

    def read_bytes(self, name: Optional[str] = None) -> bytes:
        """Raw vault document, e.g. for export."""
        return self.vault_path(self._resolve(name)).read_bytes()

    def save(self, name: str, vault: Vault) -> None:
        """Overwrite an existing vault, e.g. after a passphrase change."""
        if not self.exists(name):
            raise VaultNotFoundError(f"Vault {name!r} not found.")
        _atomic_write(self.vault_path(name), serialize(vault))
        logger.info("updated vault %s", name)

    def delete(self, name: str) -> None:
        """Remove a vault and its preferences for good."""
        if not self.exists(name):
            raise VaultNotFoundError(f"Vault {name!r} not found.")
        was_default = self._load_settings().get("default_vault") == name
        shutil.rmtree(self.vault_dir(name))
        logger.info("deleted vault %s", name)
        if was_default:
            settings = self._load_settings()
            remaining = self.names()
            if remaining:
                settings["default_vault"] = remaining[0]
            else:
                settings.pop("default_vault", None)
            self._save_settings(settings)

    # ------------------------------------------------------------------
    # Preferences
    # ------------------------------------------------------------------

    def load_preferences(self, name: Optional[str] = None) -> Preferences:
        name = self._resolve(name)
        path = self.preferences_path(name)
        if not path.exists():
            return Preferences()
        try:
            data: Any = json.loads(path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise PreferenceError(f"Corrupted preferences for vault {name!r}") from e
        return Preferences.from_list(data)

    def save_preferences(self, name: Optional[str], preferences: Preferences) -> None:
        name = self._resolve(name)
        raw = json.dumps(preferences.to_list(), indent=2, ensure_ascii=False).encode("utf-8")
        _atomic_write(self.preferences_path(name), raw)
