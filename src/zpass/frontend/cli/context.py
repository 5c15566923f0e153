"""Small helper to build a zpass app context for the CLI."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from zpass.core.settings import Settings
from zpass.core.store import VaultStore
from zpass.security.session import VaultManager


@dataclass
class AppContext:
    """Container for runtime objects the commands need."""

    settings: Settings
    store: VaultStore
    manager: VaultManager
    vault_name: Optional[str] = None


def build_context(
    settings: Optional[Settings] = None,
    home: Optional[str | Path] = None,
    vault_name: Optional[str] = None,
) -> AppContext:
    """
    Wire settings, the on-disk vault store and the vault manager together.

    ``home`` overrides ``ZPASS_HOME``; ``vault_name`` selects a vault other
    than the default one for every command of this invocation.
    """
    if settings is None:
        settings = Settings.from_env()
    if home is not None:
        settings.home = Path(home).expanduser()

    return AppContext(
        settings=settings,
        store=VaultStore(settings.home),
        manager=settings.vault_manager(),
        vault_name=vault_name,
    )
