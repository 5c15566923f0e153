"""Passphrase input for the command line."""

from __future__ import annotations

import getpass
import os

from zpass.core.exceptions import PassphraseMismatchError

PASSPHRASE_ENV = "ZPASS_PASSPHRASE"


def read_passphrase(prompt: str = "Passphrase: ", confirm: bool = False) -> str:
    """
    Read a passphrase without echoing it.

    ``ZPASS_PASSPHRASE`` takes precedence so scripts can run unattended; it is
    read as-is and never confirmed.
    """
    from_env = os.environ.get(PASSPHRASE_ENV)
    if from_env is not None:
        return from_env

    passphrase = getpass.getpass(prompt)
    if confirm:
        again = getpass.getpass("Repeat " + prompt[0].lower() + prompt[1:])
        if again != passphrase:
            raise PassphraseMismatchError("Passphrases do not match")
    return passphrase
