"""Clipboard sink for derived passwords.

Uses pyperclip for cross-platform clipboard access.
"""

from __future__ import annotations

import pyperclip


def copy_to_clipboard(text: str) -> None:
    """Copy a derived password to the system clipboard.

    Raises:
        pyperclip.PyperclipException: If no clipboard mechanism is available.
    """
    pyperclip.copy(text)
