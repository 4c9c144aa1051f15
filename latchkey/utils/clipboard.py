"""Clipboard access.

Copying is best effort: a missing clipboard backend (e.g. headless Linux
without xclip) must not undo an operation that already succeeded.
"""

import pyperclip

from .logging import get_logger

logger = get_logger(__name__)


def copy_to_clipboard(text: str) -> bool:
    """Copy text to the clipboard. Returns False if no clipboard is available."""
    try:
        pyperclip.copy(text)
    except pyperclip.PyperclipException as e:
        logger.warning(f"Clipboard unavailable: {e}")
        return False
    return True
