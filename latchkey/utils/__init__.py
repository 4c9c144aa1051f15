"""Utility modules for latchkey.

Provides common utilities:
- Logging configuration
- Hashing for change detection
- Clipboard access and random secret generators
- Rich display of records
"""

from .clipboard import copy_to_clipboard
from .generators import (
    generate_api_key,
    generate_jwt_secret,
    generate_key,
    generate_password,
)
from .hash import hash_bytes, hash_file
from .logging import (
    console,
    err_console,
    get_logger,
    setup_logging,
)


__all__ = [
    # Logging
    "setup_logging",
    "get_logger",
    "console",
    "err_console",
    # Hashing
    "hash_bytes",
    "hash_file",
    # Clipboard
    "copy_to_clipboard",
    # Generators
    "generate_jwt_secret",
    "generate_key",
    "generate_password",
    "generate_api_key",
]
