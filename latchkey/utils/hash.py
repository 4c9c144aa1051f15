"""Content fingerprints.

The vault records the SHA-256 of the vault file it loaded and compares it
with the file on disk before writing, to notice changes made by another
process in between.
"""

import hashlib
from pathlib import Path
from typing import Optional

DEFAULT_ALGORITHM = "sha256"

# Read size for hash_file
READ_CHUNK_SIZE = 64 * 1024


def hash_bytes(data: bytes, algorithm: str = DEFAULT_ALGORITHM) -> str:
    """Hex digest of data."""
    return hashlib.new(algorithm, data).hexdigest()


def hash_file(file_path: Path, algorithm: str = DEFAULT_ALGORITHM) -> Optional[str]:
    """
    Hex digest of a file's contents.

    Returns:
        The digest, or None if the file does not exist
    """
    hasher = hashlib.new(algorithm)
    try:
        with open(file_path, "rb") as f:
            while chunk := f.read(READ_CHUNK_SIZE):
                hasher.update(chunk)
    except FileNotFoundError:
        return None
    return hasher.hexdigest()
