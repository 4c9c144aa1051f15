"""On-disk storage for the vault, session and config files.

Every write goes through atomic_write_text(): the new content is written to
a temporary file in the same directory, flushed to disk and moved over the
target with os.replace(), so readers see either the old or the new file.
"""

import json
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from ..utils.hash import hash_bytes, hash_file
from ..utils.logging import get_logger
from .config import SessionConfig, VaultConfig, get_vault_config
from .exceptions import InvalidFormatError, VaultConflictError, VaultNotFoundError

logger = get_logger(__name__)

DIR_MODE = 0o700
FILE_MODE = 0o600


def atomic_write_text(path: Path, content: str, mode: int = FILE_MODE) -> None:
    """Replace path with content in one step."""
    path = Path(path)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp_name, mode)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


@dataclass
class VaultFile:
    """
    Contents of vault.json.

    Only the salt is stored in the clear; the whole secret collection lives
    in encrypted_data.
    """

    salt: str
    encrypted_data: str
    # SHA-256 of the raw file bytes this instance was loaded from
    fingerprint: Optional[str] = field(default=None, compare=False)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {"salt": self.salt, "encrypted_data": self.encrypted_data}

    def to_json(self) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict(), indent=2)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "VaultFile":
        """Create from dictionary."""
        salt = data["salt"]
        encrypted_data = data["encrypted_data"]
        if not isinstance(salt, str) or not isinstance(encrypted_data, str):
            raise TypeError("salt and encrypted_data must be strings")
        return cls(salt=salt, encrypted_data=encrypted_data)

    @classmethod
    def from_json(cls, json_str: str) -> "VaultFile":
        """Deserialize from JSON string."""
        try:
            data = json.loads(json_str)
            return cls.from_dict(data)
        except (json.JSONDecodeError, KeyError, TypeError) as e:
            raise InvalidFormatError(f"Invalid vault file: {e}")


class VaultStorage:
    """
    Reads and writes the files under the vault directory.

    Usage:
        storage = VaultStorage()
        if storage.vault_exists():
            vault_file = storage.load_vault_file()
    """

    def __init__(self, config: Optional[VaultConfig] = None):
        """
        Args:
            config: Vault configuration (uses global if not provided)
        """
        self.config = config or get_vault_config()

    @property
    def vault_dir(self) -> Path:
        return self.config.vault_dir

    @property
    def vault_path(self) -> Path:
        return self.config.vault_path

    @property
    def session_path(self) -> Path:
        return self.config.session_path

    @property
    def config_path(self) -> Path:
        return self.config.config_path

    def ensure_vault_dir(self) -> None:
        """Create the vault directory, readable only by its owner."""
        if not self.vault_dir.exists():
            self.vault_dir.mkdir(parents=True, mode=DIR_MODE)
            logger.debug(f"Created vault directory {self.vault_dir}")

    def vault_exists(self) -> bool:
        return self.vault_path.exists()

    def load_vault_file(self) -> VaultFile:
        """
        Load vault.json.

        Raises:
            VaultNotFoundError: If the file does not exist
            InvalidFormatError: If the file is not a valid vault file
        """
        if not self.vault_path.exists():
            raise VaultNotFoundError(str(self.vault_path))
        raw = self.vault_path.read_bytes()
        try:
            content = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise InvalidFormatError(f"Invalid vault file: {e}")
        vault_file = VaultFile.from_json(content)
        vault_file.fingerprint = hash_bytes(raw)
        return vault_file

    def current_fingerprint(self) -> Optional[str]:
        """Hash of vault.json as it is on disk now, or None if absent."""
        return hash_file(self.vault_path)

    def save_vault_file(
        self,
        vault_file: VaultFile,
        expected_fingerprint: Optional[str] = None,
    ) -> str:
        """
        Overwrite vault.json with vault_file.

        Args:
            vault_file: New contents
            expected_fingerprint: If given, the file on disk must still match
                this hash, otherwise nothing is written

        Returns:
            Fingerprint of the newly written file

        Raises:
            VaultConflictError: If the file changed since it was loaded
        """
        self.ensure_vault_dir()
        content = vault_file.to_json()

        if expected_fingerprint is not None:
            if self.current_fingerprint() != expected_fingerprint:
                raise VaultConflictError()

        atomic_write_text(self.vault_path, content)
        vault_file.fingerprint = hash_bytes(content.encode("utf-8"))
        logger.debug(f"Saved vault file {self.vault_path}")
        return vault_file.fingerprint

    def delete_vault_file(self) -> bool:
        """Remove vault.json. Returns True if a file was removed."""
        if self.vault_path.exists():
            self.vault_path.unlink()
            return True
        return False

    def load_config(self) -> SessionConfig:
        """Load config.json, falling back to defaults if missing or invalid."""
        default = SessionConfig(timeout_minutes=self.config.default_timeout_minutes)
        if not self.config_path.exists():
            return default
        try:
            data = json.loads(self.config_path.read_text(encoding="utf-8"))
            return SessionConfig.from_dict(data)
        except (json.JSONDecodeError, UnicodeDecodeError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Ignoring unreadable config file {self.config_path}: {e}")
            return default

    def save_config(self, session_config: SessionConfig) -> None:
        """Write config.json."""
        self.ensure_vault_dir()
        atomic_write_text(
            self.config_path,
            json.dumps(session_config.to_dict(), indent=2),
        )
