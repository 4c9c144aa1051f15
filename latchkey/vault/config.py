"""Vault configuration for latchkey."""

import os
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_TIMEOUT_MINUTES = 10


def _default_vault_dir() -> Path:
    return Path.home() / ".latchkey"


@dataclass
class VaultConfig:
    """Where the vault lives and session defaults."""

    vault_dir: Path = field(default_factory=_default_vault_dir)

    # File naming
    vault_file: str = "vault.json"
    session_file: str = ".session"
    config_file: str = "config.json"

    # Used when config.json is missing or unreadable
    default_timeout_minutes: int = DEFAULT_TIMEOUT_MINUTES

    @property
    def vault_path(self) -> Path:
        return self.vault_dir / self.vault_file

    @property
    def session_path(self) -> Path:
        return self.vault_dir / self.session_file

    @property
    def config_path(self) -> Path:
        return self.vault_dir / self.config_file

    @classmethod
    def from_env(cls) -> "VaultConfig":
        """
        Load configuration from environment variables.

        Environment variables:
            LATCHKEY_HOME: Vault directory (default: ~/.latchkey)
            LATCHKEY_SESSION_TIMEOUT: Default session timeout in minutes (default: 10)
        """
        config = cls()

        if home := os.getenv("LATCHKEY_HOME"):
            config.vault_dir = Path(home).expanduser()

        if timeout := os.getenv("LATCHKEY_SESSION_TIMEOUT"):
            config.default_timeout_minutes = max(int(timeout), 0)

        return config


@dataclass
class SessionConfig:
    """User settings persisted in config.json."""

    timeout_minutes: int = DEFAULT_TIMEOUT_MINUTES  # 0 = never cache the key

    def __post_init__(self):
        if self.timeout_minutes < 0:
            raise ValueError("timeout_minutes must be >= 0")

    @property
    def caching_enabled(self) -> bool:
        return self.timeout_minutes > 0

    def to_dict(self) -> dict:
        return {"timeout_minutes": self.timeout_minutes}

    @classmethod
    def from_dict(cls, data: dict) -> "SessionConfig":
        return cls(timeout_minutes=int(data["timeout_minutes"]))


# Global configuration instance
_config: VaultConfig | None = None


def get_vault_config() -> VaultConfig:
    """Get the global vault configuration."""
    global _config
    if _config is None:
        _config = VaultConfig.from_env()
    return _config


def set_vault_config(config: VaultConfig | None) -> None:
    """Set the global vault configuration (None re-reads the environment)."""
    global _config
    _config = config
