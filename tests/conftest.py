"""Shared pytest fixtures for latchkey tests."""

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

MASTER_PASSWORD = "correct horse battery"


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture(autouse=True)
def reset_vault_config():
    """Make every test re-read LATCHKEY_HOME instead of a cached config."""
    from latchkey.vault.config import set_vault_config

    set_vault_config(None)
    yield
    set_vault_config(None)


@pytest.fixture
def vault_dir(tmp_path: Path) -> Path:
    """Vault directory inside the test's temporary directory (not created)."""
    return tmp_path / ".latchkey"


@pytest.fixture
def vault_config(vault_dir: Path):
    from latchkey.vault.config import VaultConfig

    return VaultConfig(vault_dir=vault_dir)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def session_store():
    from latchkey.vault.session import MemorySessionStore

    return MemorySessionStore()


@pytest.fixture
def session_cache(session_store, clock):
    from latchkey.vault.session import SessionCache

    return SessionCache(session_store, clock=clock, machine_key=bytes(range(32)))


@pytest.fixture
def vault(vault_config, session_cache):
    """A vault that has not been initialized yet."""
    from latchkey.vault import Vault

    return Vault(vault_config, session=session_cache)


@pytest.fixture
def unlocked_vault(vault):
    """An initialized, empty, unlocked vault."""
    vault.init(MASTER_PASSWORD)
    return vault


@pytest.fixture
def make_vault(vault_config, session_cache):
    """Build a fresh Vault over the same files, as a new command invocation would."""
    from latchkey.vault import Vault

    def _make():
        return Vault(vault_config, session=session_cache)

    return _make


@pytest.fixture
def cli_home(tmp_path: Path, monkeypatch) -> Path:
    """Point the CLI at a temporary vault directory."""
    home = tmp_path / "cli_home"
    monkeypatch.setenv("LATCHKEY_HOME", str(home))
    monkeypatch.delenv("LATCHKEY_SESSION_TIMEOUT", raising=False)
    return home


@pytest.fixture
def master_password() -> str:
    return MASTER_PASSWORD
