"""Session caching for the vault.

Each command runs in its own short-lived process, so "staying unlocked"
means persisting the derived key between invocations. A session record
holds the key and an expiry time; while a valid record exists the vault
counts as unlocked and no password prompt is needed.

The key is XORed with a machine key derived from the home directory and
user name before it is written. That only keeps the key from being read at
a glance. It is not a security boundary: anyone who can read the session
file can read the vault file too.
"""

import base64
import binascii
import hashlib
import json
import os
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Optional, Protocol

from ..utils.logging import get_logger
from .crypto import KEY_SIZE
from .exceptions import InvalidFormatError
from .storage import atomic_write_text

logger = get_logger(__name__)

MACHINE_KEY_CONTEXT = "latchkey_session_v1"

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class SessionRecord:
    """Persisted session: obfuscated key plus expiry."""

    key_data: str  # base64 of the obfuscated key
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    def time_remaining(self, now: datetime) -> timedelta:
        return max(self.expires_at - now, timedelta(0))

    def to_dict(self) -> dict[str, Any]:
        return {"key_data": self.key_data, "expires_at": self.expires_at.isoformat()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SessionRecord":
        try:
            expires_at = datetime.fromisoformat(data["expires_at"])
            key_data = data["key_data"]
            if not isinstance(key_data, str):
                raise TypeError("key_data must be a string")
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidFormatError(f"Invalid session record: {e}")
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return cls(key_data=key_data, expires_at=expires_at)


class SessionStore(Protocol):
    """Where session records live between invocations."""

    def get(self) -> Optional[SessionRecord]:
        """Return the stored record, None if absent.

        Raises InvalidFormatError if a record exists but cannot be parsed.
        """
        ...

    def put(self, record: SessionRecord) -> None:
        ...

    def clear(self) -> bool:
        """Remove the record. Returns True if one existed."""
        ...


class FileSessionStore:
    """Session record stored as a JSON file (mode 0600)."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def get(self) -> Optional[SessionRecord]:
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise InvalidFormatError(f"Invalid session file: {e}")
        if not isinstance(data, dict):
            raise InvalidFormatError("Invalid session file: not an object")
        return SessionRecord.from_dict(data)

    def put(self, record: SessionRecord) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True, mode=0o700)
        atomic_write_text(self.path, json.dumps(record.to_dict()))

    def clear(self) -> bool:
        if self.path.exists():
            self.path.unlink(missing_ok=True)
            return True
        return False


class MemorySessionStore:
    """In-process session store, for tests and embedding."""

    def __init__(self, record: Optional[SessionRecord] = None):
        self.record = record

    def get(self) -> Optional[SessionRecord]:
        return self.record

    def put(self, record: SessionRecord) -> None:
        self.record = record

    def clear(self) -> bool:
        existed = self.record is not None
        self.record = None
        return existed


def get_machine_key() -> bytes:
    """
    32-byte pad derived from low-entropy machine/user identifiers.

    Stable for one user on one machine; that is all it promises.
    """
    parts = [
        str(Path.home()),
        os.getenv("USER") or os.getenv("USERNAME") or "",
        MACHINE_KEY_CONTEXT,
    ]
    return hashlib.sha256("\0".join(parts).encode("utf-8")).digest()


def _xor(data: bytes, pad: bytes) -> bytes:
    return bytes(a ^ b for a, b in zip(data, pad))


class SessionCache:
    """
    Saves and restores the derived vault key across processes.

    Usage:
        cache = SessionCache(FileSessionStore(config.session_path))
        cache.save(key, timeout_minutes=10)
        key = cache.load()  # None when locked or expired
    """

    def __init__(
        self,
        store: SessionStore,
        clock: Optional[Clock] = None,
        machine_key: Optional[bytes] = None,
    ):
        """
        Args:
            store: Backing store for the session record
            clock: Returns the current aware datetime (default: UTC now)
            machine_key: Obfuscation pad (default: get_machine_key())
        """
        self.store = store
        self.clock = clock or utcnow
        self._machine_key = machine_key

    @property
    def machine_key(self) -> bytes:
        if self._machine_key is None:
            self._machine_key = get_machine_key()
        return self._machine_key

    def save(self, key: bytes, timeout_minutes: int) -> Optional[SessionRecord]:
        """
        Cache key until now + timeout_minutes.

        A timeout of 0 disables caching: nothing is written and None is
        returned.
        """
        if timeout_minutes <= 0:
            return None
        if len(key) != KEY_SIZE:
            raise ValueError(f"Key must be {KEY_SIZE} bytes, got {len(key)}")

        record = SessionRecord(
            key_data=base64.b64encode(_xor(key, self.machine_key)).decode("ascii"),
            expires_at=self.clock() + timedelta(minutes=timeout_minutes),
        )
        self.store.put(record)
        logger.debug(f"Session saved, expires at {record.expires_at.isoformat()}")
        return record

    def _current_record(self) -> Optional[SessionRecord]:
        """Valid, unexpired record or None. Expired or corrupt records are removed."""
        try:
            record = self.store.get()
        except InvalidFormatError as e:
            logger.debug(f"Discarding unreadable session: {e}")
            self.store.clear()
            return None

        if record is None:
            return None

        if record.is_expired(self.clock()):
            logger.debug("Session expired")
            self.store.clear()
            return None

        return record

    def load(self) -> Optional[bytes]:
        """Return the cached key, or None if there is no valid session."""
        record = self._current_record()
        if record is None:
            return None

        try:
            obfuscated = base64.b64decode(record.key_data, validate=True)
        except (binascii.Error, ValueError):
            obfuscated = b""
        if len(obfuscated) != KEY_SIZE:
            logger.debug("Discarding session with malformed key data")
            self.store.clear()
            return None

        return _xor(obfuscated, self.machine_key)

    def clear(self) -> bool:
        """Forget the cached key. Returns True if a session existed."""
        return self.store.clear()

    def is_active(self) -> bool:
        return self._current_record() is not None

    def expires_at(self) -> Optional[datetime]:
        record = self._current_record()
        return record.expires_at if record else None

    def time_remaining(self) -> Optional[timedelta]:
        record = self._current_record()
        return record.time_remaining(self.clock()) if record else None


def get_session_cache(session_path: Path) -> SessionCache:
    """Session cache backed by the file at session_path."""
    return SessionCache(FileSessionStore(session_path))
