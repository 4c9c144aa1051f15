"""Unit tests for the session cache."""

import json
from datetime import timedelta

import pytest

KEY = bytes(range(100, 132))


class TestSessionCache:
    """Tests against the in-memory store."""

    def test_save_and_load(self, session_cache):
        """A saved key is returned unchanged while the session is valid."""
        session_cache.save(KEY, 10)

        assert session_cache.load() == KEY
        assert session_cache.is_active()

    def test_key_is_obfuscated(self, session_cache, session_store):
        """The stored key_data is not the raw key."""
        import base64

        session_cache.save(KEY, 10)

        stored = base64.b64decode(session_store.record.key_data)
        assert len(stored) == 32
        assert stored != KEY

    def test_zero_timeout_saves_nothing(self, session_cache, session_store):
        """Timeout 0 disables caching entirely."""
        assert session_cache.save(KEY, 0) is None

        assert session_store.record is None
        assert session_cache.load() is None

    def test_expires_at(self, session_cache, clock):
        record = session_cache.save(KEY, 15)

        assert record.expires_at == clock.now + timedelta(minutes=15)
        assert session_cache.expires_at() == record.expires_at
        assert session_cache.time_remaining() == timedelta(minutes=15)

    def test_expiry_clears_record(self, session_cache, session_store, clock):
        """Reading an expired session returns None and removes it."""
        session_cache.save(KEY, 1)

        clock.advance(minutes=1, seconds=1)

        assert session_cache.load() is None
        assert session_store.record is None

    def test_not_expired_just_before_deadline(self, session_cache, clock):
        session_cache.save(KEY, 1)

        clock.advance(seconds=59)

        assert session_cache.load() == KEY

    def test_resave_slides_window(self, session_cache, clock):
        """Saving again pushes the expiry forward."""
        session_cache.save(KEY, 5)
        clock.advance(minutes=4)
        session_cache.save(KEY, 5)
        clock.advance(minutes=4)

        assert session_cache.load() == KEY

    def test_clear(self, session_cache):
        session_cache.save(KEY, 10)

        assert session_cache.clear() is True
        assert session_cache.load() is None
        assert session_cache.clear() is False

    def test_different_machine_key_gives_different_key(self, session_store, clock):
        """A session from another user/machine does not yield the original key."""
        from latchkey.vault.session import SessionCache

        SessionCache(session_store, clock=clock, machine_key=b"\x01" * 32).save(KEY, 10)
        other = SessionCache(session_store, clock=clock, machine_key=b"\x02" * 32)

        assert other.load() != KEY

    def test_malformed_key_data_discarded(self, session_cache, session_store, clock):
        """A record whose key is not 32 bytes degrades to locked."""
        from latchkey.vault.session import SessionRecord

        session_store.put(
            SessionRecord(key_data="AAAA", expires_at=clock.now + timedelta(minutes=5))
        )

        assert session_cache.load() is None
        assert session_store.record is None

    def test_save_rejects_wrong_key_size(self, session_cache):
        with pytest.raises(ValueError):
            session_cache.save(b"short", 10)

    def test_machine_key_is_stable(self):
        from latchkey.vault.session import get_machine_key

        assert get_machine_key() == get_machine_key()
        assert len(get_machine_key()) == 32


class TestFileSessionStore:
    """Tests for the file-backed store."""

    @pytest.fixture
    def session_path(self, tmp_path):
        return tmp_path / ".latchkey" / ".session"

    @pytest.fixture
    def file_cache(self, session_path, clock):
        from latchkey.vault.session import FileSessionStore, SessionCache

        return SessionCache(FileSessionStore(session_path), clock=clock)

    def test_layout(self, file_cache, session_path):
        """The session file holds key_data and expires_at."""
        file_cache.save(KEY, 10)

        data = json.loads(session_path.read_text())
        assert set(data) == {"key_data", "expires_at"}
        assert file_cache.load() == KEY

    def test_expired_file_removed(self, file_cache, session_path, clock):
        """After the timeout the next read reports no key and deletes the file."""
        file_cache.save(KEY, 1)
        assert session_path.exists()

        clock.advance(minutes=2)

        assert file_cache.load() is None
        assert not session_path.exists()

    def test_corrupt_file_degrades_to_locked(self, file_cache, session_path):
        """Garbage in the session file is treated as no session."""
        session_path.parent.mkdir(parents=True)
        session_path.write_text("{not json")

        assert file_cache.load() is None
        assert not session_path.exists()

    def test_missing_fields_degrade_to_locked(self, file_cache, session_path):
        session_path.parent.mkdir(parents=True)
        session_path.write_text(json.dumps({"key_data": "AAAA"}))

        assert file_cache.load() is None

    def test_clear_missing_file(self, file_cache):
        assert file_cache.clear() is False

    @pytest.mark.skipif(
        __import__("os").name != "posix", reason="POSIX permissions only"
    )
    def test_file_permissions(self, file_cache, session_path):
        """The session file is readable only by its owner."""
        file_cache.save(KEY, 10)

        assert session_path.stat().st_mode & 0o777 == 0o600
