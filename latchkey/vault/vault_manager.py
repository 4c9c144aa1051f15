"""Vault orchestrator.

Owns the locked/unlocked state of one vault, the decrypted secret
collection while a command runs, and the rule that every change is
re-encrypted and written out as a whole file before it becomes visible.
"""

from datetime import datetime
from enum import Enum
from typing import Callable, Optional

from ..utils.logging import get_logger
from .config import SessionConfig, VaultConfig, get_vault_config
from .crypto import KeyDerivation, decrypt, encrypt
from .exceptions import (
    AuthenticationError,
    KeyDerivationError,
    SecretNotFoundError,
    VaultAlreadyExistsError,
    VaultLockedError,
    VaultNotFoundError,
)
from .models import (
    ApiKey,
    DbCredential,
    Note,
    Password,
    SecretCollection,
    SecretRecord,
    SecretType,
    Token,
)
from .session import SessionCache, SessionRecord, get_session_cache
from .storage import VaultFile, VaultStorage

logger = get_logger(__name__)


class VaultState(Enum):
    """Lifecycle states of a vault."""

    UNINITIALIZED = "uninitialized"  # No vault file
    LOCKED = "locked"  # Vault file exists, nothing decrypted
    UNLOCKED = "unlocked"  # Collection decrypted for this process


class Vault:
    """
    High-level vault operations.

    Usage:
        vault = Vault()

        if not vault.exists:
            vault.init(password)
        else:
            vault.ensure_unlocked(prompt_for_password)

        vault.add_password("github", "hunter2", username="octocat")
        record = vault.get("github")
    """

    def __init__(
        self,
        config: Optional[VaultConfig] = None,
        storage: Optional[VaultStorage] = None,
        session: Optional[SessionCache] = None,
    ):
        """
        Args:
            config: Vault configuration (uses global if not provided)
            storage: File storage (built from config if not provided)
            session: Session cache (file-backed at config.session_path if
                not provided)
        """
        if config is None:
            config = storage.config if storage is not None else get_vault_config()
        self.config = config
        self.storage = storage or VaultStorage(config)
        self.session = session or get_session_cache(self.storage.session_path)

        self._key: Optional[bytes] = None
        self._vault_file: Optional[VaultFile] = None
        self._data: Optional[SecretCollection] = None

    # ------------------------------------------------------------------
    # State

    @property
    def exists(self) -> bool:
        """Check if a vault file has been created."""
        return self.storage.vault_exists()

    @property
    def state(self) -> VaultState:
        if not self.exists:
            return VaultState.UNINITIALIZED
        if self._data is None:
            return VaultState.LOCKED
        return VaultState.UNLOCKED

    @property
    def collection(self) -> SecretCollection:
        """The decrypted collection. Raises VaultLockedError when locked."""
        return self._require_unlocked()

    def session_config(self) -> SessionConfig:
        return self.storage.load_config()

    def is_unlocked(self) -> bool:
        """Unlocked in this process, or a valid cached session exists."""
        if self.state is VaultState.UNLOCKED:
            return True
        return self.exists and self.session.is_active()

    def _require_unlocked(self) -> SecretCollection:
        if self._data is None:
            raise VaultLockedError()
        return self._data

    def _hold(self, key: bytes, vault_file: VaultFile, collection: SecretCollection) -> None:
        self._key = key
        self._vault_file = vault_file
        self._data = collection

    # ------------------------------------------------------------------
    # Lifecycle

    def init(self, password: str, force: bool = False) -> SecretCollection:
        """
        Create a new, empty vault.

        Args:
            password: Master password
            force: Replace an existing vault, destroying all its secrets

        Returns:
            The (empty) collection; the vault is left unlocked

        Raises:
            VaultAlreadyExistsError: If a vault exists and force is False
            ValueError: If password is empty
        """
        if self.exists and not force:
            raise VaultAlreadyExistsError(f"Vault already exists at {self.storage.vault_path}")

        if not password:
            raise ValueError("Master password must not be empty")

        if force:
            self.session.clear()

        salt = KeyDerivation.generate_salt()
        key = KeyDerivation.derive_key(password, salt)
        collection = SecretCollection()
        vault_file = VaultFile(salt=salt, encrypted_data=encrypt(key, collection.to_json()))

        self.storage.save_vault_file(vault_file)
        self._hold(key, vault_file, collection)

        logger.info(f"Initialized vault at {self.storage.vault_path}")
        return collection

    def _load_vault_file(self) -> VaultFile:
        if not self.exists:
            raise VaultNotFoundError(str(self.storage.vault_path))
        return self.storage.load_vault_file()

    def _open(self, key: bytes, vault_file: VaultFile) -> SecretCollection:
        """Decrypt and parse encrypted_data under key."""
        plaintext = decrypt(key, vault_file.encrypted_data)
        try:
            return SecretCollection.from_json(plaintext)
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.debug(f"Decrypted vault contents could not be parsed: {type(e).__name__}")
            raise AuthenticationError()

    def authenticate(self, password: str) -> tuple[bytes, SecretCollection]:
        """
        Derive the key from password and decrypt the vault.

        This is the only place a password is turned into a key. On success
        the vault is unlocked in this process.

        Returns:
            (derived key, decrypted collection)

        Raises:
            VaultNotFoundError: If no vault exists
            InvalidFormatError: If the vault file is structurally invalid
            AuthenticationError: Wrong password or corrupted vault, never
                distinguished
        """
        vault_file = self._load_vault_file()
        try:
            key = KeyDerivation.derive_key(password, vault_file.salt)
        except KeyDerivationError as e:
            logger.debug(f"Key derivation failed: {e}")
            raise AuthenticationError()

        collection = self._open(key, vault_file)
        self._hold(key, vault_file, collection)
        logger.debug("Vault unlocked with password")
        return key, collection

    def unlock(self, password: str) -> SecretCollection:
        """Unlock with the master password. See authenticate()."""
        _, collection = self.authenticate(password)
        return collection

    def unlock_with_key(self, key: bytes) -> SecretCollection:
        """Unlock with an already derived key, skipping key derivation."""
        vault_file = self._load_vault_file()
        collection = self._open(key, vault_file)
        self._hold(key, vault_file, collection)
        return collection

    def unlock_cached(self) -> bool:
        """
        Try to unlock from the session cache.

        A cached key that no longer opens the vault (for example after a
        forced re-init elsewhere) is discarded and the vault stays locked.

        Returns:
            True if the vault is now unlocked
        """
        if self.state is VaultState.UNLOCKED:
            return True

        key = self.session.load()
        if key is None:
            return False

        try:
            self.unlock_with_key(key)
        except AuthenticationError:
            logger.debug("Cached session key rejected, clearing session")
            self.session.clear()
            return False

        logger.debug("Vault unlocked from session cache")
        return True

    def ensure_unlocked(self, prompt: Callable[[], str]) -> SecretCollection:
        """
        Unlock using the session cache, falling back to prompt().

        After a password unlock a session is saved with the configured
        timeout.

        Args:
            prompt: Called with no arguments; returns the master password

        Raises:
            VaultNotFoundError: If no vault exists
            AuthenticationError: If the prompted password is wrong
        """
        if self.state is VaultState.UNLOCKED:
            return self._data

        if not self.exists:
            raise VaultNotFoundError(str(self.storage.vault_path))

        if self.unlock_cached():
            return self._data

        collection = self.unlock(prompt())
        self.start_session()
        return collection

    def start_session(self, timeout_minutes: Optional[int] = None) -> Optional[SessionRecord]:
        """
        Cache the current key for later invocations.

        Args:
            timeout_minutes: Override of the configured timeout; 0 saves nothing

        Returns:
            The saved session record, or None if caching is disabled
        """
        self._require_unlocked()
        if timeout_minutes is None:
            timeout_minutes = self.session_config().timeout_minutes
        return self.session.save(self._key, timeout_minutes)

    def lock(self) -> bool:
        """
        Forget the key in this process and clear the cached session.

        Returns:
            True if a cached session was removed
        """
        self._key = None
        self._vault_file = None
        self._data = None
        cleared = self.session.clear()
        logger.debug("Vault locked")
        return cleared

    # ------------------------------------------------------------------
    # Persistence

    def _commit(self, collection: SecretCollection) -> None:
        """
        Encrypt collection and overwrite the vault file, then adopt it.

        Serialization, encryption and the conflict check all happen before
        the file is touched; if any of them fails the in-memory collection
        and the file are both left as they were.
        """
        plaintext = collection.to_json()
        new_file = VaultFile(
            salt=self._vault_file.salt,
            encrypted_data=encrypt(self._key, plaintext),
        )
        self.storage.save_vault_file(
            new_file,
            expected_fingerprint=self._vault_file.fingerprint,
        )
        self._vault_file = new_file
        self._data = collection
        self._refresh_session()

    def _refresh_session(self) -> None:
        """Slide the session window forward after a successful write."""
        try:
            self.session.save(self._key, self.session_config().timeout_minutes)
        except OSError as e:
            logger.warning(f"Could not refresh session: {e}")

    # ------------------------------------------------------------------
    # Records

    def add(self, record: SecretRecord) -> SecretRecord:
        """
        Add a record and persist the vault.

        Raises:
            VaultLockedError: If not unlocked
            SecretValidationError: If required fields are missing
        """
        data = self._require_unlocked()
        record.validate()
        if any(existing.id == record.id for existing in data):
            raise ValueError(f"Duplicate secret id: {record.id}")

        self._commit(data.with_added(record))
        logger.info(f"Added {record.kind.label} {record.id}")
        return record

    def add_password(
        self,
        name: str,
        password: str,
        description: Optional[str] = None,
        username: Optional[str] = None,
        url: Optional[str] = None,
    ) -> Password:
        self._require_unlocked()
        return self.add(
            Password.create(
                name=name,
                password=password,
                description=description,
                username=username,
                url=url,
            )
        )

    def add_api_key(
        self,
        name: str,
        key: str,
        description: Optional[str] = None,
        service: Optional[str] = None,
    ) -> ApiKey:
        self._require_unlocked()
        return self.add(ApiKey.create(name=name, key=key, description=description, service=service))

    def add_note(self, name: str, content: str) -> Note:
        self._require_unlocked()
        return self.add(Note.create(name=name, content=content))

    def add_db_credential(
        self,
        name: str,
        host: str,
        database: str,
        username: str,
        password: str,
        port: Optional[int] = None,
        db_type: Optional[str] = None,
        description: Optional[str] = None,
    ) -> DbCredential:
        self._require_unlocked()
        return self.add(
            DbCredential.create(
                name=name,
                host=host,
                database=database,
                username=username,
                password=password,
                port=port,
                db_type=db_type,
                description=description,
            )
        )

    def add_token(
        self,
        name: str,
        token: str,
        description: Optional[str] = None,
        token_type: Optional[str] = None,
        expires_at: Optional[datetime] = None,
    ) -> Token:
        self._require_unlocked()
        return self.add(
            Token.create(
                name=name,
                token=token,
                description=description,
                token_type=token_type,
                expires_at=expires_at,
            )
        )

    def get(self, id_or_name: str, kind: Optional[SecretType] = None) -> SecretRecord:
        """
        Look up a record by id, then by exact name.

        When several records share a name the first one wins (kind order,
        then insertion order).

        Raises:
            SecretNotFoundError: If nothing matches
        """
        record = self._require_unlocked().find(id_or_name, kind)
        if record is None:
            raise SecretNotFoundError(id_or_name)
        return record

    def delete(self, id_or_name: str, kind: Optional[SecretType] = None) -> SecretRecord:
        """
        Delete the record get() would return and persist the vault.

        Returns:
            The removed record
        """
        record = self.get(id_or_name, kind)
        self._commit(self._data.without(record.id))
        logger.info(f"Deleted {record.kind.label} {record.id}")
        return record

    def list(self, kind: Optional[SecretType] = None) -> list[SecretRecord]:
        """Records of one kind, or all in kind order."""
        return self._require_unlocked().records(kind)


def is_vault_initialized(config: Optional[VaultConfig] = None) -> bool:
    """Check if a vault file exists."""
    config = config or get_vault_config()
    return config.vault_path.exists()


def get_vault(config: Optional[VaultConfig] = None) -> Vault:
    """Get a vault for the configured directory."""
    return Vault(config)
