"""Encrypted vault for latchkey.

Argon2id turns the master password into a 256-bit key; the whole secret
collection is encrypted with AES-256-GCM into a single vault file. A session
cache keeps the derived key between command invocations for a configurable
number of minutes.

Usage:
    from latchkey.vault import Vault

    vault = Vault()
    if not vault.exists:
        vault.init(password)
    else:
        vault.ensure_unlocked(lambda: getpass.getpass())

    vault.add_api_key("stripe", "sk_live_...", service="Stripe")
    for record in vault.list():
        print(record.name)
"""

# Exceptions
from .exceptions import (
    AuthenticationError,
    EncryptionError,
    InvalidFormatError,
    KeyDerivationError,
    SecretNotFoundError,
    SecretValidationError,
    VaultAlreadyExistsError,
    VaultConflictError,
    VaultError,
    VaultLockedError,
    VaultNotFoundError,
)

# Configuration
from .config import (
    SessionConfig,
    VaultConfig,
    get_vault_config,
    set_vault_config,
)

# Crypto
from .crypto import (
    AuthenticatedCipher,
    KeyDerivation,
    decrypt,
    encrypt,
)

# Records
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

# Storage
from .storage import (
    VaultFile,
    VaultStorage,
)

# Session management
from .session import (
    FileSessionStore,
    MemorySessionStore,
    SessionCache,
    SessionRecord,
    SessionStore,
    get_session_cache,
)

# Vault operations
from .vault_manager import (
    Vault,
    VaultState,
    get_vault,
    is_vault_initialized,
)

__all__ = [
    # Exceptions
    "VaultError",
    "InvalidFormatError",
    "AuthenticationError",
    "KeyDerivationError",
    "EncryptionError",
    "VaultNotFoundError",
    "VaultAlreadyExistsError",
    "VaultLockedError",
    "VaultConflictError",
    "SecretNotFoundError",
    "SecretValidationError",
    # Configuration
    "VaultConfig",
    "SessionConfig",
    "get_vault_config",
    "set_vault_config",
    # Crypto
    "KeyDerivation",
    "AuthenticatedCipher",
    "encrypt",
    "decrypt",
    # Records
    "SecretType",
    "SecretRecord",
    "Password",
    "ApiKey",
    "Note",
    "DbCredential",
    "Token",
    "SecretCollection",
    # Storage
    "VaultFile",
    "VaultStorage",
    # Session
    "SessionRecord",
    "SessionStore",
    "FileSessionStore",
    "MemorySessionStore",
    "SessionCache",
    "get_session_cache",
    # Vault
    "Vault",
    "VaultState",
    "get_vault",
    "is_vault_initialized",
]
