"""Vault exceptions for latchkey."""

# Shown for every authentication failure, whatever the underlying cause.
GENERIC_AUTH_MESSAGE = "Wrong password or corrupted vault."


class VaultError(Exception):
    """Base exception for vault operations."""

    pass


class InvalidFormatError(VaultError):
    """Raised when persisted data is not structurally valid.

    Carries no information about key correctness, so it is safe to report
    precisely.
    """

    def __init__(self, message: str = "Invalid ciphertext format."):
        super().__init__(message)


class AuthenticationError(VaultError):
    """Raised on wrong password, tampered ciphertext or a stale cached key."""

    def __init__(self, message: str = GENERIC_AUTH_MESSAGE):
        super().__init__(message)


class KeyDerivationError(VaultError):
    """Raised when a key cannot be derived (bad parameters or salt)."""

    def __init__(self, message: str = "Failed to derive key."):
        super().__init__(message)


class EncryptionError(VaultError):
    """Raised when encryption fails."""

    def __init__(self, message: str = "Encryption failed."):
        super().__init__(message)


class VaultNotFoundError(VaultError):
    """Raised when no vault file exists yet."""

    def __init__(self, path: str = ""):
        message = f"Vault not found: {path}" if path else "Vault not found."
        super().__init__(message)


class VaultAlreadyExistsError(VaultError):
    """Raised when initializing over an existing vault without force."""

    def __init__(self, message: str = "Vault already exists."):
        super().__init__(message)


class VaultLockedError(VaultError):
    """Raised when attempting to access a locked vault."""

    def __init__(self, message: str = "Vault is locked. Unlock with password first."):
        super().__init__(message)


class VaultConflictError(VaultError):
    """Raised when the vault file changed on disk since it was loaded."""

    def __init__(
        self,
        message: str = "Vault was modified by another process. Re-run the command.",
    ):
        super().__init__(message)


class SecretNotFoundError(VaultError):
    """Raised when no record matches an id or name."""

    def __init__(self, id_or_name: str = ""):
        message = f"Secret '{id_or_name}' not found." if id_or_name else "Secret not found."
        super().__init__(message)
        self.id_or_name = id_or_name


class SecretValidationError(VaultError):
    """Raised when a new record is missing required fields."""

    def __init__(self, kind: str, missing: list[str]):
        fields = ", ".join(missing)
        super().__init__(f"Missing required field(s) for {kind}: {fields}")
        self.kind = kind
        self.missing = missing
