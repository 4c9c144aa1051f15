"""latchkey - local-first encrypted secret manager for developers."""

__version__ = "0.1.0"

from .vault import SecretType, Vault

__all__ = [
    "__version__",
    "SecretType",
    "Vault",
]
