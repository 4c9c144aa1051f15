"""Random secret generators.

Independent of the vault: these only produce values a user may then store.
"""

import base64
import secrets
import string

LOWERCASE = string.ascii_lowercase
UPPERCASE = string.ascii_uppercase
DIGITS = string.digits
SYMBOLS = "!@#$%^&*()-_=+[]{}|;:,.<>?"

API_KEY_PREFIX = "lk_"

DEFAULT_KEY_BYTES = 32
DEFAULT_PASSWORD_LENGTH = 16
MIN_PASSWORD_LENGTH = 4


def generate_jwt_secret() -> str:
    """512-bit random secret, URL-safe base64 without padding."""
    return base64.urlsafe_b64encode(secrets.token_bytes(64)).decode("ascii").rstrip("=")


def generate_key(length: int = DEFAULT_KEY_BYTES) -> str:
    """Random key of length bytes, hex encoded."""
    if length < 1:
        raise ValueError("Key length must be at least 1 byte")
    return secrets.token_hex(length)


def generate_password(length: int = DEFAULT_PASSWORD_LENGTH, symbols: bool = False) -> str:
    """Random password containing at least one character of each class."""
    if length < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password length must be at least {MIN_PASSWORD_LENGTH}")

    classes = [LOWERCASE, UPPERCASE, DIGITS]
    if symbols:
        classes.append(SYMBOLS)
    alphabet = "".join(classes)

    password = [secrets.choice(chars) for chars in classes]
    password += [secrets.choice(alphabet) for _ in range(length - len(password))]

    secrets.SystemRandom().shuffle(password)
    return "".join(password)


def generate_api_key() -> str:
    """Prefixed API key, e.g. lk_3f9c..."""
    return API_KEY_PREFIX + secrets.token_hex(24)
