import logging

import bcrypt
from cryptography.fernet import Fernet, InvalidToken

from pipeelo_onboarding.settings import get_settings

logger = logging.getLogger(__name__)


BCRYPT_ROUNDS = 12


def verify_password(password: str, password_hash: str | None) -> bool:
    """Check a dashboard or tenant admin password against its stored hash."""
    if not password_hash:
        return False
    return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))


def get_password_hash(password: str) -> str:
    """
    Hash a user password for the users table.

    Onboarding admins get the same password the remote account was created
    with, so it is hashed here and never stored in clear.
    """
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode("utf-8")


def _fernet(encryption_key: str | None) -> Fernet | None:
    key = encryption_key if encryption_key is not None else get_settings().ONBOARDING_ENCRYPTION_KEY
    if not key:
        return None
    return Fernet(key.encode())


def encrypt_secret(value: str | None, encryption_key: str | None = None) -> str | None:
    """
    Encrypt a secret for storage.

    Values are stored as-is when no encryption key is configured (development).
    """
    if not value:
        return value
    f = _fernet(encryption_key)
    if f is None:
        return value
    return f.encrypt(value.encode()).decode()


def decrypt_secret(value: str | None, encryption_key: str | None = None) -> str | None:
    """Decrypt a stored secret, returning it unchanged if it is not a Fernet token."""
    if not value:
        return value
    f = _fernet(encryption_key)
    if f is None:
        return value
    try:
        return f.decrypt(value.encode()).decode()
    except InvalidToken:
        logger.warning("Failed to decrypt stored secret, using raw value")
        return value
