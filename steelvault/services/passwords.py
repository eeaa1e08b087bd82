# steelvault/services/passwords.py
import logging

import bcrypt
from werkzeug.security import generate_password_hash, check_password_hash

logger = logging.getLogger(__name__)

BCRYPT_PREFIXES = ('$2a$', '$2b$', '$2y$')


def hash_password(password):
    """Hash a new password with werkzeug's default scheme."""
    if not password:
        raise ValueError("Password must not be empty")
    return generate_password_hash(password)


def verify_password(password, password_hash):
    """
    Check a plaintext password against a stored hash.

    Accounts imported from the legacy dashboard carry bcrypt hashes; ones created by
    this API carry werkzeug hashes. Anything else, or any error while checking,
    counts as a failed verification.
    """
    if not password or not password_hash or not isinstance(password_hash, str):
        return False

    try:
        if password_hash.startswith(BCRYPT_PREFIXES):
            # bcrypt only understands the $2b$ tag; $2y$ is the PHP spelling of the same format
            normalized = '$2b$' + password_hash[4:]
            return bcrypt.checkpw(password.encode('utf-8'), normalized.encode('utf-8'))
        return check_password_hash(password_hash, password)
    except Exception as e:
        logger.warning(f"Password hash could not be verified ({type(e).__name__}); treating as mismatch")
        return False
