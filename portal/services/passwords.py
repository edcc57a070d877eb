import logging

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

logger = logging.getLogger(__name__)

_hasher = PasswordHasher()


class PasswordHashError(Exception):
    """A stored password hash could not be parsed."""


def hash_password(plain: str) -> str:
    return _hasher.hash(plain)


def verify_password(plain: str, password_hash: str) -> bool:
    try:
        return _hasher.verify(password_hash, plain)
    except InvalidHashError as exc:
        logger.error("Stored password hash is malformed")
        raise PasswordHashError("malformed password hash") from exc
    except VerificationError:
        return False


# Checked against for unknown usernames.
DUMMY_HASH = hash_password("not-a-real-password")
