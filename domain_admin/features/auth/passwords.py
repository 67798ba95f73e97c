"""
Password hashing with bcrypt.
"""
import bcrypt

from domain_admin.core import config

# bcrypt only looks at the first 72 bytes
_MAX_BYTES = 72


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=config.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8")[:_MAX_BYTES], salt).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8")[:_MAX_BYTES], hashed.encode("utf-8"))
    except ValueError:
        # malformed stored hash
        return False
