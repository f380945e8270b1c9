'''
Security helpers that several services need (password hashing, opaque
references). Kept apart from services/security.py to prevent circular imports.
'''
import secrets
import string

from passlib.context import CryptContext

_REFERENCE_ALPHABET = string.ascii_uppercase + string.digits


class HashedPassword:
    pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

    @classmethod
    def verify(cls, plain_password: str, hashed_password: str) -> bool:
        return cls.pwd_context.verify(plain_password, hashed_password)

    @classmethod
    def get_hash(cls, password: str) -> str:
        return cls.pwd_context.hash(password)


def generate_reference(prefix: str, length: int = 8) -> str:
    """Human-readable unguessable reference, e.g. TKT-7Q2M9XKD."""
    suffix = ''.join(secrets.choice(_REFERENCE_ALPHABET) for _ in range(length))
    return f"{prefix}-{suffix}"
