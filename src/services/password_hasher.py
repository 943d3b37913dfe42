"""Password hashing and strength policy.

Hashes are bcrypt strings ($2b$ prefix) with a random salt per call, so
hashing the same password twice yields two different hashes.
"""

import os
import re
import string

import bcrypt

# bcrypt cost factor (2^rounds iterations)
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))

MIN_PASSWORD_LENGTH = 8
# bcrypt refuses longer inputs
MAX_PASSWORD_BYTES = 72
SPECIAL_CHARACTERS = frozenset(string.punctuation)


class PasswordHasher:
    """One-way password hashing and strength checking."""

    def __init__(self, rounds: int = BCRYPT_ROUNDS):
        self.rounds = rounds

    def is_password_strong(self, raw: str | None) -> bool:
        """Return True if raw meets every strength criterion.

        Criteria: at least 8 characters and at most 72 UTF-8 bytes, one
        uppercase letter, one lowercase letter, one digit and one special
        character. Never raises.
        """
        if not raw:
            return False
        if len(raw) < MIN_PASSWORD_LENGTH:
            return False
        if len(raw.encode('utf-8', 'surrogatepass')) > MAX_PASSWORD_BYTES:
            return False
        if not re.search(r'[A-Z]', raw):
            return False
        if not re.search(r'[a-z]', raw):
            return False
        if not re.search(r'[0-9]', raw):
            return False
        return any(ch in SPECIAL_CHARACTERS for ch in raw)

    def encode_password(self, raw: str | None) -> str:
        """Hash raw with a fresh salt.

        Raises:
            ValueError: raw is None, or bcrypt rejects it (e.g. over 72 bytes)
        """
        if raw is None:
            raise ValueError("raw password must not be None")
        salt = bcrypt.gensalt(rounds=self.rounds)
        hashed = bcrypt.hashpw(raw.encode('utf-8'), salt)
        return hashed.decode('utf-8')

    def matches(self, raw: str | None, hashed: str | None) -> bool:
        """Verify raw against a stored hash.

        Raises:
            ValueError: raw is None
            TypeError: hashed is None
        """
        if raw is None:
            raise ValueError("raw password must not be None")
        if hashed is None:
            raise TypeError("hashed password must not be None")
        if not raw or not hashed:
            return False
        try:
            return bcrypt.checkpw(raw.encode('utf-8'), hashed.encode('utf-8'))
        except ValueError:
            # Not a bcrypt hash
            return False
