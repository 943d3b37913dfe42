from dataclasses import dataclass
from datetime import datetime


@dataclass
class User:
    """Domain model representing a user account."""
    username: str
    email: str
    password_hash: str
    bio: str | None = None
    is_active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None
    id: int | None = None


# ── Inputs ───────────────────────────────────────────────


@dataclass(frozen=True)
class UserCandidate:
    """Fields supplied by a caller to create a user. Holds the raw password."""
    username: str
    email: str
    password: str
    bio: str | None = None


@dataclass(frozen=True)
class UserPatch:
    """Fields supplied by a caller to update a user.

    username, email and bio replace the stored values. The password is only
    replaced when a non-empty value is given.
    """
    username: str
    email: str
    password: str | None = None
    bio: str | None = None

    @property
    def has_new_password(self) -> bool:
        return bool(self.password)
