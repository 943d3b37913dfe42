"""User service: account management business logic.

Pure business logic with no HTTP dependencies.
Raises domain errors that route handlers map to HTTP status codes.

Uniqueness checks here are check-then-act: two concurrent creates can both
pass them. The store's unique constraints are the authoritative guard and
repositories report a violation as ConflictError, the same error raised by
the checks below.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import AsyncIterator

from domain.model.errors import (
    ConflictError,
    DomainError,
    InternalError,
    NotFoundError,
    ValidationError,
)
from domain.model.user import User, UserCandidate, UserPatch
from port.user_repository import UserRepository
from services.password_hasher import PasswordHasher

logger = logging.getLogger(__name__)

DUPLICATE_ACCOUNT_MESSAGE = "username or email already exists"
DUPLICATE_USERNAME_MESSAGE = "username already exists"
DUPLICATE_EMAIL_MESSAGE = "email already exists"
WEAK_PASSWORD_MESSAGE = "password does not meet strength requirements"
ENCRYPTION_FAILED_MESSAGE = "password encryption failed"
USER_NOT_FOUND_MESSAGE = "user does not exist"
DELETE_FAILED_MESSAGE = "failed to delete user"


def _now() -> datetime:
    return datetime.now(timezone.utc)


class UserService:
    """Orchestrates user creation, lookup, update and deletion.

    Collaborators are passed in and never replaced after construction.
    """

    def __init__(self, repo: UserRepository, hasher: PasswordHasher):
        self._repo = repo
        self._hasher = hasher

    # ── write operations ─────────────────────────────────────

    async def create_user(self, candidate: UserCandidate) -> User:
        """Create a new user.

        Steps run strictly in order and stop at the first failure:
        username check, email check, strength check, hashing, insert.

        Raises:
            ConflictError: username or email already registered
            ValidationError: password does not meet strength requirements
            InternalError: password hashing failed
        """
        logger.info("Creating user", extra={"username": candidate.username})

        if await self._repo.exists_by_username(candidate.username):
            logger.warning("Username already registered", extra={"username": candidate.username})
            raise ConflictError(DUPLICATE_ACCOUNT_MESSAGE)

        if await self._repo.exists_by_email(candidate.email):
            logger.warning("Email already registered", extra={"email": candidate.email})
            raise ConflictError(DUPLICATE_ACCOUNT_MESSAGE)

        if not self._hasher.is_password_strong(candidate.password):
            raise ValidationError(WEAK_PASSWORD_MESSAGE)

        password_hash = await self._encode(candidate.password)

        now = _now()
        user = User(
            username=candidate.username,
            email=candidate.email,
            password_hash=password_hash,
            bio=candidate.bio,
            created_at=now,
            updated_at=now,
        )
        saved = await self._repo.save(user)

        logger.info("User created", extra={"userId": saved.id, "username": saved.username})
        return saved

    async def update_user(self, user_id: int, patch: UserPatch) -> User:
        """Apply patch to an existing user.

        The username check only runs when the username changes, and the email
        check only when the email changes. Username is checked first.

        Raises:
            NotFoundError: no user with user_id
            ConflictError: new username or email belongs to another user
            ValidationError: new password does not meet strength requirements
            InternalError: password hashing failed
        """
        logger.info("Updating user", extra={"userId": user_id})

        existing = await self._repo.find_by_id(user_id)
        if existing is None:
            raise NotFoundError(USER_NOT_FOUND_MESSAGE)

        if patch.username != existing.username:
            if await self._repo.exists_by_username(patch.username):
                logger.warning("Username already taken", extra={"userId": user_id, "username": patch.username})
                raise ConflictError(DUPLICATE_USERNAME_MESSAGE)

        if patch.email != existing.email:
            if await self._repo.exists_by_email(patch.email):
                logger.warning("Email already taken", extra={"userId": user_id, "email": patch.email})
                raise ConflictError(DUPLICATE_EMAIL_MESSAGE)

        password_hash = existing.password_hash
        if patch.has_new_password:
            if not self._hasher.is_password_strong(patch.password):
                raise ValidationError(WEAK_PASSWORD_MESSAGE)
            password_hash = await self._encode(patch.password)

        existing.username = patch.username
        existing.email = patch.email
        existing.bio = patch.bio
        existing.password_hash = password_hash
        existing.updated_at = _now()

        saved = await self._repo.save(existing)

        logger.info("User updated", extra={"userId": saved.id})
        return saved

    async def delete_user(self, user_id: int) -> None:
        """Delete a user. Succeeds even if the user does not exist.

        Raises:
            InternalError: storage failed
        """
        logger.info("Deleting user", extra={"userId": user_id})
        try:
            await self._repo.delete_by_id(user_id)
        except DomainError:
            raise
        except Exception as e:
            logger.exception("Failed to delete user", extra={"userId": user_id})
            raise InternalError(DELETE_FAILED_MESSAGE) from e

    # ── read operations ──────────────────────────────────────

    async def get_user_by_id(self, user_id: int) -> User | None:
        """Return the user, or None if absent. Absence is not an error."""
        logger.info("Fetching user by ID", extra={"userId": user_id})
        return await self._repo.find_by_id(user_id)

    def get_all_users(self) -> AsyncIterator[User]:
        logger.info("Fetching all users")
        return self._repo.find_all()

    def get_users_with_pagination(self, page: int, size: int) -> AsyncIterator[User]:
        """Return one page of users, newest first. page is zero-based.

        Raises:
            ValidationError: page is negative or size is not positive
        """
        logger.info("Fetching users page", extra={"page": page, "size": size})
        if page < 0:
            raise ValidationError("page must not be negative")
        if size <= 0:
            raise ValidationError("size must be greater than zero")
        return self._repo.find_all_paged(limit=size, offset=page * size)

    def search_users_by_username(self, keyword: str) -> AsyncIterator[User]:
        logger.info("Searching users by username", extra={"keyword": keyword})
        return self._repo.find_by_username_containing(keyword)

    def search_users_by_email(self, keyword: str) -> AsyncIterator[User]:
        logger.info("Searching users by email", extra={"keyword": keyword})
        return self._repo.find_by_email_containing(keyword)

    async def count_all_users(self) -> int:
        logger.info("Counting users")
        return await self._repo.count_all()

    # ── helpers ──────────────────────────────────────────────

    async def _encode(self, raw: str) -> str:
        """Hash raw off the event loop."""
        try:
            return await asyncio.to_thread(self._hasher.encode_password, raw)
        except ValueError as e:
            logger.error("Password encryption failed", extra={"error": str(e)})
            raise InternalError(ENCRYPTION_FAILED_MESSAGE) from e
