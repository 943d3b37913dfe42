from typing import AsyncIterator, Protocol

from domain.model.user import User


class UserRepository(Protocol):
    """Protocol defining the interface for user data access.

    Single-value operations are coroutines. Multi-value operations return
    async iterators ordered by created_at descending unless noted.
    """

    async def find_by_id(self, user_id: int) -> User | None:
        """Find a user by ID. Return User or None if not found."""
        ...

    async def find_by_username(self, username: str) -> User | None:
        """Find a user by exact username. Return User or None if not found."""
        ...

    async def find_by_email(self, email: str) -> User | None:
        """Find a user by exact email. Return User or None if not found."""
        ...

    async def exists_by_username(self, username: str) -> bool:
        """Return True if a user holds this exact username."""
        ...

    async def exists_by_email(self, email: str) -> bool:
        """Return True if a user holds this exact email."""
        ...

    def find_by_username_containing(self, keyword: str) -> AsyncIterator[User]:
        """Yield users whose username contains keyword, ignoring case."""
        ...

    def find_by_email_containing(self, keyword: str) -> AsyncIterator[User]:
        """Yield users whose email contains keyword, ignoring case."""
        ...

    def find_all_paged(self, limit: int, offset: int) -> AsyncIterator[User]:
        """Yield at most limit users, newest first, skipping offset."""
        ...

    def find_all(self) -> AsyncIterator[User]:
        """Yield every user in storage order."""
        ...

    async def count_all(self) -> int:
        """Return the total number of users."""
        ...

    async def save(self, user: User) -> User:
        """Insert (id is None) or update a user. Return the persisted User.

        Raises ConflictError when the store's unique constraint on username
        or email rejects the write.
        """
        ...

    async def delete_by_id(self, user_id: int) -> None:
        """Delete a user by ID. Missing IDs are not an error."""
        ...
