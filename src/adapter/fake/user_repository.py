"""In-memory implementation of UserRepository for testing."""

from dataclasses import replace
from typing import AsyncIterator

from domain.model.errors import ConflictError, NotFoundError
from domain.model.user import User


class FakeUserRepository:
    """Dict-backed store that enforces the same unique constraints as the users table.

    Users are copied on the way in and out so callers cannot mutate stored state.
    """

    def __init__(self):
        self.store: dict[int, User] = {}
        self._next_id = 1
        self.save_calls = 0

    # ── write operations ─────────────────────────────────────

    async def save(self, user: User) -> User:
        self.save_calls += 1
        for other in self.store.values():
            if other.id == user.id:
                continue
            if other.username == user.username or other.email == user.email:
                raise ConflictError("username or email already exists")

        if user.id is None:
            stored = replace(user, id=self._next_id)
            self._next_id += 1
        else:
            if user.id not in self.store:
                raise NotFoundError("user does not exist")
            stored = replace(user)

        self.store[stored.id] = stored
        return replace(stored)

    async def delete_by_id(self, user_id: int) -> None:
        self.store.pop(user_id, None)

    # ── read operations ──────────────────────────────────────

    async def find_by_id(self, user_id: int) -> User | None:
        user = self.store.get(user_id)
        return replace(user) if user else None

    async def find_by_username(self, username: str) -> User | None:
        for user in self.store.values():
            if user.username == username:
                return replace(user)
        return None

    async def find_by_email(self, email: str) -> User | None:
        for user in self.store.values():
            if user.email == email:
                return replace(user)
        return None

    async def exists_by_username(self, username: str) -> bool:
        return any(u.username == username for u in self.store.values())

    async def exists_by_email(self, email: str) -> bool:
        return any(u.email == email for u in self.store.values())

    async def find_by_username_containing(self, keyword: str) -> AsyncIterator[User]:
        needle = keyword.lower()
        for user in self._newest_first():
            if needle in user.username.lower():
                yield replace(user)

    async def find_by_email_containing(self, keyword: str) -> AsyncIterator[User]:
        needle = keyword.lower()
        for user in self._newest_first():
            if needle in user.email.lower():
                yield replace(user)

    async def find_all_paged(self, limit: int, offset: int) -> AsyncIterator[User]:
        for user in self._newest_first()[offset:offset + limit]:
            yield replace(user)

    async def find_all(self) -> AsyncIterator[User]:
        for user in list(self.store.values()):
            yield replace(user)

    async def count_all(self) -> int:
        return len(self.store)

    def _newest_first(self) -> list[User]:
        return sorted(self.store.values(), key=lambda u: (u.created_at, u.id), reverse=True)
