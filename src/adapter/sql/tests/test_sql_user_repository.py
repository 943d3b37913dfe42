"""Tests for SqlUserRepository against in-memory SQLite."""

import unittest
from datetime import datetime, timedelta, timezone

from sqlalchemy.ext.asyncio import async_sessionmaker

from adapter.sql.connection import create_engine_for, init_models, ping
from adapter.sql.user_repository import SqlUserRepository
from domain.model.errors import ConflictError, NotFoundError
from domain.model.user import User

IN_MEMORY_URL = "sqlite+aiosqlite:///:memory:"
BASE_TIME = datetime(2026, 1, 1, tzinfo=timezone.utc)


def _user(i: int, **overrides) -> User:
    created = BASE_TIME + timedelta(minutes=i)
    defaults = dict(
        username=f"user{i}",
        email=f"user{i}@example.com",
        password_hash="$2b$04$hash",
        created_at=created,
        updated_at=created,
    )
    defaults.update(overrides)
    return User(**defaults)


async def _collect(users):
    return [user async for user in users]


class TestSqlUserRepository(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        self.engine = create_engine_for(IN_MEMORY_URL)
        await init_models(self.engine)
        self.repo = SqlUserRepository(async_sessionmaker(self.engine, expire_on_commit=False))

    async def asyncTearDown(self):
        await self.engine.dispose()

    async def test_ping(self):
        self.assertTrue(await ping(self.engine))

    async def test_save_and_find_by_id(self):
        saved = await self.repo.save(_user(0, bio="hi"))

        self.assertIsNotNone(saved.id)
        found = await self.repo.find_by_id(saved.id)
        self.assertEqual(found.username, "user0")
        self.assertEqual(found.email, "user0@example.com")
        self.assertEqual(found.password_hash, "$2b$04$hash")
        self.assertEqual(found.bio, "hi")
        self.assertTrue(found.is_active)
        self.assertEqual(found.created_at, BASE_TIME)
        self.assertIsNotNone(found.created_at.tzinfo)

    async def test_find_by_id_missing(self):
        self.assertIsNone(await self.repo.find_by_id(12345))

    async def test_save_existing_updates_row(self):
        saved = await self.repo.save(_user(0))
        saved.email = "changed@example.com"
        saved.updated_at = BASE_TIME + timedelta(hours=1)

        updated = await self.repo.save(saved)

        self.assertEqual(updated.id, saved.id)
        self.assertEqual(updated.email, "changed@example.com")
        self.assertEqual(updated.created_at, BASE_TIME)
        self.assertEqual(await self.repo.count_all(), 1)

    async def test_save_unknown_id_raises_not_found(self):
        with self.assertRaises(NotFoundError):
            await self.repo.save(_user(0, id=999))

    async def test_unique_constraint_raises_conflict(self):
        """The table's constraint catches duplicates the service check missed."""
        await self.repo.save(_user(0))

        with self.assertRaises(ConflictError):
            await self.repo.save(_user(1, username="user0"))
        with self.assertRaises(ConflictError):
            await self.repo.save(_user(2, email="user0@example.com"))
        self.assertEqual(await self.repo.count_all(), 1)

    async def test_exists_is_exact_match(self):
        await self.repo.save(_user(0))

        self.assertTrue(await self.repo.exists_by_username("user0"))
        self.assertFalse(await self.repo.exists_by_username("nobody"))
        self.assertTrue(await self.repo.exists_by_email("user0@example.com"))
        self.assertFalse(await self.repo.exists_by_email("nobody@example.com"))

    async def test_find_by_username_and_email(self):
        await self.repo.save(_user(0))

        self.assertEqual((await self.repo.find_by_username("user0")).email, "user0@example.com")
        self.assertEqual((await self.repo.find_by_email("user0@example.com")).username, "user0")
        self.assertIsNone(await self.repo.find_by_username("nobody"))

    async def test_username_search_case_insensitive_newest_first(self):
        await self.repo.save(_user(0, username="alice"))
        await self.repo.save(_user(1, username="ALICIA"))
        await self.repo.save(_user(2, username="bob"))

        users = await _collect(self.repo.find_by_username_containing("ali"))

        self.assertEqual([u.username for u in users], ["ALICIA", "alice"])

    async def test_email_search_treats_wildcards_literally(self):
        await self.repo.save(_user(0, email="plain@example.com"))
        await self.repo.save(_user(1, email="under_score@example.com"))

        users = await _collect(self.repo.find_by_email_containing("_"))

        self.assertEqual([u.email for u in users], ["under_score@example.com"])

    async def test_empty_keyword_matches_all(self):
        for i in range(3):
            await self.repo.save(_user(i))

        users = await _collect(self.repo.find_by_email_containing(""))

        self.assertEqual(len(users), 3)

    async def test_find_all_paged_newest_first(self):
        for i in range(15):
            await self.repo.save(_user(i))

        users = await _collect(self.repo.find_all_paged(limit=5, offset=5))

        self.assertEqual([u.username for u in users], [f"user{i}" for i in range(9, 4, -1)])

    async def test_find_all_and_count(self):
        for i in range(4):
            await self.repo.save(_user(i))

        users = await _collect(self.repo.find_all())

        self.assertEqual(len(users), 4)
        self.assertEqual(await self.repo.count_all(), 4)

    async def test_delete_by_id(self):
        saved = await self.repo.save(_user(0))

        await self.repo.delete_by_id(saved.id)
        await self.repo.delete_by_id(saved.id)

        self.assertIsNone(await self.repo.find_by_id(saved.id))
        self.assertEqual(await self.repo.count_all(), 0)


if __name__ == '__main__':
    unittest.main()
