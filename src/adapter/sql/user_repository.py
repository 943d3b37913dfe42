"""SQLAlchemy (asyncio) implementation of UserRepository."""

from datetime import datetime, timezone
from logging import getLogger
from typing import AsyncIterator

from sqlalchemy import delete, exists, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from adapter.sql.models import UserRow
from domain.model.errors import ConflictError, InternalError, NotFoundError
from domain.model.user import User

logger = getLogger(__name__)

STORAGE_ERROR_MESSAGE = "database error occurred"


def _as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; stored values are always UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SqlUserRepository:
    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    def _to_domain(self, row: UserRow) -> User:
        """Convert a users row to User domain model."""
        return User(
            id=row.id,
            username=row.username,
            email=row.email,
            password_hash=row.password,
            bio=row.bio,
            is_active=row.is_active,
            created_at=_as_utc(row.created_at),
            updated_at=_as_utc(row.updated_at),
        )

    # ── write operations ─────────────────────────────────────

    async def save(self, user: User) -> User:
        """Insert or update a user and return the stored state."""
        try:
            async with self.session_factory() as session:
                if user.id is None:
                    row = UserRow(
                        username=user.username,
                        email=user.email,
                        password=user.password_hash,
                        bio=user.bio,
                        is_active=user.is_active,
                        created_at=user.created_at,
                        updated_at=user.updated_at,
                    )
                    session.add(row)
                else:
                    row = await session.get(UserRow, user.id)
                    if row is None:
                        raise NotFoundError("user does not exist")
                    row.username = user.username
                    row.email = user.email
                    row.password = user.password_hash
                    row.bio = user.bio
                    row.is_active = user.is_active
                    row.updated_at = user.updated_at

                await session.commit()
                await session.refresh(row)
                saved = self._to_domain(row)
        except IntegrityError as e:
            # Lost a check-then-act race against another writer
            logger.warning(
                "User save rejected by unique constraint",
                extra={"userId": user.id, "username": user.username, "error": str(e.orig)[:200]},
            )
            raise ConflictError("username or email already exists") from e
        except SQLAlchemyError as e:
            logger.error("Failed to save user", extra={"userId": user.id, "error": str(e)[:200]})
            raise InternalError(STORAGE_ERROR_MESSAGE) from e

        logger.debug("User saved", extra={"userId": saved.id})
        return saved

    async def delete_by_id(self, user_id: int) -> None:
        try:
            async with self.session_factory() as session:
                await session.execute(delete(UserRow).where(UserRow.id == user_id))
                await session.commit()
        except SQLAlchemyError as e:
            logger.error("Failed to delete user", extra={"userId": user_id, "error": str(e)[:200]})
            raise InternalError(STORAGE_ERROR_MESSAGE) from e

    # ── read operations ──────────────────────────────────────

    async def find_by_id(self, user_id: int) -> User | None:
        return await self._first(select(UserRow).where(UserRow.id == user_id), "find_by_id")

    async def find_by_username(self, username: str) -> User | None:
        return await self._first(select(UserRow).where(UserRow.username == username), "find_by_username")

    async def find_by_email(self, email: str) -> User | None:
        return await self._first(select(UserRow).where(UserRow.email == email), "find_by_email")

    async def exists_by_username(self, username: str) -> bool:
        stmt = select(exists().where(UserRow.username == username))
        return bool(await self._scalar(stmt, "exists_by_username"))

    async def exists_by_email(self, email: str) -> bool:
        stmt = select(exists().where(UserRow.email == email))
        return bool(await self._scalar(stmt, "exists_by_email"))

    def find_by_username_containing(self, keyword: str) -> AsyncIterator[User]:
        stmt = (
            select(UserRow)
            .where(UserRow.username.icontains(keyword, autoescape=True))
            .order_by(UserRow.created_at.desc(), UserRow.id.desc())
        )
        return self._iterate(stmt, "find_by_username_containing")

    def find_by_email_containing(self, keyword: str) -> AsyncIterator[User]:
        stmt = (
            select(UserRow)
            .where(UserRow.email.icontains(keyword, autoescape=True))
            .order_by(UserRow.created_at.desc(), UserRow.id.desc())
        )
        return self._iterate(stmt, "find_by_email_containing")

    def find_all_paged(self, limit: int, offset: int) -> AsyncIterator[User]:
        stmt = (
            select(UserRow)
            .order_by(UserRow.created_at.desc(), UserRow.id.desc())
            .limit(limit)
            .offset(offset)
        )
        return self._iterate(stmt, "find_all_paged")

    def find_all(self) -> AsyncIterator[User]:
        return self._iterate(select(UserRow).order_by(UserRow.id), "find_all")

    async def count_all(self) -> int:
        stmt = select(func.count()).select_from(UserRow)
        return int(await self._scalar(stmt, "count_all"))

    # ── helpers ──────────────────────────────────────────────

    async def _first(self, stmt, operation: str) -> User | None:
        try:
            async with self.session_factory() as session:
                row = (await session.scalars(stmt)).first()
                return self._to_domain(row) if row else None
        except SQLAlchemyError as e:
            logger.error("User query failed", extra={"operation": operation, "error": str(e)[:200]})
            raise InternalError(STORAGE_ERROR_MESSAGE) from e

    async def _scalar(self, stmt, operation: str):
        try:
            async with self.session_factory() as session:
                return (await session.execute(stmt)).scalar_one()
        except SQLAlchemyError as e:
            logger.error("User query failed", extra={"operation": operation, "error": str(e)[:200]})
            raise InternalError(STORAGE_ERROR_MESSAGE) from e

    async def _iterate(self, stmt, operation: str) -> AsyncIterator[User]:
        # Rows are buffered so the session is closed before callers resume
        try:
            async with self.session_factory() as session:
                rows = (await session.scalars(stmt)).all()
        except SQLAlchemyError as e:
            logger.error("User query failed", extra={"operation": operation, "error": str(e)[:200]})
            raise InternalError(STORAGE_ERROR_MESSAGE) from e

        for row in rows:
            yield self._to_domain(row)
