from fastapi import Depends

from adapter.sql.connection import get_session_factory
from adapter.sql.user_repository import SqlUserRepository
from port.user_repository import UserRepository
from services.password_hasher import PasswordHasher
from services.user_service import UserService


def get_user_repo() -> UserRepository:
    return SqlUserRepository(get_session_factory())


def get_password_hasher() -> PasswordHasher:
    return PasswordHasher()


def get_user_service(
    repo: UserRepository = Depends(get_user_repo),
    hasher: PasswordHasher = Depends(get_password_hasher),
) -> UserService:
    return UserService(repo=repo, hasher=hasher)
