"""User management API routes.

Every response body is an envelope: {success, message, data?}.

- POST   /api/users                    Create user
- GET    /api/users                    List all users
- GET    /api/users/page               Page of users (newest first) + pagination info
- GET    /api/users/search/username    Case-insensitive username search
- GET    /api/users/search/email       Case-insensitive email search
- GET    /api/users/count              Total number of users
- GET    /api/users/{id}               User details
- PUT    /api/users/{id}               Update user
- DELETE /api/users/{id}               Delete user
"""

import logging
import math
from typing import AsyncIterator

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from api.dependencies import get_user_service
from api.models import Envelope, Pagination, UserCreateRequest, UserResponse, UserUpdateRequest
from domain.model.errors import DomainError, ErrorKind
from domain.model.user import User
from services.user_service import UserService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["users"])

INTERNAL_ERROR_MESSAGE = "System error, please try again later"


def _user_json(user: User) -> dict:
    return UserResponse.from_domain(user).model_dump(mode='json', by_alias=True)


async def _collect(users: AsyncIterator[User]) -> list[dict]:
    return [_user_json(user) async for user in users]


def _ok(message: str, data=None, pagination: Pagination | None = None) -> JSONResponse:
    body = Envelope(success=True, message=message, data=data, pagination=pagination)
    return JSONResponse(content=body.to_json(), status_code=status.HTTP_200_OK)


def _error_response(error: DomainError) -> JSONResponse:
    """Map a domain error to an envelope. Internal errors hide their detail."""
    if error.kind == ErrorKind.INTERNAL:
        body = Envelope(success=False, message=INTERNAL_ERROR_MESSAGE)
        return JSONResponse(content=body.to_json(), status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)

    body = Envelope(success=False, message=error.message)
    return JSONResponse(content=body.to_json(), status_code=status.HTTP_400_BAD_REQUEST)


@router.post("")
async def create_user(
    request: UserCreateRequest,
    service: UserService = Depends(get_user_service),
):
    """Create a user. The password is strength-checked and hashed."""
    logger.info("Create user request", extra={"username": request.username})
    try:
        user = await service.create_user(request.to_candidate())
    except DomainError as e:
        logger.warning("Create user failed", extra={"username": request.username, "error": e.message})
        return _error_response(e)

    return _ok("User created successfully", _user_json(user))


@router.get("")
async def get_all_users(service: UserService = Depends(get_user_service)):
    """List every user."""
    logger.info("List users request")
    try:
        users = await _collect(service.get_all_users())
    except DomainError as e:
        return _error_response(e)

    return _ok("Users retrieved successfully", users)


@router.get("/page")
async def get_users_by_page(
    page: int = 0,
    size: int = 10,
    service: UserService = Depends(get_user_service),
):
    """Get one page of users (page is zero-based) with pagination info."""
    logger.info("Paged users request", extra={"page": page, "size": size})
    try:
        users = await _collect(service.get_users_with_pagination(page, size))
        total = await service.count_all_users()
    except DomainError as e:
        return _error_response(e)

    pagination = Pagination(
        page=page,
        size=size,
        total=total,
        total_pages=math.ceil(total / size),
    )
    return _ok("Users retrieved successfully", users, pagination=pagination)


@router.get("/search/username")
async def search_users_by_username(
    keyword: str,
    service: UserService = Depends(get_user_service),
):
    """Search users whose username contains keyword (case-insensitive)."""
    logger.info("Username search request", extra={"keyword": keyword})
    try:
        users = await _collect(service.search_users_by_username(keyword))
    except DomainError as e:
        return _error_response(e)

    return _ok("User search succeeded", users)


@router.get("/search/email")
async def search_users_by_email(
    keyword: str,
    service: UserService = Depends(get_user_service),
):
    """Search users whose email contains keyword (case-insensitive)."""
    logger.info("Email search request", extra={"keyword": keyword})
    try:
        users = await _collect(service.search_users_by_email(keyword))
    except DomainError as e:
        return _error_response(e)

    return _ok("User search succeeded", users)


@router.get("/count")
async def count_users(service: UserService = Depends(get_user_service)):
    """Count all users."""
    logger.info("Count users request")
    try:
        count = await service.count_all_users()
    except DomainError as e:
        return _error_response(e)

    return _ok("User count retrieved successfully", {"count": count})


@router.get("/{user_id}")
async def get_user_by_id(
    user_id: int,
    service: UserService = Depends(get_user_service),
):
    """Get a user by ID.

    A missing user answers 200 with success=false, kept for compatibility
    with existing clients.
    """
    logger.info("Get user request", extra={"userId": user_id})
    try:
        user = await service.get_user_by_id(user_id)
    except DomainError as e:
        return _error_response(e)

    if user is None:
        body = Envelope(success=False, message="User does not exist")
        return JSONResponse(content=body.to_json(), status_code=status.HTTP_200_OK)

    return _ok("User retrieved successfully", _user_json(user))


@router.put("/{user_id}")
async def update_user(
    user_id: int,
    request: UserUpdateRequest,
    service: UserService = Depends(get_user_service),
):
    """Update a user's username, email, bio and (optionally) password."""
    logger.info("Update user request", extra={"userId": user_id})
    try:
        user = await service.update_user(user_id, request.to_patch())
    except DomainError as e:
        logger.warning("Update user failed", extra={"userId": user_id, "error": e.message})
        return _error_response(e)

    return _ok("User updated successfully", _user_json(user))


@router.delete("/{user_id}")
async def delete_user(
    user_id: int,
    service: UserService = Depends(get_user_service),
):
    """Delete a user. Deleting a missing user still succeeds."""
    logger.info("Delete user request", extra={"userId": user_id})
    try:
        await service.delete_user(user_id)
    except DomainError as e:
        logger.warning("Delete user failed", extra={"userId": user_id, "error": e.message})
        return _error_response(e)

    return _ok("User deleted successfully")
