"""Pydantic models for API request/response."""

from datetime import datetime
from typing import Annotated, Any, Optional

from email_validator import EmailNotValidError, validate_email
from pydantic import AfterValidator, BaseModel, Field

from domain.model.user import User, UserCandidate, UserPatch

EMAIL_MAX_LENGTH = 100


def _check_email(value: str) -> str:
    # Format check only; the address is stored exactly as sent
    if len(value) > EMAIL_MAX_LENGTH:
        raise ValueError(f"email must be at most {EMAIL_MAX_LENGTH} characters")
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError as e:
        raise ValueError(f"value is not a valid email address: {e}") from e
    return value


Email = Annotated[str, AfterValidator(_check_email)]


class UserCreateRequest(BaseModel):
    """Request model for creating a user."""
    username: str = Field(..., min_length=3, max_length=50, description="Unique username")
    email: Email = Field(..., description="Unique email address")
    password: str = Field(..., min_length=1, description="Raw password, hashed before storage")
    bio: Optional[str] = Field(None, max_length=500)

    def to_candidate(self) -> UserCandidate:
        return UserCandidate(
            username=self.username,
            email=self.email,
            password=self.password,
            bio=self.bio,
        )


class UserUpdateRequest(BaseModel):
    """Request model for updating a user.

    username, email and bio replace the stored values; password is only
    changed when non-empty.
    """
    username: str = Field(..., min_length=3, max_length=50)
    email: Email
    password: Optional[str] = Field(None, description="New raw password (optional)")
    bio: Optional[str] = Field(None, max_length=500)

    def to_patch(self) -> UserPatch:
        return UserPatch(
            username=self.username,
            email=self.email,
            password=self.password,
            bio=self.bio,
        )


class UserResponse(BaseModel):
    """Public view of a user. Never carries the password hash."""
    id: int
    username: str
    email: str
    bio: Optional[str] = None
    is_active: bool = Field(serialization_alias='isActive')
    created_at: datetime = Field(serialization_alias='createdAt')
    updated_at: datetime = Field(serialization_alias='updatedAt')

    @classmethod
    def from_domain(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            bio=user.bio,
            is_active=user.is_active,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class Pagination(BaseModel):
    """Paging metadata returned next to a page of users."""
    page: int
    size: int
    total: int
    total_pages: int = Field(serialization_alias='totalPages')


class Envelope(BaseModel):
    """Uniform response body for every user endpoint."""
    success: bool
    message: str
    data: Optional[Any] = None
    pagination: Optional[Pagination] = None
    timestamp: Optional[int] = Field(None, description="Epoch milliseconds, set on errors")

    def to_json(self) -> dict:
        return self.model_dump(mode='json', by_alias=True, exclude_none=True)
