"""
API models and schemas for the FastAPI application.

Request models are the only place client field names are mapped to stored
field names (e.g. `agenda` -> `topic`, `clubId` -> `club`). Responses use
camelCase on the wire.
"""

from datetime import datetime, timezone
from typing import ClassVar, FrozenSet, List, Optional, Union

from bson import ObjectId
from pydantic import (
    AliasChoices, BaseModel, ConfigDict, EmailStr, Field, ValidationInfo, field_validator, model_validator
)
from pydantic.alias_generators import to_camel

from storage.models import ClubSchedule, MeetingStatus, PublishedMonth


class APIModel(BaseModel):
    """Base model: camelCase aliases, snake_case attribute names."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        use_enum_values=True,
    )


def _check_object_id(value: Optional[str], label: str) -> Optional[str]:
    if value is not None and not ObjectId.is_valid(value):
        raise ValueError(f"{label} is required and must be valid.")
    return value


def _naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class UpdateModel(APIModel):
    """
    Partial update body. Omitted fields are left alone; an explicit null is
    rejected unless the field is listed in `nullable_fields`.
    """
    nullable_fields: ClassVar[FrozenSet[str]] = frozenset()

    @field_validator("*", mode="before")
    @classmethod
    def reject_null(cls, v, info: ValidationInfo):
        if v is None and info.field_name not in cls.nullable_fields:
            raise ValueError(f"{info.field_name} cannot be null.")
        return v


# ---------------------------------------------------------------- auth ----

class RegisterRequest(APIModel):
    """Registration payload."""
    username: str = Field(..., min_length=1, max_length=64)
    email: EmailStr
    password: str = Field(..., min_length=1)


class LoginRequest(APIModel):
    """Login by username or by email."""
    username: Optional[str] = None
    email: Optional[EmailStr] = None
    password: str = Field(..., min_length=1)

    @model_validator(mode="after")
    def require_identity(self):
        if not self.username and not self.email:
            raise ValueError("Please provide a username or email.")
        return self


class RegisterResponse(APIModel):
    message: str
    user_id: str


class AuthResponse(APIModel):
    message: str
    token: str
    user_id: str
    username: Optional[str] = None


class MessageResponse(APIModel):
    message: str


class ProfileUser(APIModel):
    id: str
    username: Optional[str] = None


class ProfileResponse(APIModel):
    message: str
    user: ProfileUser


# ---------------------------------------------------------- references ----

class UserSummary(APIModel):
    """A referenced user, as embedded in populated reads."""
    id: str
    username: Optional[str] = None


class BookSummary(APIModel):
    id: str
    title: Optional[str] = None
    author: Optional[str] = None


class ClubSummary(APIModel):
    id: str
    name: Optional[str] = None


# --------------------------------------------------------------- books ----

class BookCreate(APIModel):
    title: str = Field(..., min_length=1)
    author: str = Field(..., min_length=1)
    pages: int = Field(..., ge=1)
    summary: str = Field(..., min_length=1)
    published_month: Optional[PublishedMonth] = None
    published_year: Optional[int] = Field(None, ge=1500, le=2100)


class BookUpdate(UpdateModel):
    nullable_fields = frozenset({"published_month", "published_year"})

    title: Optional[str] = Field(None, min_length=1)
    author: Optional[str] = Field(None, min_length=1)
    pages: Optional[int] = Field(None, ge=1)
    summary: Optional[str] = Field(None, min_length=1)
    published_month: Optional[PublishedMonth] = None
    published_year: Optional[int] = Field(None, ge=1500, le=2100)


class BookResponse(APIModel):
    id: str
    title: str
    author: str
    pages: Optional[int] = None
    summary: Optional[str] = None
    published_month: Optional[PublishedMonth] = None
    published_year: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class BookEnvelope(MessageResponse):
    book: BookResponse


# --------------------------------------------------------------- clubs ----

class ClubCreate(APIModel):
    name: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    genre: str = Field(..., min_length=1)
    schedule: ClubSchedule
    members_limit: int = Field(..., ge=1)
    is_active: bool = True


class ClubUpdate(UpdateModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = Field(None, min_length=1)
    genre: Optional[str] = Field(None, min_length=1)
    schedule: Optional[ClubSchedule] = None
    members_limit: Optional[int] = Field(None, ge=1)
    is_active: Optional[bool] = None


class ClubResponse(APIModel):
    id: str
    name: str
    description: str
    genre: str
    schedule: ClubSchedule
    members_limit: int
    is_active: bool = True
    owner: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ClubEnvelope(MessageResponse):
    club: ClubResponse


# ------------------------------------------------------------ meetings ----

class MeetingCreate(APIModel):
    """Accepts `clubId`/`club` and `agenda`/`topic`."""
    club: str = Field(..., validation_alias=AliasChoices("clubId", "club"))
    topic: str = Field(..., min_length=1, validation_alias=AliasChoices("agenda", "topic"))
    date_time: datetime = Field(..., validation_alias=AliasChoices("dateTime", "date_time"))
    location: str = Field(..., min_length=1)

    @field_validator("club")
    @classmethod
    def validate_club(cls, v):
        return _check_object_id(v, "Club ID")

    @field_validator("date_time")
    @classmethod
    def normalize_date_time(cls, v):
        return _naive_utc(v)


class MeetingUpdate(UpdateModel):
    topic: Optional[str] = Field(None, min_length=1, validation_alias=AliasChoices("agenda", "topic"))
    date_time: Optional[datetime] = Field(None, validation_alias=AliasChoices("dateTime", "date_time"))
    location: Optional[str] = Field(None, min_length=1)
    status: Optional[MeetingStatus] = None

    @field_validator("date_time")
    @classmethod
    def normalize_date_time(cls, v):
        return _naive_utc(v)


class MeetingResponse(APIModel):
    id: str
    club: str
    topic: str
    organizer: Union[UserSummary, str]
    date_time: datetime
    location: str
    attendees: List[Union[UserSummary, str]] = Field(default_factory=list)
    status: MeetingStatus = MeetingStatus.SCHEDULED
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class MeetingEnvelope(MessageResponse):
    meeting: MeetingResponse


# --------------------------------------------------------------- posts ----

class PostCreate(APIModel):
    """A top-level post, or a reply when `parentPost` is set."""
    club: str = Field(..., validation_alias=AliasChoices("clubId", "club"))
    title: str = Field(..., min_length=1, max_length=150)
    content: str = Field(..., min_length=1)
    parent_post: Optional[str] = Field(None, validation_alias=AliasChoices("parentPost", "parent_post"))

    @field_validator("club")
    @classmethod
    def validate_club(cls, v):
        return _check_object_id(v, "Club ID")

    @field_validator("parent_post")
    @classmethod
    def validate_parent_post(cls, v):
        return _check_object_id(v or None, "Parent post ID")


class PostUpdate(UpdateModel):
    title: Optional[str] = Field(None, min_length=1, max_length=150)
    content: Optional[str] = Field(None, min_length=1)


class PostResponse(APIModel):
    id: str
    club: str
    author: Union[UserSummary, str]
    title: str
    content: str
    parent_post: Optional[str] = None
    likes: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PostEnvelope(MessageResponse):
    post: PostResponse


# ------------------------------------------------------------ progress ----

class ProgressRequest(APIModel):
    """Accepts `bookId`/`book` and `clubId`/`club`."""
    book: str = Field(..., validation_alias=AliasChoices("bookId", "book"))
    club: Optional[str] = Field(None, validation_alias=AliasChoices("clubId", "club"))
    percentage: Optional[float] = Field(None, ge=0, le=100)
    current_page: Optional[int] = Field(None, ge=0, validation_alias=AliasChoices("currentPage", "current_page"))
    notes: Optional[str] = None

    @field_validator("book")
    @classmethod
    def validate_book(cls, v):
        return _check_object_id(v, "Book ID")

    @field_validator("club")
    @classmethod
    def validate_club(cls, v):
        return _check_object_id(v or None, "Club ID")


class ProgressResponse(APIModel):
    id: str
    user: Union[UserSummary, str]
    book: Union[BookSummary, str]
    club: Optional[Union[ClubSummary, str]] = None
    percentage: float = 0
    current_page: int = 0
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ProgressLookupResponse(APIModel):
    message: str
    progress: Optional[ProgressResponse] = None


# -------------------------------------------------------------- common ----

class ErrorResponse(BaseModel):
    """Error response model."""
    error: str = Field(..., description="Error message")
    detail: Optional[str] = Field(None, description="Additional error details")
    status_code: int = Field(..., description="HTTP status code")


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(..., description="Current timestamp")
    version: str = Field(..., description="API version")
    database_status: str = Field(..., description="Database connection status")
