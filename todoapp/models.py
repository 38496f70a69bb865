# PURPOSE: request/response schemas (Pydantic v2) for tasks, lists, auth and OTP.
# Closed string sets are Literal types so unknown values are rejected at the boundary.

from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

Category = Literal["Today", "Scheduled", "Family Tasks", "All", "Flagged", "Completed", "Assigned", "Work"]
# "Completed" is only reachable through the completion toggle.
ActiveCategory = Literal["Today", "Scheduled", "Family Tasks", "All", "Flagged", "Assigned", "Work"]
Assignee = Literal["Danny", "Ashley", "Olivia"]
Repeat = Literal["none", "daily", "weekly", "monthly"]
Priority = Literal["low", "medium", "high"]
OTPPurpose = Literal["registration", "password_reset"]

HEX_COLOR = r"^#(?:[0-9a-fA-F]{3}){1,2}$"
OTP_CODE = r"^\d{6}$"
USERNAME = r"^[a-zA-Z0-9_]{3,20}$"


def _strip_required(value: str) -> str:
    value = (value or "").strip()
    if not value:
        raise ValueError("must not be blank")
    return value


def _to_naive_utc(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is not None:
        return value.astimezone(UTC).replace(tzinfo=None)
    return value


# --- Task schemas ---


class TaskCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str = ""
    emoji: str = ""
    image: str = ""
    assigned_to: Assignee = "Danny"
    category: ActiveCategory = "All"
    custom_list: str = ""
    is_flagged: bool = False
    due_date: datetime | None = None
    due_time: str = ""
    repeat: Repeat = "none"
    priority: Priority = "medium"
    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={
            "examples": [
                {"title": "Buy milk", "category": "Today"},
                {"title": "Plan trip", "priority": "high", "due_date": "2025-12-31T18:00:00Z"},
                {"title": "Quarterly report", "custom_list": "Work 💼", "is_flagged": True},
            ]
        },
    )

    @field_validator("title")
    @classmethod
    def strip_title(cls, value: str) -> str:
        return _strip_required(value)

    @field_validator("custom_list")
    @classmethod
    def strip_list(cls, value: str) -> str:
        return value.strip()

    @field_validator("due_date")
    @classmethod
    def normalize_due(cls, value: datetime | None) -> datetime | None:
        return _to_naive_utc(value)


class TaskUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    emoji: str | None = None
    image: str | None = None
    assigned_to: Assignee | None = None
    category: ActiveCategory | None = None
    custom_list: str | None = None
    is_completed: bool | None = None
    is_flagged: bool | None = None
    due_date: datetime | None = None
    due_time: str | None = None
    repeat: Repeat | None = None
    priority: Priority | None = None
    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={
            "examples": [
                {"is_flagged": True},
                {"priority": "high"},
                {"custom_list": "Groceries"},
            ]
        },
    )

    @field_validator("title")
    @classmethod
    def strip_title(cls, value: str | None) -> str | None:
        return None if value is None else _strip_required(value)

    @field_validator("custom_list")
    @classmethod
    def strip_list(cls, value: str | None) -> str | None:
        return None if value is None else value.strip()

    @field_validator("due_date")
    @classmethod
    def normalize_due(cls, value: datetime | None) -> datetime | None:
        return _to_naive_utc(value)


class TaskPut(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str = ""
    emoji: str = ""
    image: str = ""
    assigned_to: Assignee
    category: ActiveCategory
    custom_list: str = ""
    is_flagged: bool = False
    due_date: datetime | None = None
    due_time: str = ""
    repeat: Repeat = "none"
    priority: Priority
    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={
            "examples": [
                {"title": "Full replace", "assigned_to": "Ashley", "category": "Work", "priority": "low"},
            ]
        },
    )

    @field_validator("title")
    @classmethod
    def strip_title(cls, value: str) -> str:
        return _strip_required(value)

    @field_validator("custom_list")
    @classmethod
    def strip_list(cls, value: str) -> str:
        return value.strip()

    @field_validator("due_date")
    @classmethod
    def normalize_due(cls, value: datetime | None) -> datetime | None:
        return _to_naive_utc(value)


class Task(BaseModel):
    id: int
    title: str
    description: str
    emoji: str
    image: str
    assigned_to: Assignee
    category: Category
    original_category: ActiveCategory
    custom_list: str
    is_completed: bool
    is_flagged: bool
    is_deleted: bool
    due_date: datetime | None
    due_time: str
    repeat: Repeat
    priority: Priority
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)  # ORM -> schema


class TaskIdList(BaseModel):
    """Helper schema for bulk operations with ids."""

    ids: list[int] = Field(min_length=1)


class BucketCountsOut(BaseModel):
    """Counts with built-in buckets and custom lists kept apart."""

    builtin: dict[str, int]
    categories: dict[str, int]
    lists: dict[str, int]


# --- List schemas ---


class ListCreate(BaseModel):
    name: str = Field(min_length=1, max_length=60)
    color: str = Field(default="#3B82F6", pattern=HEX_COLOR)
    emoji: str = "📝"
    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={"examples": [{"name": "Groceries", "color": "#10b981", "emoji": "🛒"}]},
    )

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        return _strip_required(value)


class ListUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=60)
    color: str | None = Field(default=None, pattern=HEX_COLOR)
    emoji: str | None = None
    model_config = ConfigDict(extra="ignore")

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str | None) -> str | None:
        return None if value is None else _strip_required(value)


class TaskList(BaseModel):
    id: int
    name: str
    color: str
    emoji: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# --- User / Auth schemas ---


class UserBase(BaseModel):
    email: EmailStr


class UserPublic(UserBase):
    id: int
    name: str
    username: str
    model_config = ConfigDict(from_attributes=True)  # allow ORM -> schema


class RegisterRequest(UserBase):
    name: str = Field(min_length=1, max_length=100)
    username: str = Field(pattern=USERNAME)
    password: str = Field(min_length=6)

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        return _strip_required(value)


class RegisterResponse(BaseModel):
    email: EmailStr
    requires_verification: bool = True
    delivered: bool


class VerifyRegistrationRequest(RegisterRequest):
    otp: str = Field(pattern=OTP_CODE)


class TokenResponse(BaseModel):
    # Simple JWT response
    access_token: str
    token_type: Literal["bearer"] = "bearer"
    model_config = ConfigDict(
        json_schema_extra={"examples": [{"access_token": "<jwt>", "token_type": "bearer"}]}
    )


class AuthResponse(TokenResponse):
    user: UserPublic


class ProfileUpdate(BaseModel):
    name: str = Field(min_length=1, max_length=100)

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        return _strip_required(value)


class ForgotPasswordRequest(UserBase):
    pass


class OTPRequest(UserBase):
    type: OTPPurpose


class OTPIssueResponse(BaseModel):
    delivered: bool


class OTPVerifyRequest(OTPRequest):
    otp: str = Field(pattern=OTP_CODE)


class OTPVerifyResponse(BaseModel):
    valid: bool
    # Only for password_reset: lets the client finish the reset without the code.
    reset_token: str | None = None


class PasswordResetRequest(UserBase):
    new_password: str = Field(min_length=6)
    otp: str | None = Field(default=None, pattern=OTP_CODE)
    reset_token: str | None = None

    @model_validator(mode="after")
    def _one_proof(self) -> "PasswordResetRequest":
        if (self.otp is None) == (self.reset_token is None):
            raise ValueError("provide exactly one of otp or reset_token")
        return self
