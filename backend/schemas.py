"""
Pydantic v2 schemas for the auth and job-seeker endpoints.

Request schemas accept the camelCase field names the Mini App frontend sends
and validate strictly; response schemas read straight from ORM rows.
"""

import json
import re
from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
PHONE_RE = re.compile(r"^\+?[0-9 ()\-]{5,32}$")


# ── Auth ─────────────────────────────────────────────────────────────


class TelegramLoginRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    init_data: str = Field(..., alias="initData")


class SessionUser(BaseModel):
    id: int
    external_id: str
    display_name: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "Bearer"
    expires_in: int
    expires_at: datetime
    user: SessionUser
    is_new_user: bool = False


class IdentityResponse(BaseModel):
    user_id: int
    external_id: str
    display_name: str
    expires_at: datetime


class ErrorResponse(BaseModel):
    detail: str
    code: str


# ── Job seekers ──────────────────────────────────────────────────────


class JobSeekerCreate(BaseModel):
    """Registration form fields (multipart, camelCase names)."""

    model_config = ConfigDict(populate_by_name=True)

    telegram_id: Optional[str] = Field(default=None, alias="telegramId")
    phone_number: Optional[str] = Field(default=None, alias="phoneNumber")
    email: str
    first_name: Optional[str] = Field(default=None, alias="firstName", max_length=255)
    last_name: Optional[str] = Field(default=None, alias="lastName", max_length=255)
    date_of_birth: Optional[date] = Field(default=None, alias="dateOfBirth")
    career_questions: Optional[Any] = Field(default=None, alias="careerQuestions")

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        v = v.strip().lower()
        if not EMAIL_RE.match(v):
            raise ValueError(
                f"Invalid email address '{v}'. Expected a value like name@example.com"
            )
        return v

    @field_validator("phone_number")
    @classmethod
    def validate_phone_number(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        v = v.strip()
        if not PHONE_RE.match(v):
            raise ValueError(
                f"Invalid phone number '{v}'. Use digits with an optional leading '+'"
            )
        return v

    @field_validator("date_of_birth", mode="before")
    @classmethod
    def blank_date_is_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("career_questions", mode="before")
    @classmethod
    def parse_career_questions(cls, v):
        # Multipart forms deliver nested data as a JSON string
        if isinstance(v, str):
            if not v.strip():
                return None
            try:
                return json.loads(v)
            except ValueError:
                raise ValueError("careerQuestions must be valid JSON")
        return v


class JobSeekerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    telegram_id: str
    phone_number: Optional[str] = None
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    date_of_birth: Optional[str] = None
    cv_url: Optional[str] = None
    career_questions: Optional[Any] = None
    created_at: datetime


class JobSeekerRegisterResponse(BaseModel):
    message: str
    jobSeeker: JobSeekerResponse
