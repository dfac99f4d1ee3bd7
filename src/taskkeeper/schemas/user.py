"""Pydantic schemas for sign-up, login and user bodies."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from taskkeeper.domain.user import User, is_valid_email


class SignUpRequest(BaseModel):
    """`idToken` binds the new account to the provider's subject id."""

    model_config = ConfigDict(populate_by_name=True)

    email: str
    id_token: Optional[str] = Field(None, alias="idToken", min_length=1)

    @field_validator("email")
    @classmethod
    def check_email(cls, value: str) -> str:
        if not value:
            raise ValueError("Email cannot be empty.")
        if not is_valid_email(value):
            raise ValueError("Invalid email format.")
        return value


class SessionLoginRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id_token: str = Field(..., alias="idToken", min_length=1)


class UserRead(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    email: str
    created_at: datetime

    @classmethod
    def from_entity(cls, user: User) -> "UserRead":
        return cls(id=user.id, email=user.email, created_at=user.created_at)


class Identity(BaseModel):
    """GET /auth/me"""

    id: str
    email: Optional[str] = None


class SessionStatus(Identity):
    valid: bool = True


class UserId(BaseModel):
    id: str


class Message(BaseModel):
    message: str
