"""User schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class UserBase(BaseModel):
    name: str = Field(..., max_length=255)
    phone: str = Field(..., max_length=32)
    dni: str = Field(..., max_length=32)
    email: EmailStr | None = None


class UserCreate(UserBase):
    pass


class UserUpdate(BaseModel):
    name: str | None = Field(default=None, max_length=255)
    phone: str | None = Field(default=None, max_length=32)
    dni: str | None = Field(default=None, max_length=32)
    email: EmailStr | None = None

    model_config = ConfigDict(extra="forbid")


class UserRead(BaseModel):
    id: int
    name: str
    phone: str
    dni: str
    email: EmailStr | None
    created_at: datetime | None
    updated_at: datetime | None
    is_active: bool

    model_config = ConfigDict(from_attributes=True)
