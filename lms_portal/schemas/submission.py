from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator


class ContactCreate(BaseModel):
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    phone: str = Field(min_length=1, max_length=50)
    inquiry_type: str = Field(min_length=1, max_length=100)
    message: Optional[str] = Field(default=None, max_length=5000)

    @field_validator("first_name", "last_name", "phone", "inquiry_type", mode="before")
    @classmethod
    def strip_required(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("message")
    @classmethod
    def blank_message_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None


class ContactRead(BaseModel):
    id: int
    first_name: str
    last_name: str
    email: str
    phone: str
    inquiry_type: str
    message: Optional[str] = None
    status: str
    submitted_at: datetime

    class Config:
        from_attributes = True


class ContactStatusUpdate(BaseModel):
    status: Literal["new", "in-progress", "resolved"]


class ContactStats(BaseModel):
    total: int
    last_30_days: int
    by_inquiry_type: dict[str, int]


class ResumeRead(BaseModel):
    id: int
    name: str
    email: str
    file_name: str
    file_url: str
    file_size: int
    file_type: str
    status: str
    submitted_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ResumeStatusUpdate(BaseModel):
    status: Literal["pending", "reviewed", "contacted"]


class ResumeStats(BaseModel):
    total: int
    last_30_days: int
    by_status: dict[str, int]
