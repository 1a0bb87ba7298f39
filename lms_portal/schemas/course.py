from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator


def normalize_tags(tags: list[str] | None) -> list[str]:
    """Trim, drop blanks and de-duplicate (case-insensitive, first spelling wins)."""
    seen: set[str] = set()
    result: list[str] = []
    for tag in tags or []:
        cleaned = tag.strip()
        if cleaned and cleaned.lower() not in seen:
            seen.add(cleaned.lower())
            result.append(cleaned)
    return result


class CourseCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: str | None = None
    type: Literal["free", "paid"] = "free"
    price: float = Field(default=0, ge=0)
    category: str | None = Field(default=None, max_length=100)
    level: str = Field(default="Beginner", max_length=50)
    tags: list[str] = Field(default_factory=list)
    has_certificate: bool = True

    # admin only: create the course on behalf of this instructor
    instructor_id: int | None = None

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("title must not be blank")
        return v

    @field_validator("tags")
    @classmethod
    def clean_tags(cls, v: list[str]) -> list[str]:
        return normalize_tags(v)


class CourseUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    type: Literal["free", "paid"] | None = None
    price: float | None = Field(default=None, ge=0)
    category: str | None = Field(default=None, max_length=100)
    level: str | None = Field(default=None, max_length=50)
    tags: list[str] | None = None
    has_certificate: bool | None = None

    @field_validator("tags")
    @classmethod
    def clean_tags(cls, v: list[str] | None) -> list[str] | None:
        return None if v is None else normalize_tags(v)


class CourseRead(BaseModel):
    id: int
    title: str
    description: str | None = None
    instructor_id: int
    instructor_name: str | None = None
    type: str
    price: float
    category: str | None = None
    level: str
    tags: list[str] = []
    image_url: str | None = None
    has_certificate: bool
    certificate_url: str | None = None
    student_count: int
    lesson_count: int
    rating: float
    rating_count: int
    created_at: datetime | None = None

    class Config:
        from_attributes = True
