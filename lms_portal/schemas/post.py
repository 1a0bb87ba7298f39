from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from lms_portal.services.blog import split_tags

SLUG_PATTERN = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"

PostStatusLiteral = Literal["published", "draft"]


class PostCreate(BaseModel):
    title: str = Field(min_length=2, max_length=255)
    # derived from the title when omitted
    slug: str | None = Field(default=None, min_length=2, max_length=255, pattern=SLUG_PATTERN)
    excerpt: str = ""
    content: str = Field(min_length=10)
    category: str = Field(min_length=2, max_length=100)
    tags: list[str] = []
    image_url: str | None = Field(default=None, max_length=500)
    status: PostStatusLiteral = "published"
    featured: bool = False

    @field_validator("tags", mode="before")
    @classmethod
    def parse_tags(cls, v):
        return split_tags(v)

    @field_validator("image_url")
    @classmethod
    def blank_image_is_none(cls, v):
        return v.strip() or None if v is not None else None


class PostUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=2, max_length=255)
    slug: str | None = Field(default=None, min_length=2, max_length=255, pattern=SLUG_PATTERN)
    excerpt: str | None = None
    content: str | None = Field(default=None, min_length=10)
    category: str | None = Field(default=None, min_length=2, max_length=100)
    tags: list[str] | None = None
    image_url: str | None = Field(default=None, max_length=500)
    status: PostStatusLiteral | None = None
    featured: bool | None = None

    @field_validator("tags", mode="before")
    @classmethod
    def parse_tags(cls, v):
        return None if v is None else split_tags(v)


class PostRead(BaseModel):
    id: int
    title: str
    slug: str
    excerpt: str
    content: str
    category: str
    tags: list[str]
    image_url: str | None = None
    status: str
    featured: bool
    read_time_minutes: int
    author_id: int | None = None
    author_name: str | None = None
    published_at: datetime | None = None
    created_at: datetime
    updated_at: datetime | None = None

    class Config:
        from_attributes = True
