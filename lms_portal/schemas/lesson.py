from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

LessonType = Literal["text", "video", "audio", "document", "quiz", "assignment"]


class LessonCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    type: LessonType = "text"
    content: str = ""
    objectives: str | None = None
    asset_url: str | None = Field(default=None, max_length=500)
    parent_id: int | None = None


class LessonUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=255)
    type: LessonType | None = None
    content: str | None = None
    objectives: str | None = None
    asset_url: str | None = Field(default=None, max_length=500)


class LessonRead(BaseModel):
    id: int
    course_id: int
    parent_id: int | None = None
    title: str
    type: str
    content: str
    objectives: str | None = None
    asset_url: str | None = None
    order_number: int
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class LessonReorder(BaseModel):
    lesson_ids: list[int] = Field(min_length=1)
