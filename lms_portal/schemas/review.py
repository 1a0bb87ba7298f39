from datetime import datetime

from pydantic import BaseModel, Field


class ReviewCreate(BaseModel):
    content_rating: int = Field(ge=1, le=5)
    instructor_rating: int = Field(ge=1, le=5)
    comment: str = Field(default="", max_length=2000)


class ReviewRead(BaseModel):
    id: int
    course_id: int
    user_id: int
    user_name: str | None = None
    rating: int
    content_rating: int
    instructor_rating: int
    comment: str
    created_at: datetime | None = None

    class Config:
        from_attributes = True
