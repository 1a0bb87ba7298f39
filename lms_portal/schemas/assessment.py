from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, model_validator

from lms_portal.core.config import DEFAULT_PASSING_SCORE

TestType = Literal["practice", "final", "assessment", "quiz"]


class TestCreate(BaseModel):
    __test__ = False

    title: str = Field(min_length=1, max_length=255)
    description: str | None = None
    course_id: int | None = None
    type: TestType = "assessment"
    time_limit: int | None = Field(default=None, gt=0)  # seconds
    is_time_limited: bool = True
    passing_score: int = Field(default=DEFAULT_PASSING_SCORE, ge=0, le=100)
    max_attempts: int | None = Field(default=None, ge=1)
    show_results: bool = True
    allow_review: bool = True


class TestUpdate(BaseModel):
    __test__ = False

    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    type: TestType | None = None
    time_limit: int | None = Field(default=None, gt=0)
    is_time_limited: bool | None = None
    passing_score: int | None = Field(default=None, ge=0, le=100)
    max_attempts: int | None = Field(default=None, ge=1)
    show_results: bool | None = None
    allow_review: bool | None = None


class TestRead(BaseModel):
    __test__ = False

    id: int
    title: str
    description: str | None = None
    instructor_id: int
    course_id: int | None = None
    course_title: str | None = None
    type: str
    time_limit: int | None = None
    is_time_limited: bool
    passing_score: int
    max_attempts: int | None = None
    show_results: bool
    allow_review: bool
    question_count: int
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class QuestionCreate(BaseModel):
    question_text: str = Field(min_length=1)
    options: list[str] = Field(min_length=2)
    correct_answer: int = Field(ge=0)
    explanation: str = ""
    points: int = Field(default=1, ge=1)

    @model_validator(mode="after")
    def answer_within_options(self):
        if self.correct_answer >= len(self.options):
            raise ValueError("correct_answer must index into options")
        return self


class QuestionUpdate(BaseModel):
    question_text: str | None = Field(default=None, min_length=1)
    options: list[str] | None = Field(default=None, min_length=2)
    correct_answer: int | None = Field(default=None, ge=0)
    explanation: str | None = None
    points: int | None = Field(default=None, ge=1)


class QuestionPublic(BaseModel):
    """What a student sees while taking a test."""

    id: int
    test_id: int
    question_text: str
    options: list[str]
    points: int
    order_number: int

    class Config:
        from_attributes = True


class QuestionRead(QuestionPublic):
    correct_answer: int
    explanation: str


class QuestionReorder(BaseModel):
    question_ids: list[int] = Field(min_length=1)
