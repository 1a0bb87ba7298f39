from datetime import datetime

from pydantic import BaseModel, Field


class AttemptSubmit(BaseModel):
    # one entry per question in order, None for unanswered
    answers: list[int | None]
    time_left: int | None = Field(default=None, ge=0)


class ReviewFlagsUpdate(BaseModel):
    review_flags: list[int] = Field(default_factory=list)


class AttemptRead(BaseModel):
    id: int
    user_id: int
    test_id: int
    course_id: int | None = None
    status: str
    answers: list[int | None] = []
    review_flags: list[int] = []
    score: int | None = None
    total_questions: int | None = None
    correct_answers: int | None = None
    incorrect_answers: int | None = None
    unanswered: int | None = None
    percentage: float | None = None
    passed: bool | None = None
    time_left: int | None = None
    started_at: datetime | None = None
    submitted_at: datetime | None = None

    class Config:
        from_attributes = True


class RetakeEligibility(BaseModel):
    test_id: int
    attempts_used: int
    max_attempts: int | None = None
    can_attempt: bool
