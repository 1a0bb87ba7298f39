from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import relationship

from lms_portal.core.config import DEFAULT_PASSING_SCORE
from lms_portal.db.base_class import Base

TEST_TYPES = ("practice", "final", "assessment", "quiz")


class AttemptStatus:
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


class Test(Base):
    __tablename__ = "tests"
    __test__ = False  # keep pytest from collecting the model

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    instructor_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    course_id = Column(Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=True, index=True)
    course_title = Column(String(255), nullable=True)

    type = Column(String(20), nullable=False, default="assessment")
    time_limit = Column(Integer, nullable=True)  # seconds
    is_time_limited = Column(Boolean, nullable=False, default=True)
    passing_score = Column(Integer, nullable=False, default=DEFAULT_PASSING_SCORE)
    max_attempts = Column(Integer, nullable=True)
    show_results = Column(Boolean, nullable=False, default=True)
    allow_review = Column(Boolean, nullable=False, default=True)

    # always equals count(test_questions where test_id = id)
    question_count = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    course = relationship("Course", back_populates="tests")
    questions = relationship(
        "TestQuestion",
        back_populates="test",
        cascade="all, delete-orphan",
        order_by="TestQuestion.order_number",
    )
    attempts = relationship("TestAttempt", back_populates="test", cascade="all, delete-orphan")


class TestQuestion(Base):
    __tablename__ = "test_questions"
    __test__ = False

    id = Column(Integer, primary_key=True, index=True)
    test_id = Column(Integer, ForeignKey("tests.id", ondelete="CASCADE"), nullable=False, index=True)

    question_text = Column(Text, nullable=False)
    options = Column(JSON, nullable=False, default=list)
    correct_answer = Column(Integer, nullable=False)
    explanation = Column(Text, nullable=False, default="")
    points = Column(Integer, nullable=False, default=1)
    order_number = Column(Integer, nullable=False, default=0)

    test = relationship("Test", back_populates="questions")


class TestAttempt(Base):
    __tablename__ = "test_attempts"
    __test__ = False

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    test_id = Column(Integer, ForeignKey("tests.id", ondelete="CASCADE"), nullable=False, index=True)
    course_id = Column(Integer, nullable=True, index=True)

    status = Column(String(20), nullable=False, default=AttemptStatus.IN_PROGRESS)
    answers = Column(JSON, nullable=False, default=list)
    review_flags = Column(JSON, nullable=False, default=list)

    score = Column(Integer, nullable=True)
    total_questions = Column(Integer, nullable=True)
    correct_answers = Column(Integer, nullable=True)
    incorrect_answers = Column(Integer, nullable=True)
    unanswered = Column(Integer, nullable=True)
    percentage = Column(Float, nullable=True)
    passed = Column(Boolean, nullable=True)

    time_left = Column(Integer, nullable=True)
    started_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    submitted_at = Column(DateTime(timezone=True), nullable=True)

    test = relationship("Test", back_populates="attempts")
    user = relationship("User", back_populates="attempts")
