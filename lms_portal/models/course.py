from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, Float, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lms_portal.db.base_class import Base


class CourseType:
    FREE = "free"
    PAID = "paid"


class Course(Base):
    __tablename__ = "courses"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)

    # denormalized instructor reference
    instructor_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"), nullable=False, index=True
    )
    instructor_name: Mapped[str | None] = mapped_column(String(255))

    type: Mapped[str] = mapped_column(String(20), nullable=False, default=CourseType.FREE)
    price: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    category: Mapped[str | None] = mapped_column(String(100), index=True)
    level: Mapped[str] = mapped_column(String(50), nullable=False, default="Beginner")
    tags: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    image_url: Mapped[str | None] = mapped_column(String(500))
    has_certificate: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    certificate_url: Mapped[str | None] = mapped_column(String(500))

    # counters, recomputed from their source rows
    student_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    lesson_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    rating: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    rating_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_rating: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    enrollments = relationship(
        "Enrollment", back_populates="course", cascade="all, delete-orphan"
    )

    lessons = relationship(
        "Lesson", back_populates="course", cascade="all, delete-orphan"
    )

    tests = relationship(
        "Test", back_populates="course", cascade="all, delete-orphan"
    )

    reviews = relationship(
        "Review", back_populates="course", cascade="all, delete-orphan"
    )
