from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import relationship

from lms_portal.db.base_class import Base

LESSON_TYPES = ("text", "video", "audio", "document", "quiz", "assignment")


class Lesson(Base):
    __tablename__ = "lessons"

    id = Column(Integer, primary_key=True, index=True)
    course_id = Column(Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    parent_id = Column(Integer, ForeignKey("lessons.id", ondelete="CASCADE"), nullable=True, index=True)

    title = Column(String(255), nullable=False)
    type = Column(String(20), nullable=False)
    content = Column(Text, nullable=False, default="")
    objectives = Column(Text, nullable=True)
    asset_url = Column(String(500), nullable=True)
    order_number = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    course = relationship("Course", back_populates="lessons")

    parent = relationship("Lesson", back_populates="children", remote_side="Lesson.id")
    children = relationship("Lesson", back_populates="parent", cascade="all, delete-orphan")
