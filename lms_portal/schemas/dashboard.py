from pydantic import BaseModel


class InstructorCourseStats(BaseModel):
    course_id: int
    course_title: str
    total_students: int
    total_lessons: int
    total_tests: int
    completed_attempts: int
    average_percentage: float | None
    pending_certificates: int


class StudentCourseRow(BaseModel):
    enrollment_id: int
    course_id: int
    course_title: str
    status: str
    progress: int
    completed: bool
    certificate_status: str
    completed_attempts: int
    best_percentage: float | None = None


class AdminSummary(BaseModel):
    users_by_role: dict[str, int]
    pending_instructors: int
    courses: int
    enrollments: int
    pending_enrollments: int
    pending_certificates: int
