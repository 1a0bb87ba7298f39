import os
import shutil
import tempfile

TEST_DB_FILE = "test_lms_portal.db"
TEST_DB_URL = f"sqlite:///./{TEST_DB_FILE}"
TEST_UPLOAD_DIR = tempfile.mkdtemp(prefix="lms_uploads_")

# must be set before lms_portal reads its config
os.environ["LMS_DATABASE_URL"] = TEST_DB_URL
os.environ["LMS_UPLOAD_DIR"] = TEST_UPLOAD_DIR
os.environ["LMS_BCRYPT_ROUNDS"] = "4"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from lms_portal.core.deps import get_db  # noqa: E402
from lms_portal.core.security import hash_password  # noqa: E402
from lms_portal.db.base import Base  # noqa: E402
from lms_portal.main import app  # noqa: E402
from lms_portal.models.announcement import Announcement  # noqa: E402
from lms_portal.models.assessment import Test, TestAttempt, TestQuestion  # noqa: E402
from lms_portal.models.coupon import Coupon  # noqa: E402
from lms_portal.models.course import Course  # noqa: E402
from lms_portal.models.enrollment import Enrollment  # noqa: E402
from lms_portal.models.lesson import Lesson  # noqa: E402
from lms_portal.models.post import Post  # noqa: E402
from lms_portal.models.review import Review  # noqa: E402
from lms_portal.models.submission import ContactSubmission, ResumeSubmission  # noqa: E402
from lms_portal.models.user import User  # noqa: E402
from lms_portal.services.notifications import get_email_dispatcher  # noqa: E402

PASSWORD = "password123"

engine = create_engine(
    TEST_DB_URL,
    connect_args={"check_same_thread": False},
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


class RecordingMailer:
    """Stands in for EmailDispatcher; keeps every message instead of sending it."""

    def __init__(self):
        self.sent = []

    def send(self, to, subject, html, text=None):
        self.sent.append({"to": to, "subject": subject, "html": html, "text": text})
        return True

    def deliver(self, email):
        return self.send(email.to, email.subject, email.html, email.text)

    def subjects(self):
        return [m["subject"] for m in self.sent]


@pytest.fixture(scope="session", autouse=True)
def setup_test_db():
    """Create a fresh schema once for the whole test session."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)
    engine.dispose()
    if os.path.exists(TEST_DB_FILE):
        os.remove(TEST_DB_FILE)
    shutil.rmtree(TEST_UPLOAD_DIR, ignore_errors=True)


@pytest.fixture(autouse=True)
def seed_data():
    """
    Seed a clean minimal dataset for each test and return the ids.

    - admin1, instructor1 (approved), instructor2 (pending), student1, student2
    - "Intro to Python" (free, instructor1) with two lessons; student1 enrolled
    - "Data Science" (paid, instructor1)
    - "Python Basics Quiz" on the free course: 4 questions, correct answers
      [1, 0, 2, 1], passing score 80, at most 2 attempts
    """
    db = TestingSessionLocal()
    try:
        # Clear tables (child -> parent)
        db.query(TestAttempt).delete()
        db.query(TestQuestion).delete()
        db.query(Test).delete()
        db.query(Review).delete()
        db.query(Enrollment).delete()
        db.query(Lesson).filter(Lesson.parent_id.is_not(None)).delete()
        db.query(Lesson).delete()
        db.query(Course).delete()
        db.query(Announcement).delete()
        db.query(ContactSubmission).delete()
        db.query(ResumeSubmission).delete()
        db.query(Post).delete()
        db.query(Coupon).delete()
        db.query(User).delete()
        db.commit()

        # Users
        admin = User(
            email="admin1@example.com",
            full_name="Admin One",
            role="admin",
            status="approved",
            hashed_password=hash_password(PASSWORD),
        )
        instructor = User(
            email="instructor1@example.com",
            full_name="Instructor One",
            role="instructor",
            status="approved",
            hashed_password=hash_password(PASSWORD),
        )
        pending_instructor = User(
            email="instructor2@example.com",
            full_name="Instructor Two",
            role="instructor",
            status="pending",
            hashed_password=hash_password(PASSWORD),
        )
        student = User(
            email="student1@example.com",
            full_name="Student One",
            role="student",
            status="approved",
            hashed_password=hash_password(PASSWORD),
        )
        other_student = User(
            email="student2@example.com",
            full_name="Student Two",
            role="student",
            status="approved",
            hashed_password=hash_password(PASSWORD),
        )
        db.add_all([admin, instructor, pending_instructor, student, other_student])
        db.commit()

        # Courses
        free_course = Course(
            title="Intro to Python",
            description="Variables, loops and functions",
            instructor_id=instructor.id,
            instructor_name=instructor.full_name,
            type="free",
            price=0,
            category="Programming",
            tags=["python"],
            student_count=1,
            lesson_count=2,
        )
        paid_course = Course(
            title="Data Science",
            instructor_id=instructor.id,
            instructor_name=instructor.full_name,
            type="paid",
            price=199,
            category="Data",
        )
        db.add_all([free_course, paid_course])
        db.commit()

        # Lessons
        lesson1 = Lesson(course_id=free_course.id, title="Variables", type="text", order_number=0)
        lesson2 = Lesson(course_id=free_course.id, title="Loops", type="video", order_number=1)
        db.add_all([lesson1, lesson2])

        # Enrollment
        enrollment = Enrollment(
            course_id=free_course.id,
            student_id=student.id,
            status="approved",
            payment_status="free",
        )
        db.add(enrollment)
        db.commit()

        # Test with questions
        quiz = Test(
            title="Python Basics Quiz",
            instructor_id=instructor.id,
            course_id=free_course.id,
            course_title=free_course.title,
            type="quiz",
            time_limit=600,
            passing_score=80,
            max_attempts=2,
            question_count=4,
        )
        db.add(quiz)
        db.commit()

        for i, correct in enumerate([1, 0, 2, 1]):
            db.add(
                TestQuestion(
                    test_id=quiz.id,
                    question_text=f"Question {i + 1}",
                    options=["a", "b", "c"],
                    correct_answer=correct,
                    explanation=f"Because {correct}",
                    order_number=i,
                )
            )
        db.commit()

        ids = {
            "admin_id": admin.id,
            "instructor_id": instructor.id,
            "pending_instructor_id": pending_instructor.id,
            "student_id": student.id,
            "other_student_id": other_student.id,
            "course_id": free_course.id,
            "paid_course_id": paid_course.id,
            "lesson_ids": [lesson1.id, lesson2.id],
            "enrollment_id": enrollment.id,
            "test_id": quiz.id,
        }
    finally:
        db.close()

    yield ids


@pytest.fixture()
def db():
    """Session on the test database for direct inspection."""
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def mailer():
    return RecordingMailer()


@pytest.fixture()
def client(mailer):
    """Test client that uses the test DB session and a recording mailer."""
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_email_dispatcher] = lambda: mailer
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def login(client):
    def _login(email: str, password: str = PASSWORD) -> dict:
        r = client.post("/auth/login", json={"email": email, "password": password})
        assert r.status_code == 200, r.text
        return {"Authorization": f"Bearer {r.json()['access_token']}"}

    return _login


@pytest.fixture()
def admin_headers(login):
    return login("admin1@example.com")


@pytest.fixture()
def instructor_headers(login):
    return login("instructor1@example.com")


@pytest.fixture()
def student_headers(login):
    return login("student1@example.com")


@pytest.fixture()
def other_student_headers(login):
    return login("student2@example.com")
