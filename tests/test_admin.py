from lms_portal.core import config
from lms_portal.models.course import Course


def test_admin_approves_pending_instructor(client, admin_headers, seed_data, login):
    user_id = seed_data["pending_instructor_id"]

    r = client.get("/admin/users", headers=admin_headers, params={"status": "pending"})
    assert [u["id"] for u in r.json()] == [user_id]

    r = client.post(f"/admin/users/{user_id}/approve", headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["status"] == "approved"

    headers = login("instructor2@example.com")
    r = client.post("/courses", headers=headers, json={"title": "Now allowed"})
    assert r.status_code == 201


def test_suspended_user_is_locked_out(client, admin_headers, student_headers, seed_data):
    user_id = seed_data["student_id"]

    r = client.post(f"/admin/users/{user_id}/suspend", headers=admin_headers)
    assert r.json()["status"] == "suspended"

    r = client.get("/auth/me", headers=student_headers)
    assert r.status_code == 403
    assert r.json()["error"] == "Account is suspended"

    r = client.post("/auth/login", json={"email": "student1@example.com", "password": "password123"})
    assert r.status_code == 403

    r = client.post(f"/admin/users/{user_id}/reinstate", headers=admin_headers)
    assert r.json()["status"] == "approved"
    assert client.get("/auth/me", headers=student_headers).status_code == 200


def test_invalid_user_transition(client, admin_headers, seed_data):
    r = client.post(f"/admin/users/{seed_data['student_id']}/reinstate", headers=admin_headers)
    assert r.status_code == 409

    r = client.post(f"/admin/users/{seed_data['admin_id']}/suspend", headers=admin_headers)
    assert r.status_code == 409

    r = client.post(f"/admin/users/{seed_data['student_id']}/delete", headers=admin_headers)
    assert r.status_code == 404


def test_non_admin_is_forbidden(client, instructor_headers):
    r = client.get("/admin/users", headers=instructor_headers)
    assert r.status_code == 403
    assert r.json() == {"success": False, "error": "Admin role required"}


def test_revoke_enrollment_updates_student_count(client, admin_headers, seed_data, db):
    r = client.delete(f"/admin/enrollments/{seed_data['enrollment_id']}", headers=admin_headers)
    assert r.status_code == 200

    course = db.query(Course).filter(Course.id == seed_data["course_id"]).first()
    assert course.student_count == 0


def test_announcements(client, admin_headers, student_headers):
    r = client.post(
        "/admin/announcements",
        headers=admin_headers,
        json={"title": "Welcome", "content": "Classes start Monday", "type": "success"},
    )
    assert r.status_code == 201
    announcement_id = r.json()["id"]

    r = client.post(
        "/admin/announcements",
        headers=student_headers,
        json={"title": "Hi", "content": "x"},
    )
    assert r.status_code == 403

    r = client.get("/public/announcements")
    assert [a["title"] for a in r.json()] == ["Welcome"]

    assert client.delete(f"/admin/announcements/{announcement_id}", headers=admin_headers).status_code == 200
    assert client.get("/public/announcements").json() == []


def test_contact_form_flow(client, admin_headers, mailer, monkeypatch):
    monkeypatch.setattr(config, "ADMIN_EMAIL", "admin@example.com")

    r = client.post(
        "/public/contact",
        json={
            "first_name": "  Jane ",
            "last_name": "Doe",
            "email": "JANE@EXAMPLE.COM",
            "phone": "555-0100",
            "inquiry_type": "Study Abroad",
            "message": "   ",
        },
    )
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["first_name"] == "Jane"
    assert body["email"] == "jane@example.com"
    assert body["message"] is None
    assert body["status"] == "new"
    assert sorted(m["to"] for m in mailer.sent) == ["admin@example.com", "jane@example.com"]

    r = client.get("/admin/contact-submissions/stats", headers=admin_headers)
    assert r.json() == {"total": 1, "last_30_days": 1, "by_inquiry_type": {"Study Abroad": 1}}

    r = client.patch(
        f"/admin/contact-submissions/{body['id']}",
        headers=admin_headers,
        json={"status": "resolved"},
    )
    assert r.json()["status"] == "resolved"

    r = client.patch(
        f"/admin/contact-submissions/{body['id']}",
        headers=admin_headers,
        json={"status": "archived"},
    )
    assert r.status_code == 422

    assert client.delete(f"/admin/contact-submissions/{body['id']}", headers=admin_headers).status_code == 200
    assert client.get("/admin/contact-submissions", headers=admin_headers).json() == []


def test_contact_form_validation(client):
    r = client.post(
        "/public/contact",
        json={"first_name": "", "last_name": "Doe", "email": "not-an-email", "phone": "1", "inquiry_type": "x"},
    )
    assert r.status_code == 422
    assert r.json()["success"] is False
    assert "email" in r.json()["error"]


def test_resume_upload_flow(client, admin_headers, mailer):
    r = client.post(
        "/public/resume",
        data={"name": "Jane Doe", "email": "jane@example.com"},
        files={"file": ("cv.pdf", b"%PDF-1.4 cv", "application/pdf")},
    )
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["file_name"] == "cv.pdf"
    assert body["file_size"] == len(b"%PDF-1.4 cv")
    assert body["file_url"].startswith("/uploads/resumes/")
    assert body["status"] == "pending"
    assert mailer.sent[-1]["to"] == "jane@example.com"

    r = client.patch(
        f"/admin/resume-submissions/{body['id']}",
        headers=admin_headers,
        json={"status": "reviewed"},
    )
    assert r.json()["status"] == "reviewed"
    assert r.json()["updated_at"] is not None

    r = client.get("/admin/resume-submissions/stats", headers=admin_headers)
    assert r.json() == {"total": 1, "last_30_days": 1, "by_status": {"reviewed": 1}}


def test_resume_upload_rejects_images(client):
    r = client.post(
        "/public/resume",
        data={"name": "Jane Doe", "email": "jane@example.com"},
        files={"file": ("cv.png", b"png", "image/png")},
    )
    assert r.status_code == 422


def test_admin_dashboard(client, admin_headers, student_headers, seed_data):
    client.post("/enrollments", headers=student_headers, json={"course_id": seed_data["paid_course_id"]})

    r = client.get("/admin/dashboard", headers=admin_headers)
    assert r.status_code == 200
    assert r.json() == {
        "users_by_role": {"student": 2, "instructor": 2, "admin": 1},
        "pending_instructors": 1,
        "courses": 2,
        "enrollments": 2,
        "pending_enrollments": 1,
        "pending_certificates": 0,
    }


def test_dashboards(client, instructor_headers, student_headers, seed_data):
    attempt_id = client.post(f"/tests/{seed_data['test_id']}/attempts", headers=student_headers).json()["id"]
    client.post(f"/attempts/{attempt_id}/submit", headers=student_headers, json={"answers": [1, 0, 2, 0]})

    r = client.get("/instructor/dashboard", headers=instructor_headers)
    assert r.status_code == 200
    intro = next(row for row in r.json() if row["course_id"] == seed_data["course_id"])
    assert intro["total_students"] == 1
    assert intro["total_lessons"] == 2
    assert intro["total_tests"] == 1
    assert intro["completed_attempts"] == 1
    assert intro["average_percentage"] == 75

    r = client.get("/student/dashboard", headers=student_headers)
    [row] = r.json()
    assert row["course_title"] == "Intro to Python"
    assert row["completed_attempts"] == 1
    assert row["best_percentage"] == 75


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}
