def test_student_registration_is_approved(client, mailer):
    r = client.post(
        "/auth/register",
        json={"email": "New.Student@Example.com", "password": "longpassword", "full_name": "New"},
    )
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["email"] == "new.student@example.com"
    assert body["role"] == "student"
    assert body["status"] == "approved"
    assert mailer.sent[-1]["to"] == "new.student@example.com"

    r = client.post("/auth/login", json={"email": "new.student@example.com", "password": "longpassword"})
    assert r.status_code == 200
    assert r.json()["token_type"] == "bearer"


def test_instructor_registration_is_pending(client, login):
    r = client.post(
        "/auth/register",
        json={"email": "teacher@example.com", "password": "longpassword", "role": "instructor"},
    )
    assert r.json()["status"] == "pending"

    headers = login("teacher@example.com", "longpassword")
    r = client.post("/courses", headers=headers, json={"title": "Too early"})
    assert r.status_code == 403


def test_cannot_register_as_admin(client):
    r = client.post(
        "/auth/register",
        json={"email": "boss@example.com", "password": "longpassword", "role": "admin"},
    )
    assert r.status_code == 422


def test_duplicate_email(client):
    r = client.post(
        "/auth/register",
        json={"email": "student1@example.com", "password": "longpassword"},
    )
    assert r.status_code == 400
    assert r.json() == {"success": False, "error": "Email already registered"}


def test_wrong_password(client):
    r = client.post("/auth/login", json={"email": "student1@example.com", "password": "nope"})
    assert r.status_code == 401
    assert r.json()["success"] is False


def test_me_requires_token(client, student_headers):
    assert client.get("/auth/me").status_code == 401

    r = client.get("/auth/me", headers=student_headers)
    assert r.status_code == 200
    assert r.json()["email"] == "student1@example.com"


def test_repair_registration(client, admin_headers, student_headers, login):
    r = client.post(
        "/auth/repair-registration",
        headers=admin_headers,
        json={"email": "student2@example.com", "new_password": "brandnewpass"},
    )
    assert r.status_code == 200
    assert r.json()["success"] is True
    assert isinstance(r.json()["user_id"], int)
    login("student2@example.com", "brandnewpass")

    r = client.post(
        "/auth/repair-registration",
        headers=admin_headers,
        json={"email": "ghost@example.com", "new_password": "brandnewpass"},
    )
    assert r.status_code == 404
    assert r.json()["success"] is False

    r = client.post(
        "/auth/repair-registration",
        headers=student_headers,
        json={"email": "student2@example.com", "new_password": "brandnewpass"},
    )
    assert r.status_code == 403
