from lms_portal.models.assessment import Test, TestQuestion
from lms_portal.models.enrollment import Enrollment


def start(client, headers, test_id):
    return client.post(f"/tests/{test_id}/attempts", headers=headers)


def test_three_of_four_scores_75_and_fails(client, student_headers, seed_data, db):
    r = start(client, student_headers, seed_data["test_id"])
    assert r.status_code == 201, r.text
    attempt = r.json()
    assert attempt["status"] == "in-progress"
    assert attempt["time_left"] == 600
    assert attempt["total_questions"] == 4

    r = client.post(
        f"/attempts/{attempt['id']}/submit",
        headers=student_headers,
        json={"answers": [1, 0, 2, 0], "time_left": 120},
    )
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["status"] == "completed"
    assert body["score"] == 3
    assert body["total_questions"] == 4
    assert body["percentage"] == 75
    assert body["passed"] is False
    assert body["answers"] == [1, 0, 2, 0]
    assert body["time_left"] == 120
    assert body["submitted_at"] is not None

    enrollment = db.query(Enrollment).filter(Enrollment.id == seed_data["enrollment_id"]).first()
    assert enrollment.average_score == 75


def test_unanswered_questions_are_counted(client, student_headers, seed_data):
    attempt_id = start(client, student_headers, seed_data["test_id"]).json()["id"]

    r = client.post(
        f"/attempts/{attempt_id}/submit",
        headers=student_headers,
        json={"answers": [1, None, None, 1]},
    )
    body = r.json()
    assert body["score"] == 2
    assert body["unanswered"] == 2
    assert body["percentage"] == 50


def test_answer_length_mismatch_is_rejected(client, student_headers, seed_data):
    attempt_id = start(client, student_headers, seed_data["test_id"]).json()["id"]

    r = client.post(
        f"/attempts/{attempt_id}/submit",
        headers=student_headers,
        json={"answers": [1, 0]},
    )
    assert r.status_code == 422
    assert r.json()["success"] is False

    # still open for a correct submission
    r = client.get(f"/attempts/{attempt_id}", headers=student_headers)
    assert r.json()["status"] == "in-progress"


def test_completed_attempt_cannot_be_resubmitted(client, student_headers, seed_data):
    attempt_id = start(client, student_headers, seed_data["test_id"]).json()["id"]
    payload = {"answers": [1, 0, 2, 1]}

    assert client.post(f"/attempts/{attempt_id}/submit", headers=student_headers, json=payload).status_code == 200
    r = client.post(f"/attempts/{attempt_id}/submit", headers=student_headers, json=payload)
    assert r.status_code == 409
    assert r.json()["error"] == "Attempt is already completed"


def test_max_attempts_counts_every_attempt(client, student_headers, seed_data):
    test_id = seed_data["test_id"]

    first = start(client, student_headers, test_id).json()["id"]
    client.post(f"/attempts/{first}/abandon", headers=student_headers)
    assert start(client, student_headers, test_id).status_code == 201

    r = start(client, student_headers, test_id)
    assert r.status_code == 409
    assert "Maximum attempts" in r.json()["error"]

    r = client.get(f"/tests/{test_id}/eligibility", headers=student_headers)
    assert r.json() == {
        "test_id": test_id,
        "attempts_used": 2,
        "max_attempts": 2,
        "can_attempt": False,
    }


def test_abandon_sets_zero_score(client, student_headers, seed_data):
    attempt_id = start(client, student_headers, seed_data["test_id"]).json()["id"]

    r = client.post(f"/attempts/{attempt_id}/abandon", headers=student_headers)
    assert r.status_code == 200
    assert r.json()["status"] == "abandoned"
    assert r.json()["score"] == 0


def test_unenrolled_student_cannot_start(client, other_student_headers, seed_data):
    r = start(client, other_student_headers, seed_data["test_id"])
    assert r.status_code == 403


def test_test_without_questions_cannot_start(client, instructor_headers, student_headers, seed_data):
    r = client.post(
        "/tests",
        headers=instructor_headers,
        json={"title": "Empty", "course_id": seed_data["course_id"]},
    )
    r = start(client, student_headers, r.json()["id"])
    assert r.status_code == 422


def test_only_owner_can_submit(client, student_headers, instructor_headers, seed_data):
    attempt_id = start(client, student_headers, seed_data["test_id"]).json()["id"]

    r = client.post(
        f"/attempts/{attempt_id}/submit",
        headers=instructor_headers,
        json={"answers": [1, 0, 2, 1]},
    )
    assert r.status_code == 403

    # the course instructor may still read it
    r = client.get(f"/attempts/{attempt_id}", headers=instructor_headers)
    assert r.status_code == 200


def test_review_flags_only_after_completion(client, student_headers, seed_data):
    attempt_id = start(client, student_headers, seed_data["test_id"]).json()["id"]

    r = client.put(
        f"/attempts/{attempt_id}/review-flags",
        headers=student_headers,
        json={"review_flags": [1]},
    )
    assert r.status_code == 409

    client.post(f"/attempts/{attempt_id}/submit", headers=student_headers, json={"answers": [1, 0, 2, 1]})

    r = client.put(
        f"/attempts/{attempt_id}/review-flags",
        headers=student_headers,
        json={"review_flags": [3, 1, 1]},
    )
    assert r.status_code == 200
    assert r.json()["review_flags"] == [1, 3]
    assert r.json()["score"] == 4

    r = client.put(
        f"/attempts/{attempt_id}/review-flags",
        headers=student_headers,
        json={"review_flags": [4]},
    )
    assert r.status_code == 422


def test_passing_final_test_completes_enrollment(client, student_headers, seed_data, db):
    final = Test(
        title="Final",
        instructor_id=seed_data["instructor_id"],
        course_id=seed_data["course_id"],
        type="final",
        passing_score=50,
        question_count=2,
    )
    db.add(final)
    db.commit()
    db.add_all(
        [
            TestQuestion(test_id=final.id, question_text="Q1", options=["x", "y"], correct_answer=0, order_number=0),
            TestQuestion(test_id=final.id, question_text="Q2", options=["x", "y"], correct_answer=1, order_number=1),
        ]
    )
    db.commit()
    final_id = final.id

    attempt_id = start(client, student_headers, final_id).json()["id"]
    r = client.post(f"/attempts/{attempt_id}/submit", headers=student_headers, json={"answers": [0, 0]})
    assert r.json()["percentage"] == 50
    assert r.json()["passed"] is True

    r = client.get(f"/enrollments/{seed_data['enrollment_id']}", headers=student_headers)
    assert r.json()["completed"] is True
    assert r.json()["progress"] == 100


def test_instructor_lists_attempts_of_own_test(client, student_headers, instructor_headers, seed_data):
    start(client, student_headers, seed_data["test_id"])

    r = client.get(f"/tests/{seed_data['test_id']}/attempts", headers=instructor_headers)
    assert r.status_code == 200
    assert len(r.json()) == 1

    r = client.get("/attempts/me", headers=student_headers)
    assert len(r.json()) == 1
