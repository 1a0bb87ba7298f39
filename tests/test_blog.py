from lms_portal.models.post import Post
from lms_portal.services.blog import estimate_read_time, slugify, split_tags


def post_payload(**overrides):
    payload = {
        "title": "Studying in Canada",
        "slug": "studying-in-canada",
        "excerpt": "What to expect",
        "content": "<p>" + "word " * 450 + "</p>",
        "category": "Study Abroad",
        "tags": "visa, Canada, , visa",
    }
    payload.update(overrides)
    return payload


def test_split_tags_handles_commas_and_duplicates():
    assert split_tags("visa, Canada, , VISA") == ["visa", "Canada"]
    assert split_tags(["a", " b "]) == ["a", "b"]
    assert split_tags(None) == []


def test_read_time_is_at_least_one_minute():
    assert estimate_read_time("<p>short</p>") == 1
    assert estimate_read_time("word " * 450) == 2
    assert estimate_read_time("word " * 500) == 3


def test_slugify():
    assert slugify("  Study in the U.K.!  ") == "study-in-the-u-k"


def test_admin_creates_post(client, admin_headers, seed_data):
    r = client.post("/blog/posts", headers=admin_headers, json=post_payload())
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["slug"] == "studying-in-canada"
    assert body["tags"] == ["visa", "Canada"]
    assert body["read_time_minutes"] == 2
    assert body["status"] == "published"
    assert body["published_at"] is not None
    assert body["author_id"] == seed_data["admin_id"]
    assert body["author_name"] == "Admin One"


def test_duplicate_slug_conflicts(client, admin_headers):
    assert client.post("/blog/posts", headers=admin_headers, json=post_payload()).status_code == 201

    r = client.post("/blog/posts", headers=admin_headers, json=post_payload(title="Another"))
    assert r.status_code == 409
    assert r.json()["error"].startswith("A post with this slug already exists")


def test_slug_defaults_to_title(client, admin_headers):
    payload = post_payload(title="IELTS Tips & Tricks")
    del payload["slug"]

    r = client.post("/blog/posts", headers=admin_headers, json=payload)
    assert r.status_code == 201
    assert r.json()["slug"] == "ielts-tips-tricks"


def test_only_admins_write_posts(client, instructor_headers, student_headers):
    assert client.post("/blog/posts", headers=instructor_headers, json=post_payload()).status_code == 403
    assert client.post("/blog/posts", headers=student_headers, json=post_payload()).status_code == 403


def test_public_sees_published_posts_only(client, admin_headers):
    client.post("/blog/posts", headers=admin_headers, json=post_payload())
    client.post(
        "/blog/posts",
        headers=admin_headers,
        json=post_payload(title="Draft", slug="draft-post", status="draft"),
    )

    r = client.get("/blog/posts")
    assert r.status_code == 200
    assert [p["slug"] for p in r.json()] == ["studying-in-canada"]

    assert client.get("/blog/posts/studying-in-canada").status_code == 200
    assert client.get("/blog/posts/draft-post").status_code == 404

    r = client.get("/blog/admin/posts", headers=admin_headers)
    assert {p["slug"] for p in r.json()} == {"studying-in-canada", "draft-post"}


def test_update_post_rechecks_slug_and_read_time(client, admin_headers, db):
    first = client.post("/blog/posts", headers=admin_headers, json=post_payload()).json()
    second = client.post(
        "/blog/posts",
        headers=admin_headers,
        json=post_payload(title="Second", slug="second-post"),
    ).json()

    r = client.patch(
        f"/blog/posts/{second['id']}",
        headers=admin_headers,
        json={"slug": first["slug"]},
    )
    assert r.status_code == 409

    r = client.patch(
        f"/blog/posts/{second['id']}",
        headers=admin_headers,
        json={"content": "A much shorter article body.", "tags": "ielts"},
    )
    assert r.status_code == 200
    assert r.json()["read_time_minutes"] == 1
    assert r.json()["tags"] == ["ielts"]
    assert r.json()["slug"] == "second-post"


def test_delete_post(client, admin_headers, db):
    post_id = client.post("/blog/posts", headers=admin_headers, json=post_payload()).json()["id"]

    r = client.delete(f"/blog/posts/{post_id}", headers=admin_headers)
    assert r.status_code == 200
    assert db.query(Post).filter(Post.id == post_id).count() == 0

    assert client.delete(f"/blog/posts/{post_id}", headers=admin_headers).status_code == 404
