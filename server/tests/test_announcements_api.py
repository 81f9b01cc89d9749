from __future__ import annotations

from datetime import timedelta

from app.models.announcement import Announcement
from app.models.member import Member
from app.services.user_accounts import now_utc

CONTENT = "Join us this Sunday for a special service."


def _add(db_session, title: str, **fields) -> Announcement:
    fields.setdefault("is_published", True)
    fields.setdefault("content", CONTENT)
    announcement = Announcement(title=title, attachments=[], **fields)
    db_session.add(announcement)
    db_session.commit()
    db_session.refresh(announcement)
    return announcement


def test_create_announcement_defaults_author_to_linked_member(client, authorize, content_creator_user, db_session, sample_member) -> None:
    member = db_session.get(Member, sample_member.id)
    member.user_id = content_creator_user.id
    db_session.commit()
    db_session.refresh(content_creator_user)

    authorize(content_creator_user)
    response = client.post(
        "/announcements",
        json={"title": "Picnic", "content": CONTENT, "priority": "high", "attachments": ["flyer.pdf"]},
    )
    assert response.status_code == 201, response.text
    body = response.json()
    assert body["author"]["id"] == sample_member.id
    assert body["is_published"] is False
    assert body["attachments"] == ["flyer.pdf"]


def test_create_announcement_validation(client, authorize, admin_user) -> None:
    authorize(admin_user)
    short = client.post("/announcements", json={"title": "Hi", "content": "too short"})
    assert short.status_code == 400
    assert short.json()["errors"][0]["field"] == "content"

    now = now_utc()
    inverted = client.post(
        "/announcements",
        json={
            "title": "Dates",
            "content": CONTENT,
            "publish_date": now.isoformat(),
            "expiry_date": (now - timedelta(days=1)).isoformat(),
        },
    )
    assert inverted.status_code == 400
    assert inverted.json()["detail"] == "Expiry date must be after publish date"

    too_many = client.post(
        "/announcements",
        json={"title": "Files", "content": CONTENT, "attachments": [f"file{i}.pdf" for i in range(21)]},
    )
    assert too_many.status_code == 400


def test_member_cannot_create_announcement(client, authorize, member_user) -> None:
    authorize(member_user)
    assert client.post("/announcements", json={"title": "Nope", "content": CONTENT}).status_code == 403


def test_public_listing_only_shows_visible(client, db_session) -> None:
    now = now_utc()
    _add(db_session, "Visible")
    _add(db_session, "Draft", is_published=False)
    _add(db_session, "Scheduled", publish_date=now + timedelta(days=2))
    _add(db_session, "Expired", expiry_date=now - timedelta(days=1))
    _add(db_session, "Retired", is_active=False)
    youth = _add(db_session, "Youth Night", target_audience="youth")

    response = client.get("/announcements/public")
    assert response.status_code == 200
    assert sorted(item["title"] for item in response.json()["items"]) == ["Visible", "Youth Night"]

    filtered = client.get("/announcements/public", params={"target_audience": "youth"}).json()
    assert [item["id"] for item in filtered["items"]] == [youth.id]

    assert client.get(f"/announcements/public/{youth.id}").status_code == 200
    draft = db_session.query(Announcement).filter_by(title="Draft").one()
    assert client.get(f"/announcements/public/{draft.id}").status_code == 404


def test_recent_orders_by_priority(client, db_session) -> None:
    _add(db_session, "Low", priority="low")
    _add(db_session, "Urgent", priority="urgent")
    _add(db_session, "Normal", priority="normal")

    response = client.get("/announcements/recent", params={"limit": 2})
    assert [item["title"] for item in response.json()] == ["Urgent", "Normal"]
    assert client.get("/announcements/recent", params={"limit": 21}).status_code == 400


def test_search_and_priority_endpoints(client, db_session) -> None:
    _add(db_session, "Choir rehearsal", priority="high")
    _add(db_session, "Bible study")

    response = client.get("/announcements/search", params={"q": "choir"})
    assert response.status_code == 200
    body = response.json()
    assert body["count"] == 1
    assert body["search_term"] == "choir"

    assert client.get("/announcements/search", params={"q": "a"}).status_code == 400

    high = client.get("/announcements/priority/high").json()
    assert [item["title"] for item in high] == ["Choir rehearsal"]
    assert client.get("/announcements/priority/critical").status_code == 400


def test_authenticated_listing_can_include_drafts(client, authorize, member_user, db_session) -> None:
    _add(db_session, "Visible")
    _add(db_session, "Draft", is_published=False)

    authorize(member_user)
    published = client.get("/announcements").json()
    assert [item["title"] for item in published["items"]] == ["Visible"]

    everything = client.get("/announcements", params={"published_only": "false", "sortBy": "title", "sortOrder": "asc"}).json()
    assert [item["title"] for item in everything["items"]] == ["Draft", "Visible"]


def test_publish_and_unpublish(client, authorize, admin_user, db_session) -> None:
    draft = _add(db_session, "Draft", is_published=False)
    retired = _add(db_session, "Retired", is_published=False, is_active=False)

    authorize(admin_user)
    published = client.post(f"/announcements/{draft.id}/publish")
    assert published.status_code == 200
    assert published.json()["is_published"] is True
    assert published.json()["publish_date"] is not None

    assert client.get(f"/announcements/public/{draft.id}").status_code == 200

    unpublished = client.post(f"/announcements/{draft.id}/unpublish")
    assert unpublished.json()["is_published"] is False

    assert client.post(f"/announcements/{retired.id}/publish").status_code == 400


def test_update_announcement(client, authorize, admin_user, db_session) -> None:
    announcement = _add(db_session, "Original")
    authorize(admin_user)

    response = client.put(f"/announcements/{announcement.id}", json={"title": "Updated", "priority": "urgent"})
    assert response.status_code == 200
    assert response.json()["title"] == "Updated"
    assert response.json()["priority"] == "urgent"

    assert client.put(f"/announcements/{announcement.id}", json={"title": None}).status_code == 400
    assert client.put("/announcements/999", json={"title": "Missing"}).status_code == 404


def test_delete_announcement_is_soft(client, authorize, super_admin_user, admin_user, db_session) -> None:
    announcement = _add(db_session, "Farewell")

    authorize(admin_user)
    assert client.delete(f"/announcements/{announcement.id}").status_code == 403

    authorize(super_admin_user)
    response = client.delete(f"/announcements/{announcement.id}")
    assert response.status_code == 200
    assert response.json()["outcome"] == "deactivated"

    db_session.expire_all()
    stored = db_session.get(Announcement, announcement.id)
    assert stored.is_active is False
    assert stored.is_published is False


def test_announcement_stats(client, db_session) -> None:
    now = now_utc()
    _add(db_session, "One", priority="urgent")
    _add(db_session, "Two", priority="low", target_audience="youth")
    _add(db_session, "Three", is_published=False, expiry_date=now - timedelta(days=1))

    body = client.get("/announcements/stats").json()
    assert body["total"] == 3
    assert body["published"] == 2
    assert body["draft"] == 1
    assert body["expired"] == 1
    assert [item["priority"] for item in body["by_priority"]] == ["urgent", "normal", "low"]
    assert {item["audience"]: item["count"] for item in body["by_audience"]} == {"all": 2, "youth": 1}


def test_create_announcement_measures_length_after_trimming(client, authorize, admin_user) -> None:
    authorize(admin_user)
    padded_title = client.post("/announcements", json={"title": " a ", "content": CONTENT})
    assert padded_title.status_code == 400
    assert padded_title.json()["errors"][0]["field"] == "title"

    padded_content = client.post("/announcements", json={"title": "Notice", "content": "          x"})
    assert padded_content.status_code == 400
    assert padded_content.json()["errors"][0]["field"] == "content"

    trimmed = client.post("/announcements", json={"title": "  Notice  ", "content": f"  {CONTENT}  "})
    assert trimmed.status_code == 201
    assert trimmed.json()["title"] == "Notice"
    assert trimmed.json()["content"] == CONTENT


def test_update_announcement_rejects_padded_title(client, authorize, admin_user, db_session) -> None:
    announcement = _add(db_session, "Original")
    authorize(admin_user)
    assert client.put(f"/announcements/{announcement.id}", json={"title": "   a   "}).status_code == 400


def test_search_treats_wildcards_literally(client, db_session) -> None:
    _add(db_session, "Fund drive", content="We reached 100% of our building goal.")
    _add(db_session, "Bible study")

    body = client.get("/announcements/search", params={"q": "0%"}).json()
    assert [item["title"] for item in body["items"]] == ["Fund drive"]

    assert client.get("/announcements/search", params={"q": "%%"}).json()["count"] == 0
