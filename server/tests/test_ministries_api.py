from __future__ import annotations

from datetime import datetime

from app.models.event import Event
from app.models.member import Member
from app.models.ministry import MemberMinistry, Ministry


def test_create_ministry_generates_unique_slug(client, authorize, ministry_leader_user, db_session) -> None:
    db_session.add(Ministry(name="Old Praise", slug="praise-team"))
    db_session.commit()

    authorize(ministry_leader_user)
    response = client.post("/ministries", json={"name": "Praise Team", "type": "WORSHIP"})
    assert response.status_code == 201, response.text
    body = response.json()
    assert body["slug"] == "praise-team-2"
    assert body["member_count"] == 0
    assert body["members"] == []


def test_create_ministry_duplicate_name(client, authorize, admin_user, sample_ministry) -> None:
    authorize(admin_user)
    response = client.post("/ministries", json={"name": "praise team"})
    assert response.status_code == 409


def test_create_ministry_invalid_type(client, authorize, admin_user) -> None:
    authorize(admin_user)
    response = client.post("/ministries", json={"name": "Choir", "type": "KARAOKE"})
    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "type"


def test_list_ministries_filters_by_type(client, authorize, member_user, db_session, sample_ministry) -> None:
    db_session.add(Ministry(name="Youth Fellowship", slug="youth-fellowship", type="YOUTH"))
    db_session.add(Ministry(name="Retired", slug="retired", type="YOUTH", is_active=False))
    db_session.commit()

    authorize(member_user)
    body = client.get("/ministries", params={"type": "YOUTH"}).json()
    assert [item["name"] for item in body["items"]] == ["Youth Fellowship"]

    everything = client.get("/ministries", params={"sortBy": "name", "sortOrder": "desc"}).json()
    assert [item["name"] for item in everything["items"]] == ["Youth Fellowship", "Praise Team"]


def test_ministry_membership_lifecycle(client, authorize, admin_user, sample_ministry, sample_member) -> None:
    authorize(admin_user)
    url = f"/ministries/{sample_ministry.id}/members"

    added = client.post(url, json={"member_id": sample_member.id, "role": "MEMBER"})
    assert added.status_code == 201
    assert added.json()["member"]["first_name"] == "Abeba"

    assert client.post(url, json={"member_id": sample_member.id}).status_code == 409
    assert client.post(url, json={"member_id": 999}).status_code == 404

    promoted = client.put(f"{url}/{sample_member.id}", json={"role": "LEADER"})
    assert promoted.status_code == 200
    assert promoted.json()["role"] == "LEADER"

    listing = client.get(url).json()
    assert listing["total"] == 1
    assert listing["items"][0]["role"] == "LEADER"

    detail = client.get(f"/ministries/{sample_ministry.id}").json()
    assert detail["member_count"] == 1

    removed = client.delete(f"{url}/{sample_member.id}")
    assert removed.status_code == 200
    assert removed.json()["is_active"] is False
    assert client.get(url).json()["total"] == 0
    assert client.put(f"{url}/{sample_member.id}", json={"role": "MEMBER"}).status_code == 404


def test_readding_member_revives_membership(client, authorize, admin_user, db_session, sample_ministry, sample_member) -> None:
    db_session.add(
        MemberMinistry(member_id=sample_member.id, ministry_id=sample_ministry.id, role="LEADER", is_active=False)
    )
    db_session.commit()

    authorize(admin_user)
    response = client.post(
        f"/ministries/{sample_ministry.id}/members",
        json={"member_id": sample_member.id, "role": "ASSISTANT"},
    )
    assert response.status_code == 201
    assert response.json()["role"] == "ASSISTANT"
    assert db_session.query(MemberMinistry).count() == 1


def test_update_ministry_renames_slug(client, authorize, admin_user, sample_ministry, sample_member) -> None:
    authorize(admin_user)
    response = client.put(
        f"/ministries/{sample_ministry.id}",
        json={"name": "Worship Band", "leader_id": sample_member.id},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["slug"] == "worship-band"
    assert body["leader"]["id"] == sample_member.id

    assert client.put(f"/ministries/{sample_ministry.id}", json={"type": None}).status_code == 400


def test_delete_ministry_rules(client, authorize, super_admin_user, admin_user, db_session, sample_ministry, sample_member) -> None:
    membership = MemberMinistry(member_id=sample_member.id, ministry_id=sample_ministry.id)
    db_session.add(membership)
    db_session.commit()

    authorize(admin_user)
    assert client.delete(f"/ministries/{sample_ministry.id}").status_code == 403

    authorize(super_admin_user)
    blocked = client.delete(f"/ministries/{sample_ministry.id}")
    assert blocked.status_code == 400
    assert "active members" in blocked.json()["detail"]

    membership.is_active = False
    start = datetime(2030, 5, 1, 10, 0)
    event = Event(
        title="Rehearsal",
        date=start,
        start_time=start,
        end_time=start.replace(hour=12),
        location="Hall",
        ministry_id=sample_ministry.id,
    )
    db_session.add(event)
    db_session.commit()

    blocked_by_event = client.delete(f"/ministries/{sample_ministry.id}")
    assert blocked_by_event.status_code == 400
    assert "active events" in blocked_by_event.json()["detail"]

    event.is_active = False
    db_session.commit()

    response = client.delete(f"/ministries/{sample_ministry.id}")
    assert response.status_code == 200
    assert response.json()["outcome"] == "deleted"
    db_session.expire_all()
    assert db_session.query(Ministry).filter_by(id=sample_ministry.id).first() is None
    assert db_session.get(Member, sample_member.id) is not None


def test_ministry_stats_are_public(client, db_session, sample_ministry, sample_member) -> None:
    db_session.add(Ministry(name="Youth Fellowship", slug="youth-fellowship", type="YOUTH", is_active=False))
    db_session.add(MemberMinistry(member_id=sample_member.id, ministry_id=sample_ministry.id))
    db_session.commit()

    response = client.get("/ministries/stats")
    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 2
    assert body["active"] == 1
    assert {item["type"]: item["count"] for item in body["by_type"]} == {"WORSHIP": 1, "YOUTH": 1}
    assert body["membership"] == [
        {"ministry_id": sample_ministry.id, "ministry_name": "Praise Team", "member_count": 1}
    ]


def test_ministries_require_authentication(client) -> None:
    assert client.get("/ministries").status_code == 401


def test_ministry_name_measured_after_trimming(client, authorize, admin_user, sample_ministry) -> None:
    authorize(admin_user)
    assert client.post("/ministries", json={"name": "  a  "}).status_code == 400
    assert client.put(f"/ministries/{sample_ministry.id}", json={"name": " b "}).status_code == 400
