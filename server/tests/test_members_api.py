from __future__ import annotations

import csv
import io
from datetime import date
from decimal import Decimal

from app.models.contribution import Contribution
from app.models.member import Member
from app.models.member_audit import MemberAudit
from app.models.ministry import MemberMinistry


def _member_payload(**overrides):
    payload = {
        "first_name": "Samuel",
        "last_name": "Haile",
        "email": "samuel@example.com",
        "phone": "+15550100004",
        "age": 34,
        "gender": "MALE",
    }
    payload.update(overrides)
    return payload


def test_create_member(client, authorize, admin_user, sample_cell) -> None:
    authorize(admin_user)
    response = client.post("/members", json=_member_payload(email="Samuel@Example.com", cell_id=sample_cell.id))
    assert response.status_code == 201, response.text
    body = response.json()
    assert body["email"] == "samuel@example.com"
    assert body["cell"] == {"id": sample_cell.id, "name": "Bethel"}
    assert body["is_active"] is True
    assert body["ministries"] == []


def test_create_member_duplicate_email(client, authorize, admin_user, sample_member) -> None:
    authorize(admin_user)
    response = client.post("/members", json=_member_payload(email="ABEBA@example.com"))
    assert response.status_code == 409
    assert response.json()["detail"] == "Member with this email already exists"


def test_create_member_validation(client, authorize, admin_user) -> None:
    authorize(admin_user)
    response = client.post("/members", json={"first_name": "", "last_name": "Haile", "age": 0})
    assert response.status_code == 400
    fields = {error["field"] for error in response.json()["errors"]}
    assert {"first_name", "age"} <= fields


def test_create_member_unknown_cell(client, authorize, admin_user) -> None:
    authorize(admin_user)
    response = client.post("/members", json=_member_payload(cell_id=999))
    assert response.status_code == 404


def test_member_role_cannot_create(client, authorize, member_user) -> None:
    authorize(member_user)
    response = client.post("/members", json=_member_payload())
    assert response.status_code == 403
    assert response.json()["detail"] == "Insufficient permissions"


def test_list_members_pagination_and_search(client, authorize, member_user, db_session) -> None:
    for index in range(12):
        db_session.add(Member(first_name=f"Person{index:02d}", last_name="Alpha", email=f"p{index}@example.com"))
    db_session.add(Member(first_name="Zed", last_name="Omega", email="zed@example.com"))
    db_session.add(Member(first_name="Old", last_name="Gone", is_active=False))
    db_session.commit()

    authorize(member_user)
    response = client.get("/members", params={"page": 2, "limit": 5, "sortBy": "first_name"})
    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 13
    assert body["total_pages"] == 3
    assert body["has_prev"] is True
    assert body["has_next"] is True
    assert [item["first_name"] for item in body["items"]] == [f"Person{index:02d}" for index in range(5, 10)]

    search = client.get("/members", params={"search": "omega"}).json()
    assert [item["first_name"] for item in search["items"]] == ["Zed"]

    inactive = client.get("/members", params={"is_active": "false"}).json()
    assert [item["first_name"] for item in inactive["items"]] == ["Old"]


def test_list_members_rejects_bad_sort(client, authorize, member_user) -> None:
    authorize(member_user)
    response = client.get("/members", params={"sortBy": "hashed_password"})
    assert response.status_code == 400
    assert client.get("/members", params={"sortOrder": "up"}).status_code == 400
    assert client.get("/members", params={"limit": 500}).status_code == 400


def test_list_members_filters_by_ministry(client, authorize, member_user, db_session, sample_member, sample_ministry) -> None:
    db_session.add(Member(first_name="Other", last_name="Person"))
    db_session.add(MemberMinistry(member_id=sample_member.id, ministry_id=sample_ministry.id, role="LEADER"))
    db_session.commit()

    authorize(member_user)
    body = client.get("/members", params={"ministry_id": sample_ministry.id}).json()
    assert body["total"] == 1
    assert body["items"][0]["ministries"][0]["name"] == "Praise Team"
    assert body["items"][0]["ministries"][0]["role"] == "LEADER"


def test_get_member_detail(client, authorize, member_user, db_session, sample_member) -> None:
    for day in range(1, 8):
        db_session.add(Contribution(amount=Decimal("10.00"), type="TITHE", date=date(2024, 1, day), member_id=sample_member.id))
    db_session.commit()

    authorize(member_user)
    response = client.get(f"/members/{sample_member.id}")
    assert response.status_code == 200
    body = response.json()
    assert body["first_name"] == "Abeba"
    assert len(body["recent_contributions"]) == 5
    assert body["recent_contributions"][0]["date"] == "2024-01-07"

    assert client.get("/members/999").status_code == 404


def test_update_member_records_history(client, authorize, admin_user, db_session, sample_member) -> None:
    authorize(admin_user)
    response = client.put(f"/members/{sample_member.id}", json={"phone": "+15550009999", "age": 31})
    assert response.status_code == 200
    assert response.json()["phone"] == "+15550009999"
    assert response.json()["last_name"] == "Tesfaye"

    history = client.get(f"/members/{sample_member.id}/history").json()
    assert {entry["field"] for entry in history} == {"phone", "age"}
    assert all(entry["changed_by_id"] == admin_user.id for entry in history)
    assert all(entry["changed_by_email"] == "admin@example.com" for entry in history)

    client.put(f"/members/{sample_member.id}", json={"occupation": "Nurse"})
    latest = client.get(f"/members/{sample_member.id}/history").json()
    assert latest[0]["field"] == "occupation"
    assert latest[0]["new_value"] == "Nurse"


def test_update_member_rejects_null_required_field(client, authorize, admin_user, sample_member) -> None:
    authorize(admin_user)
    response = client.put(f"/members/{sample_member.id}", json={"first_name": None})
    assert response.status_code == 400


def test_update_member_email_conflict(client, authorize, admin_user, db_session, sample_member) -> None:
    db_session.add(Member(first_name="Dawit", last_name="Bekele", email="dawit@example.com"))
    db_session.commit()

    authorize(admin_user)
    response = client.put(f"/members/{sample_member.id}", json={"email": "dawit@example.com"})
    assert response.status_code == 409


def test_delete_member_without_references_is_hard_delete(client, authorize, admin_user, db_session, sample_member) -> None:
    authorize(admin_user)
    response = client.delete(f"/members/{sample_member.id}")
    assert response.status_code == 200
    assert response.json()["outcome"] == "deleted"

    db_session.expire_all()
    assert db_session.query(Member).filter_by(id=sample_member.id).first() is None


def test_delete_member_with_contributions_is_soft_delete(client, authorize, admin_user, db_session, sample_member) -> None:
    db_session.add(Contribution(amount=Decimal("25.00"), type="OFFERING", date=date(2024, 3, 3), member_id=sample_member.id))
    db_session.commit()

    authorize(admin_user)
    response = client.delete(f"/members/{sample_member.id}")
    assert response.status_code == 200
    assert response.json()["outcome"] == "deactivated"

    db_session.expire_all()
    member = db_session.get(Member, sample_member.id)
    assert member is not None
    assert member.is_active is False
    audit = db_session.query(MemberAudit).filter_by(member_id=member.id, field="is_active").one()
    assert audit.new_value == "False"


def test_leader_cannot_delete(client, authorize, leader_user, sample_member) -> None:
    authorize(leader_user)
    assert client.delete(f"/members/{sample_member.id}").status_code == 403


def test_assign_and_remove_ministry(client, authorize, admin_user, sample_member, sample_ministry) -> None:
    authorize(admin_user)
    url = f"/members/{sample_member.id}/ministries"

    response = client.post(url, json={"ministry_id": sample_ministry.id, "role": "ASSISTANT"})
    assert response.status_code == 201
    assert response.json()["ministries"][0]["role"] == "ASSISTANT"

    duplicate = client.post(url, json={"ministry_id": sample_ministry.id})
    assert duplicate.status_code == 409

    removed = client.delete(f"{url}/{sample_ministry.id}")
    assert removed.status_code == 200
    assert removed.json()["ministries"] == []

    assert client.delete(f"{url}/{sample_ministry.id}").status_code == 404


def test_member_stats(client, authorize, member_user, db_session, sample_member, sample_ministry) -> None:
    db_session.add_all(
        [
            Member(first_name="Kid", last_name="One", age=10, gender="MALE"),
            Member(first_name="Young", last_name="Two", age=22, gender="MALE"),
            Member(first_name="Elder", last_name="Three", birth_date=date(1940, 1, 1), gender="FEMALE"),
            Member(first_name="Gone", last_name="Four", age=40, is_active=False),
        ]
    )
    db_session.add(MemberMinistry(member_id=sample_member.id, ministry_id=sample_ministry.id))
    db_session.commit()

    authorize(member_user)
    response = client.get("/members/stats")
    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 5
    assert body["active"] == 4
    assert body["inactive"] == 1

    groups = {item["age_group"]: item["count"] for item in body["by_age_group"]}
    assert groups == {"0-17": 1, "18-25": 1, "26-35": 1, "36-50": 0, "51-65": 0, "65+": 1}

    genders = {item["gender"]: item["count"] for item in body["by_gender"]}
    assert genders == {"FEMALE": 2, "MALE": 2}
    assert body["by_cell"] == [{"cell_id": sample_member.cell_id, "cell_name": "Bethel", "count": 1}]
    assert body["by_ministry"][0]["ministry_name"] == "Praise Team"


def test_export_members_csv(client, authorize, admin_user, sample_member) -> None:
    authorize(admin_user)
    response = client.get("/members/export")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert 'filename="members.csv"' in response.headers["content-disposition"]

    rows = list(csv.reader(io.StringIO(response.text)))
    assert rows[0][:2] == ["Name", "Email"]
    assert rows[1][0] == "Abeba Tesfaye"
    assert rows[1][5] == "Bethel"
    assert rows[1][-1] == "Active"


def test_export_members_json(client, authorize, admin_user, sample_member) -> None:
    authorize(admin_user)
    response = client.get("/members/export", params={"format": "json"})
    assert response.status_code == 200
    body = response.json()
    assert body["count"] == 1
    assert body["items"][0]["Email"] == "abeba@example.com"


def test_export_requires_privileged_role(client, authorize, member_user) -> None:
    authorize(member_user)
    assert client.get("/members/export").status_code == 403


def test_update_member_rejects_blank_name(client, authorize, admin_user, sample_member) -> None:
    authorize(admin_user)
    response = client.put(f"/members/{sample_member.id}", json={"first_name": "   "})
    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "first_name"

    created = client.post("/members", json={"first_name": "  ", "last_name": "Haile"})
    assert created.status_code == 400


def test_list_members_page_past_end(client, authorize, member_user, sample_member) -> None:
    authorize(member_user)
    body = client.get("/members", params={"page": 9, "limit": 5}).json()
    assert body["items"] == []
    assert body["total"] == 1
    assert body["total_pages"] == 1
    assert body["has_next"] is False
    assert body["has_prev"] is True


def test_member_stats_labels_missing_gender(client, authorize, member_user, db_session, sample_member) -> None:
    db_session.add(Member(first_name="Selam", last_name="Girma", age=28))
    db_session.commit()

    authorize(member_user)
    body = client.get("/members/stats").json()
    genders = {item["gender"]: item["count"] for item in body["by_gender"]}
    assert genders == {"FEMALE": 1, "Not specified": 1}


def test_search_treats_underscore_literally(client, authorize, member_user, db_session) -> None:
    db_session.add(Member(first_name="Hana", last_name="Alemu", email="hana_alemu@example.com"))
    db_session.add(Member(first_name="Yonas", last_name="Kebede", email="yonas@example.com"))
    db_session.commit()

    authorize(member_user)
    body = client.get("/members", params={"search": "_"}).json()
    assert [item["first_name"] for item in body["items"]] == ["Hana"]
