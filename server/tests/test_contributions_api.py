from __future__ import annotations

import csv
import io
from datetime import date
from decimal import Decimal

import pytest

from app.models.contribution import Contribution


@pytest.fixture()
def ledger(db_session, sample_member):
    rows = [
        Contribution(amount=Decimal("100.00"), type="TITHE", date=date(2024, 1, 15), payment_method="CASH", member_id=sample_member.id),
        Contribution(amount=Decimal("50.00"), type="OFFERING", date=date(2024, 2, 3), payment_method="CARD", member_id=sample_member.id),
        Contribution(amount=Decimal("25.00"), type="OFFERING", date=date(2024, 4, 20), payment_method="CASH", notes="Harvest"),
        Contribution(amount=Decimal("10.00"), type="MISSION", date=date(2023, 12, 31), payment_method="CASH", is_anonymous=True),
    ]
    db_session.add_all(rows)
    db_session.commit()
    return rows


def test_create_contribution(client, authorize, treasurer_user, sample_member) -> None:
    authorize(treasurer_user)
    response = client.post(
        "/contributions",
        json={"amount": "75.5", "type": "TITHE", "payment_method": "BANK_TRANSFER", "member_id": sample_member.id},
    )
    assert response.status_code == 201, response.text
    body = response.json()
    assert Decimal(body["amount"]) == Decimal("75.50")
    assert body["date"] == date.today().isoformat()
    assert body["member"]["first_name"] == "Abeba"
    assert body["recorded_by_id"] == treasurer_user.id


def test_anonymous_contribution_drops_member(client, authorize, finance_user, sample_member) -> None:
    authorize(finance_user)
    response = client.post(
        "/contributions",
        json={"amount": 20, "type": "OFFERING", "member_id": sample_member.id, "is_anonymous": True},
    )
    assert response.status_code == 201
    assert response.json()["member_id"] is None
    assert response.json()["member"] is None


def test_create_contribution_validation(client, authorize, admin_user) -> None:
    authorize(admin_user)
    assert client.post("/contributions", json={"amount": 0, "type": "TITHE"}).status_code == 400
    assert client.post("/contributions", json={"amount": 10, "type": "BRIBE"}).status_code == 400
    missing = client.post("/contributions", json={"amount": 10, "type": "TITHE", "member_id": 999})
    assert missing.status_code == 404


def test_member_role_cannot_record(client, authorize, member_user) -> None:
    authorize(member_user)
    assert client.post("/contributions", json={"amount": 10, "type": "TITHE"}).status_code == 403


def test_list_contributions_with_filters_and_summary(client, authorize, member_user, ledger) -> None:
    authorize(member_user)
    response = client.get("/contributions")
    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 4
    assert [item["date"] for item in body["items"]][:2] == ["2024-04-20", "2024-02-03"]
    assert Decimal(body["summary"]["total_amount"]) == Decimal("185.00")
    assert Decimal(body["summary"]["average_amount"]) == Decimal("46.25")

    filtered = client.get(
        "/contributions",
        params={"type": "OFFERING", "date_from": "2024-01-01", "limit": 1},
    ).json()
    assert filtered["total"] == 2
    assert len(filtered["items"]) == 1
    assert Decimal(filtered["summary"]["total_amount"]) == Decimal("75.00")

    by_amount = client.get("/contributions", params={"amount_min": 20, "amount_max": 60}).json()
    assert by_amount["total"] == 2

    searched = client.get("/contributions", params={"search": "harvest"}).json()
    assert [Decimal(item["amount"]) for item in searched["items"]] == [Decimal("25.00")]


def test_list_contributions_rejects_inverted_range(client, authorize, member_user) -> None:
    authorize(member_user)
    response = client.get("/contributions", params={"date_from": "2024-02-01", "date_to": "2024-01-01"})
    assert response.status_code == 400


def test_contribution_stats_by_month_and_quarter(client, authorize, member_user, ledger) -> None:
    authorize(member_user)
    response = client.get("/contributions/stats")
    assert response.status_code == 200
    body = response.json()
    assert body["group_by"] == "month"
    assert body["summary"]["total_count"] == 4
    assert Decimal(body["summary"]["max_amount"]) == Decimal("100.00")
    assert Decimal(body["summary"]["min_amount"]) == Decimal("10.00")
    assert [item["period"] for item in body["trends"]] == ["2023-12", "2024-01", "2024-02", "2024-04"]
    assert [item["type"] for item in body["by_type"]] == ["TITHE", "OFFERING", "MISSION"]
    assert body["by_payment_method"][0]["method"] == "CASH"
    assert body["by_payment_method"][0]["count"] == 3

    quarterly = client.get(
        "/contributions/stats",
        params={"group_by": "quarter", "date_from": "2024-01-01"},
    ).json()
    assert [(item["period"], item["count"]) for item in quarterly["trends"]] == [("2024-Q1", 2), ("2024-Q2", 1)]

    assert client.get("/contributions/stats", params={"group_by": "week"}).status_code == 400


def test_contribution_stats_require_authentication(client) -> None:
    assert client.get("/contributions/stats").status_code == 401


def test_member_contribution_history(client, authorize, member_user, sample_member, ledger) -> None:
    authorize(member_user)
    response = client.get(f"/contributions/member/{sample_member.id}")
    assert response.status_code == 200
    body = response.json()
    assert body["member"]["id"] == sample_member.id
    assert body["total"] == 2
    assert body["summary"]["total_contributions"] == 2
    assert Decimal(body["summary"]["total_amount"]) == Decimal("150.00")
    assert Decimal(body["summary"]["average_amount"]) == Decimal("75.00")

    assert client.get("/contributions/member/999").status_code == 404


def test_export_contributions_csv(client, authorize, treasurer_user, ledger) -> None:
    authorize(treasurer_user)
    response = client.get("/contributions/export", params={"date_from": "2023-12-01"})
    assert response.status_code == 200
    assert 'filename="contributions.csv"' in response.headers["content-disposition"]

    rows = list(csv.reader(io.StringIO(response.text)))
    assert rows[0] == [
        "Date",
        "Amount",
        "Type",
        "Payment Method",
        "Member Name",
        "Member Email",
        "Notes",
        "Is Anonymous",
    ]
    by_date = {row[0]: row for row in rows[1:]}
    assert by_date["2024-01-15"][4] == "Abeba Tesfaye"
    assert by_date["2024-01-15"][1] == "100.00"
    assert by_date["2024-04-20"][4] == "Unknown"
    assert by_date["2023-12-31"][4] == "Anonymous"
    assert by_date["2023-12-31"][7] == "Yes"


def test_export_contributions_json_requires_finance_role(client, authorize, member_user, finance_user, ledger) -> None:
    authorize(member_user)
    assert client.get("/contributions/export").status_code == 403

    authorize(finance_user)
    body = client.get("/contributions/export", params={"format": "json", "type": "TITHE"}).json()
    assert body["count"] == 1
    assert body["items"][0]["Amount"] == "100.00"


def test_update_contribution(client, authorize, admin_user, sample_member, ledger) -> None:
    anonymous = ledger[3]
    authorize(admin_user)

    response = client.put(
        f"/contributions/{anonymous.id}",
        json={"is_anonymous": False, "member_id": sample_member.id, "amount": "12.00"},
    )
    assert response.status_code == 200
    assert response.json()["member"]["id"] == sample_member.id
    assert Decimal(response.json()["amount"]) == Decimal("12.00")

    hidden = client.put(f"/contributions/{anonymous.id}", json={"is_anonymous": True})
    assert hidden.json()["member_id"] is None

    assert client.put(f"/contributions/{anonymous.id}", json={"amount": None}).status_code == 400
    assert client.put("/contributions/999", json={"notes": "x"}).status_code == 404


def test_delete_contribution_is_hard(client, authorize, treasurer_user, finance_user, db_session, ledger) -> None:
    target = ledger[0]
    authorize(finance_user)
    assert client.delete(f"/contributions/{target.id}").status_code == 403

    authorize(treasurer_user)
    response = client.delete(f"/contributions/{target.id}")
    assert response.status_code == 200
    assert response.json()["outcome"] == "deleted"

    db_session.expire_all()
    assert db_session.query(Contribution).filter_by(id=target.id).first() is None
    assert client.get(f"/contributions/{target.id}").status_code == 404
