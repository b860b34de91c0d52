from datetime import date

import pytest


@pytest.fixture
def january(make_account, make_period):
    accounts = {
        "cash": make_account("1100", "Kas", "ASSET"),
        "equity": make_account("3100", "Modal", "EQUITY"),
        "revenue": make_account("4100", "Pendapatan", "REVENUE"),
        "expense": make_account("5100", "Beban Listrik", "EXPENSE"),
    }
    period = make_period(date(2024, 1, 1), date(2024, 1, 31), name="Januari 2024")
    return accounts, period


def entry(client, period, day, lines, **extra):
    payload = {
        "date": day,
        "period_id": period.id,
        "items": [{"account_id": acc.id, "debit": d, "credit": c} for acc, d, c in lines],
    }
    payload.update(extra)
    return client.post("/api/finance/journal-entries", json=payload)


def posted(client, period, day, lines, **extra):
    r = entry(client, period, day, lines, **extra)
    assert r.status_code == 201, r.text
    r = client.post(f"/api/finance/journal-entries/{r.json()['id']}/post")
    assert r.status_code == 200, r.text
    return r.json()


def test_create_and_post_entry(client, january):
    acc, period = january
    r = entry(client, period, "2024-01-05", [(acc["cash"], 500000, 0), (acc["equity"], 0, 500000)],
              description="Setoran modal")
    assert r.status_code == 201
    data = r.json()
    assert data["status"] == "DRAFT"
    assert data["entry_number"].startswith("JE-")
    assert (data["total_debit"], data["total_credit"]) == (500000.0, 500000.0)
    assert [i["account_code"] for i in data["items"]] == ["1100", "3100"]

    r = client.post(f"/api/finance/journal-entries/{data['id']}/post", headers={"X-User": "akuntan"})
    assert r.json()["status"] == "POSTED"
    assert r.json()["posted_by"] == "akuntan"

    r = client.post(f"/api/finance/journal-entries/{data['id']}/post")
    assert r.status_code == 400
    assert r.json()["error"] == "Only draft entries can be posted"

    r = client.delete(f"/api/finance/journal-entries/{data['id']}")
    assert r.status_code == 400


def test_unbalanced_entry_is_rejected(client, january):
    acc, period = january
    r = entry(client, period, "2024-01-05", [(acc["cash"], 100, 0), (acc["equity"], 0, 90)])
    assert r.status_code == 400
    assert r.json() == {
        "error": "Debits must equal credits",
        "details": {"total_debits": 100.0, "total_credits": 90.0, "difference": 10.0},
    }


def test_difference_within_tolerance_is_balanced(client, january):
    acc, period = january
    r = entry(client, period, "2024-01-05", [(acc["cash"], "100.01", 0), (acc["equity"], 0, "100.00")])
    assert r.status_code == 201


def test_entry_item_rules(client, january):
    acc, period = january
    r = entry(client, period, "2024-01-05", [(acc["cash"], 100, 0)])
    assert r.json()["error"] == "A journal entry needs at least two items"

    r = entry(client, period, "2024-01-05", [(acc["cash"], 100, 100), (acc["equity"], 0, 0)])
    assert r.status_code == 400
    assert "either a debit or a credit" in r.json()["error"]

    r = client.post("/api/finance/journal-entries", json={
        "date": "2024-01-05", "period_id": period.id,
        "items": [{"account_id": 999, "debit": 10}, {"account_id": acc["cash"].id, "credit": 10}],
    })
    assert r.status_code == 404


def test_entry_outside_or_in_closed_period(client, january):
    acc, period = january
    r = entry(client, period, "2024-02-02", [(acc["cash"], 10, 0), (acc["equity"], 0, 10)])
    assert r.status_code == 400
    assert r.json()["error"] == "Entry date must fall within the financial period"

    assert client.post(f"/api/finance/periods/{period.id}/close").json()["status"] == "CLOSED"
    r = entry(client, period, "2024-01-10", [(acc["cash"], 10, 0), (acc["equity"], 0, 10)])
    assert r.status_code == 400
    assert "closed" in r.json()["error"]

    r = client.post(f"/api/finance/periods/{period.id}/close")
    assert r.json()["error"] == "Financial period is already closed"
    assert client.post(f"/api/finance/periods/{period.id}/reopen").json()["status"] == "OPEN"


def test_update_draft_entry(client, january):
    acc, period = january
    created = entry(client, period, "2024-01-05", [(acc["cash"], 10, 0), (acc["equity"], 0, 10)]).json()
    r = client.put(f"/api/finance/journal-entries/{created['id']}", json={
        "description": "koreksi",
        "items": [
            {"account_id": acc["cash"].id, "debit": 25},
            {"account_id": acc["equity"].id, "credit": 25},
        ],
    })
    assert r.status_code == 200
    assert r.json()["total_debit"] == 25.0
    assert len(r.json()["items"]) == 2
    assert r.json()["description"] == "koreksi"


def test_trial_balance(client, january):
    acc, period = january
    posted(client, period, "2024-01-02", [(acc["cash"], 500000, 0), (acc["equity"], 0, 500000)])
    posted(client, period, "2024-01-10", [(acc["cash"], 200000, 0), (acc["revenue"], 0, 200000)])
    posted(client, period, "2024-01-20", [(acc["expense"], 50000, 0), (acc["cash"], 0, 50000)])
    # drafts never count
    entry(client, period, "2024-01-21", [(acc["expense"], 999, 0), (acc["cash"], 0, 999)])

    r = client.get("/api/finance/reports/trial-balance", params={"as_of": "2024-01-31"})
    body = r.json()
    assert body["balanced"] is True
    assert body["total_debit"] == body["total_credit"] == 700000.0
    rows = {row["code"]: row for row in body["accounts"]}
    assert rows["1100"]["debit"] == 650000.0
    assert rows["3100"]["credit"] == 500000.0
    assert rows["5100"]["debit"] == 50000.0

    r = client.get("/api/finance/reports/trial-balance", params={"as_of": "2024-01-15"})
    assert r.json()["total_debit"] == 700000.0
    assert {row["code"]: row["balance"] for row in r.json()["accounts"]}["1100"] == 700000.0

    r = client.get("/api/finance/reports/trial-balance", params={"period_id": period.id})
    assert r.json()["period"] == "Januari 2024"
    assert r.json()["as_of"] == "2024-01-31"


def test_trial_balance_parameters(client, january):
    r = client.get("/api/finance/reports/trial-balance", params={"as_of": "2024-13-45"})
    assert r.status_code == 400
    assert r.json()["error"] == "Invalid date format"

    assert client.get("/api/finance/reports/trial-balance", params={"period_id": 999}).status_code == 404
    assert client.get("/api/finance/reports/trial-balance").status_code == 400


def test_income_statement(client, january):
    acc, period = january
    posted(client, period, "2024-01-10", [(acc["cash"], 200000, 0), (acc["revenue"], 0, 200000)])
    posted(client, period, "2024-01-20", [(acc["expense"], 50000, 0), (acc["cash"], 0, 50000)])

    r = client.get("/api/finance/reports/income-statement",
                   params={"date_from": "2024-01-01", "date_to": "2024-01-31"})
    body = r.json()
    assert body["total_revenue"] == 200000.0
    assert body["total_expenses"] == 50000.0
    assert body["net_income"] == 150000.0
    assert [x["code"] for x in body["revenue"]] == ["4100"]

    r = client.get("/api/finance/reports/income-statement", params={"period_id": period.id})
    assert r.json()["net_income"] == 150000.0

    r = client.get("/api/finance/reports/income-statement",
                   params={"date_from": "2024-01-15", "date_to": "2024-01-31"})
    assert r.json()["net_income"] == -50000.0

    r = client.get("/api/finance/reports/income-statement",
                   params={"date_from": "2024-02-01", "date_to": "2024-01-01"})
    assert r.status_code == 400


def test_account_ledger_running_balance(client, january):
    acc, period = january
    posted(client, period, "2024-01-02", [(acc["cash"], 1000, 0), (acc["equity"], 0, 1000)])
    posted(client, period, "2024-01-10", [(acc["expense"], 300, 0), (acc["cash"], 0, 300)])
    posted(client, period, "2024-01-12", [(acc["cash"], 50, 0), (acc["revenue"], 0, 50)])

    r = client.get("/api/finance/ledger", params={"account_id": acc["cash"].id, "date_from": "2024-01-05"})
    body = r.json()
    assert body["opening_balance"] == 1000.0
    assert [e["balance"] for e in body["entries"]] == [700.0, 750.0]
    assert body["closing_balance"] == 750.0


def test_period_rules(client, january):
    acc, period = january
    r = client.post("/api/finance/periods", json={
        "name": "Overlap", "start_date": "2024-01-15", "end_date": "2024-02-15", "type": "MONTHLY", "year": 2024,
    })
    assert r.status_code == 400
    assert r.json()["details"] == {"period_id": period.id}

    r = client.post("/api/finance/periods", json={
        "name": "Februari 2024", "start_date": "2024-02-01", "end_date": "2024-02-29",
        "type": "MONTHLY", "year": 2024, "month": 2,
    })
    assert r.status_code == 201
    assert r.json()["status"] == "OPEN"

    posted(client, period, "2024-01-02", [(acc["cash"], 1, 0), (acc["equity"], 0, 1)])
    r = client.delete(f"/api/finance/periods/{period.id}")
    assert r.json()["error"] == "Period has journal entries and cannot be deleted"

    r = client.delete(f"/api/finance/chart-of-accounts/{acc['cash'].id}")
    assert r.status_code == 400


def test_chart_of_accounts(client):
    r = client.post("/api/finance/chart-of-accounts", json={"code": "1100", "name": "Kas", "type": "ASSET"})
    assert r.status_code == 201
    r = client.post("/api/finance/chart-of-accounts", json={"code": "1100", "name": "Kas 2", "type": "ASSET"})
    assert r.json()["error"] == "Account code 1100 already exists"
    r = client.post("/api/finance/chart-of-accounts", json={"code": "9", "name": "X", "type": "STUFF"})
    assert r.status_code == 422

    assert [a["code"] for a in client.get("/api/finance/chart-of-accounts", params={"type": "ASSET"}).json()] == [
        "1100"]


def test_draft_cannot_be_posted_into_closed_period(client, january):
    acc, period = january
    draft = entry(client, period, "2024-01-08", [(acc["cash"], 10, 0), (acc["equity"], 0, 10)]).json()
    client.post(f"/api/finance/periods/{period.id}/close")

    r = client.post(f"/api/finance/journal-entries/{draft['id']}/post")
    assert r.status_code == 400
    assert r.json()["error"] == "Financial period Januari 2024 is closed"
    assert client.get(f"/api/finance/journal-entries/{draft['id']}").json()["status"] == "DRAFT"


def test_unbalanced_update_keeps_stored_items(client, january):
    acc, period = january
    draft = entry(client, period, "2024-01-08", [(acc["cash"], 10, 0), (acc["equity"], 0, 10)]).json()

    r = client.put(f"/api/finance/journal-entries/{draft['id']}", json={
        "items": [
            {"account_id": acc["cash"].id, "debit": 30},
            {"account_id": acc["equity"].id, "credit": 20},
        ],
    })
    assert r.status_code == 400
    assert r.json()["error"] == "Debits must equal credits"
    assert r.json()["details"]["difference"] == 10.0

    stored = client.get(f"/api/finance/journal-entries/{draft['id']}").json()
    assert (stored["total_debit"], stored["total_credit"]) == (10.0, 10.0)
    assert [(i["debit"], i["credit"]) for i in stored["items"]] == [(10.0, 0.0), (0.0, 10.0)]


def test_delete_draft_entry(client, january):
    acc, period = january
    draft = entry(client, period, "2024-01-08", [(acc["cash"], 10, 0), (acc["equity"], 0, 10)]).json()

    r = client.delete(f"/api/finance/journal-entries/{draft['id']}")
    assert r.status_code == 200
    assert client.get(f"/api/finance/journal-entries/{draft['id']}").status_code == 404


def test_period_range_must_keep_its_entries(client, january):
    acc, period = january
    posted(client, period, "2024-01-10", [(acc["cash"], 10, 0), (acc["equity"], 0, 10)])

    r = client.put(f"/api/finance/periods/{period.id}", json={"start_date": "2024-01-15"})
    assert r.status_code == 400
    assert r.json()["details"] == {"entries": 1}

    r = client.put(f"/api/finance/periods/{period.id}", json={"end_date": "2024-01-20"})
    assert r.status_code == 200
    assert r.json()["end_date"] == "2024-01-20"


def test_null_on_required_columns_is_ignored(client, january):
    acc, period = january
    r = client.put(f"/api/finance/chart-of-accounts/{acc['cash'].id}",
                   json={"name": None, "code": None, "description": "Kas besar"})
    assert r.status_code == 200
    assert (r.json()["code"], r.json()["name"], r.json()["description"]) == ("1100", "Kas", "Kas besar")

    r = client.put(f"/api/finance/periods/{period.id}", json={"start_date": None, "name": None, "year": None})
    assert r.status_code == 200
    assert (r.json()["start_date"], r.json()["name"], r.json()["year"]) == ("2024-01-01", "Januari 2024", 2024)
