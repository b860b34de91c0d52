from datetime import timedelta

from erp.models import FinancialTransaction, JournalEntry
from erp.utils.dates import utcnow


def test_dp_then_settlement(client, make_order):
    order = make_order(nominal=100000, status="APPROVED")

    r = client.post(f"/api/orders/{order.id}/payment/dp", json={"amount": 40000, "tf_dp": "bukti-dp.jpg"})
    assert r.status_code == 200
    body = r.json()
    assert body["order"]["biaya_tambahan"] == "DP"
    assert body["order"]["approval"] == "APPROVED"
    assert body["payment"]["sisa"] == 60000.0
    assert body["payment"]["fully_paid"] is False

    r = client.post(f"/api/orders/{order.id}/payment/settle", json={"amount": 25000})
    assert r.json()["fully_paid"] is False
    assert r.json()["payment"]["sisa"] == 35000.0

    r = client.post(f"/api/orders/{order.id}/payment/settle", json={"amount": 50000})
    body = r.json()
    assert body["fully_paid"] is True
    assert body["order"]["sisa"] == 0.0
    assert body["order"]["biaya_tambahan"] == "LUNAS"
    assert body["order"]["tgl_lunas"] is not None


def test_no_dp_marks_order(client, make_order):
    order = make_order()
    r = client.post(f"/api/orders/{order.id}/payment/no-dp", json={"note": "pelanggan tetap"})
    assert r.json()["order"]["biaya_tambahan"] == "NO DP"


def test_payment_amount_must_be_positive(client, make_order):
    order = make_order()
    r = client.post(f"/api/orders/{order.id}/payment/dp", json={"amount": 0})
    assert r.status_code == 422


def test_record_payment_creates_invoice_and_journal(client, db, make_order, books):
    order = make_order(nominal=100000)
    r = client.post("/api/payments", json={
        "order_id": order.id, "amount": 30000, "payment_type": "DP", "payment_method": "Cash",
    }, headers={"X-User": "kasir"})
    assert r.status_code == 201, r.text
    body = r.json()

    assert body["invoice"]["invoice_number"] == f"INV-{order.spk}"
    assert body["invoice"]["status"] == "PARTIALLY_PAID"
    assert body["invoice"]["balance"] == 70000.0
    assert body["transaction"]["transaction_number"].startswith("INC-")
    assert body["transaction"]["type"] == "INCOME"
    assert body["journal_entry_id"] is not None

    db.expire_all()
    entry = db.get(JournalEntry, body["journal_entry_id"])
    assert entry.status == "POSTED"
    assert entry.reference == order.spk
    assert entry.posted_by == "kasir"
    assert {(i.account.code, float(i.debit), float(i.credit)) for i in entry.items} == {
        ("1100", 30000.0, 0.0), ("1200", 0.0, 30000.0),
    }

    r = client.post("/api/payments", json={"order_id": order.id, "amount": 70000, "payment_type": "SETTLEMENT"})
    body = r.json()
    assert body["invoice"]["status"] == "PAID"
    assert body["invoice"]["amount_paid"] == 100000.0
    assert body["order"]["biaya_tambahan"] == "LUNAS"

    history = client.get("/api/payments", params={"order_id": order.id}).json()
    assert len(history["transactions"]) == 2
    assert history["summary"]["fully_paid"] is True


def test_payment_without_books_skips_journal(client, db, make_order):
    order = make_order(nominal=50000)
    r = client.post("/api/payments", json={"order_id": order.id, "amount": 50000, "payment_type": "FULL"})
    assert r.status_code == 201
    assert r.json()["journal_entry_id"] is None
    assert r.json()["order"]["sisa"] == 0.0
    db.expire_all()
    assert db.query(JournalEntry).count() == 0
    assert db.query(FinancialTransaction).count() == 1


def test_payment_for_unknown_order(client):
    r = client.post("/api/payments", json={"order_id": 999, "amount": 10, "payment_type": "DP"})
    assert r.status_code == 404
    assert r.json() == {"error": "Order not found"}


def test_payment_closed_period_skips_journal(client, make_order, make_account, make_period):
    make_account("1100", "Kas", "ASSET")
    make_account("1200", "Piutang", "ASSET")
    today = utcnow().date()
    make_period(today - timedelta(days=1), today + timedelta(days=1), status="CLOSED")
    order = make_order(nominal=20000)
    r = client.post("/api/payments", json={"order_id": order.id, "amount": 5000, "payment_type": "DP"})
    assert r.status_code == 201
    assert r.json()["journal_entry_id"] is None


def test_dp_route_journalizes_when_books_exist(client, make_order, books):
    order = make_order(nominal=80000)
    client.post(f"/api/orders/{order.id}/payment/dp", json={"amount": 20000})
    cash = books["accounts"]["cash"]
    ledger = client.get("/api/finance/ledger", params={"account_id": cash.id}).json()
    assert ledger["closing_balance"] == 20000.0
    assert ledger["entries"][0]["reference"] == order.spk


def test_receivable_list_and_full_payment(client, make_order, books):
    unpaid = make_order(nominal=100000, status="APPROVED")
    make_order(nominal=50000, status="CANCELLED")
    make_order(nominal=70000, biaya_tambahan="LUNAS", sisa=0)

    r = client.get("/api/finance/receivable")
    body = r.json()
    assert [x["order_id"] for x in body["receivables"]] == [unpaid.id]
    assert body["totals"] == {"count": 1, "outstanding": 100000.0}

    r = client.post("/api/finance/receivable/payment", json={
        "order_id": unpaid.id, "amount": 100000, "invoice_number": "INV-2024-001",
    })
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["payment_type"] == "FULL"
    assert body["invoice"]["invoice_number"] == "INV-2024-001"
    assert body["order"]["statusm"] == "DELIVERY"
    assert body["order"]["invoice"] == "INV-2024-001"
    assert body["summary"]["fully_paid"] is True

    r = client.post("/api/finance/receivable/payment", json={"order_id": unpaid.id, "amount": 1})
    assert r.status_code == 400
    assert r.json()["error"] == "Order is already fully paid"

    assert client.get("/api/finance/receivable").json()["receivables"] == []


def test_receivable_partial_payments(client, make_order):
    order = make_order(nominal=90000)
    r = client.post("/api/finance/receivable/payment", json={"order_id": order.id, "amount": 40000})
    assert r.json()["payment_type"] == "DP"
    assert r.json()["summary"]["sisa"] == 50000.0

    r = client.post("/api/finance/receivable/payment", json={"order_id": order.id, "amount": 50000})
    assert r.json()["payment_type"] == "SETTLEMENT"
    assert r.json()["summary"]["fully_paid"] is True
    assert r.json()["invoice"]["status"] == "PAID"
