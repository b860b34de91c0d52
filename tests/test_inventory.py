import pytest

from erp.models import PaperStock, StockLog
from erp.utils.dates import utcnow


@pytest.fixture
def paper(client):
    r = client.post("/api/inventory/paper", json={"gsm": 100, "width": 1.6, "length": 100,
                                                   "barcode_id": "PPR-001"})
    assert r.status_code == 201, r.text
    return r.json()


def test_create_paper_defaults(paper):
    assert paper["remaining_length"] == 100.0
    assert paper["availability"] == "YES"
    assert paper["name"].startswith("Sublimation Paper 100gsm")


def test_paper_barcode_is_unique(client, paper):
    r = client.post("/api/inventory/paper", json={"gsm": 90, "width": 1, "length": 10, "barcode_id": "PPR-001"})
    assert r.json()["error"] == "Barcode PPR-001 already exists"


def test_ink_barcode_generation(client):
    prefix = f"INK-{utcnow():%Y%m%d}-"
    assert client.get("/api/inventory/ink/next-barcode").json() == {"barcode_id": f"{prefix}001"}
    r = client.post("/api/inventory/ink", json={"type": "Sublimation", "color": "Cyan"})
    assert r.status_code == 201
    assert r.json()["barcode_id"] == f"{prefix}001"
    assert r.json()["name"] == "Sublimation Cyan"
    assert client.get("/api/inventory/ink/next-barcode").json() == {"barcode_id": f"{prefix}002"}


def test_paper_request_approval(client, db, paper):
    r = client.post("/api/inventory/requests", json={"kind": "PAPER", "gsm": 100, "user_notes": "mesin 2"},
                    headers={"X-User": "operator1"})
    assert r.status_code == 201
    req = r.json()
    assert req["status"] == "PENDING"
    assert req["requested_by"] == "operator1"

    r = client.post(f"/api/inventory/requests/{req['id']}/approve", json={"barcode_id": "PPR-001"},
                    headers={"X-User": "gudang"})
    assert r.status_code == 200, r.text
    assert r.json()["status"] == "APPROVED"
    assert r.json()["paper_stock_id"] == paper["id"]
    assert r.json()["processed_by"] == "gudang"

    db.expire_all()
    stock = db.get(PaperStock, paper["id"])
    assert stock.availability == "NO"
    assert stock.taken_by == "operator1"

    r = client.post(f"/api/inventory/requests/{req['id']}/reject", json={"reason": "telat"})
    assert r.status_code == 400
    assert r.json()["error"] == "Request has already been processed"

    other = client.post("/api/inventory/requests", json={"kind": "PAPER", "gsm": 100}).json()
    r = client.post(f"/api/inventory/requests/{other['id']}/approve", json={"stock_id": paper["id"]})
    assert r.json()["error"] == "This stock is no longer available"


def test_ink_request_must_match(client):
    ink = client.post("/api/inventory/ink", json={"type": "Sublimation", "color": "Magenta"}).json()
    req = client.post("/api/inventory/requests", json={
        "kind": "INK", "ink_type": "sublimation", "color": "Yellow",
    }).json()
    r = client.post(f"/api/inventory/requests/{req['id']}/approve", json={"stock_id": ink["id"]})
    assert r.status_code == 400
    assert r.json()["error"] == "This ink stock does not match the requested ink type or color"

    r = client.post(f"/api/inventory/requests/{req['id']}/reject", json={"reason": "stok habis"})
    assert r.json()["status"] == "REJECTED"
    assert r.json()["rejection_reason"] == "stok habis"


def test_ink_request_requires_type_and_color(client):
    r = client.post("/api/inventory/requests", json={"kind": "INK", "color": "Black"})
    assert r.status_code == 422


def test_print_done_consumes_paper(client, db, make_order, paper):
    order = make_order(produk="PRINT ONLY", status="READYFORPROD", statusm="PRODUCTION")
    r = client.patch(f"/api/production/orders/{order.id}/print",
                     json={"print_id": "op-print", "paper_stock_id": paper["id"]})
    assert r.status_code == 200, r.text
    assert r.json()["order"]["status"] == "PRINT"

    r = client.patch(f"/api/production/orders/{order.id}/print-done",
                     json={"prints_bagus": "60", "prints_reject": "5", "prints_waste": "2"})
    assert r.status_code == 200, r.text
    assert r.json()["order"]["status"] == "COMPLETED"

    db.expire_all()
    assert float(db.get(PaperStock, paper["id"]).remaining_length) == 33.0
    log = db.query(StockLog).filter(StockLog.action == "CONSUMED").one()
    assert (log.old_value, log.new_value) == ("100.00", "33.00")
    assert log.order_id == order.id


def test_paper_consumption_floors_at_zero(client, db, make_order, paper):
    order = make_order(produk="PRINT, PRESS", status="PRINT", statusm="PRINT")
    r = client.patch(f"/api/production/orders/{order.id}/print-done", json={
        "prints_bagus": "150", "prints_reject": "0", "paper_stock_id": paper["id"],
    })
    assert r.json()["order"]["status"] == "PRESS READY"
    db.expire_all()
    assert float(db.get(PaperStock, paper["id"]).remaining_length) == 0.0

    r = client.delete(f"/api/inventory/paper/{paper['id']}")
    assert r.json()["error"] == "Paper stock has been used and cannot be deleted"


def test_delete_unused_paper_keeps_logs(client, db, paper):
    assert client.delete(f"/api/inventory/paper/{paper['id']}").json() == {"ok": True}
    db.expire_all()
    actions = [log.action for log in db.query(StockLog).order_by(StockLog.id)]
    assert actions == ["ADDED", "DELETED"]
    assert db.query(StockLog).filter(StockLog.paper_stock_id.isnot(None)).count() == 0


def test_outbound_handover(client, make_order):
    ready = make_order(status="COMPLETED", statusm="COMPLETED", approval_barang="APPROVED")
    make_order(status="COMPLETED", statusm="COMPLETED")

    r = client.get("/api/inventory/outbound")
    assert [o["id"] for o in r.json()["orders"]] == [ready.id]

    r = client.patch(f"/api/inventory/outbound/{ready.id}", json={"action": "handover"},
                     headers={"X-User": "kurir"})
    assert r.status_code == 200
    assert r.json()["status"] == "DISERAHKAN"
    assert r.json()["penyerahan_id"] == "kurir"
    assert client.get("/api/inventory/outbound").json()["orders"] == []


def test_outbound_reject_qc(client, make_order):
    order = make_order(status="COMPLETED", approval_barang="APPROVED")
    r = client.patch(f"/api/inventory/outbound/{order.id}", json={"action": "reject_qc", "notes": "luntur"})
    assert r.json()["approval_barang"] == "REJECTED"
    assert r.json()["status"] == "COMPLETED"

    r = client.patch(f"/api/inventory/outbound/{order.id}", json={"action": "burn"})
    assert r.status_code == 422


def test_fabric_in_use_cannot_be_deleted(client, make_order):
    fabric = client.post("/api/inventory/fabrics", json={"nama_bahan": "Polyester Milano"}).json()
    make_order(asal_bahan_id=fabric["id"])
    r = client.delete(f"/api/inventory/fabrics/{fabric['id']}")
    assert r.json()["error"] == "Fabric item is used by orders and cannot be deleted"


def test_asset_maintenance(client):
    asset = client.post("/api/inventory/assets", json={
        "name": "Mimaki TS300", "type": "PRINTER", "serial_number": "MK-1",
    }).json()
    r = client.post("/api/inventory/assets", json={"name": "Lain", "type": "PRINTER", "serial_number": "MK-1"})
    assert r.json()["error"] == "Serial number MK-1 already exists"

    r = client.post(f"/api/inventory/assets/{asset['id']}/maintenance", json={
        "maintenance_date": "2024-03-01", "maintenance_type": "Head cleaning",
        "next_maintenance_date": "2024-04-01", "cost": 150000,
    })
    assert r.status_code == 201
    client.post(f"/api/inventory/assets/{asset['id']}/maintenance", json={
        "maintenance_date": "2024-01-01", "maintenance_type": "Ganti damper",
    })

    data = client.get(f"/api/inventory/assets/{asset['id']}").json()
    assert data["last_maintenance_date"] == "2024-03-01"
    assert data["next_maintenance_date"] == "2024-04-01"
    assert len(data["maintenance_records"]) == 2


def test_null_does_not_clear_required_columns(client):
    fabric = client.post("/api/inventory/fabrics", json={"nama_bahan": "Lycra", "asal_bahan": "Bandung"}).json()
    r = client.put(f"/api/inventory/fabrics/{fabric['id']}", json={"nama_bahan": None, "asal_bahan": None})
    assert r.status_code == 200
    assert r.json()["nama_bahan"] == "Lycra"
    assert r.json()["asal_bahan"] is None

    paper = client.post("/api/inventory/paper", json={"gsm": 70, "width": 1.2, "length": 50}).json()
    r = client.put(f"/api/inventory/paper/{paper['id']}", json={"gsm": None, "notes": "gudang 2"})
    assert r.status_code == 200
    assert r.json()["gsm"] == 70
