def queue(client, name, **params):
    r = client.get("/api/production/orders", params=dict(params, queue=name))
    assert r.status_code == 200, r.text
    return [o["id"] for o in r.json()["orders"]]


def test_queues(client, make_order):
    to_print = make_order(status="READYFORPROD", produk="PRINT, PRESS")
    press_only = make_order(status="READYFORPROD", produk="PRESS ONLY")
    press_ready = make_order(status="PRESS READY")
    cutting = make_order(status="PRINT DONE", produk="PRINT, CUTTING")
    dtf = make_order(status="READYFORPROD", produk="DTF")

    assert sorted(queue(client, "print")) == sorted([to_print.id, dtf.id])
    assert sorted(queue(client, "press")) == sorted([press_only.id, press_ready.id])
    assert queue(client, "cutting") == [cutting.id]
    assert queue(client, "dtf") == [dtf.id]


def test_unknown_queue(client):
    r = client.get("/api/production/orders", params={"queue": "laminating"})
    assert r.status_code == 400
    assert "print" in r.json()["details"]["queues"]


def test_print_press_through_api(client, make_order):
    order = make_order(status="READYFORPROD", produk="PRINT, PRESS")

    r = client.patch(f"/api/production/orders/{order.id}/press", json={
        "press_mesin": "M1", "press_presure": "4", "press_suhu": "200",
    })
    assert r.status_code == 400

    r = client.patch(f"/api/production/orders/{order.id}/print",
                     json={"print_id": "op7", "prints_mesin": "Mimaki", "tgl_print": "2024-02-01T08:00:00"})
    body = r.json()["order"]
    assert body["status"] == "PRINT"
    assert body["print_id"] == "op7"
    assert body["tgl_print"] == "2024-02-01T08:00:00"

    r = client.patch(f"/api/production/orders/{order.id}/print-done",
                     json={"prints_bagus": "95", "prints_reject": "5", "catatan_print": "ok"})
    assert r.json()["order"]["status"] == "PRESS READY"

    r = client.patch(f"/api/production/orders/{order.id}/press", json={
        "press_mesin": "M1", "press_presure": "4", "press_suhu": "200", "press_speed": "1.5",
    }, headers={"X-User": "presser"})
    body = r.json()["order"]
    assert body["status"] == "PRESS"
    assert body["press_id"] == "presser"
    assert body["press_speed"] == 1.5

    r = client.patch(f"/api/production/orders/{order.id}/press-done", json={"press_bagus": "95"})
    assert r.json()["order"]["status"] == "COMPLETED"


def test_press_speed_must_be_numeric(client, make_order):
    order = make_order(status="PRESS READY")
    r = client.patch(f"/api/production/orders/{order.id}/press", json={
        "press_mesin": "M1", "press_presure": "4", "press_suhu": "200", "press_speed": "fast",
    })
    assert r.status_code == 422


def test_cutting_job(client, make_order):
    order = make_order(status="CUTTING READY", produk="PRINT, CUTTING")

    r = client.patch(f"/api/production/orders/{order.id}/cutting/complete", json={})
    assert r.status_code == 404
    assert r.json()["error"] == "Cutting job not found, start cutting first"

    r = client.patch(f"/api/production/orders/{order.id}/cutting/start",
                     json={"assignee": "andi", "cutting_mesin": "Laser-1"})
    assert r.json()["order"]["status"] == "CUTTING IN PROGRESS"

    r = client.patch(f"/api/production/orders/{order.id}/cutting/complete",
                     json={"cutting_bagus": "98", "cutting_reject": "2", "notes": "rapi"})
    assert r.json()["order"]["status"] == "CUTTING DONE"

    details = client.get(f"/api/production/orders/{order.id}/cutting-details").json()
    assert details["cutting"]["name"] == "andi"
    assert details["cutting"]["cutting_bagus"] == "98"
    assert details["catatan_cutting"] == "rapi"


def test_dtf_through_api(client, make_order):
    order = make_order(status="READYFORPROD", produk="DTF")
    r = client.post(f"/api/production/orders/{order.id}/dtf/start", json={}, headers={"X-User": "dtf-op"})
    assert r.json()["order"]["dtf_id"] == "dtf-op"

    r = client.post(f"/api/production/orders/{order.id}/dtf/complete", json={"quantity_completed": 40})
    body = r.json()["order"]
    assert body["status"] == "COMPLETED"
    assert body["statusm"] == "DTF DONE"
    assert body["dtf_quantity"] == 40.0
