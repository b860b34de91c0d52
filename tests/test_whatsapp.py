import pytest
import requests

from erp.models import ChatMessage
from erp.routers.whatsapp import render_template
from erp.whatsapp import whatsapp_notify
from erp.whatsapp.whatsapp_notify import normalize_phone


class FakeResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self.ok = status_code < 400
        self._payload = payload if payload is not None else {}
        self.text = str(self._payload)

    def json(self):
        return self._payload


@pytest.fixture
def configured(client):
    r = client.put("/api/settings/whatsapp", json={"phone_number_id": "10987", "access_token": "EAAGtoken1234"})
    assert r.status_code == 200
    return r.json()


@pytest.fixture
def sent(monkeypatch):
    calls = []

    def fake_post(url, json=None, headers=None, timeout=None):
        calls.append({"url": url, "json": json, "headers": headers})
        return FakeResponse(200, {"messages": [{"id": "wamid.ABC"}]})

    monkeypatch.setattr(whatsapp_notify.requests, "post", fake_post)
    return calls


def test_normalize_phone():
    assert normalize_phone("+62 812-3456-7890") == "6281234567890"
    assert normalize_phone(None) == ""


def test_render_template():
    assert render_template("Halo {{1}}, order {{2}} siap", ["Budi", "0124001"]) == "Halo Budi, order 0124001 siap"
    assert render_template("Halo {{1}} {{3}}", ["Budi"]) == "Halo Budi {{3}}"


def test_config_token_is_masked(configured):
    assert configured["configured"] is True
    assert configured["access_token"] == "EAAG...1234"


def test_send_without_config(client, db):
    r = client.post("/api/whatsapp/send", json={"phone_number": "0812", "message": "halo"})
    assert r.status_code == 500
    assert r.json()["error"] == "WhatsApp configuration missing"
    db.expire_all()
    assert db.query(ChatMessage).count() == 0


def test_send_text(client, db, configured, sent, make_customer):
    customer = make_customer()
    r = client.post("/api/whatsapp/send", json={
        "phone_number": customer.telp, "message": "Pesanan siap diambil", "customer_id": customer.id,
    }, headers={"X-User": "cs1"})
    assert r.status_code == 200, r.text
    chat = r.json()["chat"]
    assert chat["status"] == "sent"
    assert chat["message_id"] == "wamid.ABC"
    assert chat["phone_number"] == "081234567890"
    assert chat["sent_by"] == "cs1"

    call = sent[0]
    assert call["url"].endswith("/10987/messages")
    assert call["headers"]["Authorization"] == "Bearer EAAGtoken1234"
    assert call["json"]["messaging_product"] == "whatsapp"
    assert call["json"]["text"] == {"body": "Pesanan siap diambil"}

    history = client.get("/api/whatsapp/messages", params={"customer_id": customer.id}).json()
    assert [m["content"] for m in history["messages"]] == ["Pesanan siap diambil"]


def test_provider_error_is_recorded(client, db, configured, monkeypatch):
    monkeypatch.setattr(whatsapp_notify.requests, "post",
                        lambda *a, **kw: FakeResponse(400, {"error": {"message": "invalid recipient"}}))
    r = client.post("/api/whatsapp/send", json={"phone_number": "0812", "message": "halo"})
    assert r.status_code == 502
    assert r.json()["error"] == "Failed to send message"

    db.expire_all()
    msg = db.query(ChatMessage).one()
    assert msg.status == "failed"
    assert "invalid recipient" in msg.error


def test_network_error_is_recorded(client, db, configured, monkeypatch):
    def boom(*a, **kw):
        raise requests.ConnectionError("connection refused")

    monkeypatch.setattr(whatsapp_notify.requests, "post", boom)
    r = client.post("/api/whatsapp/send", json={"phone_number": "0812", "message": "halo"})
    assert r.status_code == 502
    db.expire_all()
    assert db.query(ChatMessage).one().status == "failed"


def test_send_template(client, configured, sent):
    tpl = client.post("/api/whatsapp/templates", json={
        "name": "order_ready", "content": "Halo {{1}}, pesanan {{2}} sudah selesai.",
    }).json()
    r = client.post("/api/whatsapp/send-template", json={
        "phone_number": "0812 1111 2222", "template_id": tpl["id"], "parameters": ["Sari", "0524007"],
    })
    assert r.status_code == 200, r.text
    assert r.json()["chat"]["content"] == "Halo Sari, pesanan 0524007 sudah selesai."
    assert r.json()["chat"]["message_type"] == "template"

    template = sent[0]["json"]["template"]
    assert template["name"] == "order_ready"
    assert template["language"] == {"code": "id"}
    assert [p["text"] for p in template["components"][0]["parameters"]] == ["Sari", "0524007"]


def test_inactive_template_is_refused(client, configured, sent):
    tpl = client.post("/api/whatsapp/templates", json={
        "name": "promo", "content": "Diskon!", "is_active": False,
    }).json()
    r = client.post("/api/whatsapp/send-template", json={"phone_number": "0812", "template_id": tpl["id"]})
    assert r.status_code == 400
    assert r.json()["error"] == "Template is not active"
    assert sent == []


def test_duplicate_template_name(client):
    client.post("/api/whatsapp/templates", json={"name": "a", "content": "x"})
    r = client.post("/api/whatsapp/templates", json={"name": "a", "content": "y"})
    assert r.json()["error"] == "Template a already exists"


def test_status_notification_failure_is_swallowed(db, make_order, monkeypatch):
    def boom(*a, **kw):
        raise requests.Timeout("slow")

    monkeypatch.setattr(whatsapp_notify.requests, "post", boom)
    order = make_order(status="PRINT")
    # no configuration stored: logged and skipped
    whatsapp_notify.notifier.notify_order_status_changed(order, db)
    assert db.query(ChatMessage).count() == 0


def test_template_update_ignores_null_content(client):
    tpl = client.post("/api/whatsapp/templates", json={"name": "lunas", "content": "Terima kasih {{1}}"}).json()
    r = client.put(f"/api/whatsapp/templates/{tpl['id']}", json={"name": None, "content": None, "is_active": False})
    assert r.status_code == 200
    assert (r.json()["name"], r.json()["content"]) == ("lunas", "Terima kasih {{1}}")
    assert r.json()["is_active"] is False
