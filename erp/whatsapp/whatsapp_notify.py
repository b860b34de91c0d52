import logging
import re
from typing import List, Optional, Tuple

import requests
from sqlalchemy.orm import Session

from erp import config
from erp.db import SessionLocal
from erp.errors import ERPError, MessagingError
from erp.models import ChatMessage, Order, WhatsAppConfig

logger = logging.getLogger(__name__)


def normalize_phone(phone: str) -> str:
    return re.sub(r"\D", "", phone or "")


class WhatsAppNotifier:
    """Thin client for the WhatsApp Cloud API (Graph ``/messages`` endpoint)."""

    def __init__(self, api_url: str, phone_number_id: str = "", access_token: str = "", timeout: float = 10.0):
        self.api_url = api_url.rstrip("/")
        self.phone_number_id = phone_number_id
        self.access_token = access_token
        self.timeout = timeout

    def credentials(self, db: Session) -> Tuple[str, str]:
        """Stored settings win over the environment."""
        cfg = db.query(WhatsAppConfig).order_by(WhatsAppConfig.id).first()
        phone_number_id = (cfg.phone_number_id if cfg else None) or self.phone_number_id
        access_token = (cfg.access_token if cfg else None) or self.access_token
        if not phone_number_id or not access_token:
            raise ERPError("WhatsApp configuration missing", status_code=500)
        return phone_number_id, access_token

    def post(self, db: Session, payload: dict) -> dict:
        phone_number_id, access_token = self.credentials(db)
        url = f"{self.api_url}/{phone_number_id}/messages"
        try:
            resp = requests.post(
                url,
                json=dict(payload, messaging_product="whatsapp"),
                headers={"Authorization": f"Bearer {access_token}"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error("WhatsApp request failed: %s", e)
            raise MessagingError("Failed to send message", details=str(e))
        if not resp.ok:
            try:
                body = resp.json()
            except ValueError:
                body = resp.text
            logger.error("WhatsApp API error %s: %s", resp.status_code, body)
            raise MessagingError("Failed to send message", details=body)
        return resp.json()

    def _record(self, db: Session, phone: str, content: str, message_type: str,
                customer_id: Optional[int], user: Optional[str], payload: dict) -> ChatMessage:
        msg = ChatMessage(
            customer_id=customer_id,
            phone_number=phone,
            content=content,
            direction="outgoing",
            message_type=message_type,
            sent_by=user,
        )
        try:
            data = self.post(db, payload)
        except MessagingError as e:
            msg.status = "failed"
            msg.error = str(e.details)[:500] if e.details is not None else e.message
            db.add(msg)
            db.commit()
            raise
        messages = data.get("messages") or [{}]
        msg.message_id = messages[0].get("id")
        msg.status = "sent"
        db.add(msg)
        db.commit()
        db.refresh(msg)
        return msg

    def send_text(self, db: Session, phone: str, message: str,
                  customer_id: Optional[int] = None, user: Optional[str] = None) -> ChatMessage:
        """Sends a text message and stores it in the chat history."""
        to = normalize_phone(phone)
        if not to:
            raise ERPError("Invalid phone number")
        payload = {"to": to, "type": "text", "text": {"body": message}}
        return self._record(db, to, message, "text", customer_id, user, payload)

    def send_template(self, db: Session, phone: str, name: str, language: str = "id",
                      parameters: Optional[List[str]] = None, rendered: Optional[str] = None,
                      customer_id: Optional[int] = None, user: Optional[str] = None) -> ChatMessage:
        to = normalize_phone(phone)
        if not to:
            raise ERPError("Invalid phone number")
        template = {"name": name, "language": {"code": language}}
        if parameters:
            template["components"] = [{
                "type": "body",
                "parameters": [{"type": "text", "text": str(p)} for p in parameters],
            }]
        payload = {"to": to, "type": "template", "template": template}
        return self._record(db, to, rendered or name, "template", customer_id, user, payload)

    def format_status(self, order: Order) -> str:
        lines = [
            f"Order SPK {order.spk}",
            f"Status: {order.status}",
        ]
        if order.nama_produk:
            lines.append(f"Produk: {order.nama_produk}")
        return "\n".join(lines)

    def notify_order_status_changed(self, order: Order, db: Optional[Session] = None) -> None:
        """Status text to the customer. Failures are logged, never raised."""
        customer = order.customer
        if customer is None or not customer.telp:
            return
        own_session = db is None
        if own_session:
            db = SessionLocal()
        try:
            self.send_text(db, customer.telp, self.format_status(order), customer_id=customer.id)
        except ERPError as e:
            logger.warning("Status notification for %s not sent: %s", order.spk, e.message)
        finally:
            if own_session:
                db.close()


# global instance
notifier = WhatsAppNotifier(
    api_url=config.WHATSAPP_API_URL,
    phone_number_id=config.WHATSAPP_PHONE_NUMBER_ID,
    access_token=config.WHATSAPP_ACCESS_TOKEN,
    timeout=config.WHATSAPP_TIMEOUT,
)
