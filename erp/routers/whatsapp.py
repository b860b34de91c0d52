# erp/routers/whatsapp.py
import re
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from erp.db import get_db
from erp.errors import NotFoundError, ValidationError
from erp.models import ChatMessage, WhatsAppTemplate
from erp.schemas.settings import SendMessage, SendTemplate, TemplateIn, TemplateUpdate
from erp.utils.headers import acting_user
from erp.utils.serialize import apply_changes, paginate, row_to_dict
from erp.whatsapp.whatsapp_notify import normalize_phone, notifier

router = APIRouter(prefix="/api/whatsapp", tags=["whatsapp"])

_PLACEHOLDER = re.compile(r"\{\{(\d+)\}\}")


def render_template(content: str, parameters: List[str]) -> str:
    """Fills {{1}}, {{2}}, ... with the given parameters; unknown slots stay."""
    def sub(m):
        i = int(m.group(1)) - 1
        return str(parameters[i]) if 0 <= i < len(parameters) else m.group(0)
    return _PLACEHOLDER.sub(sub, content)


def _template(db: Session, template_id: int) -> WhatsAppTemplate:
    tpl = db.get(WhatsAppTemplate, template_id)
    if tpl is None:
        raise NotFoundError("Template not found")
    return tpl


@router.post("/send")
def send_message(body: SendMessage, db: Session = Depends(get_db), user: str = Depends(acting_user)):
    msg = notifier.send_text(db, body.phone_number, body.message, customer_id=body.customer_id, user=user)
    return {"message": "Message sent", "chat": row_to_dict(msg)}


# ---------- TEMPLATES ----------
@router.get("/templates")
def list_templates(active: Optional[bool] = Query(None), db: Session = Depends(get_db)):
    q = db.query(WhatsAppTemplate)
    if active is not None:
        q = q.filter(WhatsAppTemplate.is_active.is_(active))
    return [row_to_dict(t) for t in q.order_by(WhatsAppTemplate.name).all()]


@router.get("/templates/{template_id}")
def get_template(template_id: int, db: Session = Depends(get_db)):
    return row_to_dict(_template(db, template_id))


@router.post("/templates", status_code=201)
def create_template(body: TemplateIn, db: Session = Depends(get_db)):
    if db.query(WhatsAppTemplate.id).filter(WhatsAppTemplate.name == body.name).first():
        raise ValidationError(f"Template {body.name} already exists")
    tpl = WhatsAppTemplate(**body.model_dump())
    db.add(tpl)
    db.commit()
    db.refresh(tpl)
    return row_to_dict(tpl)


@router.put("/templates/{template_id}")
def update_template(template_id: int, body: TemplateUpdate, db: Session = Depends(get_db)):
    tpl = _template(db, template_id)
    data = body.model_dump(exclude_unset=True)
    if data.get("name") and data["name"] != tpl.name:
        if db.query(WhatsAppTemplate.id).filter(WhatsAppTemplate.name == data["name"]).first():
            raise ValidationError(f"Template {data['name']} already exists")
    apply_changes(tpl, data)
    db.commit()
    db.refresh(tpl)
    return row_to_dict(tpl)


@router.delete("/templates/{template_id}")
def delete_template(template_id: int, db: Session = Depends(get_db)):
    db.delete(_template(db, template_id))
    db.commit()
    return {"ok": True}


@router.post("/send-template")
def send_template(body: SendTemplate, db: Session = Depends(get_db), user: str = Depends(acting_user)):
    tpl = _template(db, body.template_id)
    if not tpl.is_active:
        raise ValidationError("Template is not active")
    msg = notifier.send_template(
        db, body.phone_number, tpl.name, tpl.language,
        parameters=body.parameters,
        rendered=render_template(tpl.content, body.parameters),
        customer_id=body.customer_id,
        user=user,
    )
    return {"message": "Template sent", "chat": row_to_dict(msg)}


# ---------- HISTORY ----------
@router.get("/messages")
def list_messages(
    customer_id: Optional[int] = Query(None),
    phone_number: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
):
    q = db.query(ChatMessage)
    if customer_id is not None:
        q = q.filter(ChatMessage.customer_id == customer_id)
    if phone_number:
        q = q.filter(ChatMessage.phone_number == normalize_phone(phone_number))
    rows, meta = paginate(q.order_by(ChatMessage.created_at.desc(), ChatMessage.id.desc()), page, page_size)
    return {"messages": [row_to_dict(m) for m in rows], "pagination": meta}
