# erp/routers/orders.py
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from erp.db import get_db
from erp.errors import ValidationError
from erp.models import Order
from erp.schemas.payments import DpPayment, NoDpPayment, SettlePayment
from erp.schemas.orders import (
    CompleteBody, DeliverBody, DesignAssign, DesignComplete, KeteranganBody, OrderCreate, OrderUpdate,
    ReasonBody, RejectBody, StatusOverride,
)
from erp.services import orders as order_service
from erp.services import payments as payment_service
from erp.services import workflow
from erp.utils.dates import utcnow
from erp.utils.enums import InvoiceNote, OrderStatus, ProductionStatus
from erp.utils.headers import acting_user
from erp.utils.serialize import log_to_dict, order_to_dict, paginate

router = APIRouter(prefix="/api/orders", tags=["orders"])


def _transition(db: Session, order_id: int, event: str, user: str, message: str,
                note: Optional[str] = None, at=None, **opts):
    order = order_service.get_order(db, order_id)
    workflow.apply_event(db, order, event, user=user, note=note, at=at, **opts)
    db.commit()
    db.refresh(order)
    workflow.notify_status_change(db, order)
    return {"message": message, "order": order_to_dict(order)}


# ---------- SPK ----------
@router.get("/spk/generate")
def spk_generate(db: Session = Depends(get_db)):
    return {"spk": order_service.generate_spk(db)}


@router.get("/spk/verify")
def spk_verify(spk: str = Query(..., min_length=1), db: Session = Depends(get_db)):
    return {"spk": spk, "available": not order_service.spk_exists(db, spk)}


@router.post("/repeat/{spk}", status_code=201)
def repeat(spk: str, db: Session = Depends(get_db), user: str = Depends(acting_user)):
    order = order_service.repeat_order(db, spk, user)
    db.commit()
    db.refresh(order)
    return order_to_dict(order)


# ---------- CRUD ----------
@router.get("")
def list_orders(
    status: Optional[str] = Query(None, description="comma separated statuses"),
    statusm: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    date_from: Optional[str] = Query(None),
    date_to: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    q = order_service.filter_orders(db.query(Order), status, statusm, search, date_from, date_to)
    rows, meta = paginate(q.order_by(Order.created_at.desc(), Order.id.desc()), page, page_size)
    return {"orders": [order_to_dict(o) for o in rows], "pagination": meta}


@router.get("/{order_id}")
def order_detail(order_id: int, db: Session = Depends(get_db)):
    order = order_service.get_order(db, order_id)
    data = order_to_dict(order, detail=True)
    data["allowed_events"] = workflow.allowed_events(order)
    return data


@router.post("", status_code=201)
def create_order(body: OrderCreate, db: Session = Depends(get_db), user: str = Depends(acting_user)):
    order = order_service.create_order(db, body.model_dump(), user)
    db.commit()
    db.refresh(order)
    return order_to_dict(order)


@router.put("/{order_id}")
def update_order(order_id: int, body: OrderUpdate, db: Session = Depends(get_db),
                 user: str = Depends(acting_user)):
    order = order_service.get_order(db, order_id)
    order_service.update_order(db, order, body.model_dump(exclude_unset=True), user)
    db.commit()
    db.refresh(order)
    return order_to_dict(order)


@router.delete("/{order_id}")
def delete_order(order_id: int, db: Session = Depends(get_db)):
    order = order_service.get_order(db, order_id)
    if order.status != OrderStatus.DRAFT.value:
        raise ValidationError("Only draft orders can be deleted")
    db.delete(order)
    db.commit()
    return {"ok": True}


# ---------- WORKFLOW ----------
@router.post("/{order_id}/submit")
def submit(order_id: int, db: Session = Depends(get_db), user: str = Depends(acting_user)):
    order = order_service.get_order(db, order_id)
    if not (order.customer_id and order.produk and order.qty):
        raise ValidationError("Order is incomplete", details={
            "required": ["customer_id", "produk", "qty"],
        })
    return _transition(db, order_id, "submit", user, "Order submitted")


@router.post("/{order_id}/approve")
def approve(order_id: int, db: Session = Depends(get_db), user: str = Depends(acting_user)):
    return _transition(db, order_id, "approve", user, "Order approved")


@router.post("/{order_id}/reject")
def reject(order_id: int, body: RejectBody, db: Session = Depends(get_db), user: str = Depends(acting_user)):
    return _transition(db, order_id, "reject", user, "Order rejected", note=body.reason)


@router.post("/{order_id}/design/assign")
def design_assign(order_id: int, body: DesignAssign, db: Session = Depends(get_db),
                  user: str = Depends(acting_user)):
    order = order_service.get_order(db, order_id)
    if order.statusm != ProductionStatus.DESIGN.value:
        raise ValidationError("Order is not in the design stage")
    order.designer_id = body.designer_id
    workflow.log_action(db, order, "DESIGN_ASSIGN", order.status, order.status, user,
                        f"Designer {body.designer_id}")
    db.commit()
    db.refresh(order)
    return order_to_dict(order)


@router.post("/{order_id}/design/complete")
def design_complete(order_id: int, body: DesignComplete, db: Session = Depends(get_db),
                    user: str = Depends(acting_user)):
    order = order_service.get_order(db, order_id)
    if body.catatan_design is not None:
        order.catatan_design = body.catatan_design
    return _transition(db, order_id, "design_complete", user, "Design completed")


@router.post("/{order_id}/hold")
def hold(order_id: int, body: ReasonBody, db: Session = Depends(get_db), user: str = Depends(acting_user)):
    return _transition(db, order_id, "hold", user, "Order put on hold", note=body.reason)


@router.post("/{order_id}/resume")
def resume(order_id: int, db: Session = Depends(get_db), user: str = Depends(acting_user)):
    return _transition(db, order_id, "resume", user, "Order resumed")


@router.post("/{order_id}/cancel")
def cancel(order_id: int, body: ReasonBody, db: Session = Depends(get_db), user: str = Depends(acting_user)):
    return _transition(db, order_id, "cancel", user, "Order cancelled", note=body.reason)


@router.post("/{order_id}/complete")
def complete(order_id: int, body: CompleteBody, db: Session = Depends(get_db),
             user: str = Depends(acting_user)):
    return _transition(db, order_id, "complete", user, "Order completed",
                       note=body.notes, at=body.completed_at)


@router.post("/{order_id}/deliver")
def deliver(order_id: int, body: DeliverBody, db: Session = Depends(get_db), user: str = Depends(acting_user)):
    return _transition(db, order_id, "deliver", user, "Order delivered",
                       at=body.tgl_pengiriman, penyerahan_id=body.penyerahan_id)


@router.put("/{order_id}/status")
def override_status(order_id: int, body: StatusOverride, db: Session = Depends(get_db),
                    user: str = Depends(acting_user)):
    if body.status is None and body.statusm is None:
        raise ValidationError("status or statusm is required")
    order = order_service.get_order(db, order_id)
    workflow.override_status(db, order, body.status, body.statusm, user, body.note)
    db.commit()
    db.refresh(order)
    workflow.notify_status_change(db, order)
    return order_to_dict(order)


@router.post("/{order_id}/keterangan")
def set_keterangan(order_id: int, body: KeteranganBody, db: Session = Depends(get_db),
                   user: str = Depends(acting_user)):
    order = order_service.get_order(db, order_id)
    order.keterangan = body.keterangan
    if body.keterangan == InvoiceNote.INVOICED.value and order.tgl_invoice is None:
        order.tgl_invoice = utcnow()
    workflow.log_action(db, order, "KETERANGAN", order.status, order.status, user, body.keterangan)
    db.commit()
    db.refresh(order)
    return order_to_dict(order)


@router.get("/{order_id}/logs")
def order_logs(order_id: int, db: Session = Depends(get_db)):
    order = order_service.get_order(db, order_id)
    return [log_to_dict(x) for x in order.logs]


# ---------- PAYMENT ----------
@router.post("/{order_id}/payment/dp")
def payment_dp(order_id: int, body: DpPayment, db: Session = Depends(get_db), user: str = Depends(acting_user)):
    order = order_service.get_order(db, order_id)
    payment_service.record_dp(db, order, body.amount, body.jenis_pembayaran, body.tf_dp, body.tgl_dp, user)
    db.commit()
    db.refresh(order)
    return {"message": "Down payment recorded", "order": order_to_dict(order),
            "payment": payment_service.order_payment_summary(order)}


@router.post("/{order_id}/payment/no-dp")
def payment_no_dp(order_id: int, body: NoDpPayment, db: Session = Depends(get_db),
                  user: str = Depends(acting_user)):
    order = order_service.get_order(db, order_id)
    payment_service.record_no_dp(db, order, body.note, user)
    db.commit()
    db.refresh(order)
    return {"message": "Order approved without down payment", "order": order_to_dict(order)}


@router.post("/{order_id}/payment/settle")
def payment_settle(order_id: int, body: SettlePayment, db: Session = Depends(get_db),
                   user: str = Depends(acting_user)):
    order = order_service.get_order(db, order_id)
    paid = payment_service.record_settlement(
        db, order, body.amount, body.jenis_pembayaran, body.tf_pelunasan, body.tgl_lunas, user)
    db.commit()
    db.refresh(order)
    return {"message": "Settlement recorded", "fully_paid": paid, "order": order_to_dict(order),
            "payment": payment_service.order_payment_summary(order)}
