# erp/routers/production.py
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import or_
from sqlalchemy.orm import Session

from erp.db import get_db
from erp.errors import NotFoundError, ValidationError
from erp.models import CuttingJob, Customer, Order
from erp.schemas.production import (
    CuttingComplete, CuttingStart, DtfComplete, DtfStart, PressDone, PressStart, PrintDone, PrintStart,
)
from erp.services import inventory as inventory_service
from erp.services import workflow
from erp.services.ledger import to_decimal
from erp.services.orders import get_order
from erp.utils.enums import OrderStatus as S
from erp.utils.headers import acting_user
from erp.utils.serialize import order_to_dict, paginate, row_to_dict

router = APIRouter(prefix="/api/production", tags=["production"])

_has_dtf = or_(Order.produk.ilike("%DTF%"), Order.tipe_produk.ilike("DTF"))

QUEUES = {
    "print": lambda q: q.filter(Order.status == S.READYFORPROD.value, Order.tgl_print.is_(None),
                                or_(Order.produk.is_(None), Order.produk != "PRESS ONLY")),
    "printing": lambda q: q.filter(Order.status.in_([S.PRINT.value, S.PRINT_READY.value])),
    "press": lambda q: q.filter(or_(
        Order.status == S.PRESS_READY.value,
        (Order.status == S.READYFORPROD.value) & (Order.produk == "PRESS ONLY"),
    )),
    "pressing": lambda q: q.filter(Order.status == S.PRESS.value),
    "cutting": lambda q: q.filter(
        Order.status.in_([S.CUTTING_READY.value, S.PRINT_DONE.value, S.PRESS_DONE.value]),
        Order.produk.ilike("%CUTTING%")),
    "cutting-in-progress": lambda q: q.filter(Order.status == S.CUTTING_IN_PROGRESS.value),
    "dtf": lambda q: q.filter(
        Order.status.in_([S.READYFORPROD.value, S.PRESS_READY.value, S.PRESS.value]), _has_dtf),
    "dtf-in-progress": lambda q: q.filter(Order.status == S.DTF.value),
}


def _apply(order: Order, data: dict) -> None:
    for key, value in data.items():
        if value is not None:
            setattr(order, key, value)


def _done(db: Session, order: Order, message: str):
    db.commit()
    db.refresh(order)
    workflow.notify_status_change(db, order)
    return {"message": message, "order": order_to_dict(order)}


@router.get("/orders")
def production_queue(
    queue: str = Query("print"),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    if queue not in QUEUES:
        raise ValidationError(f"Unknown queue: {queue}", details={"queues": sorted(QUEUES)})
    q = QUEUES[queue](db.query(Order).outerjoin(Customer, Order.customer_id == Customer.id))
    if search:
        like = f"%{search.strip()}%"
        q = q.filter(or_(Order.spk.ilike(like), Order.nama_produk.ilike(like), Customer.nama.ilike(like)))
    # priority orders first, then oldest
    q = q.order_by(Order.prioritas.desc(), Order.created_at.asc())
    rows, meta = paginate(q, page, page_size)
    return {"queue": queue, "orders": [order_to_dict(o) for o in rows], "pagination": meta}


# ---------- PRINT ----------
@router.patch("/orders/{order_id}/print")
def start_print(order_id: int, body: PrintStart, db: Session = Depends(get_db), user: str = Depends(acting_user)):
    order = get_order(db, order_id)
    workflow.apply_event(db, order, "start_print", user=user, at=body.tgl_print)
    _apply(order, body.model_dump(exclude={"tgl_print"}))
    return _done(db, order, "Print started")


@router.patch("/orders/{order_id}/print-done")
def print_done(order_id: int, body: PrintDone, db: Session = Depends(get_db), user: str = Depends(acting_user)):
    order = get_order(db, order_id)
    workflow.apply_event(db, order, "print_done", user=user, note=body.catatan_print or None,
                         at=body.print_done)
    _apply(order, body.model_dump(exclude={"print_done", "paper_stock_id"}))

    stock_id = body.paper_stock_id or order.paper_stock_id
    if stock_id:
        used = to_decimal(body.prints_bagus) + to_decimal(body.prints_reject) + to_decimal(body.prints_waste)
        inventory_service.consume_paper(db, stock_id, used, order, user)
        order.paper_stock_id = stock_id
    return _done(db, order, "Print completed")


# ---------- PRESS ----------
@router.patch("/orders/{order_id}/press")
def start_press(order_id: int, body: PressStart, db: Session = Depends(get_db), user: str = Depends(acting_user)):
    order = get_order(db, order_id)
    workflow.apply_event(db, order, "start_press", user=user, at=body.tgl_press)
    _apply(order, body.model_dump(exclude={"tgl_press"}))
    order.press_id = body.press_id or user
    return _done(db, order, "Press started")


@router.patch("/orders/{order_id}/press-done")
def press_done(order_id: int, body: PressDone, db: Session = Depends(get_db), user: str = Depends(acting_user)):
    order = get_order(db, order_id)
    workflow.apply_event(db, order, "press_done", user=user, note=body.catatan_press, at=body.press_done)
    _apply(order, body.model_dump(exclude={"press_done"}))
    return _done(db, order, "Press completed")


# ---------- DTF ----------
@router.post("/orders/{order_id}/dtf/start")
def start_dtf(order_id: int, body: DtfStart, db: Session = Depends(get_db), user: str = Depends(acting_user)):
    order = get_order(db, order_id)
    workflow.apply_event(db, order, "start_dtf", user=user, at=body.tgl_dtf)
    order.dtf_id = body.dtf_id or user
    return _done(db, order, "DTF started")


@router.post("/orders/{order_id}/dtf/complete")
def complete_dtf(order_id: int, body: DtfComplete, db: Session = Depends(get_db),
                 user: str = Depends(acting_user)):
    order = get_order(db, order_id)
    workflow.apply_event(db, order, "dtf_done", user=user, note=body.notes, at=body.dtf_done)
    order.dtf_quantity = body.quantity_completed
    order.dtf_notes = body.notes
    return _done(db, order, "DTF completed")


# ---------- CUTTING ----------
@router.patch("/orders/{order_id}/cutting/start")
def start_cutting(order_id: int, body: CuttingStart, db: Session = Depends(get_db),
                  user: str = Depends(acting_user)):
    order = get_order(db, order_id)
    workflow.apply_event(db, order, "start_cutting", user=user, note=body.notes, at=body.tgl_cutting)
    job = CuttingJob(
        name=body.assignee or user,
        notes=body.notes,
        cutting_mesin=body.cutting_mesin,
        cutting_speed=body.cutting_speed,
        acc=body.acc,
        power=body.power,
        user=user,
    )
    db.add(job)
    order.cutting = job
    return _done(db, order, "Cutting started")


@router.patch("/orders/{order_id}/cutting/complete")
def complete_cutting(order_id: int, body: CuttingComplete, db: Session = Depends(get_db),
                     user: str = Depends(acting_user)):
    order = get_order(db, order_id)
    job = order.cutting
    if job is None:
        raise NotFoundError("Cutting job not found, start cutting first")
    workflow.apply_event(db, order, "cutting_done", user=user, note=body.notes, at=body.cutting_done,
                         complete=body.complete)
    if body.cutting_bagus is not None:
        job.cutting_bagus = body.cutting_bagus
    if body.cutting_reject is not None:
        job.cutting_reject = body.cutting_reject
    if body.notes:
        order.catatan_cutting = body.notes
    return _done(db, order, "Cutting completed")


@router.get("/orders/{order_id}/cutting-details")
def cutting_details(order_id: int, db: Session = Depends(get_db)):
    order = get_order(db, order_id)
    if order.cutting is None:
        raise NotFoundError("Cutting job not found")
    return {
        "order_id": order.id,
        "spk": order.spk,
        "status": order.status,
        "tgl_cutting": order.tgl_cutting.isoformat() if order.tgl_cutting else None,
        "cutting_done": order.cutting_done.isoformat() if order.cutting_done else None,
        "catatan_cutting": order.catatan_cutting,
        "cutting": row_to_dict(order.cutting),
    }
