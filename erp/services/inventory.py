import logging
import re
from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from erp.errors import NotFoundError, ValidationError
from erp.models import InkStock, Order, PaperStock, StockLog, StockRequest
from erp.services import workflow
from erp.services.ledger import to_decimal
from erp.utils.dates import utcnow
from erp.utils.enums import ApprovalState, OrderStatus, RequestStatus, StockKind

logger = logging.getLogger(__name__)


def write_log(db: Session, kind: str, action: str, user: str = "system", **fields) -> StockLog:
    entry = StockLog(kind=kind, action=action, user=user or "system", **fields)
    db.add(entry)
    return entry


def next_ink_barcode(db: Session, today: Optional[date] = None) -> str:
    today = today or utcnow().date()
    prefix = f"INK-{today:%Y%m%d}-"
    last = 0
    for (code,) in db.query(InkStock.barcode_id).filter(InkStock.barcode_id.like(f"{prefix}%")).all():
        m = re.fullmatch(re.escape(prefix) + r"(\d+)", code or "")
        if m:
            last = max(last, int(m.group(1)))
    return f"{prefix}{last + 1:03d}"


def consume_paper(db: Session, paper_stock_id: int, used: Decimal, order: Order,
                  user: str = "system") -> PaperStock:
    """Reduces a roll's remaining length, never below zero."""
    stock = db.get(PaperStock, paper_stock_id)
    if stock is None:
        raise NotFoundError("Paper stock not found")
    old = to_decimal(stock.remaining_length)
    new = max(old - to_decimal(used), Decimal("0"))
    stock.remaining_length = new
    write_log(
        db, StockKind.PAPER.value, "CONSUMED", user,
        paper_stock_id=stock.id, order_id=order.id,
        old_value=str(old), new_value=str(new),
        notes=f"Used {used} for SPK {order.spk}",
    )
    return stock


def create_request(db: Session, data: dict, user: str = "system") -> StockRequest:
    kind = StockKind(data.pop("kind")).value
    req = StockRequest(kind=kind, requested_by=user, status=RequestStatus.PENDING.value, **data)
    db.add(req)
    db.flush()
    write_log(db, kind, "REQUESTED", user, request_id=req.id, notes=req.user_notes)
    return req


def _pending(db: Session, request_id: int) -> StockRequest:
    req = db.get(StockRequest, request_id)
    if req is None:
        raise NotFoundError("Request not found")
    if req.status != RequestStatus.PENDING.value:
        raise ValidationError("Request has already been processed")
    return req


def _find_stock(db: Session, model, stock_id: Optional[int], barcode_id: Optional[str]):
    if stock_id is not None:
        return db.get(model, stock_id)
    if barcode_id:
        return db.query(model).filter(model.barcode_id == barcode_id).first()
    return None


def approve_request(db: Session, request_id: int, stock_id: Optional[int] = None,
                    barcode_id: Optional[str] = None, user: str = "system") -> StockRequest:
    req = _pending(db, request_id)
    model = PaperStock if req.kind == StockKind.PAPER.value else InkStock
    stock = None
    if stock_id is not None or barcode_id:
        stock = _find_stock(db, model, stock_id, barcode_id)
        if stock is None:
            raise NotFoundError("Stock not found")
        if stock.availability == "NO":
            raise ValidationError("This stock is no longer available")
        if req.kind == StockKind.INK.value and (
                (stock.type or "").lower() != (req.ink_type or "").lower()
                or (stock.color or "").lower() != (req.color or "").lower()):
            raise ValidationError("This ink stock does not match the requested ink type or color")
        stock.availability = "NO"
        stock.date_taken = utcnow()
        stock.taken_by = req.requested_by
        if req.kind == StockKind.PAPER.value:
            req.paper_stock_id = stock.id
        else:
            req.ink_stock_id = stock.id

    req.status = RequestStatus.APPROVED.value
    req.processed_by = user
    write_log(
        db, req.kind, "APPROVED", user, request_id=req.id,
        paper_stock_id=req.paper_stock_id, ink_stock_id=req.ink_stock_id,
        notes=f"Request approved by {user}",
    )
    db.flush()
    return req


def reject_request(db: Session, request_id: int, reason: Optional[str] = None,
                   user: str = "system") -> StockRequest:
    req = _pending(db, request_id)
    req.status = RequestStatus.REJECTED.value
    req.processed_by = user
    req.rejection_reason = reason
    write_log(db, req.kind, "REJECTED", user, request_id=req.id, notes=reason)
    db.flush()
    return req


def outbound_query(db: Session):
    """Completed, QC-approved orders waiting for handover."""
    return (
        db.query(Order)
        .filter(Order.status == OrderStatus.COMPLETED.value,
                Order.approval_barang == ApprovalState.APPROVED.value,
                Order.tgl_pengiriman.is_(None))
        .order_by(Order.completed_at.desc())
    )


def outbound_action(db: Session, order: Order, action: str, notes: Optional[str] = None,
                    user: str = "system") -> Order:
    if action == "handover":
        return workflow.apply_event(db, order, "deliver", user=user, note=notes)
    if action == "reject_qc":
        order.approval_barang = ApprovalState.REJECTED.value
        workflow.log_action(db, order, "REJECT_QC", order.status, order.status, user, notes)
        return order
    raise ValidationError(f"Unknown action: {action}")
