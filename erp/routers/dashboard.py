# erp/routers/dashboard.py
from datetime import datetime
from decimal import Decimal

from fastapi import APIRouter, Depends
from sqlalchemy import func
from sqlalchemy.orm import Session

from erp.db import get_db
from erp.models import Bill, Order
from erp.services import payments as payment_service
from erp.services.ledger import money
from erp.utils.dates import utcnow
from erp.utils.enums import BillStatus, OrderStatus as S
from erp.utils.serialize import order_to_dict

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])

IN_PRODUCTION = (
    S.READYFORPROD.value, S.PRINT.value, S.PRINT_READY.value, S.PRINT_DONE.value,
    S.PRESS_READY.value, S.PRESS.value, S.PRESS_DONE.value, S.DTF.value,
    S.CUTTING_READY.value, S.CUTTING_IN_PROGRESS.value, S.CUTTING_DONE.value,
)


@router.get("/stats")
def stats(db: Session = Depends(get_db)):
    now = utcnow()
    month_start = datetime(now.year, now.month, 1)

    by_status = dict(db.query(Order.status, func.count(Order.id)).group_by(Order.status).all())
    completed_this_month = (
        db.query(func.count(Order.id))
        .filter(Order.completed_at >= month_start,
                Order.status.in_([S.COMPLETED.value, S.DISERAHKAN.value]))
        .scalar()
    )
    receivable = sum((payment_service.outstanding(o) for o in payment_service.receivable_query(db)),
                     Decimal("0"))
    payable = sum(
        (b.remaining_amount for b in db.query(Bill).filter(Bill.status != BillStatus.PAID.value)),
        Decimal("0"),
    )
    recent = db.query(Order).order_by(Order.created_at.desc(), Order.id.desc()).limit(10).all()

    return {
        "orders_by_status": by_status,
        "total_orders": sum(by_status.values()),
        "in_production": sum(by_status.get(s, 0) for s in IN_PRODUCTION),
        "pending_approval": by_status.get(S.PENDING.value, 0),
        "on_hold": by_status.get(S.ON_HOLD.value, 0),
        "completed_this_month": completed_this_month or 0,
        "receivable_outstanding": money(receivable),
        "payable_outstanding": money(payable),
        "recent_orders": [order_to_dict(o) for o in recent],
    }
