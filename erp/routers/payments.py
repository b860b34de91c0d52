# erp/routers/payments.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from erp.db import get_db
from erp.models import FinancialTransaction, Invoice
from erp.schemas.payments import PaymentCreate
from erp.services import payments as payment_service
from erp.services.orders import get_order
from erp.utils.headers import acting_user
from erp.utils.serialize import invoice_to_dict, order_to_dict, row_to_dict

router = APIRouter(prefix="/api/payments", tags=["payments"])


@router.post("", status_code=201)
def create_payment(body: PaymentCreate, db: Session = Depends(get_db), user: str = Depends(acting_user)):
    result = payment_service.record_payment(
        db, body.order_id, body.amount, body.payment_type.value,
        payment_method=body.payment_method,
        payment_date=body.payment_date,
        receipt_path=body.receipt_path,
        notes=body.notes,
        user=user,
    )
    db.commit()
    order = result["order"]
    db.refresh(order)
    entry = result["journal_entry"]
    return {
        "message": "Payment recorded",
        "order": order_to_dict(order),
        "transaction": row_to_dict(result["transaction"]),
        "invoice": invoice_to_dict(result["invoice"]),
        "journal_entry_id": entry.id if entry is not None else None,
    }


@router.get("")
def payment_history(order_id: int = Query(...), db: Session = Depends(get_db)):
    order = get_order(db, order_id)
    txns = (
        db.query(FinancialTransaction)
        .filter(FinancialTransaction.order_id == order.id)
        .order_by(FinancialTransaction.date.desc(), FinancialTransaction.id.desc())
        .all()
    )
    invoice = db.query(Invoice).filter(Invoice.order_id == order.id).first()
    return {
        "transactions": [row_to_dict(t) for t in txns],
        "invoice": invoice_to_dict(invoice),
        "summary": payment_service.order_payment_summary(order),
    }
