# erp/routers/finance.py
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from erp.db import get_db
from erp.errors import NotFoundError, ValidationError
from erp.models import (
    Bill, ChartOfAccount, FinancialPeriod, FinancialTransaction, Invoice, JournalEntry, JournalEntryItem, Order,
)
from erp.schemas.finance import (
    AccountCreate, AccountUpdate, CashTransactionCreate, JournalEntryCreate, JournalEntryUpdate,
    PeriodCreate, PeriodUpdate,
)
from erp.schemas.payments import ReceivablePayment
from erp.services import ledger
from erp.services import payments as payment_service
from erp.utils.dates import end_of_day, parse_date, utcnow
from erp.utils.enums import BillStatus, PeriodStatus, TransactionType
from erp.utils.headers import acting_user
from erp.utils.serialize import (
    apply_changes, customer_to_dict, invoice_to_dict, order_to_dict, paginate, row_to_dict,
)

router = APIRouter(prefix="/api/finance", tags=["finance"])

OUTGOING = (TransactionType.EXPENSE.value, TransactionType.EXPENSE_PAYMENT.value)


def _date_param(value: Optional[str], name: str) -> Optional[date]:
    if not value:
        return None
    parsed = parse_date(value)
    if parsed is None:
        raise ValidationError("Invalid date format", details={name: value})
    return parsed.date()


def _period(db: Session, period_id: int) -> FinancialPeriod:
    period = db.get(FinancialPeriod, period_id)
    if period is None:
        raise NotFoundError("Financial period not found")
    return period


# ---------- CHART OF ACCOUNTS ----------
@router.get("/chart-of-accounts")
def list_accounts(type: Optional[str] = Query(None), is_active: Optional[bool] = Query(None),
                  db: Session = Depends(get_db)):
    q = db.query(ChartOfAccount)
    if type:
        q = q.filter(ChartOfAccount.type == type.upper())
    if is_active is not None:
        q = q.filter(ChartOfAccount.is_active.is_(is_active))
    return [row_to_dict(a) for a in q.order_by(ChartOfAccount.code).all()]


def _unique_code(db: Session, code: str, exclude_id: Optional[int] = None) -> None:
    q = db.query(ChartOfAccount.id).filter(ChartOfAccount.code == code)
    if exclude_id is not None:
        q = q.filter(ChartOfAccount.id != exclude_id)
    if q.first():
        raise ValidationError(f"Account code {code} already exists")


@router.post("/chart-of-accounts", status_code=201)
def create_account(body: AccountCreate, db: Session = Depends(get_db)):
    _unique_code(db, body.code)
    data = body.model_dump()
    data["type"] = body.type.value
    acc = ChartOfAccount(**data)
    db.add(acc)
    db.commit()
    db.refresh(acc)
    return row_to_dict(acc)


@router.put("/chart-of-accounts/{account_id}")
def update_account(account_id: int, body: AccountUpdate, db: Session = Depends(get_db)):
    acc = db.get(ChartOfAccount, account_id)
    if acc is None:
        raise NotFoundError("Account not found")
    data = body.model_dump(exclude_unset=True)
    if data.get("code") and data["code"] != acc.code:
        _unique_code(db, data["code"], exclude_id=acc.id)
    if data.get("type") is not None:
        data["type"] = body.type.value
    apply_changes(acc, data)
    db.commit()
    db.refresh(acc)
    return row_to_dict(acc)


@router.delete("/chart-of-accounts/{account_id}")
def delete_account(account_id: int, db: Session = Depends(get_db)):
    acc = db.get(ChartOfAccount, account_id)
    if acc is None:
        raise NotFoundError("Account not found")
    if db.query(JournalEntryItem.id).filter(JournalEntryItem.account_id == acc.id).first():
        raise ValidationError("Account is used by journal entries and cannot be deleted")
    db.delete(acc)
    db.commit()
    return {"ok": True}


# ---------- PERIODS ----------
def _check_overlap(db: Session, start: date, end: date, exclude_id: Optional[int] = None) -> None:
    q = db.query(FinancialPeriod).filter(FinancialPeriod.start_date <= end, FinancialPeriod.end_date >= start)
    if exclude_id is not None:
        q = q.filter(FinancialPeriod.id != exclude_id)
    other = q.first()
    if other is not None:
        raise ValidationError(f"Period overlaps with {other.name}", details={"period_id": other.id})


@router.get("/periods")
def list_periods(status: Optional[str] = Query(None), year: Optional[int] = Query(None),
                 db: Session = Depends(get_db)):
    q = db.query(FinancialPeriod)
    if status:
        q = q.filter(FinancialPeriod.status == status.upper())
    if year:
        q = q.filter(FinancialPeriod.year == year)
    return [row_to_dict(p) for p in q.order_by(FinancialPeriod.start_date.desc()).all()]


@router.post("/periods", status_code=201)
def create_period(body: PeriodCreate, db: Session = Depends(get_db), user: str = Depends(acting_user)):
    _check_overlap(db, body.start_date, body.end_date)
    data = body.model_dump()
    data["type"] = body.type.value
    period = FinancialPeriod(status=PeriodStatus.OPEN.value, created_by=user, **data)
    db.add(period)
    db.commit()
    db.refresh(period)
    return row_to_dict(period)


@router.put("/periods/{period_id}")
def update_period(period_id: int, body: PeriodUpdate, db: Session = Depends(get_db),
                  user: str = Depends(acting_user)):
    period = _period(db, period_id)
    data = body.model_dump(exclude_unset=True)
    start = data.get("start_date") or period.start_date
    end = data.get("end_date") or period.end_date
    if end < start:
        raise ValidationError("end_date must not be before start_date")
    _check_overlap(db, start, end, exclude_id=period.id)
    outside = (
        db.query(func.count(JournalEntry.id))
        .filter(JournalEntry.period_id == period.id, or_(JournalEntry.date < start, JournalEntry.date > end))
        .scalar()
    )
    if outside:
        raise ValidationError("Period has journal entries outside the new date range",
                              details={"entries": outside})
    if data.get("type") is not None:
        data["type"] = body.type.value
    apply_changes(period, data)
    period.updated_by = user
    db.commit()
    db.refresh(period)
    return row_to_dict(period)


@router.post("/periods/{period_id}/close")
def close_period(period_id: int, db: Session = Depends(get_db), user: str = Depends(acting_user)):
    period = _period(db, period_id)
    if period.status == PeriodStatus.CLOSED.value:
        raise ValidationError("Financial period is already closed")
    period.status = PeriodStatus.CLOSED.value
    period.updated_by = user
    db.commit()
    db.refresh(period)
    return row_to_dict(period)


@router.post("/periods/{period_id}/reopen")
def reopen_period(period_id: int, db: Session = Depends(get_db), user: str = Depends(acting_user)):
    period = _period(db, period_id)
    if period.status == PeriodStatus.OPEN.value:
        raise ValidationError("Financial period is already open")
    period.status = PeriodStatus.OPEN.value
    period.updated_by = user
    db.commit()
    db.refresh(period)
    return row_to_dict(period)


@router.delete("/periods/{period_id}")
def delete_period(period_id: int, db: Session = Depends(get_db)):
    period = _period(db, period_id)
    if db.query(JournalEntry.id).filter(JournalEntry.period_id == period.id).first():
        raise ValidationError("Period has journal entries and cannot be deleted")
    db.delete(period)
    db.commit()
    return {"ok": True}


# ---------- JOURNAL ENTRIES ----------
@router.get("/journal-entries")
def list_entries(
    status: Optional[str] = Query(None),
    period_id: Optional[int] = Query(None),
    date_from: Optional[str] = Query(None),
    date_to: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    q = db.query(JournalEntry)
    if status:
        q = q.filter(JournalEntry.status == status.upper())
    if period_id:
        q = q.filter(JournalEntry.period_id == period_id)
    d_from, d_to = _date_param(date_from, "date_from"), _date_param(date_to, "date_to")
    if d_from:
        q = q.filter(JournalEntry.date >= d_from)
    if d_to:
        q = q.filter(JournalEntry.date <= d_to)
    if search:
        like = f"%{search.strip()}%"
        q = q.filter(or_(JournalEntry.entry_number.ilike(like), JournalEntry.description.ilike(like),
                         JournalEntry.reference.ilike(like)))
    rows, meta = paginate(q.order_by(JournalEntry.date.desc(), JournalEntry.id.desc()), page, page_size)
    return {"entries": [ledger.entry_to_dict(e) for e in rows], "pagination": meta}


@router.get("/journal-entries/{entry_id}")
def get_entry(entry_id: int, db: Session = Depends(get_db)):
    entry = db.get(JournalEntry, entry_id)
    if entry is None:
        raise NotFoundError("Journal entry not found")
    return ledger.entry_to_dict(entry)


@router.post("/journal-entries", status_code=201)
def create_entry(body: JournalEntryCreate, db: Session = Depends(get_db), user: str = Depends(acting_user)):
    entry = ledger.create_entry(
        db,
        entry_date=body.date,
        period_id=body.period_id,
        items=[i.model_dump() for i in body.items],
        description=body.description,
        reference=body.reference,
        entry_number=body.entry_number,
        user=user,
    )
    db.commit()
    db.refresh(entry)
    return ledger.entry_to_dict(entry)


@router.put("/journal-entries/{entry_id}")
def update_entry(entry_id: int, body: JournalEntryUpdate, db: Session = Depends(get_db)):
    entry = ledger.update_entry(
        db, entry_id,
        entry_date=body.date,
        period_id=body.period_id,
        items=[i.model_dump() for i in body.items] if body.items is not None else None,
        description=body.description,
        reference=body.reference,
    )
    db.commit()
    db.refresh(entry)
    return ledger.entry_to_dict(entry)


@router.delete("/journal-entries/{entry_id}")
def delete_entry(entry_id: int, db: Session = Depends(get_db)):
    ledger.delete_entry(db, entry_id)
    db.commit()
    return {"ok": True}


@router.post("/journal-entries/{entry_id}/post")
def post_entry(entry_id: int, db: Session = Depends(get_db), user: str = Depends(acting_user)):
    entry = ledger.post_entry(db, entry_id, user)
    db.commit()
    db.refresh(entry)
    return ledger.entry_to_dict(entry)


# ---------- LEDGER & REPORTS ----------
@router.get("/ledger")
def account_ledger(account_id: int = Query(...), date_from: Optional[str] = Query(None),
                   date_to: Optional[str] = Query(None), db: Session = Depends(get_db)):
    return ledger.account_ledger(
        db, account_id, _date_param(date_from, "date_from"), _date_param(date_to, "date_to"))


@router.get("/reports/trial-balance")
def trial_balance(as_of: Optional[str] = Query(None), period_id: Optional[int] = Query(None),
                  db: Session = Depends(get_db)):
    if period_id is not None:
        period = _period(db, period_id)
        return ledger.trial_balance(db, period.end_date, period.name)
    if not as_of:
        raise ValidationError("as_of or period_id is required")
    return ledger.trial_balance(db, _date_param(as_of, "as_of"))


@router.get("/reports/income-statement")
def income_statement(date_from: Optional[str] = Query(None), date_to: Optional[str] = Query(None),
                     period_id: Optional[int] = Query(None), db: Session = Depends(get_db)):
    if period_id is not None:
        period = _period(db, period_id)
        return ledger.income_statement(db, period.start_date, period.end_date)
    d_from, d_to = _date_param(date_from, "date_from"), _date_param(date_to, "date_to")
    if d_from is None or d_to is None:
        raise ValidationError("date_from and date_to, or period_id, are required")
    return ledger.income_statement(db, d_from, d_to)


def _cash_totals(q):
    base = q.order_by(None)
    cash_in = base.filter(FinancialTransaction.type == TransactionType.INCOME.value).with_entities(
        func.coalesce(func.sum(FinancialTransaction.amount), 0)).scalar()
    cash_out = base.filter(FinancialTransaction.type.in_(OUTGOING)).with_entities(
        func.coalesce(func.sum(FinancialTransaction.amount), 0)).scalar()
    cash_in, cash_out = ledger.to_decimal(cash_in), ledger.to_decimal(cash_out)
    return {"cash_in": ledger.money(cash_in), "cash_out": ledger.money(cash_out),
            "net": ledger.money(cash_in - cash_out)}


@router.get("/overview")
def overview(db: Session = Depends(get_db)):
    receivable = sum((payment_service.outstanding(o) for o in payment_service.receivable_query(db)),
                     Decimal("0"))
    payable = sum(
        (b.remaining_amount for b in db.query(Bill).filter(Bill.status != BillStatus.PAID.value)),
        Decimal("0"),
    )
    orders = dict(db.query(Order.status, func.count(Order.id)).group_by(Order.status).all())
    return {
        "receivable_outstanding": ledger.money(receivable),
        "payable_outstanding": ledger.money(payable),
        **_cash_totals(db.query(FinancialTransaction)),
        "orders": orders,
    }


# ---------- CASH ----------
@router.get("/cash")
def list_cash(
    type: Optional[str] = Query(None),
    date_from: Optional[str] = Query(None),
    date_to: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    q = db.query(FinancialTransaction)
    if type:
        q = q.filter(FinancialTransaction.type == type.upper())
    d_from, d_to = _date_param(date_from, "date_from"), _date_param(date_to, "date_to")
    if d_from:
        q = q.filter(FinancialTransaction.date >= datetime(d_from.year, d_from.month, d_from.day))
    if d_to:
        q = q.filter(FinancialTransaction.date <= end_of_day(d_to))
    rows, meta = paginate(q.order_by(FinancialTransaction.date.desc(), FinancialTransaction.id.desc()),
                          page, page_size)
    return {"transactions": [row_to_dict(t) for t in rows], "totals": _cash_totals(q), "pagination": meta}


@router.post("/cash", status_code=201)
def create_cash(body: CashTransactionCreate, db: Session = Depends(get_db)):
    when = body.date or utcnow()
    prefix = "INC" if body.type == TransactionType.INCOME else "EXP"
    data = body.model_dump(exclude={"date", "type"})
    txn = FinancialTransaction(
        transaction_number=payment_service.next_transaction_number(db, prefix, when),
        type=body.type.value,
        date=when,
        **data,
    )
    db.add(txn)
    db.commit()
    db.refresh(txn)
    return row_to_dict(txn)


# ---------- RECEIVABLES ----------
@router.get("/receivable")
def list_receivable(
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    q = payment_service.receivable_query(db, search)
    total_outstanding = sum((payment_service.outstanding(o) for o in q.all()), Decimal("0"))
    rows, meta = paginate(q, page, page_size)
    items = []
    for o in rows:
        invoice = db.query(Invoice).filter(Invoice.order_id == o.id).first()
        items.append({
            "order_id": o.id,
            "spk": o.spk,
            "customer": customer_to_dict(o.customer),
            "nama_produk": o.nama_produk,
            "status": o.status,
            "nominal": ledger.money(o.nominal),
            "paid": ledger.money(ledger.to_decimal(o.dp) + ledger.to_decimal(o.pelunasan)),
            "outstanding": ledger.money(payment_service.outstanding(o)),
            "invoice": invoice_to_dict(invoice),
        })
    return {
        "receivables": items,
        "totals": {"count": meta["total"], "outstanding": ledger.money(total_outstanding)},
        "pagination": meta,
    }


@router.post("/receivable/payment", status_code=201)
def receive_payment(body: ReceivablePayment, db: Session = Depends(get_db), user: str = Depends(acting_user)):
    result = payment_service.receive_payment(
        db, body.order_id, body.amount,
        payment_method=body.payment_method,
        payment_date=body.payment_date,
        invoice_number=body.invoice_number,
        receipt_path=body.receipt_path,
        notes=body.notes,
        user=user,
    )
    db.commit()
    order = result["order"]
    db.refresh(order)
    return {
        "message": "Payment received",
        "payment_type": result["payment_type"],
        "order": order_to_dict(order),
        "transaction": row_to_dict(result["transaction"]),
        "invoice": invoice_to_dict(result["invoice"]),
        "summary": payment_service.order_payment_summary(order),
    }
