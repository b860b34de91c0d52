"""Customer payments: down payment, settlement, the unified payment record
with its invoice, and receivables."""
import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from erp import config
from erp.errors import NotFoundError, ValidationError
from erp.models import Customer, FinancialTransaction, Invoice, Order
from erp.services import ledger
from erp.services.workflow import log_action
from erp.utils.dates import utcnow
from erp.utils.enums import (
    ApprovalState, OrderStatus, PaymentMark, PaymentType, ProductionStatus, TransactionType,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

# orders that never become receivables
NOT_BILLABLE = (OrderStatus.DRAFT.value, OrderStatus.CANCELLED.value, OrderStatus.REJECTED.value)


def _d(value) -> Decimal:
    return ledger.to_decimal(value)


def outstanding(order: Order) -> Decimal:
    """Remaining amount of an order, never negative."""
    if order.sisa is not None:
        remaining = _d(order.sisa)
    else:
        remaining = _d(order.nominal) - _d(order.dp) - _d(order.pelunasan)
    return max(remaining, ZERO)


def is_fully_paid(order: Order) -> bool:
    return order.biaya_tambahan == PaymentMark.LUNAS.value or (
        _d(order.nominal) > 0 and outstanding(order) <= config.BALANCE_TOLERANCE
    )


def _journal(db: Session, order: Order, amount: Decimal, on: datetime, user: str):
    return ledger.auto_journal(
        db,
        debit_code=config.CASH_ACCOUNT_CODE,
        credit_code=config.RECEIVABLE_ACCOUNT_CODE,
        amount=amount,
        on=on,
        description=f"Payment for SPK {order.spk}",
        reference=order.spk,
        user=user,
    )


def _mark_paid(order: Order, when: datetime) -> None:
    order.sisa = ZERO
    order.tgl_lunas = when
    order.biaya_tambahan = PaymentMark.LUNAS.value
    order.catatan_tf = PaymentMark.LUNAS.value


def apply_dp(order: Order, amount: Decimal, when: datetime, method: Optional[str] = None,
             receipt: Optional[str] = None) -> None:
    amount = _d(amount)
    order.dp = amount
    order.sisa = max(_d(order.nominal) - amount, ZERO)
    order.tgl_dp = when
    order.jenis_pembayaran = method or "Transfer"
    order.biaya_tambahan = PaymentMark.DP.value
    order.approval = ApprovalState.APPROVED.value
    if receipt:
        order.tf_dp = receipt
    if order.sisa <= config.BALANCE_TOLERANCE:
        _mark_paid(order, when)


def apply_settlement(order: Order, amount: Decimal, when: datetime, method: Optional[str] = None,
                     receipt: Optional[str] = None) -> bool:
    """Reduces sisa by amount, clamped at zero. True when the order is now paid."""
    amount = _d(amount)
    remaining = max(outstanding(order) - amount, ZERO)
    order.sisa = remaining
    order.pelunasan = _d(order.pelunasan) + amount
    if method:
        order.jenis_pembayaran = method
    if receipt:
        order.tf_pelunasan = receipt
    if remaining <= config.BALANCE_TOLERANCE:
        _mark_paid(order, when)
        return True
    return False


def record_dp(db: Session, order: Order, amount: Decimal, method: str = "Transfer",
              receipt: Optional[str] = None, at: Optional[datetime] = None, user: str = "system") -> Order:
    when = at or utcnow()
    apply_dp(order, amount, when, method, receipt)
    log_action(db, order, "PAYMENT_DP", order.status, order.status, user, f"DP {_d(amount)}")
    _journal(db, order, _d(amount), when, user)
    return order


def record_no_dp(db: Session, order: Order, note: Optional[str] = None, user: str = "system") -> Order:
    order.biaya_tambahan = PaymentMark.NO_DP.value
    order.catatan_tf = PaymentMark.NO_DP.value
    order.approval = ApprovalState.APPROVED.value
    log_action(db, order, "PAYMENT_NO_DP", order.status, order.status, user, note)
    return order


def record_settlement(db: Session, order: Order, amount: Decimal, method: Optional[str] = None,
                      receipt: Optional[str] = None, at: Optional[datetime] = None,
                      user: str = "system") -> bool:
    when = at or utcnow()
    paid = apply_settlement(order, amount, when, method, receipt)
    log_action(db, order, "PAYMENT_SETTLEMENT", order.status, order.status, user, f"Settlement {_d(amount)}")
    _journal(db, order, _d(amount), when, user)
    return paid


def next_transaction_number(db: Session, prefix: str, when: datetime) -> str:
    stem = f"{prefix}-{when:%Y%m%d}-"
    count = db.query(func.count(FinancialTransaction.id)).filter(
        FinancialTransaction.transaction_number.like(f"{stem}%")).scalar() or 0
    n = count + 1
    while db.query(FinancialTransaction.id).filter(
            FinancialTransaction.transaction_number == f"{stem}{n:04d}").first():
        n += 1
    return f"{stem}{n:04d}"


def upsert_invoice(db: Session, order: Order, amount: Decimal, when: datetime,
                   number: Optional[str] = None) -> Invoice:
    """Creates or updates the order's invoice with a new payment."""
    inv = db.query(Invoice).filter(Invoice.order_id == order.id).first()
    if inv is None:
        inv = Invoice(
            invoice_number=number or f"INV-{order.spk}",
            invoice_date=when.date(),
            due_date=when.date() + timedelta(days=config.INVOICE_DUE_DAYS),
            customer_id=order.customer_id,
            order_id=order.id,
            subtotal=_d(order.nominal),
            total=_d(order.nominal),
            amount_paid=ZERO,
        )
        db.add(inv)
    inv.amount_paid = _d(inv.amount_paid) + _d(amount)
    inv.recompute_balance()
    return inv


def record_payment(db: Session, order_id: int, amount: Decimal, payment_type: str,
                   payment_method: str = "Transfer", payment_date: Optional[datetime] = None,
                   receipt_path: Optional[str] = None, notes: Optional[str] = None,
                   invoice_number: Optional[str] = None, user: str = "system") -> dict:
    """Order update, cash transaction, invoice and log in one unit of work.
    The caller commits."""
    order = db.get(Order, order_id)
    if order is None:
        raise NotFoundError("Order not found")
    amount = _d(amount)
    when = payment_date or utcnow()
    payment_type = PaymentType(payment_type).value

    if payment_type == PaymentType.DP.value:
        apply_dp(order, amount, when, payment_method, receipt_path)
    elif payment_type == PaymentType.FULL.value:
        order.pelunasan = _d(order.pelunasan) + amount
        order.jenis_pembayaran = payment_method
        if receipt_path:
            order.tf_full = receipt_path
        _mark_paid(order, when)
    else:
        apply_settlement(order, amount, when, payment_method, receipt_path)

    inv = upsert_invoice(db, order, amount, when, invoice_number)
    db.flush()

    txn = FinancialTransaction(
        transaction_number=next_transaction_number(db, "INC", when),
        type=TransactionType.INCOME.value,
        amount=amount,
        description=f"{payment_type} payment for SPK {order.spk}",
        category="SALES",
        date=when,
        payment_method=payment_method,
        notes=notes,
        receipt_path=receipt_path,
        order_id=order.id,
        invoice_id=inv.id,
    )
    db.add(txn)
    log_action(db, order, f"PAYMENT_{payment_type}", order.status, order.status, user, notes)

    entry = _journal(db, order, amount, when, user)
    if entry is not None:
        txn.journal_entry_id = entry.id
    db.flush()
    logger.info("payment %s %s for order %s recorded by %s", payment_type, amount, order.spk, user)
    return {"order": order, "transaction": txn, "invoice": inv, "journal_entry": entry}


def receivable_query(db: Session, search: Optional[str] = None):
    remaining = func.coalesce(
        Order.sisa,
        func.coalesce(Order.nominal, 0) - func.coalesce(Order.dp, 0) - func.coalesce(Order.pelunasan, 0),
    )
    q = (
        db.query(Order)
        .outerjoin(Customer, Order.customer_id == Customer.id)
        .filter(Order.status.notin_(NOT_BILLABLE),
                or_(Order.biaya_tambahan.is_(None), Order.biaya_tambahan != PaymentMark.LUNAS.value),
                remaining > config.BALANCE_TOLERANCE)
    )
    if search:
        like = "%%%s%%" % search.strip()
        q = q.filter(or_(Order.spk.ilike(like), Customer.nama.ilike(like), Order.nama_produk.ilike(like)))
    return q.order_by(Order.created_at.desc())


def receive_payment(db: Session, order_id: int, amount: Decimal, payment_method: str = "Transfer",
                    payment_date: Optional[datetime] = None, invoice_number: Optional[str] = None,
                    receipt_path: Optional[str] = None, notes: Optional[str] = None,
                    user: str = "system") -> dict:
    order = db.get(Order, order_id)
    if order is None:
        raise NotFoundError("Order not found")
    if is_fully_paid(order):
        raise ValidationError("Order is already fully paid")

    amount = _d(amount)
    first_payment = order.dp is None and not order.pelunasan
    if first_payment:
        full = amount >= outstanding(order) - config.BALANCE_TOLERANCE
        payment_type = PaymentType.FULL.value if full else PaymentType.DP.value
    else:
        payment_type = PaymentType.SETTLEMENT.value

    result = record_payment(
        db, order_id, amount, payment_type,
        payment_method=payment_method, payment_date=payment_date, receipt_path=receipt_path,
        notes=notes, invoice_number=invoice_number, user=user,
    )
    when = payment_date or utcnow()
    order.statusm = ProductionStatus.DELIVERY.value
    order.approval_barang = ApprovalState.APPROVED.value
    if invoice_number:
        order.invoice = invoice_number
        if order.tgl_invoice is None:
            order.tgl_invoice = when
    result["payment_type"] = payment_type
    return result


def order_payment_summary(order: Order) -> dict:
    return {
        "order_id": order.id,
        "spk": order.spk,
        "nominal": float(_d(order.nominal)),
        "dp": float(_d(order.dp)),
        "pelunasan": float(_d(order.pelunasan)),
        "sisa": float(outstanding(order)),
        "biaya_tambahan": order.biaya_tambahan,
        "tgl_dp": order.tgl_dp.isoformat() if order.tgl_dp else None,
        "tgl_lunas": order.tgl_lunas.isoformat() if order.tgl_lunas else None,
        "fully_paid": is_fully_paid(order),
    }
