import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from erp import config
from erp.errors import NotFoundError, ValidationError
from erp.models import Bill, BillPayment, FinancialTransaction, Vendor
from erp.services import ledger
from erp.services.payments import next_transaction_number
from erp.utils.enums import BillStatus, TransactionType

logger = logging.getLogger(__name__)


def bill_status(bill: Bill) -> str:
    paid = ledger.to_decimal(bill.paid_amount)
    if paid >= ledger.to_decimal(bill.total_amount):
        return BillStatus.PAID.value
    if paid > 0:
        return BillStatus.PARTIAL.value
    return BillStatus.UNPAID.value


def get_bill(db: Session, bill_id: int) -> Bill:
    bill = db.get(Bill, bill_id)
    if bill is None:
        raise NotFoundError("Bill not found")
    return bill


def create_bill(db: Session, data: dict) -> Bill:
    if db.get(Vendor, data["vendor_id"]) is None:
        raise NotFoundError("Vendor not found")
    if db.query(Bill.id).filter(Bill.bill_number == data["bill_number"]).first():
        raise ValidationError(f"Bill number {data['bill_number']} already exists")
    if data["due_date"] < data["bill_date"]:
        raise ValidationError("due_date must not be before bill_date")
    bill = Bill(paid_amount=Decimal("0"), status=BillStatus.UNPAID.value, **data)
    db.add(bill)
    db.flush()
    return bill


def update_bill(db: Session, bill: Bill, data: dict) -> Bill:
    if bill.status == BillStatus.PAID.value:
        raise ValidationError("Paid bills cannot be edited")
    if data.get("vendor_id") is not None and db.get(Vendor, data["vendor_id"]) is None:
        raise NotFoundError("Vendor not found")
    number = data.get("bill_number")
    if number and number != bill.bill_number:
        if db.query(Bill.id).filter(Bill.bill_number == number, Bill.id != bill.id).first():
            raise ValidationError(f"Bill number {number} already exists")
    for key, value in data.items():
        if value is not None:
            setattr(bill, key, value)
    if ledger.to_decimal(bill.total_amount) < ledger.to_decimal(bill.paid_amount):
        raise ValidationError("Total amount cannot be less than the amount already paid")
    bill.status = bill_status(bill)
    db.flush()
    return bill


def delete_bill(db: Session, bill: Bill) -> None:
    if bill.payments:
        raise ValidationError("Bills with payments cannot be deleted")
    db.delete(bill)
    db.flush()


def pay_bill(db: Session, bill: Bill, amount: Decimal, payment_date, payment_method: str,
             payment_reference: Optional[str] = None, notes: Optional[str] = None,
             user: str = "system") -> BillPayment:
    """Records a vendor payment; 0 < amount <= remaining."""
    amount = ledger.to_decimal(amount)
    remaining = bill.remaining_amount
    if amount <= 0:
        raise ValidationError("Payment amount must be greater than zero")
    if amount > remaining:
        raise ValidationError(
            "Payment amount exceeds the remaining balance",
            details={"remaining": float(remaining)},
        )

    payment = BillPayment(
        bill=bill,
        amount=amount,
        payment_date=payment_date,
        payment_method=payment_method,
        payment_reference=payment_reference,
        notes=notes,
    )
    db.add(payment)
    bill.paid_amount = ledger.to_decimal(bill.paid_amount) + amount
    bill.status = bill_status(bill)

    when = datetime(payment_date.year, payment_date.month, payment_date.day)
    txn = FinancialTransaction(
        transaction_number=next_transaction_number(db, "EXP", when),
        type=TransactionType.EXPENSE_PAYMENT.value,
        amount=amount,
        description=f"Payment for bill {bill.bill_number}",
        category="BILL_PAYMENT",
        date=when,
        payment_method=payment_method,
        notes=notes,
        bill_id=bill.id,
    )
    db.add(txn)

    entry = ledger.auto_journal(
        db,
        debit_code=config.PAYABLE_ACCOUNT_CODE,
        credit_code=config.CASH_ACCOUNT_CODE,
        amount=amount,
        on=payment_date,
        description=f"Payment for bill {bill.bill_number}",
        reference=bill.bill_number,
        user=user,
    )
    if entry is not None:
        txn.journal_entry_id = entry.id
    db.flush()
    logger.info("bill %s paid %s (%s) by %s", bill.bill_number, amount, bill.status, user)
    return payment
