# erp/models/invoice.py
from typing import Optional
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Date, DateTime, ForeignKey, Numeric, String, Text, Index
from sqlalchemy.orm import Mapped, backref, mapped_column, relationship

from erp.db import Base
from erp.utils.dates import utcnow


class Invoice(Base):
    """Customer receivable, at most one per order."""
    __tablename__ = "invoices"

    id: Mapped[int] = mapped_column(primary_key=True)
    invoice_number: Mapped[str] = mapped_column(String(64), unique=True)
    invoice_date: Mapped[date] = mapped_column(Date)
    due_date: Mapped[date] = mapped_column(Date)
    # UNPAID | PARTIALLY_PAID | PAID
    status: Mapped[str] = mapped_column(String(24), default="UNPAID", index=True)

    customer_id: Mapped[Optional[int]] = mapped_column(ForeignKey("customers.id"), nullable=True, index=True)
    order_id: Mapped[Optional[int]] = mapped_column(ForeignKey("orders.id"), unique=True, nullable=True)

    subtotal: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0"))
    tax: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0"))
    discount: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0"))
    total: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0"))
    amount_paid: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0"))
    balance: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0"))
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)

    customer = relationship("Customer")
    order = relationship("Order", backref=backref("invoice_record", uselist=False))

    # Helper: recompute balance and status from total/amount_paid
    def recompute_balance(self):
        total = Decimal(str(self.total or 0))
        paid = Decimal(str(self.amount_paid or 0))
        self.balance = max(total - paid, Decimal("0"))
        if self.balance <= 0:
            self.status = "PAID"
        elif paid > 0:
            self.status = "PARTIALLY_PAID"
        else:
            self.status = "UNPAID"


Index("ix_invoices_status_due", Invoice.status, Invoice.due_date)
