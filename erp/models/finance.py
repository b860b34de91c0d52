# erp/models/finance.py
from typing import List, Optional
import datetime as dt
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Integer, Numeric, String, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from erp.db import Base
from erp.utils.dates import utcnow


class ChartOfAccount(Base):
    __tablename__ = "chart_of_accounts"

    id: Mapped[int] = mapped_column(primary_key=True)
    code: Mapped[str] = mapped_column(String(32), unique=True, index=True)
    name: Mapped[str] = mapped_column(String(120))
    # ASSET | LIABILITY | EQUITY | REVENUE | EXPENSE
    type: Mapped[str] = mapped_column(String(16), index=True)
    subtype: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class FinancialPeriod(Base):
    __tablename__ = "financial_periods"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(64))
    start_date: Mapped[date] = mapped_column(Date)
    end_date: Mapped[date] = mapped_column(Date)
    type: Mapped[str] = mapped_column(String(16))  # MONTHLY | QUARTERLY | YEARLY
    year: Mapped[int] = mapped_column(Integer)
    quarter: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    month: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    status: Mapped[str] = mapped_column(String(16), default="OPEN", index=True)
    created_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    updated_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    def covers(self, d: date) -> bool:
        return self.start_date <= d <= self.end_date


class JournalEntry(Base):
    __tablename__ = "journal_entries"

    id: Mapped[int] = mapped_column(primary_key=True)
    entry_number: Mapped[str] = mapped_column(String(32), unique=True)
    date: Mapped[dt.date] = mapped_column(Date, index=True)
    period_id: Mapped[int] = mapped_column(ForeignKey("financial_periods.id"), index=True)
    description: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    reference: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    status: Mapped[str] = mapped_column(String(16), default="DRAFT", index=True)
    posted_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    posted_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    created_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    period: Mapped["FinancialPeriod"] = relationship("FinancialPeriod")
    items: Mapped[List["JournalEntryItem"]] = relationship(
        "JournalEntryItem", back_populates="entry", cascade="all, delete-orphan",
        order_by="JournalEntryItem.id",
    )

    def total_debit(self) -> Decimal:
        return sum((Decimal(str(x.debit or 0)) for x in self.items), Decimal("0"))

    def total_credit(self) -> Decimal:
        return sum((Decimal(str(x.credit or 0)) for x in self.items), Decimal("0"))


class JournalEntryItem(Base):
    __tablename__ = "journal_entry_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    journal_entry_id: Mapped[int] = mapped_column(ForeignKey("journal_entries.id"), index=True)
    account_id: Mapped[int] = mapped_column(ForeignKey("chart_of_accounts.id"), index=True)
    description: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    debit: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0"))
    credit: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0"))

    entry: Mapped["JournalEntry"] = relationship("JournalEntry", back_populates="items")
    account: Mapped["ChartOfAccount"] = relationship("ChartOfAccount")


class FinancialTransaction(Base):
    """Cash movement: customer receipts, bill payments, petty cash."""
    __tablename__ = "financial_transactions"

    id: Mapped[int] = mapped_column(primary_key=True)
    transaction_number: Mapped[str] = mapped_column(String(40), unique=True)
    type: Mapped[str] = mapped_column(String(24), index=True)  # INCOME | EXPENSE | EXPENSE_PAYMENT
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2))
    description: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    category: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    date: Mapped[dt.datetime] = mapped_column(DateTime, default=utcnow, index=True)
    status: Mapped[str] = mapped_column(String(16), default="COMPLETED")
    payment_method: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    receipt_path: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    order_id: Mapped[Optional[int]] = mapped_column(ForeignKey("orders.id"), nullable=True, index=True)
    invoice_id: Mapped[Optional[int]] = mapped_column(ForeignKey("invoices.id"), nullable=True)
    bill_id: Mapped[Optional[int]] = mapped_column(ForeignKey("bills.id"), nullable=True)
    journal_entry_id: Mapped[Optional[int]] = mapped_column(ForeignKey("journal_entries.id"), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


Index("ix_journal_items_account_entry", JournalEntryItem.account_id, JournalEntryItem.journal_entry_id)
