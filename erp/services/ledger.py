"""Double-entry bookkeeping: journal entries, posting and the reports built
on posted entries.

All debit/credit comparisons go through :func:`check_balance` so that the
tolerance lives in one place (``config.BALANCE_TOLERANCE``).
"""
import logging
import time
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from erp import config
from erp.errors import ClosedPeriodError, NotFoundError, UnbalancedEntry, ValidationError
from erp.models import ChartOfAccount, FinancialPeriod, JournalEntry, JournalEntryItem
from erp.utils.dates import as_date, utcnow
from erp.utils.enums import DEBIT_NORMAL_TYPES, AccountType, JournalStatus, PeriodStatus

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
CENT = Decimal("0.01")


def to_decimal(value) -> Decimal:
    if value is None or value == "":
        return ZERO
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Invalid amount: {value}")


def money(value) -> float:
    return float(to_decimal(value).quantize(CENT))


def is_balanced(total_debits: Decimal, total_credits: Decimal) -> bool:
    return abs(total_debits - total_credits) <= config.BALANCE_TOLERANCE


def check_balance(items: Iterable) -> Tuple[Decimal, Decimal]:
    """Sums debit/credit of items (dicts or JournalEntryItem rows); raises
    UnbalancedEntry when they differ by more than the tolerance."""
    total_debits, total_credits = ZERO, ZERO
    for item in items:
        debit = item.get("debit") if isinstance(item, dict) else item.debit
        credit = item.get("credit") if isinstance(item, dict) else item.credit
        total_debits += to_decimal(debit)
        total_credits += to_decimal(credit)
    if not is_balanced(total_debits, total_credits):
        raise UnbalancedEntry(total_debits, total_credits)
    return total_debits, total_credits


def validate_items(db: Session, items: List[dict]) -> None:
    if len(items) < 2:
        raise ValidationError("A journal entry needs at least two items")
    for i, item in enumerate(items, start=1):
        debit = to_decimal(item.get("debit"))
        credit = to_decimal(item.get("credit"))
        if debit < 0 or credit < 0:
            raise ValidationError(f"Item {i}: amounts cannot be negative")
        if debit > 0 and credit > 0:
            raise ValidationError(f"Item {i}: an item is either a debit or a credit, not both")
        if debit == 0 and credit == 0:
            raise ValidationError(f"Item {i}: debit or credit is required")
        if db.get(ChartOfAccount, item.get("account_id")) is None:
            raise NotFoundError(f"Account {item.get('account_id')} not found")


def open_period_for(db: Session, period_id: int, entry_date: date) -> FinancialPeriod:
    period = db.get(FinancialPeriod, period_id)
    if period is None:
        raise NotFoundError("Financial period not found")
    if period.status != PeriodStatus.OPEN.value:
        raise ClosedPeriodError(f"Financial period {period.name} is closed")
    if not period.covers(entry_date):
        raise ValidationError("Entry date must fall within the financial period")
    return period


def find_open_period(db: Session, on: date) -> Optional[FinancialPeriod]:
    """The OPEN period covering ``on``, latest-starting first."""
    return (
        db.query(FinancialPeriod)
        .filter(FinancialPeriod.status == PeriodStatus.OPEN.value,
                FinancialPeriod.start_date <= on,
                FinancialPeriod.end_date >= on)
        .order_by(FinancialPeriod.start_date.desc())
        .first()
    )


def next_entry_number(db: Session) -> str:
    n = int(time.time() * 1000) % 100_000_000
    while True:
        candidate = f"JE-{n:08d}"
        if not db.query(JournalEntry.id).filter(JournalEntry.entry_number == candidate).first():
            return candidate
        n = (n + 1) % 100_000_000


def _build_items(items: List[dict]) -> List[JournalEntryItem]:
    return [
        JournalEntryItem(
            account_id=item["account_id"],
            description=item.get("description"),
            debit=to_decimal(item.get("debit")),
            credit=to_decimal(item.get("credit")),
        )
        for item in items
    ]


def create_entry(db: Session, *, entry_date: date, period_id: int, items: List[dict],
                 description: Optional[str] = None, reference: Optional[str] = None,
                 entry_number: Optional[str] = None, user: str = "system") -> JournalEntry:
    entry_date = as_date(entry_date)
    validate_items(db, items)
    open_period_for(db, period_id, entry_date)
    check_balance(items)

    if entry_number:
        if db.query(JournalEntry.id).filter(JournalEntry.entry_number == entry_number).first():
            raise ValidationError(f"Entry number {entry_number} already exists")
    else:
        entry_number = next_entry_number(db)

    entry = JournalEntry(
        entry_number=entry_number,
        date=entry_date,
        period_id=period_id,
        description=description,
        reference=reference,
        status=JournalStatus.DRAFT.value,
        created_by=user,
    )
    entry.items = _build_items(items)
    db.add(entry)
    db.flush()
    logger.info("journal entry %s created by %s", entry.entry_number, user)
    return entry


def _draft(db: Session, entry_id: int, action: str) -> JournalEntry:
    entry = db.get(JournalEntry, entry_id)
    if entry is None:
        raise NotFoundError("Journal entry not found")
    if entry.status != JournalStatus.DRAFT.value:
        raise ValidationError(f"Only draft entries can be {action}")
    return entry


def update_entry(db: Session, entry_id: int, *, entry_date: Optional[date] = None,
                 period_id: Optional[int] = None, items: Optional[List[dict]] = None,
                 description: Optional[str] = None, reference: Optional[str] = None) -> JournalEntry:
    entry = _draft(db, entry_id, "updated")
    new_date = as_date(entry_date) or entry.date
    new_period = period_id or entry.period_id
    if items is not None:
        validate_items(db, items)
        check_balance(items)
    open_period_for(db, new_period, new_date)

    entry.date = new_date
    entry.period_id = new_period
    if description is not None:
        entry.description = description
    if reference is not None:
        entry.reference = reference
    if items is not None:
        # delete-orphan removes the old rows in the same flush
        entry.items = _build_items(items)
    db.flush()
    return entry


def delete_entry(db: Session, entry_id: int) -> None:
    entry = _draft(db, entry_id, "deleted")
    db.delete(entry)
    db.flush()


def post_entry(db: Session, entry_id: int, user: str = "system") -> JournalEntry:
    entry = _draft(db, entry_id, "posted")
    open_period_for(db, entry.period_id, entry.date)
    check_balance(entry.items)
    entry.status = JournalStatus.POSTED.value
    entry.posted_at = utcnow()
    entry.posted_by = user
    db.flush()
    logger.info("journal entry %s posted by %s", entry.entry_number, user)
    return entry


def auto_journal(db: Session, *, debit_code: str, credit_code: str, amount: Decimal,
                 on: date, description: str, reference: Optional[str] = None,
                 user: str = "system") -> Optional[JournalEntry]:
    """Posts a two-line entry for a payment. Returns None (and logs) when the
    accounts are not in the chart or no OPEN period covers the date."""
    amount = to_decimal(amount)
    if amount <= 0:
        return None
    on = as_date(on)
    debit_acc = db.query(ChartOfAccount).filter(ChartOfAccount.code == debit_code).first()
    credit_acc = db.query(ChartOfAccount).filter(ChartOfAccount.code == credit_code).first()
    if debit_acc is None or credit_acc is None:
        logger.info("journal for %s skipped: account %s or %s missing", reference, debit_code, credit_code)
        return None
    period = find_open_period(db, on)
    if period is None:
        logger.info("journal for %s skipped: no open period covers %s", reference, on)
        return None

    entry = create_entry(
        db,
        entry_date=on,
        period_id=period.id,
        description=description,
        reference=reference,
        user=user,
        items=[
            {"account_id": debit_acc.id, "debit": amount, "credit": ZERO, "description": description},
            {"account_id": credit_acc.id, "debit": ZERO, "credit": amount, "description": description},
        ],
    )
    return post_entry(db, entry.id, user)


# ---------- reports ----------

def _signed(account_type: str, debit: Decimal, credit: Decimal) -> Decimal:
    """Balance on the account's normal side."""
    if account_type in DEBIT_NORMAL_TYPES:
        return debit - credit
    return credit - debit


def _posted_items(db: Session):
    return (
        db.query(JournalEntryItem)
        .join(JournalEntry, JournalEntryItem.journal_entry_id == JournalEntry.id)
        .filter(JournalEntry.status == JournalStatus.POSTED.value)
    )


def account_ledger(db: Session, account_id: int, date_from: Optional[date] = None,
                   date_to: Optional[date] = None) -> dict:
    account = db.get(ChartOfAccount, account_id)
    if account is None:
        raise NotFoundError("Account not found")

    opening = ZERO
    if date_from:
        row = (
            db.query(func.coalesce(func.sum(JournalEntryItem.debit), 0),
                     func.coalesce(func.sum(JournalEntryItem.credit), 0))
            .join(JournalEntry, JournalEntryItem.journal_entry_id == JournalEntry.id)
            .filter(JournalEntry.status == JournalStatus.POSTED.value,
                    JournalEntryItem.account_id == account_id,
                    JournalEntry.date < date_from)
            .one()
        )
        opening = _signed(account.type, to_decimal(row[0]), to_decimal(row[1]))

    q = _posted_items(db).filter(JournalEntryItem.account_id == account_id)
    if date_from:
        q = q.filter(JournalEntry.date >= date_from)
    if date_to:
        q = q.filter(JournalEntry.date <= date_to)
    rows = q.order_by(JournalEntry.date, JournalEntry.id, JournalEntryItem.id).all()

    balance = opening
    lines = []
    for item in rows:
        debit, credit = to_decimal(item.debit), to_decimal(item.credit)
        balance += _signed(account.type, debit, credit)
        lines.append({
            "date": item.entry.date.isoformat(),
            "entry_id": item.journal_entry_id,
            "entry_number": item.entry.entry_number,
            "description": item.description or item.entry.description,
            "reference": item.entry.reference,
            "debit": money(debit),
            "credit": money(credit),
            "balance": money(balance),
        })
    return {
        "account": {"id": account.id, "code": account.code, "name": account.name, "type": account.type},
        "opening_balance": money(opening),
        "closing_balance": money(balance),
        "entries": lines,
    }


def trial_balance(db: Session, as_of: date, period_name: Optional[str] = None) -> dict:
    accounts = (
        db.query(ChartOfAccount)
        .filter(ChartOfAccount.is_active.is_(True))
        .order_by(ChartOfAccount.type, ChartOfAccount.code)
        .all()
    )
    sums = dict(
        (account_id, (to_decimal(d), to_decimal(c)))
        for account_id, d, c in (
            db.query(JournalEntryItem.account_id,
                     func.sum(JournalEntryItem.debit), func.sum(JournalEntryItem.credit))
            .join(JournalEntry, JournalEntryItem.journal_entry_id == JournalEntry.id)
            .filter(JournalEntry.status == JournalStatus.POSTED.value, JournalEntry.date <= as_of)
            .group_by(JournalEntryItem.account_id)
            .all()
        )
    )

    rows = []
    total_debit, total_credit = ZERO, ZERO
    for acc in accounts:
        debit, credit = sums.get(acc.id, (ZERO, ZERO))
        balance = _signed(acc.type, debit, credit)
        debit_normal = acc.type in DEBIT_NORMAL_TYPES
        # a negative balance shows on the opposite column
        on_debit = (debit_normal and balance > 0) or (not debit_normal and balance < 0)
        col_debit = abs(balance) if on_debit else ZERO
        col_credit = abs(balance) if (balance != 0 and not on_debit) else ZERO
        total_debit += col_debit
        total_credit += col_credit
        rows.append({
            "id": acc.id,
            "code": acc.code,
            "name": acc.name,
            "type": acc.type,
            "debit": money(col_debit),
            "credit": money(col_credit),
            "balance": money(balance),
        })

    return {
        "as_of": as_of.isoformat(),
        "period": period_name,
        "accounts": rows,
        "total_debit": money(total_debit),
        "total_credit": money(total_credit),
        "difference": money(total_debit - total_credit),
        "balanced": is_balanced(total_debit, total_credit),
    }


def income_statement(db: Session, date_from: date, date_to: date) -> dict:
    if date_from > date_to:
        raise ValidationError("date_from must not be after date_to")
    accounts = (
        db.query(ChartOfAccount)
        .filter(ChartOfAccount.type.in_([AccountType.REVENUE.value, AccountType.EXPENSE.value]))
        .order_by(ChartOfAccount.type, ChartOfAccount.code)
        .all()
    )
    sums = dict(
        (account_id, (to_decimal(d), to_decimal(c)))
        for account_id, d, c in (
            db.query(JournalEntryItem.account_id,
                     func.sum(JournalEntryItem.debit), func.sum(JournalEntryItem.credit))
            .join(JournalEntry, JournalEntryItem.journal_entry_id == JournalEntry.id)
            .filter(JournalEntry.status == JournalStatus.POSTED.value,
                    JournalEntry.date >= date_from, JournalEntry.date <= date_to)
            .group_by(JournalEntryItem.account_id)
            .all()
        )
    )

    sections = {AccountType.REVENUE.value: [], AccountType.EXPENSE.value: []}
    totals = {AccountType.REVENUE.value: ZERO, AccountType.EXPENSE.value: ZERO}
    for acc in accounts:
        debit, credit = sums.get(acc.id, (ZERO, ZERO))
        amount = _signed(acc.type, debit, credit)
        if amount == 0 and not acc.is_active:
            continue
        totals[acc.type] += amount
        sections[acc.type].append({"id": acc.id, "code": acc.code, "name": acc.name, "amount": money(amount)})

    revenue = totals[AccountType.REVENUE.value]
    expenses = totals[AccountType.EXPENSE.value]
    return {
        "date_from": date_from.isoformat(),
        "date_to": date_to.isoformat(),
        "revenue": sections[AccountType.REVENUE.value],
        "expenses": sections[AccountType.EXPENSE.value],
        "total_revenue": money(revenue),
        "total_expenses": money(expenses),
        "net_income": money(revenue - expenses),
    }


def entry_to_dict(entry: JournalEntry) -> dict:
    debits, credits = entry.total_debit(), entry.total_credit()
    return {
        "id": entry.id,
        "entry_number": entry.entry_number,
        "date": entry.date.isoformat() if isinstance(entry.date, (date, datetime)) else entry.date,
        "period_id": entry.period_id,
        "description": entry.description,
        "reference": entry.reference,
        "status": entry.status,
        "posted_at": entry.posted_at.isoformat() if entry.posted_at else None,
        "posted_by": entry.posted_by,
        "created_by": entry.created_by,
        "total_debit": money(debits),
        "total_credit": money(credits),
        "items": [
            {
                "id": item.id,
                "account_id": item.account_id,
                "account_code": item.account.code if item.account else None,
                "account_name": item.account.name if item.account else None,
                "description": item.description,
                "debit": money(item.debit),
                "credit": money(item.credit),
            }
            for item in entry.items
        ],
    }
