import datetime as dt
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from erp.utils.enums import AccountType, PeriodType, TransactionType


class AccountCreate(BaseModel):
    code: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    type: AccountType
    subtype: Optional[str] = None
    description: Optional[str] = None
    is_active: bool = True


class AccountUpdate(BaseModel):
    code: Optional[str] = Field(None, min_length=1)
    name: Optional[str] = Field(None, min_length=1)
    type: Optional[AccountType] = None
    subtype: Optional[str] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None


class PeriodCreate(BaseModel):
    name: str = Field(..., min_length=1)
    start_date: date
    end_date: date
    type: PeriodType
    year: int
    quarter: Optional[int] = Field(None, ge=1, le=4)
    month: Optional[int] = Field(None, ge=1, le=12)

    @model_validator(mode="after")
    def check_range(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class PeriodUpdate(BaseModel):
    name: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    type: Optional[PeriodType] = None
    year: Optional[int] = None
    quarter: Optional[int] = Field(None, ge=1, le=4)
    month: Optional[int] = Field(None, ge=1, le=12)


class JournalItemIn(BaseModel):
    account_id: int
    description: Optional[str] = None
    debit: Decimal = Decimal("0")
    credit: Decimal = Decimal("0")


class JournalEntryCreate(BaseModel):
    date: dt.date
    period_id: int
    description: Optional[str] = None
    reference: Optional[str] = None
    entry_number: Optional[str] = None
    items: List[JournalItemIn]


class JournalEntryUpdate(BaseModel):
    date: Optional[dt.date] = None
    period_id: Optional[int] = None
    description: Optional[str] = None
    reference: Optional[str] = None
    items: Optional[List[JournalItemIn]] = None


class CashTransactionCreate(BaseModel):
    type: TransactionType
    amount: Decimal = Field(..., gt=0)
    description: Optional[str] = None
    category: Optional[str] = None
    date: Optional[datetime] = None
    payment_method: Optional[str] = None
    receipt_path: Optional[str] = None
    notes: Optional[str] = None
