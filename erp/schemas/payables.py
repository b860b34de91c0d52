from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class VendorIn(BaseModel):
    name: str = Field(..., min_length=1)
    contact_person: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    is_active: bool = True


class VendorUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    contact_person: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    is_active: Optional[bool] = None


class BillCreate(BaseModel):
    vendor_id: int
    bill_number: str = Field(..., min_length=1)
    bill_date: date
    due_date: date
    total_amount: Decimal = Field(..., gt=0)
    description: Optional[str] = None


class BillUpdate(BaseModel):
    vendor_id: Optional[int] = None
    bill_number: Optional[str] = Field(None, min_length=1)
    bill_date: Optional[date] = None
    due_date: Optional[date] = None
    total_amount: Optional[Decimal] = Field(None, gt=0)
    description: Optional[str] = None


class BillPaymentCreate(BaseModel):
    amount: Decimal = Field(..., gt=0)
    payment_date: date
    payment_method: str = Field(..., min_length=1)
    payment_reference: Optional[str] = None
    notes: Optional[str] = None
