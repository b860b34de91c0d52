from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from erp.utils.enums import PaymentType


class DpPayment(BaseModel):
    amount: Decimal = Field(..., gt=0)
    jenis_pembayaran: str = "Transfer"
    tf_dp: Optional[str] = None
    tgl_dp: Optional[datetime] = None


class NoDpPayment(BaseModel):
    note: Optional[str] = None


class SettlePayment(BaseModel):
    amount: Decimal = Field(..., gt=0)
    jenis_pembayaran: Optional[str] = None
    tf_pelunasan: Optional[str] = None
    tgl_lunas: Optional[datetime] = None


class PaymentCreate(BaseModel):
    order_id: int
    amount: Decimal = Field(..., gt=0)
    payment_type: PaymentType
    payment_method: str = "Transfer"
    payment_date: Optional[datetime] = None
    receipt_path: Optional[str] = None
    notes: Optional[str] = None


class ReceivablePayment(BaseModel):
    order_id: int
    amount: Decimal = Field(..., gt=0)
    payment_method: str = "Transfer"
    payment_date: Optional[datetime] = None
    invoice_number: Optional[str] = None
    receipt_path: Optional[str] = None
    notes: Optional[str] = None
