from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from erp.utils.enums import StockKind


class FabricIn(BaseModel):
    nama_bahan: str = Field(..., min_length=1)
    asal_bahan: Optional[str] = None
    lebar_kain: Optional[str] = None
    jumlah_kain: Optional[str] = None
    roll: Optional[str] = None
    satuan: Optional[str] = None
    tanggal: Optional[date] = None
    keterangan: Optional[str] = None
    customer_id: Optional[int] = None


class FabricUpdate(BaseModel):
    nama_bahan: Optional[str] = Field(None, min_length=1)
    asal_bahan: Optional[str] = None
    lebar_kain: Optional[str] = None
    jumlah_kain: Optional[str] = None
    roll: Optional[str] = None
    satuan: Optional[str] = None
    tanggal: Optional[date] = None
    keterangan: Optional[str] = None
    customer_id: Optional[int] = None


class PaperStockIn(BaseModel):
    gsm: int = Field(..., gt=0)
    width: Decimal = Field(..., gt=0)
    length: Decimal = Field(..., gt=0)
    remaining_length: Optional[Decimal] = Field(None, ge=0)
    name: Optional[str] = None
    type: str = "Sublimation Paper"
    manufacturer: Optional[str] = None
    barcode_id: Optional[str] = None
    notes: Optional[str] = None


class PaperStockUpdate(BaseModel):
    gsm: Optional[int] = Field(None, gt=0)
    width: Optional[Decimal] = Field(None, gt=0)
    length: Optional[Decimal] = Field(None, gt=0)
    remaining_length: Optional[Decimal] = Field(None, ge=0)
    name: Optional[str] = None
    type: Optional[str] = None
    manufacturer: Optional[str] = None
    availability: Optional[str] = Field(None, pattern="^(YES|NO)$")
    notes: Optional[str] = None


class InkStockIn(BaseModel):
    type: str = Field(..., min_length=1)
    color: str = Field(..., min_length=1)
    barcode_id: Optional[str] = None
    name: Optional[str] = None
    quantity: Decimal = Field(Decimal("1"), gt=0)
    unit: str = "liter"
    supplier: Optional[str] = None
    notes: Optional[str] = None


class InkStockUpdate(BaseModel):
    type: Optional[str] = None
    color: Optional[str] = None
    name: Optional[str] = None
    quantity: Optional[Decimal] = Field(None, gt=0)
    unit: Optional[str] = None
    supplier: Optional[str] = None
    availability: Optional[str] = Field(None, pattern="^(YES|NO)$")
    notes: Optional[str] = None


class StockRequestIn(BaseModel):
    kind: StockKind
    gsm: Optional[int] = None
    width: Optional[str] = None
    length: Optional[str] = None
    ink_type: Optional[str] = None
    color: Optional[str] = None
    quantity: Optional[str] = None
    user_notes: Optional[str] = None

    @model_validator(mode="after")
    def check_kind_fields(self):
        if self.kind == StockKind.INK and not (self.ink_type and self.color):
            raise ValueError("ink_type and color are required for ink requests")
        if self.kind == StockKind.PAPER and not self.gsm:
            raise ValueError("gsm is required for paper requests")
        return self


class StockRequestApprove(BaseModel):
    stock_id: Optional[int] = None
    barcode_id: Optional[str] = None


class StockRequestReject(BaseModel):
    reason: Optional[str] = None


class OutboundAction(BaseModel):
    action: str = Field(..., pattern="^(handover|reject_qc)$")
    notes: Optional[str] = None


class AssetIn(BaseModel):
    name: str = Field(..., min_length=1)
    type: str = Field(..., min_length=1)
    manufacturer: Optional[str] = None
    model_number: Optional[str] = None
    serial_number: Optional[str] = None
    location: Optional[str] = None
    purchase_date: Optional[date] = None
    purchase_price: Optional[Decimal] = Field(None, ge=0)
    warranty_expiry: Optional[date] = None
    status: str = "ACTIVE"
    notes: Optional[str] = None


class AssetUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    type: Optional[str] = None
    manufacturer: Optional[str] = None
    model_number: Optional[str] = None
    serial_number: Optional[str] = None
    location: Optional[str] = None
    purchase_date: Optional[date] = None
    purchase_price: Optional[Decimal] = Field(None, ge=0)
    warranty_expiry: Optional[date] = None
    status: Optional[str] = None
    notes: Optional[str] = None


class MaintenanceIn(BaseModel):
    maintenance_date: date
    maintenance_type: str = Field(..., min_length=1)
    description: Optional[str] = None
    cost: Optional[Decimal] = Field(None, ge=0)
    performed_by: Optional[str] = None
    next_maintenance_date: Optional[date] = None
