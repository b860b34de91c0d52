from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional, Union

from pydantic import BaseModel, Field, field_validator


class OrderFields(BaseModel):
    """Descriptive order fields shared by create and update."""
    tanggal: Optional[date] = None
    marketing: Optional[str] = None
    tipe_produk: Optional[str] = None
    nama_produk: Optional[str] = None
    kategori: Optional[str] = None
    satuan_bahan: Optional[str] = None
    nama_kain: Optional[str] = None
    jumlah_kain: Optional[str] = None
    lebar_kain: Optional[str] = None
    asal_bahan_id: Optional[int] = None
    gramasi: Optional[str] = None
    lebar_kertas: Optional[str] = None
    lebar_file: Optional[str] = None
    warna_acuan: Optional[str] = None
    path: Optional[str] = None
    prioritas: Optional[str] = None
    no_project: Optional[str] = None
    est_order: Optional[date] = None
    catatan: Optional[str] = None
    harga_satuan: Optional[Decimal] = Field(None, ge=0)
    tambah_bahan: Optional[str] = None


def _join_produk(v):
    # ["PRINT", "PRESS"] -> "PRINT, PRESS"
    if isinstance(v, list):
        parts = [str(x).strip().upper() for x in v if str(x).strip()]
        return ", ".join(parts) or None
    if isinstance(v, str):
        return v.strip().upper() or None
    return v


class OrderCreate(OrderFields):
    customer_id: Optional[int] = None
    produk: Optional[Union[str, List[str]]] = None
    qty: Optional[Decimal] = Field(None, gt=0)
    spk: Optional[str] = None
    # fixed amount, or a percentage when diskon_type == "percent"
    diskon: Optional[Decimal] = Field(None, ge=0)
    diskon_type: str = Field("fixed", pattern="^(fixed|percent)$")
    nominal: Optional[Decimal] = Field(None, ge=0)
    as_draft: bool = False

    normalize_produk = field_validator("produk", mode="before")(_join_produk)


class OrderUpdate(OrderFields):
    customer_id: Optional[int] = None
    produk: Optional[Union[str, List[str]]] = None
    qty: Optional[Decimal] = Field(None, gt=0)
    diskon: Optional[Decimal] = Field(None, ge=0)
    diskon_type: Optional[str] = Field(None, pattern="^(fixed|percent)$")
    nominal: Optional[Decimal] = Field(None, ge=0)

    normalize_produk = field_validator("produk", mode="before")(_join_produk)


class ReasonBody(BaseModel):
    reason: str = Field(..., min_length=1)


class RejectBody(BaseModel):
    reason: Optional[str] = None


class DesignAssign(BaseModel):
    designer_id: str = Field(..., min_length=1)


class DesignComplete(BaseModel):
    catatan_design: Optional[str] = None


class CompleteBody(BaseModel):
    notes: Optional[str] = None
    completed_at: Optional[datetime] = None


class DeliverBody(BaseModel):
    penyerahan_id: Optional[str] = None
    tgl_pengiriman: Optional[datetime] = None


class StatusOverride(BaseModel):
    status: Optional[str] = None
    statusm: Optional[str] = None
    note: Optional[str] = None


class KeteranganBody(BaseModel):
    keterangan: str = Field(..., min_length=1)
