# erp/models/inventory.py
from typing import List, Optional
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from erp.db import Base
from erp.utils.dates import utcnow


class InventoryItem(Base):
    """Fabric roll kept for customer orders (asal_bahan)."""
    __tablename__ = "inventory_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    nama_bahan: Mapped[str] = mapped_column(String(120), index=True)
    asal_bahan: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    lebar_kain: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    jumlah_kain: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    roll: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    satuan: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    tanggal: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    keterangan: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    customer_id: Mapped[Optional[int]] = mapped_column(ForeignKey("customers.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    customer = relationship("Customer")


class PaperStock(Base):
    __tablename__ = "paper_stocks"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255))
    type: Mapped[str] = mapped_column(String(64), default="Sublimation Paper")
    manufacturer: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    gsm: Mapped[int] = mapped_column(Integer)
    width: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    length: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    remaining_length: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    barcode_id: Mapped[Optional[str]] = mapped_column(String(64), unique=True, nullable=True)
    availability: Mapped[str] = mapped_column(String(8), default="YES", index=True)  # YES | NO
    date_taken: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    taken_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    added_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)


class InkStock(Base):
    __tablename__ = "ink_stocks"

    id: Mapped[int] = mapped_column(primary_key=True)
    barcode_id: Mapped[str] = mapped_column(String(64), unique=True)
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    type: Mapped[str] = mapped_column(String(64))
    color: Mapped[str] = mapped_column(String(32))
    quantity: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("1"))
    unit: Mapped[str] = mapped_column(String(16), default="liter")
    supplier: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    availability: Mapped[str] = mapped_column(String(8), default="YES", index=True)
    date_taken: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    taken_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    added_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)


class StockRequest(Base):
    """Operator request for a paper roll or an ink bottle."""
    __tablename__ = "stock_requests"

    id: Mapped[int] = mapped_column(primary_key=True)
    kind: Mapped[str] = mapped_column(String(8), index=True)  # PAPER | INK
    # PAPER: gsm/width/length; INK: ink_type/color
    gsm: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    width: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    length: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    ink_type: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    color: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    quantity: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    user_notes: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    status: Mapped[str] = mapped_column(String(16), default="PENDING", index=True)
    requested_by: Mapped[str] = mapped_column(String(64), default="system")
    processed_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    rejection_reason: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    paper_stock_id: Mapped[Optional[int]] = mapped_column(ForeignKey("paper_stocks.id"), nullable=True)
    ink_stock_id: Mapped[Optional[int]] = mapped_column(ForeignKey("ink_stocks.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)


class StockLog(Base):
    __tablename__ = "stock_logs"

    id = Column(Integer, primary_key=True)
    kind = Column(String(8), nullable=False, index=True)  # PAPER | INK

    # ADDED | UPDATED | REQUESTED | APPROVED | REJECTED | CONSUMED | DELETED
    action = Column(String(16), nullable=False)

    paper_stock_id = Column(Integer, ForeignKey("paper_stocks.id"), nullable=True, index=True)
    ink_stock_id   = Column(Integer, ForeignKey("ink_stocks.id"), nullable=True, index=True)
    request_id     = Column(Integer, ForeignKey("stock_requests.id"), nullable=True)
    order_id       = Column(Integer, ForeignKey("orders.id"), nullable=True)

    old_value = Column(String(64), nullable=True)
    new_value = Column(String(64), nullable=True)
    notes     = Column(String(500), nullable=True)

    user       = Column(String(64), nullable=False, default="system")
    created_at = Column(DateTime, default=utcnow, nullable=False)


class Asset(Base):
    __tablename__ = "assets"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(120))
    type: Mapped[str] = mapped_column(String(64))
    manufacturer: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    model_number: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    serial_number: Mapped[Optional[str]] = mapped_column(String(64), unique=True, nullable=True)
    location: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    purchase_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    purchase_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2), nullable=True)
    warranty_expiry: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    # ACTIVE | MAINTENANCE | REPAIR | OUT_OF_SERVICE | RETIRED
    status: Mapped[str] = mapped_column(String(24), default="ACTIVE")
    last_maintenance_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    next_maintenance_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    maintenance_records: Mapped[List["AssetMaintenance"]] = relationship(
        "AssetMaintenance", back_populates="asset", cascade="all, delete-orphan",
        order_by="AssetMaintenance.maintenance_date.desc()",
    )


class AssetMaintenance(Base):
    __tablename__ = "asset_maintenance"

    id: Mapped[int] = mapped_column(primary_key=True)
    asset_id: Mapped[int] = mapped_column(ForeignKey("assets.id"), index=True)
    maintenance_date: Mapped[date] = mapped_column(Date)
    maintenance_type: Mapped[str] = mapped_column(String(32))  # PREVENTIVE | CORRECTIVE | INSPECTION
    description: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    cost: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2), nullable=True)
    performed_by: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    next_maintenance_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    asset: Mapped["Asset"] = relationship("Asset", back_populates="maintenance_records")
