# erp/models/order.py
from typing import List, Optional
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Date, DateTime, Float, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from erp.db import Base
from erp.utils.dates import utcnow


class Order(Base):
    """Work order (SPK). Workflow progress lives in status/statusm plus the
    per-stage timestamp and operator columns."""
    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(primary_key=True)
    spk: Mapped[str] = mapped_column(String(32), unique=True, index=True)
    tanggal: Mapped[date] = mapped_column(Date, default=lambda: utcnow().date())
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)
    created_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    customer_id: Mapped[Optional[int]] = mapped_column(ForeignKey("customers.id"), nullable=True, index=True)
    customer: Mapped[Optional["Customer"]] = relationship("Customer", back_populates="orders")
    marketing: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)

    # === PRODUCT ===
    # produk lists the production steps, e.g. "PRINT, PRESS, CUTTING" or "PRINT ONLY"
    produk: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    tipe_produk: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    nama_produk: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    kategori: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    statusprod: Mapped[str] = mapped_column(String(16), default="NEW")  # NEW | REPEAT
    qty: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    satuan_bahan: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    nama_kain: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    jumlah_kain: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    lebar_kain: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    asal_bahan_id: Mapped[Optional[int]] = mapped_column(ForeignKey("inventory_items.id"), nullable=True)
    gramasi: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    lebar_kertas: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    lebar_file: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    warna_acuan: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    path: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    prioritas: Mapped[str] = mapped_column(String(8), default="NO")
    no_project: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    est_order: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    catatan: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # === PRICING ===
    harga_satuan: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2), nullable=True)
    diskon: Mapped[str] = mapped_column(String(32), default="0")  # fixed amount or "<n>%"
    tambah_bahan: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    nominal: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0"))

    # === PAYMENT ===
    dp: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2), nullable=True)
    tgl_dp: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    sisa: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2), nullable=True)
    pelunasan: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2), nullable=True)
    tgl_lunas: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    jenis_pembayaran: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    biaya_tambahan: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)  # DP | NO DP | LUNAS
    catatan_tf: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    tf_dp: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    tf_pelunasan: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    tf_full: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    invoice: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    tgl_invoice: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    keterangan: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    # === APPROVALS ===
    approval: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    approve_mng: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    tgl_app_manager: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    approval_opr: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    tgl_app_prod: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    approval_barang: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    reject: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)

    # === STATUS ===
    status: Mapped[str] = mapped_column(String(32), default="PENDING", index=True)
    statusm: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    previous_status: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    hold_reason: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    submitted_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    completion_notes: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # === DESIGN ===
    designer_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    catatan_design: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # === PRINT ===
    print_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    tgl_print: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    waktu_rip: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    rip: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    dimensi_file: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    prints_mesin: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    prints_icc: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    prints_target: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    prints_qty: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    prints_bagus: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    prints_reject: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    prints_waste: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    catatan_print: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    paper_stock_id: Mapped[Optional[int]] = mapped_column(ForeignKey("paper_stocks.id"), nullable=True)
    print_done: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    # === PRESS ===
    press_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    tgl_press: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    press_mesin: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    press_presure: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    press_suhu: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    press_speed: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    press_protect: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    total_kain: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    press_bagus: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    press_reject: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    press_waste: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    catatan_press: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    press_done: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    # === DTF ===
    dtf_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    tgl_dtf: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    dtf_quantity: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    dtf_notes: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    dtf_done: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    # === CUTTING ===
    cutting_id: Mapped[Optional[int]] = mapped_column(ForeignKey("cutting_jobs.id"), nullable=True)
    cutting: Mapped[Optional["CuttingJob"]] = relationship("CuttingJob")
    tgl_cutting: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    catatan_cutting: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    cutting_done: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    # === HANDOVER ===
    tgl_pengiriman: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    penyerahan_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    logs: Mapped[List["OrderLog"]] = relationship(
        "OrderLog", back_populates="order", cascade="all, delete-orphan",
        order_by="OrderLog.id",
    )


class OrderLog(Base):
    __tablename__ = "order_logs"

    id: Mapped[int] = mapped_column(primary_key=True)
    order_id: Mapped[int] = mapped_column(ForeignKey("orders.id"), index=True)

    action: Mapped[str] = mapped_column(String(32))
    old_status: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    new_status: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    user: Mapped[str] = mapped_column(String(64), default="system")
    note: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    order: Mapped["Order"] = relationship("Order", back_populates="logs")
