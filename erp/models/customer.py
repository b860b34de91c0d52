# erp/models/customer.py
from typing import List, Optional
from datetime import datetime

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from erp.db import Base
from erp.utils.dates import utcnow


class Customer(Base):
    __tablename__ = "customers"

    id: Mapped[int] = mapped_column(primary_key=True)
    nama: Mapped[str] = mapped_column(String(120), index=True)
    telp: Mapped[Optional[str]] = mapped_column(String(32), nullable=True, index=True)
    alamat: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    orders: Mapped[List["Order"]] = relationship("Order", back_populates="customer")
