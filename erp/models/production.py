from typing import Optional
from datetime import datetime

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from erp.db import Base
from erp.utils.dates import utcnow


class CuttingJob(Base):
    __tablename__ = "cutting_jobs"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(120))  # assigned operator
    notes: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    cutting_mesin: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    cutting_speed: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    acc: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    power: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    cutting_bagus: Mapped[str] = mapped_column(String(32), default="0")
    cutting_reject: Mapped[str] = mapped_column(String(32), default="0")
    user: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)
