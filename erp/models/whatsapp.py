from typing import Optional
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from erp.db import Base
from erp.utils.dates import utcnow


class WhatsAppConfig(Base):
    __tablename__ = "whatsapp_config"

    id: Mapped[int] = mapped_column(primary_key=True)
    phone_number_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    business_account_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    access_token: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    webhook_verify_token: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)


class WhatsAppTemplate(Base):
    __tablename__ = "whatsapp_templates"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(120), unique=True)
    description: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    content: Mapped[str] = mapped_column(Text)
    language: Mapped[str] = mapped_column(String(16), default="id")
    category: Mapped[str] = mapped_column(String(32), default="UTILITY")
    # variables in content are written as {{1}}, {{2}}, ...
    variables: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)


class ChatMessage(Base):
    __tablename__ = "chat_messages"

    id: Mapped[int] = mapped_column(primary_key=True)
    customer_id: Mapped[Optional[int]] = mapped_column(ForeignKey("customers.id"), nullable=True, index=True)
    phone_number: Mapped[str] = mapped_column(String(32), index=True)
    content: Mapped[str] = mapped_column(Text)
    direction: Mapped[str] = mapped_column(String(8), default="outgoing")  # incoming | outgoing
    message_type: Mapped[str] = mapped_column(String(16), default="text")  # text | template
    message_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    status: Mapped[str] = mapped_column(String(16), default="sent")  # sent | failed
    error: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    sent_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)

    customer = relationship("Customer")
