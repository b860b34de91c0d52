from typing import List, Optional

from pydantic import BaseModel, Field


class CustomerIn(BaseModel):
    nama: str = Field(..., min_length=1)
    telp: Optional[str] = None
    alamat: Optional[str] = None
    email: Optional[str] = None


class CustomerUpdate(BaseModel):
    nama: Optional[str] = Field(None, min_length=1)
    telp: Optional[str] = None
    alamat: Optional[str] = None
    email: Optional[str] = None


class UserCreate(BaseModel):
    name: str = Field(..., min_length=1)
    email: str = Field(..., pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(..., min_length=6)
    role_id: Optional[int] = None
    is_active: bool = True


class UserUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    email: Optional[str] = Field(None, pattern=r"^[^@\s]+@[^@\s]+$")
    role_id: Optional[int] = None
    is_active: Optional[bool] = None


class PasswordReset(BaseModel):
    password: str = Field(..., min_length=6)


class RoleIn(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    is_admin: bool = False
    permissions: List[str] = []


class RoleUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    is_admin: Optional[bool] = None
    permissions: Optional[List[str]] = None


class WhatsAppConfigIn(BaseModel):
    phone_number_id: Optional[str] = None
    business_account_id: Optional[str] = None
    access_token: Optional[str] = None
    webhook_verify_token: Optional[str] = None


class SendMessage(BaseModel):
    phone_number: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)
    customer_id: Optional[int] = None


class TemplateIn(BaseModel):
    name: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    description: Optional[str] = None
    language: str = "id"
    category: str = "UTILITY"
    variables: Optional[str] = None
    is_active: bool = True


class TemplateUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    content: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    language: Optional[str] = None
    category: Optional[str] = None
    variables: Optional[str] = None
    is_active: Optional[bool] = None


class SendTemplate(BaseModel):
    phone_number: str = Field(..., min_length=1)
    template_id: int
    parameters: List[str] = []
    customer_id: Optional[int] = None
