# erp/routers/customers.py
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import or_
from sqlalchemy.orm import Session

from erp.db import get_db
from erp.errors import NotFoundError, ValidationError
from erp.models import Customer, Order
from erp.schemas.settings import CustomerIn, CustomerUpdate
from erp.utils.serialize import apply_changes, paginate, row_to_dict

router = APIRouter(prefix="/api/customers", tags=["customers"])


def _customer(db: Session, customer_id: int) -> Customer:
    customer = db.get(Customer, customer_id)
    if customer is None:
        raise NotFoundError("Customer not found")
    return customer


@router.get("")
def list_customers(search: Optional[str] = Query(None), page: int = Query(1, ge=1),
                   page_size: int = Query(20, ge=1, le=100), db: Session = Depends(get_db)):
    q = db.query(Customer)
    if search:
        like = f"%{search.strip()}%"
        q = q.filter(or_(Customer.nama.ilike(like), Customer.telp.ilike(like), Customer.email.ilike(like)))
    rows, meta = paginate(q.order_by(Customer.nama), page, page_size)
    return {"customers": [row_to_dict(c) for c in rows], "pagination": meta}


@router.get("/{customer_id}")
def get_customer(customer_id: int, db: Session = Depends(get_db)):
    customer = _customer(db, customer_id)
    data = row_to_dict(customer)
    data["order_count"] = db.query(Order.id).filter(Order.customer_id == customer.id).count()
    return data


@router.post("", status_code=201)
def create_customer(body: CustomerIn, db: Session = Depends(get_db)):
    customer = Customer(**body.model_dump())
    db.add(customer)
    db.commit()
    db.refresh(customer)
    return row_to_dict(customer)


@router.put("/{customer_id}")
def update_customer(customer_id: int, body: CustomerUpdate, db: Session = Depends(get_db)):
    customer = _customer(db, customer_id)
    apply_changes(customer, body.model_dump(exclude_unset=True))
    db.commit()
    db.refresh(customer)
    return row_to_dict(customer)


@router.delete("/{customer_id}")
def delete_customer(customer_id: int, db: Session = Depends(get_db)):
    customer = _customer(db, customer_id)
    if db.query(Order.id).filter(Order.customer_id == customer.id).first():
        raise ValidationError("Customer has orders and cannot be deleted")
    db.delete(customer)
    db.commit()
    return {"ok": True}
