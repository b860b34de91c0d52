# erp/routers/payables.py
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import or_
from sqlalchemy.orm import Session

from erp.db import get_db
from erp.errors import NotFoundError, ValidationError
from erp.models import Bill, Vendor
from erp.schemas.payables import BillCreate, BillPaymentCreate, BillUpdate, VendorIn, VendorUpdate
from erp.services import payables as payable_service
from erp.services.ledger import money
from erp.utils.headers import acting_user
from erp.utils.serialize import apply_changes, paginate, row_to_dict

router = APIRouter(prefix="/api/finance", tags=["payables"])


def _vendor(db: Session, vendor_id: int) -> Vendor:
    vendor = db.get(Vendor, vendor_id)
    if vendor is None:
        raise NotFoundError("Vendor not found")
    return vendor


def bill_to_dict(bill: Bill, payments: bool = False) -> dict:
    data = row_to_dict(bill)
    data["vendor"] = {"id": bill.vendor.id, "name": bill.vendor.name} if bill.vendor else None
    data["remaining_amount"] = money(bill.remaining_amount)
    if payments:
        data["payments"] = [row_to_dict(p) for p in bill.payments]
    return data


# ---------- VENDORS ----------
@router.get("/vendors")
def list_vendors(search: Optional[str] = Query(None), is_active: Optional[bool] = Query(None),
                 db: Session = Depends(get_db)):
    q = db.query(Vendor)
    if search:
        like = f"%{search.strip()}%"
        q = q.filter(or_(Vendor.name.ilike(like), Vendor.contact_person.ilike(like), Vendor.phone.ilike(like)))
    if is_active is not None:
        q = q.filter(Vendor.is_active.is_(is_active))
    return [row_to_dict(v) for v in q.order_by(Vendor.name).all()]


@router.get("/vendors/{vendor_id}")
def get_vendor(vendor_id: int, db: Session = Depends(get_db)):
    return row_to_dict(_vendor(db, vendor_id))


@router.post("/vendors", status_code=201)
def create_vendor(body: VendorIn, db: Session = Depends(get_db)):
    vendor = Vendor(**body.model_dump())
    db.add(vendor)
    db.commit()
    db.refresh(vendor)
    return row_to_dict(vendor)


@router.put("/vendors/{vendor_id}")
def update_vendor(vendor_id: int, body: VendorUpdate, db: Session = Depends(get_db)):
    vendor = _vendor(db, vendor_id)
    apply_changes(vendor, body.model_dump(exclude_unset=True))
    db.commit()
    db.refresh(vendor)
    return row_to_dict(vendor)


@router.delete("/vendors/{vendor_id}")
def delete_vendor(vendor_id: int, db: Session = Depends(get_db)):
    vendor = _vendor(db, vendor_id)
    if vendor.bills:
        raise ValidationError("Vendor has bills and cannot be deleted")
    db.delete(vendor)
    db.commit()
    return {"ok": True}


# ---------- BILLS ----------
@router.get("/payable")
def list_bills(
    status: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    q = db.query(Bill).join(Vendor, Bill.vendor_id == Vendor.id)
    if status:
        q = q.filter(Bill.status == status.upper())
    if search:
        like = f"%{search.strip()}%"
        q = q.filter(or_(Bill.bill_number.ilike(like), Bill.description.ilike(like), Vendor.name.ilike(like)))
    rows, meta = paginate(q.order_by(Bill.due_date.asc(), Bill.id.asc()), page, page_size)
    return {"bills": [bill_to_dict(b) for b in rows], "pagination": meta}


@router.get("/payable/{bill_id}")
def get_bill(bill_id: int, db: Session = Depends(get_db)):
    return bill_to_dict(payable_service.get_bill(db, bill_id), payments=True)


@router.post("/payable", status_code=201)
def create_bill(body: BillCreate, db: Session = Depends(get_db)):
    bill = payable_service.create_bill(db, body.model_dump())
    db.commit()
    db.refresh(bill)
    return bill_to_dict(bill)


@router.put("/payable/{bill_id}")
def update_bill(bill_id: int, body: BillUpdate, db: Session = Depends(get_db)):
    bill = payable_service.get_bill(db, bill_id)
    payable_service.update_bill(db, bill, body.model_dump(exclude_unset=True))
    db.commit()
    db.refresh(bill)
    return bill_to_dict(bill)


@router.delete("/payable/{bill_id}")
def delete_bill(bill_id: int, db: Session = Depends(get_db)):
    payable_service.delete_bill(db, payable_service.get_bill(db, bill_id))
    db.commit()
    return {"ok": True}


@router.post("/payable/{bill_id}/payment", status_code=201)
def pay_bill(bill_id: int, body: BillPaymentCreate, db: Session = Depends(get_db),
             user: str = Depends(acting_user)):
    bill = payable_service.get_bill(db, bill_id)
    payment = payable_service.pay_bill(
        db, bill, body.amount, body.payment_date, body.payment_method,
        payment_reference=body.payment_reference, notes=body.notes, user=user,
    )
    db.commit()
    db.refresh(bill)
    return {"message": "Payment recorded", "payment": row_to_dict(payment), "bill": bill_to_dict(bill, payments=True)}
