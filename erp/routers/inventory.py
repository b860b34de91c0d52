# erp/routers/inventory.py
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import or_
from sqlalchemy.orm import Session

from erp.db import get_db
from erp.errors import NotFoundError, ValidationError
from erp.models import (
    Asset, AssetMaintenance, InkStock, InventoryItem, Order, PaperStock, StockLog, StockRequest,
)
from erp.schemas.inventory import (
    AssetIn, AssetUpdate, FabricIn, FabricUpdate, InkStockIn, InkStockUpdate, MaintenanceIn, OutboundAction,
    PaperStockIn, PaperStockUpdate, StockRequestApprove, StockRequestIn, StockRequestReject,
)
from erp.services import inventory as inventory_service
from erp.services import workflow
from erp.services.orders import get_order
from erp.utils.enums import StockKind
from erp.utils.headers import acting_user
from erp.utils.serialize import apply_changes, customer_to_dict, order_to_dict, paginate, row_to_dict

router = APIRouter(prefix="/api/inventory", tags=["inventory"])


def _get(db: Session, model, obj_id: int, label: str):
    obj = db.get(model, obj_id)
    if obj is None:
        raise NotFoundError(f"{label} not found")
    return obj


# ---------- FABRICS ----------
@router.get("/fabrics")
def list_fabrics(search: Optional[str] = Query(None), page: int = Query(1, ge=1),
                 page_size: int = Query(20, ge=1, le=100), db: Session = Depends(get_db)):
    q = db.query(InventoryItem)
    if search:
        like = f"%{search.strip()}%"
        q = q.filter(or_(InventoryItem.nama_bahan.ilike(like), InventoryItem.asal_bahan.ilike(like)))
    rows, meta = paginate(q.order_by(InventoryItem.id.desc()), page, page_size)
    items = []
    for item in rows:
        data = row_to_dict(item)
        data["customer"] = customer_to_dict(item.customer)
        items.append(data)
    return {"items": items, "pagination": meta}


@router.post("/fabrics", status_code=201)
def create_fabric(body: FabricIn, db: Session = Depends(get_db)):
    item = InventoryItem(**body.model_dump(exclude_none=True))
    db.add(item)
    db.commit()
    db.refresh(item)
    return row_to_dict(item)


@router.put("/fabrics/{item_id}")
def update_fabric(item_id: int, body: FabricUpdate, db: Session = Depends(get_db)):
    item = _get(db, InventoryItem, item_id, "Fabric item")
    apply_changes(item, body.model_dump(exclude_unset=True))
    db.commit()
    db.refresh(item)
    return row_to_dict(item)


@router.delete("/fabrics/{item_id}")
def delete_fabric(item_id: int, db: Session = Depends(get_db)):
    item = _get(db, InventoryItem, item_id, "Fabric item")
    if db.query(Order.id).filter(Order.asal_bahan_id == item.id).first():
        raise ValidationError("Fabric item is used by orders and cannot be deleted")
    db.delete(item)
    db.commit()
    return {"ok": True}


# ---------- PAPER ----------
@router.get("/paper")
def list_paper(availability: Optional[str] = Query(None), gsm: Optional[int] = Query(None),
               search: Optional[str] = Query(None), db: Session = Depends(get_db)):
    q = db.query(PaperStock)
    if availability:
        q = q.filter(PaperStock.availability == availability.upper())
    if gsm:
        q = q.filter(PaperStock.gsm == gsm)
    if search:
        like = f"%{search.strip()}%"
        q = q.filter(or_(PaperStock.name.ilike(like), PaperStock.barcode_id.ilike(like)))
    return [row_to_dict(p) for p in q.order_by(PaperStock.id.desc()).all()]


@router.post("/paper", status_code=201)
def create_paper(body: PaperStockIn, db: Session = Depends(get_db), user: str = Depends(acting_user)):
    if body.barcode_id and db.query(PaperStock.id).filter(PaperStock.barcode_id == body.barcode_id).first():
        raise ValidationError(f"Barcode {body.barcode_id} already exists")
    data = body.model_dump()
    if not data.get("name"):
        data["name"] = f"{body.type} {body.gsm}gsm {body.width}x{body.length}"
    if data.get("remaining_length") is None:
        data["remaining_length"] = body.length
    stock = PaperStock(added_by=user, **data)
    db.add(stock)
    db.flush()
    inventory_service.write_log(db, StockKind.PAPER.value, "ADDED", user, paper_stock_id=stock.id,
                                new_value=str(stock.remaining_length))
    db.commit()
    db.refresh(stock)
    return row_to_dict(stock)


@router.put("/paper/{stock_id}")
def update_paper(stock_id: int, body: PaperStockUpdate, db: Session = Depends(get_db),
                 user: str = Depends(acting_user)):
    stock = _get(db, PaperStock, stock_id, "Paper stock")
    old = str(stock.remaining_length)
    apply_changes(stock, body.model_dump(exclude_unset=True))
    inventory_service.write_log(db, StockKind.PAPER.value, "UPDATED", user, paper_stock_id=stock.id,
                                old_value=old, new_value=str(stock.remaining_length))
    db.commit()
    db.refresh(stock)
    return row_to_dict(stock)


@router.delete("/paper/{stock_id}")
def delete_paper(stock_id: int, db: Session = Depends(get_db), user: str = Depends(acting_user)):
    stock = _get(db, PaperStock, stock_id, "Paper stock")
    if (db.query(StockRequest.id).filter(StockRequest.paper_stock_id == stock.id).first()
            or db.query(Order.id).filter(Order.paper_stock_id == stock.id).first()):
        raise ValidationError("Paper stock has been used and cannot be deleted")
    db.query(StockLog).filter(StockLog.paper_stock_id == stock.id).update(
        {StockLog.paper_stock_id: None}, synchronize_session=False)
    inventory_service.write_log(db, StockKind.PAPER.value, "DELETED", user,
                                notes=f"{stock.name} ({stock.barcode_id or stock.id})")
    db.delete(stock)
    db.commit()
    return {"ok": True}


# ---------- INK ----------
@router.get("/ink/next-barcode")
def ink_next_barcode(db: Session = Depends(get_db)):
    return {"barcode_id": inventory_service.next_ink_barcode(db)}


@router.get("/ink")
def list_ink(availability: Optional[str] = Query(None), type: Optional[str] = Query(None),
             color: Optional[str] = Query(None), db: Session = Depends(get_db)):
    q = db.query(InkStock)
    if availability:
        q = q.filter(InkStock.availability == availability.upper())
    if type:
        q = q.filter(InkStock.type.ilike(type))
    if color:
        q = q.filter(InkStock.color.ilike(color))
    return [row_to_dict(i) for i in q.order_by(InkStock.id.desc()).all()]


@router.post("/ink", status_code=201)
def create_ink(body: InkStockIn, db: Session = Depends(get_db), user: str = Depends(acting_user)):
    barcode = body.barcode_id or inventory_service.next_ink_barcode(db)
    if db.query(InkStock.id).filter(InkStock.barcode_id == barcode).first():
        raise ValidationError(f"Barcode {barcode} already exists")
    data = body.model_dump(exclude={"barcode_id"})
    if not data.get("name"):
        data["name"] = f"{body.type} {body.color}"
    stock = InkStock(barcode_id=barcode, added_by=user, **data)
    db.add(stock)
    db.flush()
    inventory_service.write_log(db, StockKind.INK.value, "ADDED", user, ink_stock_id=stock.id,
                                new_value=str(stock.quantity))
    db.commit()
    db.refresh(stock)
    return row_to_dict(stock)


@router.put("/ink/{stock_id}")
def update_ink(stock_id: int, body: InkStockUpdate, db: Session = Depends(get_db),
               user: str = Depends(acting_user)):
    stock = _get(db, InkStock, stock_id, "Ink stock")
    old = str(stock.quantity)
    apply_changes(stock, body.model_dump(exclude_unset=True))
    inventory_service.write_log(db, StockKind.INK.value, "UPDATED", user, ink_stock_id=stock.id,
                                old_value=old, new_value=str(stock.quantity))
    db.commit()
    db.refresh(stock)
    return row_to_dict(stock)


@router.delete("/ink/{stock_id}")
def delete_ink(stock_id: int, db: Session = Depends(get_db), user: str = Depends(acting_user)):
    stock = _get(db, InkStock, stock_id, "Ink stock")
    if db.query(StockRequest.id).filter(StockRequest.ink_stock_id == stock.id).first():
        raise ValidationError("Ink stock has been used and cannot be deleted")
    db.query(StockLog).filter(StockLog.ink_stock_id == stock.id).update(
        {StockLog.ink_stock_id: None}, synchronize_session=False)
    inventory_service.write_log(db, StockKind.INK.value, "DELETED", user, notes=stock.barcode_id)
    db.delete(stock)
    db.commit()
    return {"ok": True}


# ---------- REQUESTS ----------
@router.get("/requests")
def list_requests(status: Optional[str] = Query(None), kind: Optional[str] = Query(None),
                  page: int = Query(1, ge=1), page_size: int = Query(20, ge=1, le=100),
                  db: Session = Depends(get_db)):
    q = db.query(StockRequest)
    if status:
        q = q.filter(StockRequest.status == status.upper())
    if kind:
        q = q.filter(StockRequest.kind == kind.upper())
    rows, meta = paginate(q.order_by(StockRequest.created_at.desc(), StockRequest.id.desc()), page, page_size)
    return {"requests": [row_to_dict(r) for r in rows], "pagination": meta}


@router.post("/requests", status_code=201)
def create_request(body: StockRequestIn, db: Session = Depends(get_db), user: str = Depends(acting_user)):
    req = inventory_service.create_request(db, body.model_dump(), user)
    db.commit()
    db.refresh(req)
    return row_to_dict(req)


@router.post("/requests/{request_id}/approve")
def approve_request(request_id: int, body: StockRequestApprove, db: Session = Depends(get_db),
                    user: str = Depends(acting_user)):
    req = inventory_service.approve_request(db, request_id, body.stock_id, body.barcode_id, user)
    db.commit()
    db.refresh(req)
    return row_to_dict(req)


@router.post("/requests/{request_id}/reject")
def reject_request(request_id: int, body: StockRequestReject, db: Session = Depends(get_db),
                   user: str = Depends(acting_user)):
    req = inventory_service.reject_request(db, request_id, body.reason, user)
    db.commit()
    db.refresh(req)
    return row_to_dict(req)


@router.get("/logs")
def stock_logs(kind: Optional[str] = Query(None), page: int = Query(1, ge=1),
               page_size: int = Query(50, ge=1, le=200), db: Session = Depends(get_db)):
    q = db.query(StockLog)
    if kind:
        q = q.filter(StockLog.kind == kind.upper())
    rows, meta = paginate(q.order_by(StockLog.id.desc()), page, page_size)
    return {"logs": [row_to_dict(x) for x in rows], "pagination": meta}


# ---------- OUTBOUND ----------
@router.get("/outbound")
def list_outbound(page: int = Query(1, ge=1), page_size: int = Query(20, ge=1, le=100),
                  db: Session = Depends(get_db)):
    rows, meta = paginate(inventory_service.outbound_query(db), page, page_size)
    return {"orders": [order_to_dict(o) for o in rows], "pagination": meta}


@router.patch("/outbound/{order_id}")
def outbound_action(order_id: int, body: OutboundAction, db: Session = Depends(get_db),
                    user: str = Depends(acting_user)):
    order = get_order(db, order_id)
    inventory_service.outbound_action(db, order, body.action, body.notes, user)
    db.commit()
    db.refresh(order)
    if body.action == "handover":
        workflow.notify_status_change(db, order)
    return order_to_dict(order)


# ---------- ASSETS ----------
def _unique_serial(db: Session, serial: Optional[str], exclude_id: Optional[int] = None) -> None:
    if not serial:
        return
    q = db.query(Asset.id).filter(Asset.serial_number == serial)
    if exclude_id is not None:
        q = q.filter(Asset.id != exclude_id)
    if q.first():
        raise ValidationError(f"Serial number {serial} already exists")


@router.get("/assets")
def list_assets(status: Optional[str] = Query(None), type: Optional[str] = Query(None),
                search: Optional[str] = Query(None), db: Session = Depends(get_db)):
    q = db.query(Asset)
    if status:
        q = q.filter(Asset.status == status.upper())
    if type:
        q = q.filter(Asset.type == type)
    if search:
        like = f"%{search.strip()}%"
        q = q.filter(or_(Asset.name.ilike(like), Asset.serial_number.ilike(like), Asset.location.ilike(like)))
    return [row_to_dict(a) for a in q.order_by(Asset.name).all()]


@router.get("/assets/{asset_id}")
def get_asset(asset_id: int, db: Session = Depends(get_db)):
    asset = _get(db, Asset, asset_id, "Asset")
    data = row_to_dict(asset)
    data["maintenance_records"] = [row_to_dict(m) for m in asset.maintenance_records]
    return data


@router.post("/assets", status_code=201)
def create_asset(body: AssetIn, db: Session = Depends(get_db)):
    _unique_serial(db, body.serial_number)
    asset = Asset(**body.model_dump())
    db.add(asset)
    db.commit()
    db.refresh(asset)
    return row_to_dict(asset)


@router.put("/assets/{asset_id}")
def update_asset(asset_id: int, body: AssetUpdate, db: Session = Depends(get_db)):
    asset = _get(db, Asset, asset_id, "Asset")
    data = body.model_dump(exclude_unset=True)
    _unique_serial(db, data.get("serial_number"), exclude_id=asset.id)
    apply_changes(asset, data)
    db.commit()
    db.refresh(asset)
    return row_to_dict(asset)


@router.delete("/assets/{asset_id}")
def delete_asset(asset_id: int, db: Session = Depends(get_db)):
    db.delete(_get(db, Asset, asset_id, "Asset"))
    db.commit()
    return {"ok": True}


@router.get("/assets/{asset_id}/maintenance")
def list_maintenance(asset_id: int, db: Session = Depends(get_db)):
    asset = _get(db, Asset, asset_id, "Asset")
    return [row_to_dict(m) for m in asset.maintenance_records]


@router.post("/assets/{asset_id}/maintenance", status_code=201)
def add_maintenance(asset_id: int, body: MaintenanceIn, db: Session = Depends(get_db)):
    asset = _get(db, Asset, asset_id, "Asset")
    record = AssetMaintenance(asset=asset, **body.model_dump())
    db.add(record)
    if asset.last_maintenance_date is None or body.maintenance_date >= asset.last_maintenance_date:
        asset.last_maintenance_date = body.maintenance_date
        if body.next_maintenance_date:
            asset.next_maintenance_date = body.next_maintenance_date
    db.commit()
    db.refresh(record)
    return row_to_dict(record)
