from datetime import date, datetime
from decimal import Decimal
from math import ceil
from typing import Any, Dict, Iterable, Optional

from sqlalchemy import inspect

from erp.models import Customer, Invoice, Order, OrderLog


def _value(v: Any) -> Any:
    if isinstance(v, Decimal):
        return float(v)
    if isinstance(v, (datetime, date)):
        return v.isoformat()
    return v


def row_to_dict(obj, exclude: Iterable[str] = ()) -> Dict[str, Any]:
    """Column values of a mapped object, JSON-ready."""
    if obj is None:
        return None
    skip = set(exclude)
    return {
        attr.key: _value(getattr(obj, attr.key))
        for attr in inspect(obj).mapper.column_attrs
        if attr.key not in skip
    }


def apply_changes(obj, data: Dict[str, Any]) -> None:
    """Copy a partial update onto a row; null never overwrites a NOT NULL column."""
    columns = inspect(obj).mapper.columns
    for key, value in data.items():
        column = columns.get(key)
        if value is None and column is not None and not column.nullable:
            continue
        setattr(obj, key, value)


def customer_to_dict(c: Optional[Customer]) -> Optional[Dict[str, Any]]:
    if c is None:
        return None
    return {"id": c.id, "nama": c.nama, "telp": c.telp, "alamat": c.alamat, "email": c.email}


def log_to_dict(log: OrderLog) -> Dict[str, Any]:
    return {
        "id": log.id,
        "action": log.action,
        "old_status": log.old_status,
        "new_status": log.new_status,
        "user": log.user,
        "note": log.note,
        "created_at": _value(log.created_at),
    }


def invoice_to_dict(inv: Optional[Invoice]) -> Optional[Dict[str, Any]]:
    return row_to_dict(inv) if inv is not None else None


def order_to_dict(o: Order, detail: bool = False) -> Dict[str, Any]:
    data = row_to_dict(o)
    data["customer"] = customer_to_dict(o.customer)
    if detail:
        data["logs"] = [log_to_dict(x) for x in o.logs]
        data["invoice_record"] = invoice_to_dict(o.invoice_record)
        data["cutting"] = row_to_dict(o.cutting) if o.cutting else None
    return data


def paginate(query, page: int = 1, page_size: int = 20):
    """(rows, pagination meta) for a query."""
    page = max(page, 1)
    total = query.order_by(None).count()
    rows = query.offset((page - 1) * page_size).limit(page_size).all()
    return rows, {
        "page": page,
        "page_size": page_size,
        "total": total,
        "total_pages": ceil(total / page_size) if page_size else 0,
    }
