import logging
import re
from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from erp.errors import NotFoundError, ValidationError
from erp.models import Customer, InventoryItem, Order
from erp.services.workflow import log_action
from erp.utils.dates import end_of_day, parse_date, utcnow
from erp.utils.enums import InvoiceNote, OrderStatus, ProductionStatus
from erp.utils.serialize import apply_changes

logger = logging.getLogger(__name__)

# columns copied into a repeat order
PRODUCT_FIELDS = (
    "customer_id", "marketing", "produk", "tipe_produk", "nama_produk", "kategori", "qty",
    "satuan_bahan", "nama_kain", "jumlah_kain", "lebar_kain", "asal_bahan_id", "gramasi",
    "lebar_kertas", "lebar_file", "warna_acuan", "path", "harga_satuan", "diskon",
    "tambah_bahan", "nominal",
)


def spk_prefix(today: Optional[date] = None) -> str:
    today = today or utcnow().date()
    return today.strftime("%m%y")


def generate_spk(db: Session, today: Optional[date] = None) -> str:
    """Next SPK for the month: MMYY followed by a 3-digit sequence."""
    prefix = spk_prefix(today)
    last = 0
    for (spk,) in db.query(Order.spk).filter(Order.spk.like(f"{prefix}%")).all():
        m = re.fullmatch(rf"{prefix}(\d+)", spk or "")
        if m:
            last = max(last, int(m.group(1)))
    n = last + 1
    while True:
        candidate = f"{prefix}{n:03d}"
        if not spk_exists(db, candidate):
            return candidate
        n += 1


def spk_exists(db: Session, spk: str) -> bool:
    return db.query(Order.id).filter(Order.spk == spk).first() is not None


def format_discount(value: Optional[Decimal], kind: Optional[str]) -> str:
    if value is None:
        return "0"
    text = format(value.normalize(), "f")
    return f"{text}%" if kind == "percent" else text


def compute_total(harga_satuan: Optional[Decimal], qty: Optional[Decimal], diskon: Optional[str]) -> Decimal:
    if harga_satuan is None or qty is None:
        return Decimal("0")
    gross = Decimal(harga_satuan) * Decimal(qty)
    diskon = (diskon or "0").strip()
    if diskon.endswith("%"):
        total = gross - gross * Decimal(diskon[:-1]) / Decimal("100")
    else:
        total = gross - Decimal(diskon or "0")
    return max(total, Decimal("0")).quantize(Decimal("0.01"))


def _check_refs(db: Session, customer_id: Optional[int], asal_bahan_id: Optional[int]) -> None:
    if customer_id is not None and db.get(Customer, customer_id) is None:
        raise NotFoundError("Customer not found")
    if asal_bahan_id is not None and db.get(InventoryItem, asal_bahan_id) is None:
        raise NotFoundError("Fabric item not found")


def create_order(db: Session, data: dict, user: str = "system") -> Order:
    as_draft = data.pop("as_draft", False)
    diskon_type = data.pop("diskon_type", "fixed")
    diskon_value = data.pop("diskon", None)
    nominal = data.pop("nominal", None)
    spk = (data.pop("spk", None) or "").strip()

    if not as_draft and not (data.get("customer_id") and data.get("produk") and data.get("qty")):
        raise ValidationError("customer_id, produk and qty are required")
    _check_refs(db, data.get("customer_id"), data.get("asal_bahan_id"))

    if spk:
        if spk_exists(db, spk):
            raise ValidationError(f"SPK {spk} already exists")
    else:
        spk = generate_spk(db)

    order = Order(spk=spk, created_by=user, **{k: v for k, v in data.items() if v is not None})
    order.diskon = format_discount(diskon_value, diskon_type)
    order.nominal = nominal if nominal is not None else compute_total(order.harga_satuan, order.qty, order.diskon)
    order.keterangan = InvoiceNote.NOT_INVOICED.value
    order.statusprod = "NEW"

    if as_draft:
        order.status = OrderStatus.DRAFT.value
        order.statusm = None
    elif (order.produk or "").upper() == "PRESS ONLY":
        order.status = OrderStatus.READYFORPROD.value
        order.statusm = ProductionStatus.PRODUCTION.value
        order.submitted_at = utcnow()
    else:
        order.status = OrderStatus.PENDING.value
        order.statusm = ProductionStatus.DESIGN.value
        order.submitted_at = utcnow()

    db.add(order)
    log_action(db, order, "CREATE", None, order.status, user)
    db.flush()
    logger.info("order %s created as %s by %s", order.spk, order.status, user)
    return order


def update_order(db: Session, order: Order, data: dict, user: str = "system") -> Order:
    diskon_type = data.pop("diskon_type", None)
    diskon_value = data.pop("diskon", None)
    nominal = data.pop("nominal", None)
    _check_refs(db, data.get("customer_id"), data.get("asal_bahan_id"))

    apply_changes(order, data)
    if diskon_value is not None:
        order.diskon = format_discount(diskon_value, diskon_type or "fixed")
    if nominal is not None:
        order.nominal = nominal
    elif {"harga_satuan", "qty"} & data.keys() or diskon_value is not None:
        order.nominal = compute_total(order.harga_satuan, order.qty, order.diskon)

    log_action(db, order, "UPDATE", order.status, order.status, user)
    db.flush()
    return order


def repeat_order(db: Session, spk: str, user: str = "system") -> Order:
    source = db.query(Order).filter(Order.spk == spk).first()
    if source is None:
        raise NotFoundError(f"Order {spk} not found")
    order = Order(
        spk=generate_spk(db),
        created_by=user,
        statusprod="REPEAT",
        status=OrderStatus.PENDING.value,
        statusm=ProductionStatus.DESIGN.value,
        keterangan=InvoiceNote.NOT_INVOICED.value,
        submitted_at=utcnow(),
        catatan=f"Repeat of SPK {source.spk}",
        **{f: getattr(source, f) for f in PRODUCT_FIELDS},
    )
    db.add(order)
    log_action(db, order, "REPEAT", None, order.status, user, f"Repeat of {source.spk}")
    db.flush()
    return order


def filter_orders(query, status: Optional[str] = None, statusm: Optional[str] = None,
                  search: Optional[str] = None, date_from: Optional[str] = None,
                  date_to: Optional[str] = None):
    if status:
        query = query.filter(Order.status.in_([s.strip() for s in status.split(",")]))
    if statusm:
        query = query.filter(Order.statusm == statusm)
    if search:
        like = "%%%s%%" % search.strip()
        query = query.outerjoin(Customer, Order.customer_id == Customer.id).filter(or_(
            Order.spk.ilike(like),
            Order.produk.ilike(like),
            Order.nama_produk.ilike(like),
            Order.catatan.ilike(like),
            Customer.nama.ilike(like),
        ))

    df = parse_date(date_from)
    dt = parse_date(date_to)
    if date_from and df is None or date_to and dt is None:
        raise ValidationError("Invalid date format")
    if df and dt:
        query = query.filter(and_(Order.created_at >= df, Order.created_at <= end_of_day(dt)))
    elif df:
        query = query.filter(Order.created_at >= df)
    elif dt:
        query = query.filter(Order.created_at <= end_of_day(dt))
    return query


def get_order(db: Session, order_id: int) -> Order:
    order = db.get(Order, order_id)
    if order is None:
        raise NotFoundError("Order not found")
    return order
