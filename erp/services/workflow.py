"""Order production state machine.

Every status change of an order goes through :func:`apply_event`. The
transition table below is the only place that knows which event is allowed
from which status and where it leads; routers never assign ``status`` or
``statusm`` themselves (the administrative override excepted).
"""
import logging
from datetime import datetime
from typing import Callable, Dict, FrozenSet, NamedTuple, Optional, Tuple

from sqlalchemy.orm import Session

from erp import config
from erp.errors import InvalidTransition
from erp.models import Order, OrderLog
from erp.utils.dates import utcnow
from erp.utils.enums import OrderStatus as S, ProductionStatus as P
from erp.whatsapp.whatsapp_notify import notifier

logger = logging.getLogger(__name__)


class Composition(NamedTuple):
    """Which production steps an order goes through, read from ``produk``."""
    print_only: bool
    press_only: bool
    has_press: bool
    has_cutting: bool
    has_dtf: bool

    @classmethod
    def of(cls, order: Order) -> "Composition":
        produk = (order.produk or "").upper().strip()
        tipe = (order.tipe_produk or "").upper().strip()
        return cls(
            print_only=produk == "PRINT ONLY",
            press_only=produk == "PRESS ONLY",
            has_press="PRESS" in produk,
            has_cutting="CUTTING" in produk,
            has_dtf="DTF" in produk or tipe == "DTF",
        )


Target = Tuple[str, Optional[str]]


class Rule(NamedTuple):
    # allowed source statuses; None means "any status not in excluded"
    sources: Optional[FrozenSet[str]]
    target: Callable[[Order, Composition, dict], Target]
    stamp: Optional[str] = None
    excluded: FrozenSet[str] = frozenset()
    allowed: Optional[Callable[[str, Composition], bool]] = None


def _fixed(status: str, statusm: Optional[str] = None):
    return lambda order, comp, opts: (status, statusm if statusm is not None else order.statusm)


def _print_done(order, comp, opts) -> Target:
    if comp.print_only:
        return S.COMPLETED.value, P.COMPLETED.value
    if comp.has_press:
        return S.PRESS_READY.value, P.PRINT_DONE.value
    if comp.has_cutting:
        return S.CUTTING_READY.value, P.PRINT_DONE.value
    return S.PRINT_DONE.value, P.PRINT_DONE.value


def _press_done(order, comp, opts) -> Target:
    if comp.press_only:
        return S.COMPLETED.value, P.COMPLETED.value
    if comp.has_cutting:
        return S.CUTTING_READY.value, P.PRESS_DONE.value
    return S.COMPLETED.value, P.PRESS_DONE.value


def _dtf_done(order, comp, opts) -> Target:
    if comp.has_cutting:
        return S.CUTTING_READY.value, P.DTF_DONE.value
    return S.COMPLETED.value, P.DTF_DONE.value


def _cutting_done(order, comp, opts) -> Target:
    if opts.get("complete"):
        return S.COMPLETED.value, P.COMPLETED.value
    return S.CUTTING_DONE.value, P.CUTTING_DONE.value


def _resume(order, comp, opts) -> Target:
    return order.previous_status, order.statusm


def _cancel(order, comp, opts) -> Target:
    return S.CANCELLED.value, f"Previous status: {order.status}"


def _start_press_allowed(status: str, comp: Composition) -> bool:
    return status == S.PRESS_READY.value or (comp.press_only and status == S.READYFORPROD.value)


def _start_dtf_allowed(status: str, comp: Composition) -> bool:
    return comp.has_dtf and status in (S.READYFORPROD.value, S.PRESS_READY.value, S.PRESS.value)


def _set(*statuses: S) -> FrozenSet[str]:
    return frozenset(s.value for s in statuses)


TERMINAL = _set(S.COMPLETED, S.DISERAHKAN, S.CANCELLED)

TRANSITIONS: Dict[str, Rule] = {
    "submit": Rule(_set(S.DRAFT), _fixed(S.PENDING.value, P.DESIGN.value), stamp="submitted_at"),
    "approve": Rule(_set(S.PENDING), _fixed(S.APPROVED.value, P.DESIGN.value), stamp="tgl_app_manager"),
    "reject": Rule(_set(S.PENDING, S.APPROVED), _fixed(S.REJECTED.value)),
    "design_complete": Rule(_set(S.APPROVED), _fixed(S.READYFORPROD.value, P.PRODUCTION.value),
                            stamp="tgl_app_prod"),
    "start_print": Rule(_set(S.READYFORPROD), _fixed(S.PRINT.value, P.PRINT.value), stamp="tgl_print"),
    "print_done": Rule(_set(S.PRINT, S.PRINT_READY), _print_done, stamp="print_done"),
    "start_press": Rule(None, _fixed(S.PRESS.value, P.PRESS.value), stamp="tgl_press",
                        allowed=_start_press_allowed),
    "press_done": Rule(_set(S.PRESS), _press_done, stamp="press_done"),
    "start_dtf": Rule(None, _fixed(S.DTF.value, P.DTF.value), stamp="tgl_dtf", allowed=_start_dtf_allowed),
    "dtf_done": Rule(_set(S.DTF), _dtf_done, stamp="dtf_done"),
    "start_cutting": Rule(_set(S.CUTTING_READY, S.PRINT_DONE, S.PRESS_DONE),
                          _fixed(S.CUTTING_IN_PROGRESS.value, P.CUTTING.value), stamp="tgl_cutting"),
    "cutting_done": Rule(_set(S.CUTTING_IN_PROGRESS), _cutting_done, stamp="cutting_done"),
    "complete": Rule(None, _fixed(S.COMPLETED.value, P.COMPLETED.value), stamp="completed_at",
                     excluded=TERMINAL | _set(S.DRAFT, S.ON_HOLD, S.REJECTED)),
    "deliver": Rule(_set(S.COMPLETED), _fixed(S.DISERAHKAN.value, P.DISERAHKAN.value), stamp="tgl_pengiriman"),
    "hold": Rule(None, _fixed(S.ON_HOLD.value), excluded=TERMINAL | _set(S.ON_HOLD)),
    "resume": Rule(_set(S.ON_HOLD), _resume),
    "cancel": Rule(None, _cancel, excluded=TERMINAL),
}

# statuses an administrator may set directly
KNOWN_STATUSES = frozenset(s.value for s in S)

_MESSAGES = {
    ("deliver", S.DISERAHKAN.value): "Order has already been delivered",
    ("deliver", None): "Only completed orders can be delivered",
    ("print_done", None): "Order is not in PRINT or PRINT READY status, cannot mark as done.",
    ("resume", None): "Order is not on hold",
    ("hold", S.ON_HOLD.value): "Order is already on hold",
    ("cancel", S.CANCELLED.value): "Order is already cancelled",
}


def is_allowed(order: Order, event: str) -> bool:
    rule = TRANSITIONS[event]
    status = order.status
    if rule.allowed is not None:
        return rule.allowed(status, Composition.of(order))
    if rule.sources is not None:
        return status in rule.sources
    return status not in rule.excluded


def allowed_events(order: Order):
    return [event for event in TRANSITIONS if is_allowed(order, event)]


def _error(event: str, order: Order) -> InvalidTransition:
    msg = _MESSAGES.get((event, order.status)) or _MESSAGES.get((event, None))
    return InvalidTransition(event, order.status, msg)


def log_action(db: Session, order: Order, action: str, old_status: Optional[str],
               new_status: Optional[str], user: str = "system", note: Optional[str] = None) -> OrderLog:
    entry = OrderLog(
        order=order,
        action=action,
        old_status=old_status,
        new_status=new_status,
        user=user or "system",
        note=note,
    )
    db.add(entry)
    return entry


def apply_event(db: Session, order: Order, event: str, user: str = "system",
                note: Optional[str] = None, at: Optional[datetime] = None, **opts) -> Order:
    """Moves ``order`` through ``event`` and records it in the order log.

    ``at`` overrides the timestamp stamped on the order (client-supplied
    dates win over now). The caller commits.
    """
    if event not in TRANSITIONS:
        raise InvalidTransition(event, order.status, f"Unknown workflow event: {event}")
    if not is_allowed(order, event):
        raise _error(event, order)

    rule = TRANSITIONS[event]
    comp = Composition.of(order)
    when = at or utcnow()
    old_status = order.status

    if event == "resume" and not order.previous_status:
        raise InvalidTransition(event, order.status, "No previous status to resume to")

    new_status, new_statusm = rule.target(order, comp, opts)

    if event == "hold":
        order.previous_status = old_status
        order.hold_reason = note
    elif event == "resume":
        order.previous_status = None
        order.hold_reason = None
    elif event == "reject":
        order.approval = "REJECTED"
        order.reject = "REJECTED"
        if note:
            order.catatan = _append(order.catatan, f"Rejection Reason: {note}")
    elif event == "cancel" and note:
        order.catatan = _append(order.catatan, f"Cancellation Reason: {note}")
    elif event == "approve":
        order.approve_mng = user
        order.approval = "APPROVED"
    elif event == "deliver":
        order.penyerahan_id = opts.get("penyerahan_id") or user
    elif event == "complete" and note:
        order.completion_notes = note

    order.status = new_status
    order.statusm = new_statusm
    if rule.stamp:
        setattr(order, rule.stamp, when)
    if new_status == S.COMPLETED.value and order.completed_at is None:
        order.completed_at = when

    log_action(db, order, event.upper(), old_status, new_status, user, note)
    logger.info("order %s: %s %s -> %s by %s", order.spk, event, old_status, new_status, user)
    return order


def override_status(db: Session, order: Order, status: Optional[str], statusm: Optional[str],
                    user: str = "system", note: Optional[str] = None) -> Order:
    """Administrative correction, bypasses the transition table."""
    if status is not None and status not in KNOWN_STATUSES:
        raise InvalidTransition("override", order.status, f"Unknown status: {status}")
    old_status = order.status
    if status is not None:
        order.status = status
    if statusm is not None:
        order.statusm = statusm
    log_action(db, order, "OVERRIDE", old_status, order.status, user, note)
    logger.warning("order %s status overridden %s -> %s by %s", order.spk, old_status, order.status, user)
    return order


def notify_status_change(db: Session, order: Order) -> None:
    """Sends the customer a status text once the transition is committed."""
    if not config.WHATSAPP_NOTIFY_STATUS:
        return
    notifier.notify_order_status_changed(order, db)


def _append(text: Optional[str], line: str) -> str:
    return f"{text}\n{line}" if text else line
