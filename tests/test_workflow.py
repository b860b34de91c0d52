from datetime import datetime

import pytest

from erp.errors import InvalidTransition
from erp.services import workflow


def run(db, order, *events, **opts):
    for event in events:
        workflow.apply_event(db, order, event, user="op1", **opts)
    db.commit()
    return order


def test_print_press_flow(db, make_order):
    order = make_order(produk="PRINT, PRESS", status="READYFORPROD", statusm="PRODUCTION")

    run(db, order, "start_print")
    assert (order.status, order.statusm) == ("PRINT", "PRINT")
    assert order.tgl_print is not None

    run(db, order, "print_done")
    assert (order.status, order.statusm) == ("PRESS READY", "PRINT DONE")

    run(db, order, "start_press", "press_done")
    assert (order.status, order.statusm) == ("COMPLETED", "PRESS DONE")
    assert order.completed_at is not None
    assert [log.action for log in order.logs] == ["START_PRINT", "PRINT_DONE", "START_PRESS", "PRESS_DONE"]


def test_print_only_completes_on_print_done(db, make_order):
    order = make_order(produk="PRINT ONLY", status="PRINT", statusm="PRINT")
    run(db, order, "print_done")
    assert (order.status, order.statusm) == ("COMPLETED", "COMPLETED")


def test_print_cutting_flow(db, make_order):
    order = make_order(produk="PRINT, CUTTING", status="READYFORPROD")
    run(db, order, "start_print", "print_done")
    assert order.status == "CUTTING READY"

    run(db, order, "start_cutting")
    assert (order.status, order.statusm) == ("CUTTING IN PROGRESS", "CUTTING")

    run(db, order, "cutting_done")
    assert (order.status, order.statusm) == ("CUTTING DONE", "CUTTING DONE")

    run(db, order, "complete")
    assert order.status == "COMPLETED"


def test_cutting_done_with_complete_flag(db, make_order):
    order = make_order(produk="PRINT, CUTTING", status="CUTTING IN PROGRESS")
    run(db, order, "cutting_done", complete=True)
    assert (order.status, order.statusm) == ("COMPLETED", "COMPLETED")


def test_press_only_starts_from_ready_for_production(db, make_order):
    order = make_order(produk="PRESS ONLY", status="READYFORPROD")
    run(db, order, "start_press", "press_done")
    assert (order.status, order.statusm) == ("COMPLETED", "COMPLETED")


def test_press_cannot_start_before_print(db, make_order):
    order = make_order(produk="PRINT, PRESS", status="READYFORPROD")
    with pytest.raises(InvalidTransition) as exc:
        workflow.apply_event(db, order, "start_press")
    assert exc.value.status_code == 400
    assert exc.value.details == {"event": "start_press", "current_status": "READYFORPROD"}
    assert order.status == "READYFORPROD"


def test_dtf_flow(db, make_order):
    order = make_order(produk="DTF", status="READYFORPROD")
    run(db, order, "start_dtf")
    assert (order.status, order.statusm) == ("DTF", "DTF")
    run(db, order, "dtf_done")
    assert (order.status, order.statusm) == ("COMPLETED", "DTF DONE")


def test_dtf_requires_dtf_product(db, make_order):
    order = make_order(produk="PRINT, PRESS", status="READYFORPROD")
    assert not workflow.is_allowed(order, "start_dtf")
    order.tipe_produk = "DTF"
    assert workflow.is_allowed(order, "start_dtf")


def test_deliver_messages(db, make_order):
    delivered = make_order(status="DISERAHKAN")
    with pytest.raises(InvalidTransition, match="already been delivered"):
        workflow.apply_event(db, delivered, "deliver")

    printing = make_order(status="PRINT")
    with pytest.raises(InvalidTransition, match="Only completed orders"):
        workflow.apply_event(db, printing, "deliver")


def test_deliver_stamps_handover(db, make_order):
    order = make_order(status="COMPLETED", statusm="COMPLETED")
    workflow.apply_event(db, order, "deliver", user="kurir", penyerahan_id="gudang-1")
    assert (order.status, order.statusm) == ("DISERAHKAN", "DISERAHKAN")
    assert order.penyerahan_id == "gudang-1"
    assert order.tgl_pengiriman is not None


def test_hold_and_resume_restore_previous_status(db, make_order):
    order = make_order(status="PRESS", statusm="PRESS")
    run(db, order, "hold", note="mesin rusak")
    assert order.status == "ON_HOLD"
    assert order.previous_status == "PRESS"
    assert order.hold_reason == "mesin rusak"

    with pytest.raises(InvalidTransition, match="already on hold"):
        workflow.apply_event(db, order, "hold", note="lagi")

    run(db, order, "resume")
    assert order.status == "PRESS"
    assert order.previous_status is None


def test_resume_without_previous_status(db, make_order):
    order = make_order(status="ON_HOLD", previous_status=None)
    with pytest.raises(InvalidTransition, match="No previous status"):
        workflow.apply_event(db, order, "resume")


def test_cancel_keeps_reason(db, make_order):
    order = make_order(status="APPROVED", catatan="urgent")
    run(db, order, "cancel", note="customer batal")
    assert order.status == "CANCELLED"
    assert order.statusm == "Previous status: APPROVED"
    assert order.catatan == "urgent\nCancellation Reason: customer batal"

    with pytest.raises(InvalidTransition):
        workflow.apply_event(db, order, "cancel", note="again")


def test_reject_marks_approval(db, make_order):
    order = make_order(status="PENDING")
    run(db, order, "reject", note="harga salah")
    assert order.status == "REJECTED"
    assert order.approval == "REJECTED"
    assert "Rejection Reason: harga salah" in order.catatan


def test_client_timestamp_wins(db, make_order):
    order = make_order(status="READYFORPROD", produk="PRINT ONLY")
    at = datetime(2024, 3, 5, 9, 30)
    run(db, order, "start_print", at=at)
    assert order.tgl_print == at


def test_complete_not_allowed_from_draft_or_terminal(db, make_order):
    for status in ("DRAFT", "COMPLETED", "DISERAHKAN", "CANCELLED", "ON_HOLD", "REJECTED"):
        order = make_order(status=status)
        assert not workflow.is_allowed(order, "complete"), status


def test_allowed_events_for_draft(db, make_order):
    order = make_order(status="DRAFT", statusm=None)
    events = workflow.allowed_events(order)
    assert "submit" in events
    assert "cancel" in events
    assert "approve" not in events
    assert "complete" not in events


def test_unknown_event(db, make_order):
    order = make_order()
    with pytest.raises(InvalidTransition, match="Unknown workflow event"):
        workflow.apply_event(db, order, "teleport")


def test_override_status(db, make_order):
    order = make_order(status="PRINT")
    workflow.override_status(db, order, "COMPLETED", "COMPLETED", user="admin", note="fix")
    assert order.status == "COMPLETED"
    assert order.logs[-1].action == "OVERRIDE"

    with pytest.raises(InvalidTransition, match="Unknown status"):
        workflow.override_status(db, order, "FLYING", None)
