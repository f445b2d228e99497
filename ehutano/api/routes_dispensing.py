# FILE: ehutano/api/routes_dispensing.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse

from ehutano.api.deps import get_workflow, mutable_workflow
from ehutano.schemas.dispensing_api import TabIn
from ehutano.services.dispensing_workflow import DispensingWorkflow
from ehutano.utils.resp import ok, pdf

router = APIRouter(prefix="/dispensing", tags=["Dispensing"])


# ---------------------------------------------------------
# Encounter state / navigation
# ---------------------------------------------------------
@router.get("/state")
def get_state(wf: DispensingWorkflow = Depends(get_workflow)):
    return ok(wf.view())


@router.post("/tab")
def go_to_tab(body: TabIn, wf: DispensingWorkflow = Depends(mutable_workflow)):
    wf.go_to(body.tab)
    return ok(wf.view())


@router.post("/cancel")
def cancel_encounter(wf: DispensingWorkflow = Depends(mutable_workflow)):
    wf.cancel()
    return ok(wf.view())


# ---------------------------------------------------------
# Pending prescriptions
# ---------------------------------------------------------
@router.get("/pending")
def list_pending(
        refresh: bool = Query(False),
        wf: DispensingWorkflow = Depends(get_workflow),
):
    items = wf.pending(refresh=refresh)
    poller = wf.poller
    return ok({
        "items": items,
        "refreshedAt": poller.refreshed_at if poller else None,
        "lastError": poller.last_error if poller else None,
    })


@router.post("/pending/{prescription_id}/select")
def select_pending(prescription_id: int, wf: DispensingWorkflow = Depends(mutable_workflow)):
    wf.select_pending(prescription_id)
    return ok(wf.view())


# ---------------------------------------------------------
# Completion / POS
# ---------------------------------------------------------
@router.post("/complete")
def complete_dispensing(wf: DispensingWorkflow = Depends(mutable_workflow)):
    sale = wf.complete()
    return ok({"sale": sale, "state": wf.view()})


@router.get("/sales/last")
def last_sale(wf: DispensingWorkflow = Depends(get_workflow)):
    return ok(wf.last_sale)


@router.get("/sales/last/receipt.pdf", response_class=StreamingResponse)
def last_sale_receipt(wf: DispensingWorkflow = Depends(get_workflow)):
    pdf_bytes = wf.receipt_pdf()
    return pdf(pdf_bytes, f"receipt_{wf.last_sale.pos_reference}.pdf")
