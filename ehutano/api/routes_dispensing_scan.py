# FILE: ehutano/api/routes_dispensing_scan.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from ehutano.api.deps import get_workflow, mutable_workflow
from ehutano.schemas.dispensing_api import BarcodeIn, BatchAssignIn, ScanTargetIn
from ehutano.services.dispensing_workflow import DispensingWorkflow
from ehutano.utils.resp import ok

router = APIRouter(prefix="/dispensing", tags=["Dispensing - Verification"])


@router.put("/scan/target")
def set_scan_target(body: ScanTargetIn, wf: DispensingWorkflow = Depends(mutable_workflow)):
    wf.set_scan_target(body.item_id)
    return ok(wf.view())


@router.post("/scan/verify")
def verify_barcode(body: BarcodeIn, wf: DispensingWorkflow = Depends(mutable_workflow)):
    # a mismatch is a normal outcome, not an error response
    verified = wf.verify_barcode(body.barcode)
    return ok({"verified": verified, "state": wf.view()})


@router.get("/batches/{medicine_id}")
def list_batches(
        medicine_id: int,
        refresh: bool = Query(False),
        wf: DispensingWorkflow = Depends(get_workflow),
):
    return ok(wf.batches_for(medicine_id, refresh=refresh))


@router.put("/items/{item_id}/batch")
def assign_batch(item_id: str, body: BatchAssignIn,
                 wf: DispensingWorkflow = Depends(mutable_workflow)):
    wf.assign_batch(item_id, body.batch_number)
    return ok(wf.view())
