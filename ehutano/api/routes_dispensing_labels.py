# FILE: ehutano/api/routes_dispensing_labels.py
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse

from ehutano.api.deps import get_workflow, mutable_workflow
from ehutano.services.dispensing_workflow import DispensingWorkflow
from ehutano.services.labels import label_lines
from ehutano.utils.resp import ok, pdf

router = APIRouter(prefix="/dispensing/labels", tags=["Dispensing - Labels"])


# registered before /{item_id} so "pdf" is not taken for an item id
@router.get("/pdf", response_class=StreamingResponse)
def all_labels_pdf(
        item_id: Optional[List[str]] = Query(None, alias="itemId"),
        wf: DispensingWorkflow = Depends(get_workflow),
):
    return pdf(wf.label_pdf(item_id), "medication_labels.pdf")


@router.post("/print-all")
def print_all_labels(wf: DispensingWorkflow = Depends(mutable_workflow)):
    labels = wf.print_all_labels()
    return ok({"labels": labels, "state": wf.view()})


@router.get("/{item_id}")
def preview_label(item_id: str, wf: DispensingWorkflow = Depends(get_workflow)):
    label = wf.preview_label(item_id)
    return ok({"label": label, "lines": label_lines(label)})


@router.get("/{item_id}/pdf", response_class=StreamingResponse)
def label_pdf(item_id: str, wf: DispensingWorkflow = Depends(get_workflow)):
    return pdf(wf.label_pdf([item_id]), f"label_{item_id}.pdf")


@router.post("/{item_id}/print")
def print_label(item_id: str, wf: DispensingWorkflow = Depends(mutable_workflow)):
    label = wf.print_label(item_id)
    return ok({"label": label, "state": wf.view()})
