# FILE: ehutano/api/routes_dispensing_rx.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from ehutano.api.deps import get_workflow, mutable_workflow
from ehutano.schemas.dispensing import CustomMedicineIn
from ehutano.schemas.dispensing_api import (
    DraftIn,
    FeeIn,
    InterpretIn,
    ItemUpdateIn,
    SelectMedicineIn,
)
from ehutano.services.dispensing_workflow import DispensingWorkflow
from ehutano.services.instructions import found_terms
from ehutano.utils.resp import ok

router = APIRouter(prefix="/dispensing", tags=["Dispensing - Prescription"])


# ---------------- catalogue ----------------


@router.get("/medicines/search")
def search_medicines(
        q: str = Query("", max_length=100),
        wf: DispensingWorkflow = Depends(get_workflow),
):
    return ok(wf.search_medicines(q))


@router.post("/medicines/custom")
def register_custom_medicine(body: CustomMedicineIn,
                             wf: DispensingWorkflow = Depends(get_workflow)):
    medicine = wf.register_custom_medicine(body)
    return ok(medicine, status_code=201)


# ---------------- draft line ----------------


@router.post("/draft/medicine")
def select_medicine(body: SelectMedicineIn, wf: DispensingWorkflow = Depends(mutable_workflow)):
    wf.select_search_result(body.medicine_id)
    return ok(wf.view())


@router.patch("/draft")
def update_draft(body: DraftIn, wf: DispensingWorkflow = Depends(mutable_workflow)):
    wf.update_draft(**body.model_dump(exclude_unset=True))
    return ok(wf.view())


@router.post("/instructions/interpret")
def interpret_instructions(body: InterpretIn, wf: DispensingWorkflow = Depends(get_workflow)):
    return ok({
        "text": body.text,
        "interpreted": wf.interpret_instructions(body.text),
        "terms": found_terms(body.text),
    })


# ---------------- items ----------------


@router.post("/items")
def add_item(wf: DispensingWorkflow = Depends(mutable_workflow)):
    wf.add_item()
    return ok(wf.view(), status_code=201)


@router.patch("/items/{item_id}")
def update_item(item_id: str, body: ItemUpdateIn,
                wf: DispensingWorkflow = Depends(mutable_workflow)):
    wf.update_item(item_id, **body.model_dump(exclude_unset=True))
    return ok(wf.view())


@router.delete("/items/{item_id}")
def remove_item(item_id: str, wf: DispensingWorkflow = Depends(mutable_workflow)):
    wf.remove_item(item_id)
    return ok(wf.view())


@router.put("/fee")
def set_dispensing_fee(body: FeeIn, wf: DispensingWorkflow = Depends(mutable_workflow)):
    wf.set_dispensing_fee(body.dispensing_fee)
    return ok(wf.view())


@router.post("/prescription/save")
def save_prescription(wf: DispensingWorkflow = Depends(mutable_workflow)):
    wf.save_prescription()
    return ok(wf.view())
