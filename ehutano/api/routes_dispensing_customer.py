# FILE: ehutano/api/routes_dispensing_customer.py
from __future__ import annotations

from fastapi import APIRouter, Depends

from ehutano.api.deps import mutable_workflow
from ehutano.schemas.dispensing_api import CustomerIn
from ehutano.services.dispensing_workflow import DispensingWorkflow
from ehutano.utils.resp import ok

router = APIRouter(prefix="/dispensing/customer", tags=["Dispensing - Customer"])


@router.patch("")
def update_customer(body: CustomerIn, wf: DispensingWorkflow = Depends(mutable_workflow)):
    wf.update_customer(**body.model_dump(exclude_unset=True))
    return ok(wf.view())


@router.post("/save")
def save_customer(wf: DispensingWorkflow = Depends(mutable_workflow)):
    wf.save_customer()
    return ok(wf.view())
