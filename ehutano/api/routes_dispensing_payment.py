# FILE: ehutano/api/routes_dispensing_payment.py
from __future__ import annotations

from fastapi import APIRouter, Depends

from ehutano.api.deps import mutable_workflow
from ehutano.schemas.dispensing_api import (
    PaymentAmountIn,
    PaymentMethodIn,
    PaymentReferenceIn,
)
from ehutano.services.dispensing_workflow import DispensingWorkflow
from ehutano.utils.resp import ok

router = APIRouter(prefix="/dispensing/payment", tags=["Dispensing - Payment"])


@router.put("/method")
def set_payment_method(body: PaymentMethodIn, wf: DispensingWorkflow = Depends(mutable_workflow)):
    wf.set_payment_method(body.method)
    return ok(wf.view())


@router.put("/amount")
def set_payment_amount(body: PaymentAmountIn, wf: DispensingWorkflow = Depends(mutable_workflow)):
    wf.set_payment_amount(body.amount, body.currency)
    return ok(wf.view())


@router.put("/reference")
def set_payment_reference(body: PaymentReferenceIn,
                          wf: DispensingWorkflow = Depends(mutable_workflow)):
    wf.set_payment_reference(body.reference)
    return ok(wf.view())


@router.post("/claim")
def submit_claim(wf: DispensingWorkflow = Depends(mutable_workflow)):
    wf.submit_claim()
    return ok(wf.view())
