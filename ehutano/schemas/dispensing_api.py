# FILE: ehutano/schemas/dispensing_api.py
"""Request bodies accepted by the dispensing console routes."""
from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import Field

from ehutano.schemas.dispensing import PaymentMethod, Tab, WireModel


class CustomerIn(WireModel):
    salutation: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    id_number: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    date_of_birth: Optional[date] = None
    medical_aid_provider: Optional[str] = None
    medical_aid_number: Optional[str] = None


class TabIn(WireModel):
    tab: Tab


class DraftIn(WireModel):
    name: Optional[str] = None
    dosage: Optional[str] = None
    quantity: Optional[str] = None
    price: Optional[str] = None
    instructions: Optional[str] = None


class SelectMedicineIn(WireModel):
    medicine_id: int


class ItemUpdateIn(WireModel):
    quantity: Optional[int] = None
    unit_price: Optional[Decimal] = Field(None, ge=0)
    price: Optional[Decimal] = Field(None, ge=0)
    instructions: Optional[str] = None


class FeeIn(WireModel):
    dispensing_fee: Decimal = Field(..., ge=0)


class InterpretIn(WireModel):
    text: str = ""


class ScanTargetIn(WireModel):
    item_id: str


class BarcodeIn(WireModel):
    barcode: str = ""


class BatchAssignIn(WireModel):
    batch_number: str = Field(..., min_length=1)


class PaymentMethodIn(WireModel):
    method: PaymentMethod


class PaymentAmountIn(WireModel):
    amount: Optional[str] = None
    currency: Optional[str] = None


class PaymentReferenceIn(WireModel):
    reference: str = ""
