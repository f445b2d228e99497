# FILE: ehutano/schemas/dispensing.py
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional, Literal

from pydantic import BaseModel, Field, ConfigDict
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """camelCase on the wire (pharmacy API and till front-end), snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------- Enums ----------


class Tab(str, Enum):
    CUSTOMER = "customer"
    PRESCRIPTION = "prescription"
    SCAN = "scan"
    BATCH = "batch"
    MEDICAL_AID = "medical_aid"
    LABELS = "labels"


TAB_ORDER: List[Tab] = list(Tab)


class PaymentMethod(str, Enum):
    CASH = "CASH"
    CARD = "CARD"
    MOBILE_MONEY = "MOBILE_MONEY"
    MEDICAL_AID = "MEDICAL_AID"


class ClaimStatus(str, Enum):
    NOT_SUBMITTED = "not_submitted"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"
    FAILED = "failed"


class EncounterSource(str, Enum):
    WALK_IN = "walk_in"
    PENDING = "pending"


class ToastVariant(str, Enum):
    DEFAULT = "default"
    DESTRUCTIVE = "destructive"


class Toast(WireModel):
    title: str
    description: str = ""
    variant: ToastVariant = ToastVariant.DEFAULT
    created_at: datetime


# ---------- Customer ----------


class Customer(WireModel):
    id: Optional[int] = None
    salutation: Optional[str] = None
    first_name: str = ""
    last_name: str = ""
    id_number: str = ""
    phone: str = ""
    email: Optional[str] = None
    address: Optional[str] = None
    date_of_birth: Optional[date] = None
    medical_aid_provider: Optional[str] = None
    medical_aid_number: Optional[str] = None

    def full_name(self) -> str:
        parts = [self.salutation, self.first_name, self.last_name]
        return " ".join(p.strip() for p in parts if p and p.strip())


# ---------- Catalogue ----------


class Medicine(WireModel):
    id: int
    name: str
    generic_name: str = ""
    manufacturer: str = ""
    category: str = ""
    dosage: Optional[str] = None
    pack_size: int = 1
    unit_price: Decimal = Decimal("0")
    full_pack_price: Optional[Decimal] = None


class CustomMedicineIn(WireModel):
    name: str = Field(..., min_length=1)
    generic_name: Optional[str] = None
    manufacturer: Optional[str] = None
    category: Optional[str] = None
    dosage: Optional[str] = None
    pack_size: int = Field(1, ge=1)
    unit_price: Decimal = Field(..., ge=0)
    requires_prescription: bool = True


class Batch(WireModel):
    id: Optional[int] = None
    medicine_id: int
    batch_number: str
    stock_quantity: int = 0
    expiry_date: Optional[date] = None


class BatchOption(Batch):
    dispense_first: bool = False
    expiry_status: Literal["critical", "warning", "ok", "unknown"] = "unknown"


# ---------- Line items ----------


class LineDraft(WireModel):
    """The composer's input row; numbers stay as typed until the item is added."""

    medicine_id: Optional[int] = None
    name: str = ""
    dosage: str = ""
    quantity: str = ""
    price: str = ""
    instructions: str = ""
    interpreted_instructions: str = ""


class PrescriptionItem(WireModel):
    id: str
    medicine_id: Optional[int] = None
    name: str
    dosage: str = ""
    quantity: int
    unit_price: Decimal
    total: Decimal
    instructions: str = ""
    interpreted_instructions: str = ""


class DispensingItem(PrescriptionItem):
    batch_number: Optional[str] = None
    expiry_date: Optional[date] = None
    stock_quantity: Optional[int] = None
    scanned_barcode: Optional[str] = None
    verified: bool = False
    label_printed: bool = False


# ---------- Pending prescriptions (upstream shape) ----------


class PendingItem(WireModel):
    id: int
    prescription_id: Optional[int] = None
    medicine_id: int
    medicine_name: str
    prescribed_quantity: int = 1
    dispensed_quantity: int = 0
    dosage: Optional[str] = None
    instructions: Optional[str] = None
    unit_price: Optional[Decimal] = None
    batch_number: Optional[str] = None
    expiry_date: Optional[date] = None
    stock_quantity: Optional[int] = None
    verified: bool = False


class PendingPrescription(WireModel):
    id: int
    patient_name: str = ""
    doctor_name: str = ""
    prescription_date: Optional[datetime] = None
    status: str = "pending"
    priority: Literal["LOW", "MEDIUM", "HIGH", "URGENT"] = "LOW"
    items: List[PendingItem] = []


# ---------- Payment ----------


class PaymentInfo(WireModel):
    method: Optional[PaymentMethod] = None
    amount: Optional[Decimal] = None
    currency: str = "USD"
    reference: Optional[str] = None
    medical_aid_claim: bool = False
    claim_status: ClaimStatus = ClaimStatus.NOT_SUBMITTED
    claim_reference: Optional[str] = None
    claim_message: Optional[str] = None


class BarcodeVerification(WireModel):
    success: bool = False
    medicine_name: Optional[str] = None
    message: Optional[str] = None


class ClaimResult(WireModel):
    success: bool = False
    status: str = ""
    message: str = ""
    claim_id: Optional[int] = None
    approval_code: Optional[str] = None


# ---------- Encounter ----------


class Encounter(WireModel):
    source: EncounterSource = EncounterSource.WALK_IN
    prescription_id: Optional[int] = None
    patient_name: Optional[str] = None
    doctor_name: Optional[str] = None
    priority: Optional[str] = None

    customer: Customer = Field(default_factory=Customer)
    draft: LineDraft = Field(default_factory=LineDraft)
    items: List[DispensingItem] = []
    dispensing_fee: Decimal = Decimal("1.00")
    payment: PaymentInfo = Field(default_factory=PaymentInfo)

    active_tab: Tab = Tab.CUSTOMER
    scan_target_id: Optional[str] = None
    scan_input: str = ""

    version: int = 0
    started_at: Optional[datetime] = None

    def find_item(self, item_id: str) -> Optional[DispensingItem]:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def patient_display_name(self) -> str:
        return self.customer.full_name() or (self.patient_name or "")


class EncounterView(WireModel):
    """Encounter plus everything the till derives from it."""

    encounter: Optional[Encounter] = None
    progress: float = 0.0
    verified_count: int = 0
    total_items: int = 0
    subtotal: Decimal = Decimal("0.00")
    grand_total: Decimal = Decimal("0.00")
    change: Optional[Decimal] = None
    missing_customer_fields: List[str] = []
    payment_blockers: List[str] = []
    completion_blockers: List[str] = []
    can_complete: bool = False
    can_print_all_labels: bool = False
    toasts: List[Toast] = []


# ---------- Labels / POS ----------


class MedicationLabel(WireModel):
    item_id: str
    pharmacy_name: str
    pharmacy_address: str = ""
    pharmacy_phone: str = ""
    patient_name: str = ""
    doctor_name: str = ""
    pharmacist_name: str = ""
    medicine_name: str
    dosage: str = ""
    quantity: int
    batch_number: Optional[str] = None
    expiry_date: Optional[date] = None
    instructions: str = ""
    interpreted_instructions: str = ""
    footer: str = ""
    dispensed_on: date
    barcode_value: str


class CompletedSale(WireModel):
    pos_reference: str
    prescription_id: int
    completed_at: datetime
    patient_name: str = ""
    items: List[DispensingItem]
    subtotal: Decimal
    dispensing_fee: Decimal
    grand_total: Decimal
    payment: PaymentInfo
    amount_in_base: Optional[Decimal] = None
    change: Optional[Decimal] = None
    base_currency: str = "USD"
