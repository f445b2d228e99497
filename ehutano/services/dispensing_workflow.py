# FILE: ehutano/services/dispensing_workflow.py
"""
Dispensing / point-of-sale workflow for one till.

One encounter at a time moves through the tabs

    customer -> prescription -> scan -> batch -> medical_aid -> labels

Back-navigation is always allowed; moving forward requires every tab being
left to be complete. State lives here until one of the checkpoints (save
customer, save prescription, verify item, complete dispensing) sends it to
the pharmacy API, which is the system of record.

Failures never half-apply: validation errors and API errors raise after
pushing a toast, and local state is only changed once the call succeeded.
"""
from __future__ import annotations

import functools
import itertools
import logging
import threading
from datetime import datetime
from decimal import Decimal
from typing import Callable, List, Optional

from ehutano.core.config import Settings, settings as default_settings
from ehutano.core.errors import (
    NotFoundError,
    PharmacyApiError,
    StaleEncounterError,
    WorkflowValidationError,
)
from ehutano.schemas.dispensing import (
    TAB_ORDER,
    Batch,
    BatchOption,
    ClaimStatus,
    CompletedSale,
    CustomMedicineIn,
    Customer,
    DispensingItem,
    Encounter,
    EncounterSource,
    EncounterView,
    LineDraft,
    MedicationLabel,
    Medicine,
    PaymentInfo,
    PaymentMethod,
    PendingPrescription,
    Tab,
)
from ehutano.services import composer, verification
from ehutano.services.batches import fefo_order
from ehutano.services.instructions import interpret
from ehutano.services.labels import build_label
from ehutano.services.notifications import ToastLog
from ehutano.services.payment import (
    amount_in_base,
    change_due,
    claim_payload,
    claim_status_from,
    parse_policy,
    payment_blockers,
)
from ehutano.services.pdfs.medication_label_pdf import build_labels_pdf
from ehutano.services.pdfs.receipt_pdf import build_receipt_pdf
from ehutano.services.pending_poller import PendingPrescriptionPoller
from ehutano.services.pharmacy_api import PharmacyApiClient
from ehutano.utils.money import parse_decimal, round_money
from ehutano.utils.text import is_blank

logger = logging.getLogger(__name__)

REQUIRED_CUSTOMER_FIELDS = (
    ("first_name", "First name"),
    ("last_name", "Last name"),
    ("phone", "Phone"),
    ("id_number", "ID number"),
)

MIN_SEARCH_LENGTH = 2


def _locked(fn):
    """Serialise access; the console is single-writer but runs routes on a thread pool."""

    @functools.wraps(fn)
    def wrapper(self, *args, **kwargs):
        with self._lock:
            return fn(self, *args, **kwargs)

    return wrapper


def missing_customer_fields(customer: Customer) -> List[str]:
    return [label for attr, label in REQUIRED_CUSTOMER_FIELDS if is_blank(getattr(customer, attr))]


class DispensingWorkflow:

    def __init__(
        self,
        api: PharmacyApiClient,
        *,
        settings: Settings = default_settings,
        toasts: Optional[ToastLog] = None,
        poller: Optional[PendingPrescriptionPoller] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.api = api
        self.settings = settings
        self.toasts = toasts or ToastLog()
        self.poller = poller
        self.claim_policy = parse_policy(settings.MEDICAL_AID_CLAIM_POLICY)
        self._clock = clock

        self.encounter: Optional[Encounter] = None
        self.last_sale: Optional[CompletedSale] = None
        self.search_results: List[Medicine] = []
        self._batches: Optional[List[Batch]] = None
        self._line_ids = itertools.count(1)
        self._lock = threading.RLock()

    # =========================================================
    # Encounter plumbing
    # =========================================================

    def _new_encounter(self, **kwargs) -> Encounter:
        enc = Encounter(
            dispensing_fee=round_money(self.settings.DEFAULT_DISPENSING_FEE),
            payment=PaymentInfo(currency=self.settings.BASE_CURRENCY),
            started_at=self._clock(),
            **kwargs,
        )
        self.encounter = enc
        logger.info("Encounter started (%s)", enc.source.value)
        return enc

    def _require_encounter(self) -> Encounter:
        if self.encounter is None:
            raise NotFoundError("No active encounter")
        return self.encounter

    def _ensure_encounter(self) -> Encounter:
        return self.encounter or self._new_encounter()

    def _touch(self) -> None:
        if self.encounter is not None:
            self.encounter.version += 1

    def _invalid(self, title: str, msg: str):
        self.toasts.error(title, msg)
        raise WorkflowValidationError(msg)

    def _api_failed(self, title: str, exc: PharmacyApiError):
        self.toasts.error(title, exc.msg or "Request failed")
        raise exc

    def _item(self, item_id: str) -> DispensingItem:
        item = self._require_encounter().find_item(item_id)
        if item is None:
            raise NotFoundError(f"Item {item_id} not found")
        return item

    @_locked
    def check_version(self, expected: Optional[int]) -> None:
        if expected is None or self.encounter is None:
            return
        if self.encounter.version != expected:
            raise StaleEncounterError(
                f"Encounter changed (now version {self.encounter.version}); reload and retry")

    # =========================================================
    # Derived values
    # =========================================================

    def grand_total(self) -> Decimal:
        enc = self._require_encounter()
        return composer.grand_total(enc.items, enc.dispensing_fee)

    def payment_blockers(self) -> List[str]:
        enc = self._require_encounter()
        return payment_blockers(
            enc.payment,
            self.grand_total(),
            policy=self.claim_policy,
            base_currency=self.settings.BASE_CURRENCY,
            rates=self.settings.EXCHANGE_RATES,
        )

    def completion_blockers(self) -> List[str]:
        enc = self._require_encounter()
        blockers: List[str] = []
        if not enc.items:
            blockers.append("Add at least one item")
        elif not verification.all_verified(enc.items) or verification.progress(enc.items) < 100:
            pending = len(enc.items) - verification.verified_count(enc.items)
            blockers.append(f"{pending} item(s) not verified")
        if enc.prescription_id is None:
            blockers.append("Save the prescription first")
        blockers.extend(self.payment_blockers())
        return blockers

    def can_complete(self) -> bool:
        return self.encounter is not None and not self.completion_blockers()

    def tab_blockers(self, tab: Tab) -> List[str]:
        """What stops the till from leaving `tab` forwards."""
        enc = self._require_encounter()
        if tab == Tab.CUSTOMER:
            if enc.source == EncounterSource.PENDING:
                return []
            missing = missing_customer_fields(enc.customer)
            return [f"{label} is required" for label in missing]
        if tab == Tab.PRESCRIPTION:
            return [] if enc.items else ["Add at least one item"]
        if tab == Tab.MEDICAL_AID:
            return self.payment_blockers()
        return []

    @_locked
    def view(self, drain_toasts: bool = True) -> EncounterView:
        toasts = self.toasts.drain() if drain_toasts else self.toasts.peek()
        enc = self.encounter
        if enc is None:
            return EncounterView(toasts=toasts)
        total = self.grand_total()
        blockers = self.completion_blockers()
        return EncounterView(
            encounter=enc,
            progress=verification.progress(enc.items),
            verified_count=verification.verified_count(enc.items),
            total_items=len(enc.items),
            subtotal=composer.subtotal(enc.items),
            grand_total=total,
            change=change_due(enc.payment, total, self.settings.BASE_CURRENCY,
                              self.settings.EXCHANGE_RATES),
            missing_customer_fields=missing_customer_fields(enc.customer),
            payment_blockers=self.payment_blockers(),
            completion_blockers=blockers,
            can_complete=not blockers,
            can_print_all_labels=verification.all_verified(enc.items),
            toasts=toasts,
        )

    # =========================================================
    # Navigation
    # =========================================================

    @_locked
    def go_to(self, tab: Tab) -> Encounter:
        enc = self._require_encounter()
        here = TAB_ORDER.index(enc.active_tab)
        there = TAB_ORDER.index(tab)
        for leaving in TAB_ORDER[here:there]:
            blockers = self.tab_blockers(leaving)
            if blockers:
                self._invalid("Cannot continue", "; ".join(blockers))
        enc.active_tab = tab
        self._touch()
        return enc

    @_locked
    def cancel(self) -> None:
        if self.encounter is not None:
            logger.info("Encounter cancelled (rx=%s)", self.encounter.prescription_id)
        self.encounter = None
        self.search_results = []

    # =========================================================
    # Customer intake
    # =========================================================

    def customer_missing_fields(self) -> List[str]:
        return missing_customer_fields(self._require_encounter().customer)

    def customer_is_valid(self) -> bool:
        return self.encounter is not None and not self.customer_missing_fields()

    @_locked
    def update_customer(self, **fields) -> Customer:
        enc = self._ensure_encounter()
        data = enc.customer.model_dump()
        data.update({k: v for k, v in fields.items() if v is not None})
        enc.customer = Customer.model_validate(data)
        self._touch()
        return enc.customer

    @_locked
    def save_customer(self) -> Customer:
        enc = self._require_encounter()
        missing = missing_customer_fields(enc.customer)
        if missing:
            self._invalid("Missing details", ", ".join(missing) + " required")
        try:
            saved = self.api.save_customer(enc.customer)
        except PharmacyApiError as e:
            self._api_failed("Customer not saved", e)
        enc.customer = saved
        self.toasts.info("Customer Saved", f"{saved.full_name()} saved")
        self._touch()
        return saved

    # =========================================================
    # Prescription composer
    # =========================================================

    @_locked
    def search_medicines(self, q: str) -> List[Medicine]:
        term = (q or "").strip()
        if len(term) < MIN_SEARCH_LENGTH:
            self.search_results = []
            return []
        try:
            self.search_results = self.api.search_medicines(term)
        except PharmacyApiError as e:
            self._api_failed("Medicine search failed", e)
        return self.search_results

    @_locked
    def select_medicine(self, medicine: Medicine) -> LineDraft:
        enc = self._ensure_encounter()
        enc.draft = composer.draft_from_medicine(medicine, enc.draft)
        self._touch()
        return enc.draft

    @_locked
    def select_search_result(self, medicine_id: int) -> LineDraft:
        for m in self.search_results:
            if m.id == medicine_id:
                return self.select_medicine(m)
        raise NotFoundError(f"Medicine {medicine_id} is not in the last search results")

    @_locked
    def update_draft(self, **fields) -> LineDraft:
        enc = self._ensure_encounter()
        data = enc.draft.model_dump()
        data.update({k: v for k, v in fields.items() if v is not None})
        draft = LineDraft.model_validate(data)
        draft.interpreted_instructions = interpret(draft.instructions)
        enc.draft = draft
        self._touch()
        return draft

    def interpret_instructions(self, text: str) -> str:
        return interpret(text)

    def _before_line_change(self, enc: Encounter) -> None:
        """
        Saved prescriptions and their scans only cover the lines as saved;
        a walk-in edit drops both, pending prescriptions are read-only.
        """
        if enc.source == EncounterSource.PENDING:
            self._invalid("Prescription is read-only",
                          f"Items of prescription #{enc.prescription_id} cannot be changed here")
        if enc.prescription_id is None:
            return
        saved_id = enc.prescription_id
        enc.prescription_id = None
        enc.scan_target_id = None
        for item in enc.items:
            item.verified = False
            item.scanned_barcode = None
            item.label_printed = False
        self.toasts.info("Prescription Changed",
                         f"Prescription #{saved_id} no longer matches; save again and re-scan")
        logger.info("Saved prescription %s invalidated by a line edit", saved_id)

    @_locked
    def add_item(self) -> DispensingItem:
        enc = self._ensure_encounter()
        errors = composer.draft_errors(enc.draft)
        if errors:
            self._invalid("Cannot add item", "; ".join(errors))
        self._before_line_change(enc)
        item = composer.item_from_draft(enc.draft, f"L{next(self._line_ids)}")
        enc.items.append(item)
        enc.draft = LineDraft()
        self._touch()
        return item

    @_locked
    def update_item(self, item_id: str, *, quantity: Optional[int] = None,
                    unit_price: Optional[Decimal] = None, price: Optional[Decimal] = None,
                    instructions: Optional[str] = None) -> Optional[DispensingItem]:
        """Returns None when a quantity below 1 removed the line."""
        enc = self._require_encounter()
        item = self._item(item_id)
        if quantity is None and unit_price is None and price is None and instructions is None:
            return item
        if (unit_price is not None and unit_price < 0) or (price is not None and price < 0):
            self._invalid("Invalid price", "Price cannot be negative")
        self._before_line_change(enc)
        if quantity is not None:
            if not composer.set_quantity(enc.items, item, quantity):
                if enc.scan_target_id == item_id:
                    enc.scan_target_id = None
                self._touch()
                return None
        if unit_price is not None:
            composer.set_unit_price(item, unit_price)
        if price is not None:
            composer.set_line_price(item, price)
        if instructions is not None:
            composer.set_instructions(item, instructions)
        self._touch()
        return item

    @_locked
    def remove_item(self, item_id: str) -> None:
        enc = self._require_encounter()
        item = self._item(item_id)
        self._before_line_change(enc)
        enc.items.remove(item)
        if enc.scan_target_id == item_id:
            enc.scan_target_id = None
        self._touch()

    @_locked
    def set_dispensing_fee(self, fee: Decimal) -> Decimal:
        enc = self._ensure_encounter()
        if fee < 0:
            self._invalid("Invalid fee", "Dispensing fee cannot be negative")
        enc.dispensing_fee = round_money(fee)
        self._touch()
        return enc.dispensing_fee

    @_locked
    def save_prescription(self) -> int:
        enc = self._require_encounter()
        if enc.source == EncounterSource.PENDING:
            self._invalid("Cannot save prescription",
                          f"Prescription #{enc.prescription_id} is already on record")
        if enc.prescription_id is not None:
            self._invalid("Cannot save prescription",
                          f"Already saved as prescription #{enc.prescription_id}")
        if verification.verified_count(enc.items):
            self._invalid("Cannot save prescription", "Items were already verified")
        if not enc.items:
            self._invalid("Cannot save prescription", "Add at least one item")
        missing = missing_customer_fields(enc.customer)
        if missing:
            self._invalid("Missing details", ", ".join(missing) + " required")
        payload = {
            "customerId": enc.customer.id,
            "patientName": enc.patient_display_name(),
            "items": [{
                "medicineId": i.medicine_id,
                "name": i.name,
                "dosage": i.dosage,
                "quantity": i.quantity,
                "unitPrice": str(round_money(i.unit_price)),
                "total": str(i.total),
                "instructions": i.instructions,
            } for i in enc.items],
            "dispensingFee": str(enc.dispensing_fee),
            "total": str(self.grand_total()),
        }
        try:
            rx_id = self.api.save_manual_prescription(payload)
        except PharmacyApiError as e:
            self._api_failed("Prescription not saved", e)
        enc.prescription_id = rx_id
        self.toasts.info("Prescription Saved", f"Prescription #{rx_id} saved")
        self._touch()
        return rx_id

    @_locked
    def register_custom_medicine(self, data: CustomMedicineIn) -> Medicine:
        try:
            medicine = self.api.add_medicine(data)
        except PharmacyApiError as e:
            self._api_failed("Medicine not added", e)
        self.toasts.info("Medicine Added", f"{medicine.name} added to the catalogue")
        return medicine

    # =========================================================
    # Pending prescriptions
    # =========================================================

    def pending(self, refresh: bool = False) -> List[PendingPrescription]:
        if self.poller is None:
            return self.api.pending_prescriptions()
        if refresh or self.poller.refreshed_at is None:
            return self.poller.refresh_now()
        return self.poller.snapshot()

    @_locked
    def select_pending(self, prescription_id: int) -> Encounter:
        rx = self.poller.find(prescription_id) if self.poller else None
        if rx is None:
            rx = next((p for p in self.pending(refresh=True) if p.id == prescription_id), None)
        if rx is None:
            raise NotFoundError(f"Prescription {prescription_id} is not awaiting dispensing")

        items = []
        for line in rx.items:
            unit_price = line.unit_price or Decimal("0")
            items.append(DispensingItem(
                id=str(line.id),
                medicine_id=line.medicine_id,
                name=line.medicine_name,
                dosage=line.dosage or composer.extract_dosage(line.medicine_name),
                quantity=line.prescribed_quantity,
                unit_price=unit_price,
                total=round_money(unit_price * line.prescribed_quantity),
                instructions=line.instructions or "",
                interpreted_instructions=interpret(line.instructions or ""),
                batch_number=line.batch_number,
                expiry_date=line.expiry_date,
                stock_quantity=line.stock_quantity,
                verified=False,
            ))

        enc = self._new_encounter(
            source=EncounterSource.PENDING,
            prescription_id=rx.id,
            patient_name=rx.patient_name,
            doctor_name=rx.doctor_name,
            priority=rx.priority,
            items=items,
            active_tab=Tab.SCAN,
        )
        return enc

    # =========================================================
    # Barcode verification
    # =========================================================

    @_locked
    def set_scan_target(self, item_id: str) -> DispensingItem:
        enc = self._require_encounter()
        item = self._item(item_id)
        enc.scan_target_id = item.id
        self._touch()
        return item

    @_locked
    def verify_barcode(self, barcode: str) -> bool:
        """
        True when the scanned code matched the target item. A mismatch or
        an API failure leaves every item as it was.
        """
        enc = self._require_encounter()
        code = (barcode or "").strip()
        if not code:
            self._invalid("No barcode", "Scan or enter a barcode")
        if enc.prescription_id is None:
            self._invalid("Prescription not saved",
                          "Save the prescription before verifying items")

        target = enc.find_item(enc.scan_target_id) if enc.scan_target_id else None
        if target is None or target.verified:
            target = verification.next_unverified(enc.items)
        if target is None:
            self.toasts.info("All Items Verified", "All prescription items have been verified")
            return False
        if target.medicine_id is None:
            self._invalid("Cannot verify", f"{target.name} is not linked to a catalogue medicine")

        enc.scan_input = code
        try:
            result = self.api.verify_barcode(code, target.medicine_id, enc.prescription_id)
        except PharmacyApiError as e:
            self.toasts.error("Verification Failed",
                              e.msg or "Invalid barcode or medicine mismatch")
            return False

        if not result.success:
            self.toasts.error("Verification Failed",
                              result.message or "Invalid barcode or medicine mismatch")
            return False

        target.verified = True
        target.scanned_barcode = code
        enc.scan_input = ""
        nxt = verification.next_unverified(enc.items)
        enc.scan_target_id = nxt.id if nxt else None
        self.toasts.info("Barcode Verified",
                         f"Medicine verified: {result.medicine_name or target.name}")
        logger.info("Item %s verified (%.2f%% complete)", target.id,
                    verification.progress(enc.items))
        self._touch()
        return True

    # =========================================================
    # Batches (FEFO)
    # =========================================================

    def _inventory_batches(self, refresh: bool = False) -> List[Batch]:
        if self._batches is None or refresh:
            try:
                self._batches = self.api.inventory_batches()
            except PharmacyApiError as e:
                self._api_failed("Batches unavailable", e)
        return self._batches

    @_locked
    def batches_for(self, medicine_id: int, refresh: bool = False) -> List[BatchOption]:
        return fefo_order(self._inventory_batches(refresh), medicine_id,
                          today=self._clock().date())

    @_locked
    def assign_batch(self, item_id: str, batch_number: str) -> DispensingItem:
        item = self._item(item_id)
        if item.medicine_id is None:
            self._invalid("No batches", f"{item.name} is not linked to a stocked medicine")
        options = self.batches_for(item.medicine_id)
        chosen = next((b for b in options if b.batch_number == batch_number), None)
        if chosen is None:
            raise NotFoundError(f"Batch {batch_number} not found for {item.name}")
        # batch assignment and verification are independent
        item.batch_number = chosen.batch_number
        item.expiry_date = chosen.expiry_date
        item.stock_quantity = chosen.stock_quantity
        self._touch()
        return item

    # =========================================================
    # Payment / medical aid
    # =========================================================

    @_locked
    def set_payment_method(self, method: PaymentMethod) -> PaymentInfo:
        enc = self._require_encounter()
        enc.payment.method = method
        enc.payment.medical_aid_claim = method == PaymentMethod.MEDICAL_AID
        self._touch()
        return enc.payment

    @_locked
    def set_payment_amount(self, amount, currency: Optional[str] = None) -> PaymentInfo:
        enc = self._require_encounter()
        try:
            parsed = parse_decimal(amount)
        except ValueError:
            self._invalid("Invalid amount", f"{amount!r} is not an amount")
        if parsed is not None and parsed < 0:
            self._invalid("Invalid amount", "Amount cannot be negative")
        code = (currency or enc.payment.currency or self.settings.BASE_CURRENCY).upper()
        if code != self.settings.BASE_CURRENCY and code not in self.settings.EXCHANGE_RATES:
            self._invalid("Unknown currency", f"No exchange rate configured for {code}")
        enc.payment.amount = parsed
        enc.payment.currency = code
        self._touch()
        return enc.payment

    @_locked
    def set_payment_reference(self, reference: str) -> PaymentInfo:
        enc = self._require_encounter()
        enc.payment.reference = (reference or "").strip() or None
        self._touch()
        return enc.payment

    @_locked
    def submit_claim(self) -> PaymentInfo:
        enc = self._require_encounter()
        if enc.payment.method != PaymentMethod.MEDICAL_AID:
            self._invalid("Not a medical aid sale", "Select Medical Aid as the payment method")
        try:
            payload = claim_payload(enc.customer, enc.prescription_id, enc.items,
                                    self.grand_total(), self._clock().date())
        except WorkflowValidationError as e:
            self._invalid("Claim not submitted", e.msg)

        try:
            result = self.api.submit_claim(payload)
        except PharmacyApiError as e:
            enc.payment.claim_status = ClaimStatus.FAILED
            enc.payment.claim_message = e.msg
            self._touch()
            self._api_failed("Claim submission failed", e)

        enc.payment.claim_status = claim_status_from(result)
        enc.payment.claim_reference = (
            result.approval_code or (str(result.claim_id) if result.claim_id else None))
        enc.payment.claim_message = result.message or None
        if result.success:
            self.toasts.info("Claim Submitted", result.message or enc.payment.claim_status.value)
        else:
            self.toasts.error("Claim Rejected", result.message or "The medical aid rejected the claim")
        self._touch()
        return enc.payment

    # =========================================================
    # Labels
    # =========================================================

    @_locked
    def preview_label(self, item_id: str) -> MedicationLabel:
        enc = self._require_encounter()
        return build_label(enc, self._item(item_id), self.settings, self._clock().date())

    @_locked
    def label_pdf(self, item_ids: Optional[List[str]] = None) -> bytes:
        enc = self._require_encounter()
        ids = item_ids or [i.id for i in enc.items]
        labels = [build_label(enc, self._item(i), self.settings, self._clock().date()) for i in ids]
        return build_labels_pdf(labels)

    @_locked
    def print_label(self, item_id: str) -> MedicationLabel:
        enc = self._require_encounter()
        item = self._item(item_id)
        if not item.verified:
            self._invalid("Label not printed", f"Verify {item.name} before printing its label")
        try:
            self.api.print_medication_label(enc.prescription_id, [item])
        except PharmacyApiError as e:
            self._api_failed("Label not printed", e)
        item.label_printed = True
        self.toasts.info("Label Printed", f"Label printed for {item.name}")
        self._touch()
        return build_label(enc, item, self.settings, self._clock().date())

    @_locked
    def print_all_labels(self) -> List[MedicationLabel]:
        enc = self._require_encounter()
        if not verification.all_verified(enc.items):
            self._invalid("Labels not printed", "Every item must be verified before printing all labels")
        try:
            self.api.print_medication_label(enc.prescription_id, enc.items)
        except PharmacyApiError as e:
            self._api_failed("Labels not printed", e)
        for item in enc.items:
            item.label_printed = True
        self.toasts.info("Labels Printed", f"{len(enc.items)} medication label(s) printed")
        self._touch()
        today = self._clock().date()
        return [build_label(enc, i, self.settings, today) for i in enc.items]

    # =========================================================
    # Completion / POS
    # =========================================================

    @_locked
    def complete(self) -> CompletedSale:
        """
        Complete dispensing, then hand the sale to the POS. The POS
        reference is only issued after the API confirmed completion; on
        failure the encounter is left exactly as it was.
        """
        enc = self._require_encounter()
        blockers = self.completion_blockers()
        if blockers:
            self._invalid("Cannot complete dispensing", "; ".join(blockers))

        labels_printed = bool(enc.items) and all(i.label_printed for i in enc.items)
        try:
            self.api.complete_dispensing(enc.prescription_id, enc.items, labels_printed)
        except PharmacyApiError as e:
            self._api_failed("Dispensing not completed", e)

        now = self._clock()
        total = self.grand_total()
        base = self.settings.BASE_CURRENCY
        rates = self.settings.EXCHANGE_RATES
        sale = CompletedSale(
            pos_reference=f"POS-{now:%Y%m%d-%H%M%S}-{enc.prescription_id}",
            prescription_id=enc.prescription_id,
            completed_at=now,
            patient_name=enc.patient_display_name(),
            items=[i.model_copy() for i in enc.items],
            subtotal=composer.subtotal(enc.items),
            dispensing_fee=enc.dispensing_fee,
            grand_total=total,
            payment=enc.payment.model_copy(),
            amount_in_base=amount_in_base(enc.payment, base, rates),
            change=change_due(enc.payment, total, base, rates),
            base_currency=base,
        )
        self.last_sale = sale
        self.toasts.info("Sent to POS",
                         f"Dispensing complete. POS reference {sale.pos_reference}")
        logger.info("Dispensing complete rx=%s total=%s pos=%s", sale.prescription_id,
                    sale.grand_total, sale.pos_reference)

        self.encounter = None
        self.search_results = []
        self._batches = None
        if self.poller is not None:
            try:
                self.poller.refresh_now()
            except PharmacyApiError as e:
                logger.warning("Pending list not refreshed after completion: %s", e.msg)
        return sale

    @_locked
    def receipt_pdf(self) -> bytes:
        if self.last_sale is None:
            raise NotFoundError("No completed sale")
        return build_receipt_pdf(self.last_sale, self.settings)
