from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from ehutano.core.config import Settings
from ehutano.core.errors import PharmacyApiError
from ehutano.schemas.dispensing import (
    BarcodeVerification,
    Batch,
    ClaimResult,
    Medicine,
    PendingItem,
    PendingPrescription,
)
from ehutano.services.dispensing_workflow import DispensingWorkflow

NOW = datetime(2026, 3, 14, 9, 30, 5)


class FakePharmacyApi:
    """In-memory stand-in for PharmacyApiClient; records every call."""

    def __init__(self):
        self.calls = []
        self.fail = {}
        self.next_rx_id = 1001
        self.medicines = [
            Medicine(id=1, name="Paracetamol 500mg Tablets - 2004/7.4.2/3876",
                     pack_size=20, unit_price=Decimal("0.25")),
            Medicine(id=2, name="Amoxicillin 250mg Capsules", pack_size=21,
                     unit_price=Decimal("0.40")),
            Medicine(id=3, name="Cough Syrup 100ml", pack_size=1,
                     unit_price=Decimal("3.50")),
        ]
        self.batches = [
            Batch(medicine_id=1, batch_number="PCM-LATE", stock_quantity=100,
                  expiry_date=date(2027, 6, 30)),
            Batch(medicine_id=1, batch_number="PCM-SOON", stock_quantity=40,
                  expiry_date=date(2026, 4, 1)),
            Batch(medicine_id=2, batch_number="AMX-1", stock_quantity=63,
                  expiry_date=date(2026, 5, 20)),
        ]
        self.barcodes = {1: "6001234000011", 2: "6001234000028", 3: "6001234000035"}
        self.pending = [
            PendingPrescription(
                id=501,
                patient_name="Tendai Moyo",
                doctor_name="Chikwanha",
                priority="HIGH",
                items=[
                    PendingItem(id=9001, medicine_id=1, medicine_name="Paracetamol 500mg Tablets",
                                prescribed_quantity=20, unit_price=Decimal("0.25"),
                                instructions="t2 qds prn"),
                    PendingItem(id=9002, medicine_id=2, medicine_name="Amoxicillin 250mg Capsules",
                                prescribed_quantity=21, unit_price=Decimal("0.40"),
                                instructions="c1 tds"),
                ],
            )
        ]
        self.claim_result = ClaimResult(success=True, status="SUBMITTED",
                                        message="Claim received", claim_id=77)

    def _call(self, name, *args):
        self.calls.append((name, ) + args)
        if name in self.fail:
            raise self.fail[name]

    def called(self, name):
        return [c for c in self.calls if c[0] == name]

    # ---- PharmacyApiClient surface ----

    def pending_prescriptions(self):
        self._call("pending_prescriptions")
        return list(self.pending)

    def save_manual_prescription(self, payload):
        self._call("save_manual_prescription", payload)
        rx_id = self.next_rx_id
        self.next_rx_id += 1
        return rx_id

    def complete_dispensing(self, prescription_id, items, label_printed):
        self._call("complete_dispensing", prescription_id, items, label_printed)
        return {"message": "ok"}

    def inventory_batches(self):
        self._call("inventory_batches")
        return list(self.batches)

    def verify_barcode(self, barcode, medicine_id, prescription_id):
        self._call("verify_barcode", barcode, medicine_id, prescription_id)
        if self.barcodes.get(medicine_id) == barcode:
            name = next(m.name for m in self.medicines if m.id == medicine_id)
            return BarcodeVerification(success=True, medicine_name=name)
        return BarcodeVerification(success=False, message="Barcode does not match this medicine")

    def print_medication_label(self, prescription_id, items):
        self._call("print_medication_label", prescription_id, items)

    def save_customer(self, customer):
        self._call("save_customer", customer)
        return customer.model_copy(update={"id": customer.id or 42})

    def search_medicines(self, q):
        self._call("search_medicines", q)
        return [m for m in self.medicines if q.lower() in m.name.lower()]

    def add_medicine(self, medicine):
        self._call("add_medicine", medicine)
        return Medicine(id=99, name=medicine.name, pack_size=medicine.pack_size,
                        unit_price=medicine.unit_price)

    def submit_claim(self, payload):
        self._call("submit_claim", payload)
        return self.claim_result


def upstream_down(msg="Pharmacy service is unreachable", status=0):
    return PharmacyApiError(msg, status)


@pytest.fixture
def cfg():
    return Settings(
        PENDING_POLL_ENABLED=False,
        DEFAULT_DISPENSING_FEE=Decimal("1.00"),
        BASE_CURRENCY="USD",
        EXCHANGE_RATES={"ZWG": Decimal("26.5")},
        MEDICAL_AID_CLAIM_POLICY="fire_and_forget",
        PHARMACY_NAME="Avenues Pharmacy",
        PHARMACIST_NAME="R. Dube",
        LOG_FILE="",
    )


@pytest.fixture
def fake_api():
    return FakePharmacyApi()


@pytest.fixture
def workflow(fake_api, cfg):
    return DispensingWorkflow(fake_api, settings=cfg, clock=lambda: NOW)


@pytest.fixture
def client(fake_api, cfg):
    from ehutano.main import create_app

    app = create_app(cfg, api=fake_api)
    app.state.workflow._clock = lambda: NOW
    return TestClient(app)


# ---------- helpers ----------


def fill_customer(wf: DispensingWorkflow, **extra):
    fields = dict(first_name="Rudo", last_name="Ncube", phone="0772000111",
                  id_number="63-123456-X-42")
    fields.update(extra)
    return wf.update_customer(**fields)


def add_line(wf: DispensingWorkflow, medicine_id: int, quantity=None, price=None,
             instructions=""):
    wf.search_medicines(wf.api.medicines[medicine_id - 1].name[:6])
    wf.select_search_result(medicine_id)
    changes = {"instructions": instructions}
    if quantity is not None:
        changes["quantity"] = str(quantity)
    if price is not None:
        changes["price"] = str(price)
    wf.update_draft(**changes)
    return wf.add_item()


def saved_walk_in(wf: DispensingWorkflow, medicine_ids=(1, 2)):
    fill_customer(wf)
    items = [add_line(wf, mid) for mid in medicine_ids]
    wf.save_prescription()
    return items


def verify_all(wf: DispensingWorkflow):
    for item in list(wf.encounter.items):
        wf.set_scan_target(item.id)
        assert wf.verify_barcode(wf.api.barcodes[item.medicine_id])
