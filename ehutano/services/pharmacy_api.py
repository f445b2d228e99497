# FILE: ehutano/services/pharmacy_api.py
"""
Client for the ehutano+ pharmacy REST API.

    GET  /api/v1/pharmacy/prescriptions/pending-dispensing
    GET  /api/v1/pharmacy/inventory/batches
    POST /api/v1/pharmacy/verify-barcode
    POST /api/v1/pharmacy/prescriptions/{id}/complete-dispensing
    POST /api/v1/pharmacy/print-medication-label
    POST /api/v1/pharmacy/customers
    POST /api/v1/pharmacy/prescriptions/manual
    GET  /api/v1/medicines/search?q=
    POST /api/v1/pharmacy/medicines/add
    POST /api/v1/medical-aid/submit-direct-claim

Every call carries "Authorization: Bearer <token>" from the AuthContext.
Calls are made once; retrying is the caller's decision.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests

from ehutano.core.auth import AuthContext
from ehutano.core.errors import PharmacyApiError
from ehutano.schemas.dispensing import (
    BarcodeVerification,
    Batch,
    ClaimResult,
    Customer,
    CustomMedicineIn,
    DispensingItem,
    Medicine,
    PendingPrescription,
)

logger = logging.getLogger(__name__)

API = "/api/v1"


def _error_message(resp: requests.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("message", "error", "detail"):
            val = body.get(key)
            if isinstance(val, str) and val.strip():
                return val
            if isinstance(val, dict) and isinstance(val.get("msg"), str):
                return val["msg"]
    text = (resp.text or "").strip()
    return text[:200] or f"{resp.status_code} {resp.reason or 'error'}"


ENVELOPE_KEYS = frozenset({"status", "message", "msg", "error", "code"})


def _unwrap(body: Any) -> Any:
    """
    Some endpoints answer {"data": ...}, others the bare payload. Only a
    pure envelope is unwrapped; any other sibling key means "data" is just
    one field of the payload.
    """
    if isinstance(body, dict) and "data" in body and set(body) - {"data"} <= ENVELOPE_KEYS:
        return body["data"]
    return body


class PharmacyApiClient:

    def __init__(
        self,
        base_url: str,
        auth: AuthContext,
        *,
        timeout: float = 15.0,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.auth = auth
        self.timeout = timeout
        self.session = session or requests.Session()

    # ---------------- transport ----------------

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        token = self.auth.get_token()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def _request(self, method: str, path: str, *, params=None, json=None) -> Any:
        url = f"{self.base_url}{path}"
        try:
            resp = self.session.request(
                method,
                url,
                params=params,
                json=json,
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error("%s %s failed: %s", method, path, e)
            raise PharmacyApiError("Pharmacy service is unreachable") from e

        if resp.status_code == 401:
            self.auth.on_unauthorized()
            raise PharmacyApiError("Your session has expired. Please log in again.", 401)

        if resp.status_code >= 400:
            msg = _error_message(resp)
            logger.error("%s %s returned %s: %s", method, path, resp.status_code, msg)
            raise PharmacyApiError(msg, resp.status_code)

        if resp.status_code == 204 or not resp.content:
            return None
        try:
            return _unwrap(resp.json())
        except ValueError as e:
            raise PharmacyApiError("Pharmacy service sent an invalid response",
                                   resp.status_code) from e

    # ---------------- prescriptions ----------------

    def pending_prescriptions(self) -> List[PendingPrescription]:
        body = self._request("GET", f"{API}/pharmacy/prescriptions/pending-dispensing")
        return [PendingPrescription.model_validate(p) for p in (body or [])]

    def save_manual_prescription(self, payload: Dict[str, Any]) -> int:
        body = self._request("POST", f"{API}/pharmacy/prescriptions/manual", json=payload)
        rx_id = (body or {}).get("id") if isinstance(body, dict) else None
        if rx_id is None:
            raise PharmacyApiError("Prescription saved without an id")
        return int(rx_id)

    def complete_dispensing(self, prescription_id: int, items: List[DispensingItem],
                            label_printed: bool) -> Any:
        return self._request(
            "POST",
            f"{API}/pharmacy/prescriptions/{prescription_id}/complete-dispensing",
            json={
                "items": [i.model_dump(mode="json", by_alias=True) for i in items],
                "labelPrinted": label_printed,
            },
        )

    # ---------------- inventory ----------------

    def inventory_batches(self) -> List[Batch]:
        body = self._request("GET", f"{API}/pharmacy/inventory/batches")
        return [Batch.model_validate(b) for b in (body or [])]

    def verify_barcode(self, barcode: str, medicine_id: Optional[int],
                       prescription_id: int) -> BarcodeVerification:
        body = self._request(
            "POST",
            f"{API}/pharmacy/verify-barcode",
            json={
                "barcode": barcode,
                "medicineId": medicine_id,
                "prescriptionId": prescription_id,
            },
        )
        return BarcodeVerification.model_validate(body or {})

    def print_medication_label(self, prescription_id: Optional[int],
                               items: List[DispensingItem]) -> Any:
        return self._request(
            "POST",
            f"{API}/pharmacy/print-medication-label",
            json={
                "prescriptionId": prescription_id,
                "items": [i.model_dump(mode="json", by_alias=True) for i in items],
            },
        )

    # ---------------- customers ----------------

    def save_customer(self, customer: Customer) -> Customer:
        payload = customer.model_dump(mode="json", by_alias=True, exclude_none=True)
        body = self._request("POST", f"{API}/pharmacy/customers", json=payload)
        if not isinstance(body, dict):
            return customer
        # keep what the till typed for anything the API does not echo
        merged = {**payload, **body}
        return Customer.model_validate(merged)

    # ---------------- medicines ----------------

    def search_medicines(self, q: str) -> List[Medicine]:
        body = self._request("GET", f"{API}/medicines/search", params={"q": q})
        return [Medicine.model_validate(m) for m in (body or [])]

    def add_medicine(self, medicine: CustomMedicineIn) -> Medicine:
        payload = medicine.model_dump(mode="json", by_alias=True, exclude_none=True)
        body = self._request("POST", f"{API}/pharmacy/medicines/add", json=payload)
        if not isinstance(body, dict) or body.get("id") is None:
            raise PharmacyApiError("Medicine saved without an id")
        return Medicine.model_validate({**payload, **body})

    # ---------------- medical aid ----------------

    def submit_claim(self, payload: Dict[str, Any]) -> ClaimResult:
        body = self._request("POST", f"{API}/medical-aid/submit-direct-claim", json=payload)
        return ClaimResult.model_validate(body or {})
