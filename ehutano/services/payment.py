# FILE: ehutano/services/payment.py
from __future__ import annotations

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from ehutano.core.errors import WorkflowValidationError
from ehutano.schemas.dispensing import (
    ClaimResult,
    ClaimStatus,
    Customer,
    DispensingItem,
    PaymentInfo,
    PaymentMethod,
)
from ehutano.utils.money import round_money
from ehutano.utils.text import is_blank


class ClaimPolicy(str, Enum):
    """How a medical-aid claim outcome gates completing the sale."""

    FIRE_AND_FORGET = "fire_and_forget"
    REQUIRE_SUBMITTED = "require_submitted"
    REQUIRE_APPROVED = "require_approved"


def parse_policy(value: str) -> ClaimPolicy:
    try:
        return ClaimPolicy((value or "").strip().lower())
    except ValueError:
        raise ValueError(f"Unknown MEDICAL_AID_CLAIM_POLICY: {value!r}")


# ---------- Currency ----------


def to_base(
    amount: Decimal,
    currency: str,
    base_currency: str,
    rates: Mapping[str, Decimal],
) -> Decimal:
    """
    Convert a tendered amount into the base currency.
    rates[X] is units of X per one unit of base currency.
    """
    code = (currency or base_currency).upper()
    if code == base_currency.upper():
        return Decimal(amount)
    rate = rates.get(code)
    if not rate:
        raise WorkflowValidationError(f"No exchange rate configured for {code}")
    return Decimal(amount) / rate


def amount_in_base(payment: PaymentInfo, base_currency: str,
                   rates: Mapping[str, Decimal]) -> Optional[Decimal]:
    if payment.amount is None:
        return None
    return round_money(to_base(payment.amount, payment.currency, base_currency, rates))


def change_due(payment: PaymentInfo, total: Decimal, base_currency: str,
               rates: Mapping[str, Decimal]) -> Optional[Decimal]:
    """amount - total for cash; negative while the customer still owes."""
    if payment.method != PaymentMethod.CASH:
        return None
    tendered = amount_in_base(payment, base_currency, rates)
    if tendered is None:
        return None
    return round_money(tendered - total)


# ---------- Gating ----------


def payment_blockers(
    payment: PaymentInfo,
    total: Decimal,
    *,
    policy: ClaimPolicy,
    base_currency: str,
    rates: Mapping[str, Decimal],
) -> List[str]:
    blockers: List[str] = []
    method = payment.method

    if method is None:
        return ["Select a payment method"]

    if method == PaymentMethod.CASH:
        tendered = amount_in_base(payment, base_currency, rates)
        if tendered is None:
            blockers.append("Enter the cash amount received")
        elif tendered < total:
            blockers.append("Cash received is less than the total due")

    elif method in (PaymentMethod.CARD, PaymentMethod.MOBILE_MONEY):
        if is_blank(payment.reference):
            blockers.append("Enter the transaction reference")

    elif method == PaymentMethod.MEDICAL_AID:
        status = payment.claim_status
        if policy == ClaimPolicy.REQUIRE_SUBMITTED and status not in (
                ClaimStatus.SUBMITTED, ClaimStatus.APPROVED):
            blockers.append("Submit the medical aid claim first")
        elif policy == ClaimPolicy.REQUIRE_APPROVED and status != ClaimStatus.APPROVED:
            blockers.append("Medical aid claim must be approved")

    return blockers


# ---------- Medical aid claims ----------


def claim_payload(
    customer: Customer,
    prescription_id: Optional[int],
    items: List[DispensingItem],
    total: Decimal,
    service_date: date,
) -> Dict[str, Any]:
    if is_blank(customer.medical_aid_number):
        raise WorkflowValidationError(
            "Customer has no medical aid membership number")
    return {
        "membershipNumber": customer.medical_aid_number,
        "providerName": customer.medical_aid_provider,
        "prescriptionId": prescription_id,
        "totalAmount": str(total),
        "benefitType": "PHARMACY",
        "serviceDate": service_date.isoformat(),
        "items": [{
            "medicineId": i.medicine_id,
            "medicineName": i.name,
            "quantity": i.quantity,
            "unitPrice": str(round_money(i.unit_price)),
            "totalPrice": str(i.total),
            "dosage": i.dosage,
        } for i in items],
    }


def claim_status_from(result: ClaimResult) -> ClaimStatus:
    if not result.success:
        return ClaimStatus.REJECTED
    if (result.status or "").upper() in {"APPROVED", "PAID"} or result.approval_code:
        return ClaimStatus.APPROVED
    return ClaimStatus.SUBMITTED
