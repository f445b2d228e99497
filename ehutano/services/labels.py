# FILE: ehutano/services/labels.py
from __future__ import annotations

from datetime import date
from typing import List, Optional

from ehutano.core.config import Settings
from ehutano.schemas.dispensing import DispensingItem, Encounter, MedicationLabel
from ehutano.services.instructions import label_wording
from ehutano.utils.text import smart_title


def barcode_value(encounter: Encounter, item: DispensingItem) -> str:
    """Batch number when known, otherwise RX<prescription>-<line>."""
    if item.batch_number:
        return item.batch_number
    rx = encounter.prescription_id if encounter.prescription_id is not None else "WALKIN"
    return f"RX{rx}-{item.id}"


def build_label(
    encounter: Encounter,
    item: DispensingItem,
    settings: Settings,
    today: Optional[date] = None,
) -> MedicationLabel:
    return MedicationLabel(
        item_id=item.id,
        pharmacy_name=settings.PHARMACY_NAME,
        pharmacy_address=settings.PHARMACY_ADDRESS,
        pharmacy_phone=settings.PHARMACY_PHONE,
        patient_name=encounter.patient_display_name(),
        doctor_name=encounter.doctor_name or "",
        pharmacist_name=settings.PHARMACIST_NAME,
        medicine_name=smart_title(item.name),
        dosage=item.dosage,
        quantity=item.quantity,
        batch_number=item.batch_number,
        expiry_date=item.expiry_date,
        instructions=item.instructions,
        interpreted_instructions=label_wording(item.instructions),
        footer=settings.LABEL_REGULATORY_FOOTER,
        dispensed_on=today or date.today(),
        barcode_value=barcode_value(encounter, item),
    )


def label_lines(label: MedicationLabel) -> List[str]:
    """Plain-text preview, one printed line per entry."""
    lines = [label.pharmacy_name]
    if label.pharmacy_address or label.pharmacy_phone:
        lines.append(" | ".join(x for x in [label.pharmacy_address, label.pharmacy_phone] if x))
    lines.append(f"Patient: {label.patient_name}")
    if label.doctor_name:
        lines.append(f"Prescriber: Dr. {label.doctor_name}")
    lines.append(f"{label.medicine_name} {label.dosage}".strip() + f"  Qty: {label.quantity}")
    lines.append(label.interpreted_instructions or label.instructions or "Use as directed")
    batch = label.batch_number or "-"
    expiry = label.expiry_date.strftime("%d-%m-%Y") if label.expiry_date else "-"
    lines.append(f"Batch: {batch}  Exp: {expiry}")
    pharmacist = f"Pharmacist: {label.pharmacist_name}  " if label.pharmacist_name else ""
    lines.append(f"{pharmacist}Date: {label.dispensed_on.strftime('%d-%m-%Y')}")
    if label.footer:
        lines.append(label.footer)
    return lines
