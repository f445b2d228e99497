# FILE: ehutano/services/composer.py
"""Prescription line-item composer: draft row -> priced line items."""
from __future__ import annotations

import re
from decimal import Decimal
from typing import List, Optional

from ehutano.core.errors import WorkflowValidationError
from ehutano.schemas.dispensing import DispensingItem, LineDraft, Medicine
from ehutano.services.instructions import interpret
from ehutano.utils.money import parse_decimal, round_money
from ehutano.utils.text import clean_medicine_name, is_blank

_DOSAGE_RE = re.compile(r"(\d+(?:\.\d+)?)\s*(mcg|mg|ml|g|iu|units)\b",
                        re.IGNORECASE)


def extract_dosage(name: str) -> str:
    """
    "Paracetamol 500mg Tablets" -> "500mg", "Amoxil 250 MG/5 ML" -> "250mg".
    Empty when the name carries no strength.
    """
    m = _DOSAGE_RE.search(name or "")
    if not m:
        return ""
    return f"{m.group(1)}{m.group(2).lower()}"


def draft_from_medicine(medicine: Medicine, current: Optional[LineDraft] = None) -> LineDraft:
    """
    Auto-fill from a search result: quantity defaults to the pack size and
    price to unit price x pack size. Instructions already typed are kept.
    """
    quantity = max(int(medicine.pack_size or 1), 1)
    name = clean_medicine_name(medicine.name)
    instructions = current.instructions if current else ""
    return LineDraft(
        medicine_id=medicine.id,
        name=name,
        dosage=extract_dosage(name) or (medicine.dosage or "")[:40],
        quantity=str(quantity),
        price=f"{round_money(Decimal(medicine.unit_price) * quantity):.2f}",
        instructions=instructions,
        interpreted_instructions=interpret(instructions),
    )


def draft_errors(draft: LineDraft) -> List[str]:
    errors: List[str] = []
    if is_blank(draft.name):
        errors.append("Medicine name is required")
    if is_blank(draft.quantity):
        errors.append("Quantity is required")
    else:
        try:
            qty = parse_decimal(draft.quantity)
        except ValueError:
            qty = None
        if qty is None or qty != qty.to_integral_value() or qty < 1:
            errors.append("Quantity must be a whole number of at least 1")
    if is_blank(draft.price):
        errors.append("Price is required")
    else:
        try:
            price = parse_decimal(draft.price)
        except ValueError:
            price = None
        if price is None or price < 0:
            errors.append("Price must be a non-negative amount")
    return errors


def item_from_draft(draft: LineDraft, item_id: str) -> DispensingItem:
    errors = draft_errors(draft)
    if errors:
        raise WorkflowValidationError("; ".join(errors))

    quantity = int(parse_decimal(draft.quantity))
    price = parse_decimal(draft.price)
    return DispensingItem(
        id=item_id,
        medicine_id=draft.medicine_id,
        name=draft.name.strip(),
        dosage=(draft.dosage or "").strip(),
        quantity=quantity,
        # the typed price is the line total; unit price follows from it
        unit_price=price / quantity,
        total=round_money(price),
        instructions=draft.instructions or "",
        interpreted_instructions=interpret(draft.instructions or ""),
    )


# ---------- Line edits (total == money(unit_price * quantity)) ----------


def set_quantity(items: List[DispensingItem], item: DispensingItem, quantity: int) -> bool:
    """Returns False when the edit removed the item (quantity below 1)."""
    if quantity < 1:
        items.remove(item)
        return False
    item.quantity = quantity
    item.total = round_money(item.unit_price * quantity)
    return True


def set_unit_price(item: DispensingItem, unit_price: Decimal) -> None:
    if unit_price < 0:
        raise WorkflowValidationError("Unit price cannot be negative")
    item.unit_price = Decimal(unit_price)
    item.total = round_money(item.unit_price * item.quantity)


def set_line_price(item: DispensingItem, price: Decimal) -> None:
    if price < 0:
        raise WorkflowValidationError("Price cannot be negative")
    item.unit_price = Decimal(price) / item.quantity
    item.total = round_money(item.unit_price * item.quantity)


def set_instructions(item: DispensingItem, text: str) -> None:
    item.instructions = text or ""
    item.interpreted_instructions = interpret(item.instructions)


def subtotal(items: List[DispensingItem]) -> Decimal:
    return round_money(sum((i.total for i in items), Decimal("0")))


def grand_total(items: List[DispensingItem], dispensing_fee: Decimal) -> Decimal:
    return round_money(subtotal(items) + (dispensing_fee or Decimal("0")))
