# FILE: ehutano/services/verification.py
from __future__ import annotations

from typing import List, Optional

from ehutano.schemas.dispensing import DispensingItem


def verified_count(items: List[DispensingItem]) -> int:
    return sum(1 for i in items if i.verified)


def progress(items: List[DispensingItem]) -> float:
    """Verified share in percent, two decimals (2 of 3 -> 66.67)."""
    if not items:
        return 0.0
    return round(verified_count(items) / len(items) * 100, 2)


def all_verified(items: List[DispensingItem]) -> bool:
    return bool(items) and all(i.verified for i in items)


def next_unverified(items: List[DispensingItem]) -> Optional[DispensingItem]:
    for item in items:
        if not item.verified:
            return item
    return None
