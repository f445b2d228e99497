# FILE: ehutano/services/batches.py
from __future__ import annotations

from datetime import date
from typing import Iterable, List, Optional

from ehutano.schemas.dispensing import Batch, BatchOption

CRITICAL_DAYS = 30
WARNING_DAYS = 90


def expiry_status(expiry: Optional[date], today: Optional[date] = None) -> str:
    if expiry is None:
        return "unknown"
    days = (expiry - (today or date.today())).days
    if days <= CRITICAL_DAYS:
        return "critical"
    if days <= WARNING_DAYS:
        return "warning"
    return "ok"


def fefo_order(
    batches: Iterable[Batch],
    medicine_id: int,
    today: Optional[date] = None,
) -> List[BatchOption]:
    """
    FEFO (First-Expiry-First-Out) listing for one medicine.

    - Earliest expiry first, undated batches last
    - Ties keep the order the API returned them in (stable sort)
    - The first entry is flagged dispense_first
    """
    mine = [b for b in batches if b.medicine_id == medicine_id]
    mine.sort(key=lambda b: (b.expiry_date is None, b.expiry_date or date.max))

    options: List[BatchOption] = []
    for idx, b in enumerate(mine):
        options.append(
            BatchOption(
                **b.model_dump(),
                dispense_first=(idx == 0),
                expiry_status=expiry_status(b.expiry_date, today),
            ))
    return options
