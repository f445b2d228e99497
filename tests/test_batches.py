from datetime import date

from ehutano.schemas.dispensing import Batch
from ehutano.services.batches import expiry_status, fefo_order

TODAY = date(2026, 3, 14)


def test_expiry_status_bands():
    assert expiry_status(date(2026, 4, 13), TODAY) == "critical"  # 30 days
    assert expiry_status(date(2026, 4, 14), TODAY) == "warning"
    assert expiry_status(date(2026, 6, 12), TODAY) == "warning"  # 90 days
    assert expiry_status(date(2026, 6, 13), TODAY) == "ok"
    assert expiry_status(date(2026, 1, 1), TODAY) == "critical"
    assert expiry_status(None, TODAY) == "unknown"


def test_fefo_sorts_by_expiry_and_flags_first():
    batches = [
        Batch(medicine_id=1, batch_number="LATE", expiry_date=date(2027, 1, 1)),
        Batch(medicine_id=2, batch_number="OTHER", expiry_date=date(2026, 3, 20)),
        Batch(medicine_id=1, batch_number="NODATE"),
        Batch(medicine_id=1, batch_number="SOON", expiry_date=date(2026, 4, 1)),
    ]
    options = fefo_order(batches, 1, TODAY)
    assert [b.batch_number for b in options] == ["SOON", "LATE", "NODATE"]
    assert [b.dispense_first for b in options] == [True, False, False]
    assert [b.expiry_status for b in options] == ["critical", "ok", "unknown"]


def test_fefo_is_stable_for_equal_expiry():
    same = date(2026, 9, 1)
    batches = [
        Batch(medicine_id=1, batch_number="A", expiry_date=same),
        Batch(medicine_id=1, batch_number="B", expiry_date=same),
        Batch(medicine_id=1, batch_number="C", expiry_date=same),
    ]
    assert [b.batch_number for b in fefo_order(batches, 1, TODAY)] == ["A", "B", "C"]


def test_fefo_for_unknown_medicine_is_empty():
    assert fefo_order([Batch(medicine_id=1, batch_number="A")], 5, TODAY) == []
