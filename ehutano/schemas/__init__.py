# ehutano/schemas/__init__.py
from .dispensing import (
    Batch,
    BatchOption,
    CompletedSale,
    Customer,
    DispensingItem,
    Encounter,
    EncounterView,
    MedicationLabel,
    Medicine,
    PaymentInfo,
    PaymentMethod,
    PendingPrescription,
    Tab,
)
__all__ = [
    "Batch",
    "BatchOption",
    "CompletedSale",
    "Customer",
    "DispensingItem",
    "Encounter",
    "EncounterView",
    "MedicationLabel",
    "Medicine",
    "PaymentInfo",
    "PaymentMethod",
    "PendingPrescription",
    "Tab",
]
