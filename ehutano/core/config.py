# ehutano/core/config.py
import os
from decimal import Decimal
from typing import Dict, List
from pydantic import BaseModel
from dotenv import load_dotenv

load_dotenv()


def _split_csv(value: str) -> List[str]:
    return [v.strip() for v in (value or "").split(",") if v.strip()]


def _as_bool(value: str) -> bool:
    return (value or "").strip().lower() in {"1", "true", "yes"}


def _parse_rates(value: str) -> Dict[str, Decimal]:
    """
    "ZWG=26.5,ZAR=18.4" -> {"ZWG": Decimal("26.5"), "ZAR": Decimal("18.4")}

    Rates are units of the foreign currency per one unit of BASE_CURRENCY.
    """
    rates: Dict[str, Decimal] = {}
    for pair in _split_csv(value):
        code, _, rate = pair.partition("=")
        if code.strip() and rate.strip():
            rates[code.strip().upper()] = Decimal(rate.strip())
    return rates


class Settings(BaseModel):
    PROJECT_NAME: str = os.getenv("PROJECT_NAME", "ehutano+ Dispensing Console")
    API_V1_STR: str = os.getenv("API_V1_STR", "/api/v1")

    # CORS (env takes priority)
    BACKEND_CORS_ORIGINS: List[str] = _split_csv(
        os.getenv(
            "CORS_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173",
        ))

    # ---------- Upstream pharmacy API ----------
    PHARMACY_API_BASE_URL: str = os.getenv("PHARMACY_API_BASE_URL",
                                           "http://127.0.0.1:5000")
    PHARMACY_API_TOKEN: str = os.getenv("PHARMACY_API_TOKEN", "")
    REQUEST_TIMEOUT_SECONDS: float = float(
        os.getenv("REQUEST_TIMEOUT_SECONDS", "15"))

    # ---------- Pending prescriptions ----------
    PENDING_POLL_SECONDS: float = float(os.getenv("PENDING_POLL_SECONDS", "30"))
    PENDING_POLL_ENABLED: bool = _as_bool(
        os.getenv("PENDING_POLL_ENABLED", "true"))

    # ---------- Sale ----------
    DEFAULT_DISPENSING_FEE: Decimal = Decimal(
        os.getenv("DEFAULT_DISPENSING_FEE", "1.00"))
    BASE_CURRENCY: str = os.getenv("BASE_CURRENCY", "USD").upper()
    EXCHANGE_RATES: Dict[str, Decimal] = _parse_rates(
        os.getenv("EXCHANGE_RATES", "ZWG=26.5"))

    # fire_and_forget | require_submitted | require_approved
    MEDICAL_AID_CLAIM_POLICY: str = os.getenv("MEDICAL_AID_CLAIM_POLICY",
                                              "fire_and_forget").lower()

    # ---------- Labels & receipts ----------
    PHARMACY_NAME: str = os.getenv("PHARMACY_NAME", "ehutano+ Pharmacy")
    PHARMACY_ADDRESS: str = os.getenv("PHARMACY_ADDRESS", "Harare, Zimbabwe")
    PHARMACY_PHONE: str = os.getenv("PHARMACY_PHONE", "")
    PHARMACIST_NAME: str = os.getenv("PHARMACIST_NAME", "")
    LABEL_REGULATORY_FOOTER: str = os.getenv(
        "LABEL_REGULATORY_FOOTER",
        "Keep out of reach of children. Store below 25°C. "
        "Dispensed under MCAZ regulations.",
    )

    # ---------- Logging ----------
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    LOG_FILE: str = os.getenv("LOG_FILE", "")


settings = Settings()
