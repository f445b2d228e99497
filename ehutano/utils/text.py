# FILE: ehutano/utils/text.py
from __future__ import annotations

import re

_SMALL = {"mg", "ml", "mcg", "g", "kg", "iu", "l", "units"}
_UP = {"iv", "im", "po", "prn", "od", "bd", "tds", "tid", "qid", "hs", "stat", "sos"}

# Zimbabwe MCAZ registration suffix, e.g. "PANADO 500MG - 2004/7.4.2/3876"
_REGISTRATION_SUFFIX = re.compile(r" - \d+/[\d./]+")


def clean_medicine_name(name: str) -> str:
    """Drop the registration number the medicines register appends to names."""
    if not name:
        return ""
    return _REGISTRATION_SUFFIX.sub("", name).strip()


def smart_title(s: str) -> str:
    """
    Title-case but preserves common medical units/acronyms.
    Example: "PARACETAMOL 500 MG TABLETS" -> "Paracetamol 500 mg Tablets"
    """
    if not s:
        return ""
    s = re.sub(r"\s+", " ", s.strip())
    out = []
    for w in s.split(" "):
        lw = w.lower()
        if lw in _SMALL:
            out.append(lw)
        elif lw in _UP:
            out.append(lw.upper())
        elif re.fullmatch(r"\d+(?:\.\d+)?(mg|ml|mcg|g|iu)", lw):
            # strengths stay lower case: 500MG -> 500mg
            out.append(lw)
        elif re.fullmatch(r"[A-Za-z]\d+", w):
            # keep codes like "B12", "D3"
            out.append(w.upper())
        else:
            out.append(w[:1].upper() + w[1:].lower())
    return " ".join(out)


def is_blank(value) -> bool:
    return value is None or not str(value).strip()
