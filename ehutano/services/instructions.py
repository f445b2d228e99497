# FILE: ehutano/services/instructions.py
"""
Medication instruction interpreter.

Expands prescription shorthand ("t1 tds pc prn") into patient wording
("take one tablet three times daily after food when necessary"). The
pharmacist's text stays the value of record; the expansion is only used
for previews and labels.
"""
from __future__ import annotations

import re
from types import MappingProxyType
from typing import List, Mapping

ABBREVIATIONS: Mapping[str, str] = MappingProxyType({
    # Frequency
    "od": "once daily",
    "bd": "twice daily",
    "bid": "twice daily",
    "tds": "three times daily",
    "tid": "three times daily",
    "qds": "four times daily",
    "qid": "four times daily",
    "q4h": "every 4 hours",
    "q6h": "every 6 hours",
    "q8h": "every 8 hours",
    "q12h": "every 12 hours",
    "prn": "when necessary",
    "stat": "immediately",
    "sos": "if required",
    "nocte": "at night",
    "mane": "in the morning",

    # Timing
    "ac": "before food",
    "pc": "after food",
    "hs": "at bedtime",
    "am": "in the morning",
    "pm": "in the evening",
    "ante": "before",
    "post": "after",
    "om": "every morning",
    "on": "every night",

    # Dosage forms and amounts
    "t1": "take one tablet",
    "t2": "take two tablets",
    "t3": "take three tablets",
    "c1": "take one capsule",
    "c2": "take two capsules",
    "c3": "take three capsules",
    "tab": "tablet",
    "tabs": "tablets",
    "cap": "capsule",
    "caps": "capsules",
    "ml": "millilitres",
    "mg": "milligrams",
    "g": "grams",
    "tsp": "teaspoon",
    "tbsp": "tablespoon",
    "5ml": "5 millilitres (one teaspoon)",
    "10ml": "10 millilitres (two teaspoons)",
    "15ml": "15 millilitres (one tablespoon)",

    # Routes of administration
    "po": "by mouth",
    "topical": "apply to skin",
    "iv": "intravenous",
    "im": "intramuscular",
    "sl": "under the tongue",
    "pr": "rectally",
    "pv": "vaginally",
    "inhaled": "by inhalation",
    "nasal": "into the nose",
    "otic": "into the ear",
    "ophthalmic": "into the eye",

    # Indications
    "pdi": "pain and inflammation",
    "uti": "urinary tract infection",
    "htn": "high blood pressure",
    "dm": "diabetes",
    "pain": "pain relief",
    "fever": "fever reduction",
    "infection": "infection treatment",
    "cough": "cough suppression",
    "nausea": "nausea and vomiting",
    "anxiety": "anxiety relief",
    "insomnia": "sleep aid",
    "allergy": "allergic reactions",

    # Special instructions
    "npo": "nothing by mouth",
    "nkda": "no known drug allergies",
    "daw": "dispense as written",
    "ud": "as directed",
    "qs": "sufficient quantity",
    "dtd": "give of such doses",
    "mdu": "more detailed usage",
    "crf": "chronic renal failure",
    "ccf": "chronic cardiac failure",
    "copd": "chronic obstructive pulmonary disease",
})

# Longest first so "tabs" wins over "tab" and "q12h" over nothing shorter.
_TOKEN_RE = re.compile(
    r"\b(" + "|".join(
        re.escape(k) for k in sorted(ABBREVIATIONS, key=len, reverse=True)) +
    r")\b",
    re.IGNORECASE,
)


def interpret(text: str) -> str:
    """
    Single left-to-right pass: replacements are never re-scanned, so the
    result does not depend on table order and cannot expand twice.
    """
    if not text:
        return ""
    return _TOKEN_RE.sub(lambda m: ABBREVIATIONS[m.group(0).lower()], text)


def found_terms(text: str) -> List[str]:
    if not text:
        return []
    return [m.group(0).lower() for m in _TOKEN_RE.finditer(text)]


def label_wording(text: str) -> str:
    """Interpreted text, capitalised for a label line."""
    out = interpret(text).strip()
    return out[:1].upper() + out[1:] if out else ""
