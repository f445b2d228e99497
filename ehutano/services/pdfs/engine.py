# FILE: ehutano/services/pdfs/engine.py
from __future__ import annotations

import io
import logging
from typing import Any, List, Optional

from barcode import Code128
from barcode.writer import ImageWriter
from reportlab.lib import colors
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.platypus import Table, TableStyle

logger = logging.getLogger(__name__)


# -----------------------------
# Helpers
# -----------------------------
def _safe_str(v: Any) -> str:
    if v is None:
        return ""
    try:
        s = str(v)
    except Exception:
        return ""
    return s.replace("‑", "-")  # avoid non-breaking hyphen rendering issues


def mm_pt(x_mm: float) -> float:
    return x_mm * mm


def barcode_image(value: str) -> Optional[ImageReader]:
    """Code128 PNG for drawing on a canvas; None when the value cannot be encoded."""
    if not value:
        return None
    buf = io.BytesIO()
    try:
        Code128(value, writer=ImageWriter()).write(
            buf, options={"write_text": False, "module_height": 8.0, "quiet_zone": 1.0})
    except Exception:
        logger.exception("Barcode render failed for %r", value)
        return None
    buf.seek(0)
    return ImageReader(buf)


# -----------------------------
# Styles + Components
# -----------------------------
def get_styles():
    base = getSampleStyleSheet()
    base.add(ParagraphStyle(
        name="Small",
        parent=base["BodyText"],
        fontName="Helvetica",
        fontSize=9,
        leading=11,
        textColor=colors.black,
    ))
    base.add(ParagraphStyle(
        name="Muted",
        parent=base["BodyText"],
        fontName="Helvetica",
        fontSize=8,
        leading=10,
        textColor=colors.grey,
    ))
    return base


def kv_table(rows: List[List[str]]):
    data = [[_safe_str(a), _safe_str(b)] for a, b in rows]
    t = Table(data, colWidths=[mm_pt(28), None])
    t.setStyle(TableStyle([
        ("FONTNAME", (0, 0), (-1, -1), "Helvetica"),
        ("FONTSIZE", (0, 0), (-1, -1), 8),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("LEFTPADDING", (0, 0), (-1, -1), 2),
        ("RIGHTPADDING", (0, 0), (-1, -1), 2),
        ("TOPPADDING", (0, 0), (-1, -1), 1),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 1),
    ]))
    return t


def simple_table(data: List[List[str]], col_widths=None):
    clean = [[_safe_str(x) for x in row] for row in data]
    t = Table(clean, colWidths=col_widths)
    t.setStyle(TableStyle([
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 8),
        ("LINEBELOW", (0, 0), (-1, 0), 0.4, colors.black),
        ("ALIGN", (1, 0), (-1, -1), "RIGHT"),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("LEFTPADDING", (0, 0), (-1, -1), 2),
        ("RIGHTPADDING", (0, 0), (-1, -1), 2),
        ("TOPPADDING", (0, 0), (-1, -1), 2),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 2),
    ]))
    return t
